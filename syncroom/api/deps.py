from fastapi import Request

from syncroom.services.hub import RoomHub


def get_room_hub(request: Request) -> RoomHub:
    return request.app.state.hub
