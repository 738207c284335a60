"""
tests.test_room_registry
~~~~~~~~~~~~~~~~~~~~~~~~

RoomRegistry + Room 生命周期单元测试。
"""
from __future__ import annotations

import re
from unittest.mock import patch

import pytest

from conftest import FakeClock
from syncroom.services.room_registry import (
    RoomNotFoundError,
    RoomRegistry,
    generate_room_code,
)
from syncroom.services.session import Session


# ── 房间码 ────────────────────────────────────────────────────────────

class TestRoomCode:
    """测试房间码的格式与唯一性。"""

    def test_generated_codes_are_eight_digits(self) -> None:
        for _ in range(200):
            assert re.fullmatch(r"\d{8}", generate_room_code())

    def test_small_values_are_zero_padded(self) -> None:
        with patch("syncroom.services.room_registry.random.randrange", return_value=42):
            assert generate_room_code() == "00000042"

    def test_rejection_sampling_skips_live_codes(self, clock: FakeClock) -> None:
        """抽到已存在的房间码时应重新抽取。"""
        codes = iter(["11111111", "11111111", "11111111", "22222222"])
        registry = RoomRegistry(clock=clock, code_factory=lambda: next(codes))

        first = registry.create_room(Session("a"))
        second = registry.create_room(Session("b"))

        assert first.code == "11111111"
        assert second.code == "22222222"
        assert len(registry) == 2


# ── 建房 / 加入 ───────────────────────────────────────────────────────

class TestCreateAndJoin:
    """测试建房与两种加入策略。"""

    def test_create_room_registers_owner_as_member(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        owner = Session("owner")
        room = rooms.create_room(owner)

        assert room.code in rooms
        assert room.owner == "owner"
        assert room.has_member("owner")
        assert owner.current_room == room.code
        assert room.last_active_at == clock.now()

    def test_strict_join_unknown_code_raises(self, rooms: RoomRegistry) -> None:
        with pytest.raises(RoomNotFoundError):
            rooms.join_room("99999999", Session("y"))

        assert "99999999" not in rooms

    def test_auto_create_join_unknown_code(self, clock: FakeClock) -> None:
        """auto_create 策略下加入未知房间码应建房，加入者为房主。"""
        registry = RoomRegistry(policy="auto_create", clock=clock)
        joiner = Session("y", "bob")

        result = registry.join_room("12345678", joiner)

        assert result.created is True
        assert result.is_owner is True
        assert result.users == ["bob"]
        assert result.notify == []
        assert registry.get("12345678").owner == "y"
        assert joiner.current_room == "12345678"

    def test_join_returns_users_in_insertion_order(self, rooms: RoomRegistry) -> None:
        x, y, z = Session("x", "alice"), Session("y", "bob"), Session("z", "carol")
        room = rooms.create_room(x)
        rooms.join_room(room.code, y)

        result = rooms.join_room(room.code, z)

        assert result.users == ["alice", "bob", "carol"]
        assert result.is_owner is False
        assert [s.connection_id for s in result.notify] == ["x", "y"]

    def test_rejoin_same_room_is_idempotent(self, rooms: RoomRegistry) -> None:
        x, y = Session("x"), Session("y")
        room = rooms.create_room(x)
        rooms.join_room(room.code, y)

        result = rooms.join_room(room.code, y)

        assert result.notify == []
        assert room.member_count == 2

    def test_join_stamps_last_active(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        room = rooms.create_room(Session("x"))
        clock.advance(120)

        rooms.join_room(room.code, Session("y"))

        assert room.last_active_at == clock.now()

    def test_can_join(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        room = rooms.create_room(Session("x"))

        assert rooms.can_join(room.code) is True
        assert rooms.can_join("00000000") is False
        assert RoomRegistry(policy="auto_create", clock=clock).can_join("00000000") is True


# ── 离开 / 销毁 ───────────────────────────────────────────────────────

class TestLeaveAndDestroy:
    """测试离开、房主离开与显式销毁。"""

    def test_sole_member_leave_destroys_room(self, rooms: RoomRegistry) -> None:
        x = Session("x")
        room = rooms.create_room(x)

        result = rooms.leave_room(x)

        assert result is not None
        assert result.destroyed is True
        assert result.notify == []
        assert room.code not in rooms
        assert x.current_room is None

    def test_member_leave_keeps_room(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        x, y = Session("x"), Session("y")
        room = rooms.create_room(x)
        rooms.join_room(room.code, y)
        clock.advance(30)

        result = rooms.leave_room(y)

        assert result.destroyed is False
        assert [s.connection_id for s in result.notify] == ["x"]
        assert room.code in rooms
        assert y.current_room is None
        assert room.last_active_at == clock.now()

    def test_owner_leave_destroys_room_with_members(self, rooms: RoomRegistry) -> None:
        """房主离开时无论剩余多少成员都应销毁房间，并清空剩余成员的 current_room。"""
        x, y, z = Session("x"), Session("y"), Session("z")
        room = rooms.create_room(x)
        rooms.join_room(room.code, y)
        rooms.join_room(room.code, z)

        result = rooms.leave_room(x)

        assert result.destroyed is True
        assert [s.connection_id for s in result.notify] == ["y", "z"]
        assert room.code not in rooms
        assert y.current_room is None
        assert z.current_room is None

    def test_leave_without_room_returns_none(self, rooms: RoomRegistry) -> None:
        assert rooms.leave_room(Session("lonely")) is None

    def test_leave_clears_dangling_room_reference(self, rooms: RoomRegistry) -> None:
        ghost = Session("ghost")
        ghost.current_room = "12345678"

        assert rooms.leave_room(ghost) is None
        assert ghost.current_room is None

    def test_destroy_room_returns_former_members(self, rooms: RoomRegistry) -> None:
        x, y = Session("x"), Session("y")
        room = rooms.create_room(x)
        rooms.join_room(room.code, y)

        former = rooms.destroy_room(room.code)

        assert [s.connection_id for s in former] == ["x", "y"]
        assert room.code not in rooms
        assert x.current_room is None and y.current_room is None

    def test_destroy_unknown_room(self, rooms: RoomRegistry) -> None:
        assert rooms.destroy_room("00000000") == []

    def test_touch(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        room = rooms.create_room(Session("x"))
        clock.advance(10)

        rooms.touch(room.code)
        rooms.touch("00000000")

        assert room.last_active_at == clock.now()


# ── 闲置清理 ──────────────────────────────────────────────────────────

class TestReap:
    """测试 reap 的空房间与闲置判定。"""

    def test_stale_room_removed_fresh_room_kept(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        stale = rooms.create_room(Session("x"))
        clock.advance(3000)
        fresh = rooms.create_room(Session("y"))
        clock.advance(601)

        removed = rooms.reap(idle_timeout=3600)

        assert removed == [stale.code]
        assert stale.code not in rooms
        assert fresh.code in rooms

    def test_exactly_at_timeout_survives(self, rooms: RoomRegistry, clock: FakeClock) -> None:
        room = rooms.create_room(Session("x"))
        clock.advance(3600)

        assert rooms.reap(idle_timeout=3600) == []
        assert room.code in rooms

    def test_empty_room_removed(self, rooms: RoomRegistry) -> None:
        room = rooms.create_room(Session("x"))
        room.remove_member("x")

        assert rooms.reap(idle_timeout=3600) == [room.code]

    def test_list_rooms(self, rooms: RoomRegistry) -> None:
        room = rooms.create_room(Session("x", "alice"))
        rooms.join_room(room.code, Session("y", "bob"))

        summaries = rooms.list_rooms()

        assert len(summaries) == 1
        assert summaries[0].code == room.code
        assert summaries[0].members == ["alice", "bob"]
        assert summaries[0].member_count == 2
