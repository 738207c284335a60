"""
tests.test_connection_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

ConnectionRegistry + Session 单元测试。
"""
from __future__ import annotations

from syncroom.services.connection_registry import ConnectionRegistry
from syncroom.services.session import Session, default_username


class TestSession:
    """测试会话的默认状态。"""

    def test_default_username_uses_connection_suffix(self) -> None:
        session = Session("abcdef123456")

        assert session.username == "匿名_3456"
        assert session.username == default_username("abcdef123456")
        assert session.current_room is None

    def test_explicit_username(self) -> None:
        assert Session("abc", "alice").username == "alice"


class TestConnectionRegistry:
    """测试连接的建立与断开。"""

    def test_connect_creates_empty_session(self) -> None:
        registry = ConnectionRegistry()

        session = registry.connect("c1")

        assert registry.get("c1") is session
        assert "c1" in registry
        assert len(registry) == 1
        assert session.current_room is None

    def test_connect_twice_returns_same_session(self) -> None:
        registry = ConnectionRegistry()

        assert registry.connect("c1") is registry.connect("c1")
        assert len(registry) == 1

    def test_disconnect_is_idempotent(self) -> None:
        registry = ConnectionRegistry()
        session = registry.connect("c1")

        assert registry.disconnect("c1") is session
        assert registry.disconnect("c1") is None
        assert registry.get("c1") is None
        assert len(registry) == 0
