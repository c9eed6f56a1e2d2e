"""
Test suite for Room and RoomManager.

Covers:
- Room code format and case-insensitive lookup
- Member add/remove, capacity, host
- Broadcast and send_to, including dead sockets

Run with: pytest test_room.py -v
"""

import random
import string

import pytest

from room import Room, RoomManager, RoomMember


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)


class DeadWebSocket:
    """WebSocket whose peer has gone away."""

    async def send_json(self, data: dict):
        raise RuntimeError("socket closed")


# =============================================================================
# RoomManager tests
# =============================================================================

class TestRoomManager:

    def test_create_room_code_format(self):
        rm = RoomManager(random.Random(0))
        room = rm.create_room()
        assert len(room.code) == 6
        assert all(ch in string.ascii_uppercase + string.digits for ch in room.code)
        assert room.code in rm.rooms

    def test_get_room_case_insensitive(self):
        rm = RoomManager(random.Random(0))
        room = rm.create_room()
        assert rm.get_room(room.code.lower()) is room
        assert rm.get_room(room.code) is room

    def test_get_missing_room(self):
        rm = RoomManager()
        assert rm.get_room("NOPE00") is None
        assert rm.get_room("") is None

    def test_remove_room(self):
        rm = RoomManager()
        room = rm.create_room()
        rm.remove_room(room.code)
        assert rm.get_room(room.code) is None

    def test_remove_missing_room_is_noop(self):
        rm = RoomManager()
        rm.remove_room("ABCDEF")
        assert rm.rooms == {}

    def test_rooms_for_member(self):
        rm = RoomManager(random.Random(3))
        a = rm.create_room()
        b = rm.create_room()
        a.add_member("c1", "Ann", MockWebSocket())
        b.add_member("c1", "Ann", MockWebSocket())
        b.add_member("c2", "Ben", MockWebSocket())
        assert {r.code for r in rm.rooms_for_member("c1")} == {a.code, b.code}
        assert rm.rooms_for_member("c2") == [b]
        assert rm.member_count() == 3


# =============================================================================
# Room tests
# =============================================================================

class TestRoomMembers:

    def test_first_member_is_host(self):
        room = Room(code="ABC123")
        room.add_member("a", "Ann", MockWebSocket())
        room.add_member("b", "Ben", MockWebSocket())
        assert room.host.id == "a"

    def test_capacity_four(self):
        room = Room(code="ABC123")
        for i in range(4):
            assert room.add_member(f"m{i}", f"M{i}", MockWebSocket()) is not None
        assert room.is_full()
        assert room.add_member("m4", "M4", MockWebSocket()) is None
        assert len(room.members) == 4

    def test_remove_member(self):
        room = Room(code="ABC123")
        room.add_member("a", "Ann", MockWebSocket())
        removed = room.remove_member("a")
        assert removed.name == "Ann"
        assert room.is_empty()
        assert room.host is None
        assert room.remove_member("a") is None

    def test_host_passes_on_when_first_leaves(self):
        room = Room(code="ABC123")
        room.add_member("a", "Ann", MockWebSocket())
        room.add_member("b", "Ben", MockWebSocket())
        room.remove_member("a")
        assert room.host.id == "b"

    def test_member_list(self):
        room = Room(code="ABC123")
        room.add_member("a", "Ann", MockWebSocket())
        assert room.member_list() == [{"id": "a", "name": "Ann", "socketId": "a"}]

    def test_member_to_dict(self):
        assert RoomMember(id="x", name="X").to_dict()["socketId"] == "x"


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_broadcast_all(self):
        room = Room(code="ABC123")
        sockets = [MockWebSocket() for _ in range(3)]
        for i, ws in enumerate(sockets):
            room.add_member(f"m{i}", f"M{i}", ws)
        await room.broadcast({"type": "ping"})
        assert all(ws.messages == [{"type": "ping"}] for ws in sockets)

    @pytest.mark.asyncio
    async def test_broadcast_exclude(self):
        room = Room(code="ABC123")
        a, b = MockWebSocket(), MockWebSocket()
        room.add_member("a", "Ann", a)
        room.add_member("b", "Ben", b)
        await room.broadcast({"type": "ping"}, exclude="a")
        assert a.messages == []
        assert b.messages == [{"type": "ping"}]

    @pytest.mark.asyncio
    async def test_dead_socket_does_not_stop_broadcast(self):
        room = Room(code="ABC123")
        live = MockWebSocket()
        room.add_member("dead", "Dead", DeadWebSocket())
        room.add_member("live", "Live", live)
        await room.broadcast({"type": "ping"})
        assert live.messages == [{"type": "ping"}]

    @pytest.mark.asyncio
    async def test_send_to(self):
        room = Room(code="ABC123")
        a, b = MockWebSocket(), MockWebSocket()
        room.add_member("a", "Ann", a)
        room.add_member("b", "Ben", b)
        await room.send_to("b", {"type": "hello"})
        assert a.messages == []
        assert b.messages == [{"type": "hello"}]

    @pytest.mark.asyncio
    async def test_send_to_missing_member(self):
        room = Room(code="ABC123")
        await room.send_to("ghost", {"type": "hello"})
