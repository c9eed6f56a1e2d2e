"""
Test suite for RelayClient.

Clients are wired to the real relay handlers through an in-memory loopback:
messages a client sends go straight into HANDLERS, and whatever the relay
sends to a member's socket is fed back into that member's RelayClient.

Run with: pytest test_sync.py -v
"""

import asyncio
import random

import pytest

from ai import RandomStrategy
from game import Game
from handlers import HANDLERS, ConnectionContext, handle_disconnect
from models.game_state import CardColor, GameStatus
from room import RoomManager
from session import GameSession
from sync import RelayClient


class LoopbackSocket:
    """Relay-side socket that delivers straight into a RelayClient."""

    def __init__(self):
        self.client = None
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)
        self.client.handle_message(data)


def connect(rm: RoomManager, connection_id: str, seed: int = 0):
    """Build a session + client pair attached to the relay ``rm``."""
    rng = random.Random(seed)
    session = GameSession(
        game=Game(rng=rng),
        strategy=RandomStrategy(rng),
        deal_duration=0.0,
        think_range=(0.0, 0.0),
        rng=rng,
    )
    socket = LoopbackSocket()
    ctx = ConnectionContext(websocket=socket, connection_id=connection_id)

    async def send(message: dict):
        handler = HANDLERS.get(message["type"])
        await handler(message, ctx, room_manager=rm)

    client = RelayClient(send, session)
    socket.client = client
    return client, ctx


async def wait_for(predicate, timeout: float = 2.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.005)
    return True


async def room_of_two():
    rm = RoomManager(random.Random(1))
    host, host_ctx = connect(rm, "host-conn", seed=1)
    guest, guest_ctx = connect(rm, "guest-conn", seed=2)
    await host.create_room("Ann")
    await guest.join_room(host.room_id.lower(), "Ben")
    return rm, host, guest, host_ctx, guest_ctx


class TestRoomFlow:

    @pytest.mark.asyncio
    async def test_create_and_join(self):
        rm, host, guest, _, _ = await room_of_two()
        assert host.room_id == guest.room_id
        assert host.player_id == "host-conn"
        assert guest.player_id == "guest-conn"
        assert [m["name"] for m in host.members] == ["Ann", "Ben"]
        assert [m["name"] for m in guest.members] == ["Ann", "Ben"]
        assert host.is_host
        assert not guest.is_host

    @pytest.mark.asyncio
    async def test_join_missing_room_sets_error(self):
        rm = RoomManager()
        guest, _ = connect(rm, "guest-conn")
        await guest.join_room("nope00", "Ben")
        assert guest.last_error == "Room not found"
        assert guest.room_id is None

    @pytest.mark.asyncio
    async def test_guest_cannot_start(self):
        _, host, guest, _, _ = await room_of_two()
        assert not await guest.start_game()
        assert guest.session.state.status == GameStatus.LOBBY

    @pytest.mark.asyncio
    async def test_member_leaving_updates_list(self):
        rm, host, guest, _, guest_ctx = await room_of_two()
        await handle_disconnect(guest_ctx, rm)
        assert [m["name"] for m in host.members] == ["Ann"]


class TestMultiplayerGame:

    @pytest.mark.asyncio
    async def test_host_start_reaches_everyone(self):
        rm, host, guest, _, _ = await room_of_two()
        assert await host.start_game()

        players = guest.session.state.players
        assert [p.id for p in players] == ["host-conn", "guest-conn"]
        assert [p.name for p in players] == ["Ann", "Ben"]
        assert all(p.is_human for p in players)
        assert guest.session.local_player_index == 1
        assert host.session.local_player_index == 0
        assert not guest.session.runs_ai
        assert rm.get_room(host.room_id).game_state["status"] == "dealing"

        assert await wait_for(lambda: guest.session.state.status == GameStatus.PLAYING)
        assert await wait_for(lambda: host.session.state.status == GameStatus.PLAYING)

    @pytest.mark.asyncio
    async def test_local_action_replicated(self):
        rm, host, guest, _, _ = await room_of_two()
        await host.start_game()
        assert await wait_for(lambda: guest.session.state.status == GameStatus.PLAYING)
        assert await wait_for(lambda: host.session.state.status == GameStatus.PLAYING)

        state = host.session.state
        assert state.current_player_index == 0
        legal = host.session.game.legal_cards(0)
        if legal:
            card = legal[0]
            assert host.session.play_card(card.id, CardColor.BLUE if card.is_wild else None)
        else:
            assert host.session.draw()

        assert await wait_for(
            lambda: guest.session.state.to_dict() == host.session.state.to_dict()
        )
        assert rm.get_room(host.room_id).game_state == host.session.state.to_dict()

    @pytest.mark.asyncio
    async def test_guest_cannot_act_out_of_turn(self):
        _, host, guest, _, _ = await room_of_two()
        await host.start_game()
        assert await wait_for(lambda: guest.session.state.status == GameStatus.PLAYING)
        card = guest.session.state.players[1].hand[0]
        assert not guest.session.play_card(card.id, CardColor.RED)
        assert not guest.session.draw()


class TestIncoming:

    def make_client(self):
        session = GameSession(game=Game(rng=random.Random(0)), deal_duration=0.0)

        async def send(message):
            pass

        return RelayClient(send, session)

    def test_malformed_state_dropped(self):
        client = self.make_client()
        before = client.session.state
        client.handle_message({"type": "game_state_updated", "gameState": {"direction": 7}})
        assert client.session.state is before

    def test_missing_state_dropped(self):
        client = self.make_client()
        before = client.session.state
        client.handle_message({"type": "game_started"})
        assert client.session.state is before

    def test_error_recorded(self):
        client = self.make_client()
        client.handle_message({"type": "error", "message": "Room is full"})
        assert client.last_error == "Room is full"

    def test_unknown_type_ignored(self):
        client = self.make_client()
        client.handle_message({"type": "mystery"})
        assert client.last_error is None

    def test_chat_stored(self):
        client = self.make_client()
        client.handle_message({"type": "receive_message", "roomId": "ABC123", "text": "gg"})
        assert client.messages == [{"roomId": "ABC123", "text": "gg"}]


class TestOutgoing:

    @pytest.mark.asyncio
    async def test_chat_round_trip(self):
        _, host, guest, _, _ = await room_of_two()
        assert await host.send_chat("good luck")
        assert guest.messages[-1]["text"] == "good luck"
        assert guest.messages[-1]["playerId"] == "host-conn"
        assert host.messages == []

    @pytest.mark.asyncio
    async def test_transport_failure_recorded(self):
        session = GameSession(game=Game(rng=random.Random(0)))

        async def broken(message):
            raise ConnectionError("relay unreachable")

        client = RelayClient(broken, session)
        assert not await client.create_room("Ann")
        assert client.last_error == "Connection error: relay unreachable"

    @pytest.mark.asyncio
    async def test_publish_without_room(self):
        session = GameSession(game=Game(rng=random.Random(0)))
        sent = []

        async def send(message):
            sent.append(message)

        client = RelayClient(send, session)
        assert not await client.publish(session.state)
        assert sent == []
