"""
Client side of the relay protocol.

RelayClient connects one GameSession to a relay room. It sends the local
player's intents (create, join, start, state updates, chat) and applies what
the relay pushes back. The transport is any coroutine that delivers a JSON
dict, so the same class works over a real WebSocket or in tests.

Authority model: the host deals and transmits the initial state; after that
whichever client resolves a transition broadcasts the resulting snapshot, and
every incoming snapshot replaces the local one wholesale.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from ai import AIStrategy
from models.game_state import GameRules, GameState, GameStatus
from session import GameSession

logger = logging.getLogger(__name__)

Sender = Callable[[dict], Awaitable[Any]]


class RelayClient:
    """
    Multiplayer binding between a GameSession and the relay.

    Attributes:
        room_id: Code of the joined room, None until the relay confirms.
        player_id: This connection's id as assigned by the relay.
        members: Room members as last broadcast by the relay.
        last_error: Most recent error reported by the relay or the transport.
        messages: Chat payloads received from other members.
    """

    def __init__(self, send: Sender, session: GameSession) -> None:
        self._send_raw = send
        self.session = session
        self.session.publisher = self.publish

        self.room_id: Optional[str] = None
        self.player_id: Optional[str] = None
        self.members: list[dict] = []
        self.last_error: Optional[str] = None
        self.messages: list[dict] = []

        self._handlers = {
            "room_created": self._on_room_joined,
            "room_joined": self._on_room_joined,
            "player_joined": self._on_members,
            "player_left": self._on_members,
            "game_started": self._on_game_state,
            "game_state_updated": self._on_game_state,
            "receive_message": self._on_chat,
            "error": self._on_error,
        }

    @property
    def is_host(self) -> bool:
        """The room's first member deals the game."""
        return bool(self.members) and self.members[0].get("id") == self.player_id

    # -------------------------------------------------------------------------
    # Outgoing
    # -------------------------------------------------------------------------

    async def _send(self, message: dict) -> bool:
        try:
            await self._send_raw(message)
        except Exception as e:
            self.last_error = f"Connection error: {e}"
            logger.warning(f"Relay send of {message.get('type')} failed: {e}")
            return False
        return True

    async def create_room(self, player_name: str) -> bool:
        return await self._send({"type": "create_room", "playerName": player_name})

    async def join_room(self, room_id: str, player_name: str) -> bool:
        return await self._send({
            "type": "join_room",
            "roomId": room_id.strip().upper(),
            "playerName": player_name,
        })

    async def start_game(
        self,
        rules: Optional[GameRules] = None,
        strategy: Optional[AIStrategy] = None,
    ) -> bool:
        """
        Deal a game for the room's members and transmit it (host only).

        Seats are created one per member, then patched to carry the members'
        ids and names before the snapshot goes out.

        Returns:
            True if the initial state was sent.
        """
        if not self.room_id or not self.is_host:
            logger.debug("start_game ignored: not the host of a room")
            return False

        self.session.runs_ai = True
        self.session.local_player_index = 0
        if self.session.state.status != GameStatus.LOBBY:
            self.session.restart()
        if not self.session.start(len(self.members), rules, strategy):
            return False
        self.session.game.assign_seats(self.members)

        return await self._send({
            "type": "start_game",
            "roomId": self.room_id,
            "initialGameState": self.session.state.to_dict(),
        })

    async def publish(self, state: GameState) -> bool:
        """Send a locally resolved snapshot to the rest of the room."""
        if not self.room_id:
            return False
        return await self._send({
            "type": "update_game_state",
            "roomId": self.room_id,
            "gameState": state.to_dict(),
        })

    async def send_chat(self, text: str, **extra) -> bool:
        if not self.room_id:
            return False
        return await self._send({
            "type": "send_message",
            "roomId": self.room_id,
            "playerId": self.player_id,
            "text": text,
            **extra,
        })

    # -------------------------------------------------------------------------
    # Incoming
    # -------------------------------------------------------------------------

    def handle_message(self, message: dict) -> None:
        """Apply one message pushed by the relay. Unknown types are ignored."""
        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.debug(f"Ignoring relay message {message.get('type')!r}")
            return
        handler(message)

    def _on_room_joined(self, message: dict) -> None:
        self.room_id = message.get("roomId")
        self.player_id = message.get("playerId")
        self.last_error = None

    def _on_members(self, message: dict) -> None:
        self.members = list(message.get("players") or [])

    def _on_game_state(self, message: dict) -> None:
        payload = message.get("gameState")
        self.session.runs_ai = self.is_host
        try:
            self.session.apply_remote_state(payload)
        except ValueError as e:
            logger.warning(f"Dropped malformed game state from relay: {e}")
            return

        for index, player in enumerate(self.session.state.players):
            if player.id == self.player_id:
                self.session.local_player_index = index
                break

    def _on_chat(self, message: dict) -> None:
        self.messages.append({k: v for k, v in message.items() if k != "type"})

    def _on_error(self, message: dict) -> None:
        self.last_error = message.get("message", "Unknown error")
        logger.info(f"Relay error: {self.last_error}")
