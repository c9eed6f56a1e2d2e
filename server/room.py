"""
Room management for the UNO relay.

This module tracks rooms, their members and each room's last known game
state. The relay never runs game rules: it stores whatever snapshot a member
sent last and forwards it to the others.

A Room contains:
    - A 6-character code for joining
    - An ordered list of RoomMembers (the first one is the host)
    - The most recent GameState snapshot, as received
"""

import logging
import random
import string
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from config import config

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class RoomMember:
    """
    A connection that joined a room.

    Attributes:
        id: Connection id, also used as the member's seat id in game states.
        name: Display name.
        websocket: The member's WebSocket connection.
    """

    id: str
    name: str
    websocket: Optional[WebSocket] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "socketId": self.id}


@dataclass
class Room:
    """
    A multiplayer room.

    Attributes:
        code: Upper-case room code (e.g., "K3Q9ZT").
        members: Members in join order; members[0] is the host.
        game_state: Last snapshot received via start_game/update_game_state.
        capacity: Maximum number of members.
    """

    code: str
    members: list[RoomMember] = field(default_factory=list)
    game_state: Optional[dict] = None
    capacity: int = field(default_factory=lambda: config.MAX_PLAYERS_PER_ROOM)

    def add_member(self, member_id: str, name: str, websocket: WebSocket) -> Optional[RoomMember]:
        """
        Append a member.

        Returns:
            The new RoomMember, or None if the room is full.
        """
        if self.is_full():
            return None
        member = RoomMember(id=member_id, name=name, websocket=websocket)
        self.members.append(member)
        return member

    def remove_member(self, member_id: str) -> Optional[RoomMember]:
        """Remove a member by id. Returns the removed member, or None."""
        for i, member in enumerate(self.members):
            if member.id == member_id:
                return self.members.pop(i)
        return None

    def get_member(self, member_id: str) -> Optional[RoomMember]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def has_member(self, member_id: str) -> bool:
        return self.get_member(member_id) is not None

    def is_full(self) -> bool:
        return len(self.members) >= self.capacity

    def is_empty(self) -> bool:
        return not self.members

    @property
    def host(self) -> Optional[RoomMember]:
        return self.members[0] if self.members else None

    def member_list(self) -> list[dict]:
        """Members for client display, in join order."""
        return [m.to_dict() for m in self.members]

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to every member.

        A failed send is logged and skipped; the other members still get
        the message.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional member id to skip (usually the sender).
        """
        for member in list(self.members):
            if member.id == exclude or member.websocket is None:
                continue
            try:
                await member.websocket.send_json(message)
            except Exception as e:
                logger.warning(
                    f"Send of {message.get('type')} to {member.id} in {self.code} failed: {e}"
                )

    async def send_to(self, member_id: str, message: dict) -> None:
        """Send a message to one member, if present."""
        member = self.get_member(member_id)
        if member is None or member.websocket is None:
            return
        try:
            await member.websocket.send_json(message)
        except Exception as e:
            logger.warning(f"Send of {message.get('type')} to {member_id} failed: {e}")


class RoomManager:
    """
    Registry of all active rooms.

    A single RoomManager instance is used by the server.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rooms: dict[str, Room] = {}
        self.rng = rng or random.Random()

    def _generate_code(self) -> str:
        """
        Random upper-case alphanumeric code.

        Collisions are not retried.
        """
        return "".join(self.rng.choices(ROOM_CODE_ALPHABET, k=config.ROOM_CODE_LENGTH))

    def create_room(self) -> Room:
        code = self._generate_code()
        room = Room(code=code)
        self.rooms[code] = room
        logger.info(f"Room {code} created")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """
        Get a room by its code (case-insensitive).

        Returns:
            The Room if found, None otherwise.
        """
        if not code:
            return None
        return self.rooms.get(code.upper())

    def remove_room(self, code: str) -> None:
        if self.rooms.pop(code.upper(), None) is not None:
            logger.info(f"Room {code.upper()} deleted")

    def rooms_for_member(self, member_id: str) -> list[Room]:
        """All rooms the connection belongs to."""
        return [room for room in self.rooms.values() if room.has_member(member_id)]

    def member_count(self) -> int:
        return sum(len(room.members) for room in self.rooms.values())
