"""
Relay request payloads.

Clients send camelCase JSON (``playerName``, ``roomId``, ...). The models
accept either the wire name or the Python field name. Game states are passed
through as opaque dicts: the relay forwards snapshots without reading them.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

__all__ = [
    "CreateRoomRequest",
    "JoinRoomRequest",
    "StartGameRequest",
    "UpdateGameStateRequest",
    "SendMessageRequest",
    "ValidationError",
    "describe_validation_error",
]


class RelayRequest(BaseModel):
    """Base for client-to-relay messages."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateRoomRequest(RelayRequest):
    """Open a new room and join it."""
    player_name: str = Field("Player", alias="playerName")

    @field_validator("player_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip() or "Player"


class JoinRoomRequest(RelayRequest):
    """Join an existing room by code."""
    room_id: str = Field(alias="roomId", min_length=1)
    player_name: str = Field("Player", alias="playerName")

    @field_validator("room_id")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("player_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip() or "Player"


class StartGameRequest(RelayRequest):
    """Host's initial snapshot for a room."""
    room_id: str = Field(alias="roomId")
    initial_game_state: dict[str, Any] = Field(alias="initialGameState")


class UpdateGameStateRequest(RelayRequest):
    """Snapshot after a member's local transition."""
    room_id: str = Field(alias="roomId")
    game_state: dict[str, Any] = Field(alias="gameState")


class SendMessageRequest(RelayRequest):
    """Free-form chat message. Every extra field is forwarded as-is."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    room_id: str = Field(alias="roomId")


def describe_validation_error(error: ValidationError) -> str:
    """First validation problem as a short message for the client."""
    errors = error.errors()
    if not errors:
        return "Invalid message"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"Invalid message: {location}: {first.get('msg', 'invalid value')}"
    return f"Invalid message: {first.get('msg', 'invalid value')}"
