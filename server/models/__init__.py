"""Models package for the UNO engine and relay."""

from .game_state import (
    Card,
    CardColor,
    CardType,
    GameRules,
    GameState,
    GameStatus,
    Player,
)
from .messages import (
    CreateRoomRequest,
    JoinRoomRequest,
    SendMessageRequest,
    StartGameRequest,
    UpdateGameStateRequest,
)

__all__ = [
    "Card",
    "CardColor",
    "CardType",
    "GameRules",
    "GameState",
    "GameStatus",
    "Player",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "SendMessageRequest",
    "StartGameRequest",
    "UpdateGameStateRequest",
]
