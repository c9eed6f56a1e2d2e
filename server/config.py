"""
Centralized configuration for the UNO relay server and game engine.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game_defaults.deal_duration)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class GameDefaults:
    """Default game settings and client-side timings (seconds)."""
    initial_hand_size: int = 7
    deal_duration: float = 2.5
    ai_think_min: float = 1.5
    ai_think_max: float = 2.5
    difficulty: str = "easy"  # "easy" or "hard"


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Allowed CORS origin for the browser client
    FRONTEND_URL: str = "http://localhost:5173"

    # Room settings
    MAX_PLAYERS_PER_ROOM: int = 4
    ROOM_CODE_LENGTH: int = 6

    game_defaults: GameDefaults = field(default_factory=GameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 3001),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            FRONTEND_URL=get_env("FRONTEND_URL", "http://localhost:5173"),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", 4),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 6),
            game_defaults=GameDefaults(
                initial_hand_size=get_env_int("INITIAL_HAND_SIZE", 7),
                deal_duration=get_env_float("DEAL_DURATION", 2.5),
                ai_think_min=get_env_float("AI_THINK_MIN", 1.5),
                ai_think_max=get_env_float("AI_THINK_MAX", 2.5),
                difficulty=get_env("DEFAULT_DIFFICULTY", "easy"),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
