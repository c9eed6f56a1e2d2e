"""
Game state data model for UNO.

This module holds the plain data that every other component passes around:
cards, players, rule configuration and the GameState snapshot itself.

GameState is the single source of truth for a game. Engine transitions never
edit a live snapshot; they work on ``state.copy()`` and hand back the copy,
so a snapshot that has been broadcast or rendered is never changed under the
reader's feet. Remote snapshots arrive as dicts and are rebuilt with
``GameState.from_dict``.

Usage:
    state = GameState.from_dict(payload["gameState"])
    print(state.status, state.top_card, state.active_color)
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from constants import DEFAULT_UNO_PENALTY, DECK_SIZE


class CardColor(str, Enum):
    """Card colors. WILD is the color printed on Wild cards, never an active color."""

    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    WILD = "wild"

    @classmethod
    def playable(cls) -> list["CardColor"]:
        """The four colors a Wild can stand for."""
        return [cls.RED, cls.BLUE, cls.GREEN, cls.YELLOW]


class CardType(str, Enum):
    """Card faces."""

    NUMBER = "number"
    SKIP = "skip"
    REVERSE = "reverse"
    DRAW_TWO = "draw_two"
    WILD = "wild"
    WILD_DRAW_FOUR = "wild_draw_four"


# Cards forced onto the next player by each forced-draw card
DRAW_AMOUNTS: dict[CardType, int] = {
    CardType.DRAW_TWO: 2,
    CardType.WILD_DRAW_FOUR: 4,
}


@dataclass(frozen=True)
class Card:
    """
    A single UNO card. Immutable once created.

    Attributes:
        id: Unique id within one deck (e.g., "card-17").
        color: Printed color (WILD for Wild and Wild Draw Four).
        type: Card face.
        value: 0-9 for number cards, None otherwise.
        score: Point value for scoring variants.
    """

    id: str
    color: CardColor
    type: CardType
    value: Optional[int] = None
    score: int = 0

    @property
    def is_wild(self) -> bool:
        return self.type in (CardType.WILD, CardType.WILD_DRAW_FOUR)

    @property
    def draw_amount(self) -> int:
        """Cards this card forces on the next player (0 if none)."""
        return DRAW_AMOUNTS.get(self.type, 0)

    def label(self) -> str:
        """Human-readable name, e.g. 'Red 5' or 'Wild Draw Four'."""
        face = {
            CardType.SKIP: "Skip",
            CardType.REVERSE: "Reverse",
            CardType.DRAW_TWO: "Draw Two",
            CardType.WILD: "Wild",
            CardType.WILD_DRAW_FOUR: "Wild Draw Four",
        }.get(self.type, str(self.value))
        if self.is_wild:
            return face
        return f"{self.color.value.capitalize()} {face}"

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "color": self.color.value,
            "type": self.type.value,
            "value": self.value,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Card":
        """Create from dictionary. Raises ValueError on malformed input."""
        try:
            card_type = CardType(d["type"])
            value = d.get("value")
            if card_type == CardType.NUMBER:
                if not isinstance(value, int) or not 0 <= value <= 9:
                    raise ValueError(f"number card needs a value 0-9, got {value!r}")
            else:
                value = None
            return cls(
                id=str(d["id"]),
                color=CardColor(d["color"]),
                type=card_type,
                value=value,
                score=int(d.get("score", 0)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed card: {d!r}") from e


@dataclass
class Player:
    """
    A seat at the table.

    Slots never change after dealing; only ``hand`` does.

    Attributes:
        id: Seat identity. The slot number in solo play, the relay
            connection id for human seats in multiplayer.
        name: Display name.
        is_human: False for AI-controlled seats.
        hand: Cards held, in a stable order for display.
    """

    id: str
    name: str
    is_human: bool = False
    hand: list[Card] = field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "isHuman": self.is_human,
            "hand": [card.to_dict() for card in self.hand],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Player":
        try:
            return cls(
                id=str(d["id"]),
                name=str(d["name"]),
                is_human=bool(d.get("isHuman", False)),
                hand=[Card.from_dict(c) for c in d.get("hand", [])],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed player: {d!r}") from e


@dataclass(frozen=True)
class GameRules:
    """
    Named rule configuration, fixed for the duration of a game.

    All variants default to off for a classic game.
    """

    mode_name: str = "Normal"

    stacking: bool = False
    """Forced-draw cards may be answered with another forced-draw card."""

    draw_until_play: bool = False
    """Drawing continues until a playable card arrives."""

    seven_zero: bool = False
    """A 7 swaps hands with another player, a 0 rotates all hands."""

    jump_in: bool = False
    """A card identical to the top card may be played out of turn."""

    uno_penalty_count: int = DEFAULT_UNO_PENALTY
    """Cards drawn by a human who reaches one card without calling UNO."""

    force_play: bool = False
    """A player holding a legal card may not draw instead."""

    _WIRE_NAMES = {
        "mode_name": "modeName",
        "stacking": "stacking",
        "draw_until_play": "drawUntilPlay",
        "seven_zero": "sevenZero",
        "jump_in": "jumpIn",
        "uno_penalty_count": "unoPenaltyCount",
        "force_play": "forcePlay",
    }

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for attr, wire in self._WIRE_NAMES.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "GameRules":
        """Build rules from client data, falling back to defaults per field."""
        defaults = cls()
        values = {}
        for attr, wire in cls._WIRE_NAMES.items():
            values[attr] = d.get(wire, getattr(defaults, attr))
        values["mode_name"] = str(values["mode_name"])
        values["uno_penalty_count"] = max(0, int(values["uno_penalty_count"]))
        for attr in ("stacking", "draw_until_play", "seven_zero", "jump_in", "force_play"):
            values[attr] = bool(values[attr])
        return cls(**values)


NORMAL_RULES = GameRules()

NO_MERCY_RULES = GameRules(
    mode_name="No Mercy",
    stacking=True,
    draw_until_play=True,
    seven_zero=True,
    jump_in=True,
    uno_penalty_count=4,
    force_play=True,
)

RULE_PRESETS: dict[str, GameRules] = {
    NORMAL_RULES.mode_name: NORMAL_RULES,
    NO_MERCY_RULES.mode_name: NO_MERCY_RULES,
}


def rules_for_mode(mode_name: str) -> GameRules:
    """Look up a preset by name (case-insensitive). Unknown names get Normal."""
    for name, rules in RULE_PRESETS.items():
        if name.lower() == mode_name.lower():
            return rules
    return NORMAL_RULES


class GameStatus(str, Enum):
    """
    Lifecycle of one game.

    Flow: LOBBY -> DEALING -> PLAYING -> GAME_OVER, and back to LOBBY only
    through an explicit restart.
    """

    LOBBY = "lobby"
    DEALING = "dealing"
    PLAYING = "playing"
    GAME_OVER = "game_over"


@dataclass
class GameState:
    """
    Complete snapshot of a game.

    Attributes:
        draw_pile: Face-down pile; the top is the last element.
        discard_pile: Face-up pile; the last element is the active card.
        players: Seats in turn order, fixed after dealing.
        current_player_index: Seat whose turn it is.
        direction: 1 for clockwise, -1 for counter-clockwise.
        status: Lifecycle status.
        winner: Seat index of the winner, None until GAME_OVER.
        active_color: Color in force; differs from the top card only after a Wild.
        draw_stack: Forced draws accumulated under the stacking rule.
        last_action_message: Log line for display only.
        rules: Rule variants for this game.
        uno_called: Whether the current player has declared UNO this turn.
        version: Local transition counter, informational only.
    """

    draw_pile: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    players: list[Player] = field(default_factory=list)
    current_player_index: int = 0
    direction: int = 1
    status: GameStatus = GameStatus.LOBBY
    winner: Optional[int] = None
    active_color: CardColor = CardColor.RED
    draw_stack: int = 0
    last_action_message: str = ""
    rules: GameRules = field(default_factory=GameRules)
    uno_called: bool = False
    version: int = 0

    @property
    def top_card(self) -> Optional[Card]:
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    @property
    def current_player(self) -> Optional[Player]:
        if self.players:
            return self.players[self.current_player_index]
        return None

    @property
    def winning_player(self) -> Optional[Player]:
        if self.winner is None:
            return None
        return self.players[self.winner]

    def total_cards(self) -> int:
        """Cards across both piles and all hands; DECK_SIZE once dealt."""
        return (
            len(self.draw_pile)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
        )

    def is_conserved(self) -> bool:
        return self.total_cards() == DECK_SIZE

    def copy(self) -> "GameState":
        """
        Copy deep enough for a transition to edit freely.

        Cards are immutable, so only the containers are copied.
        """
        return replace(
            self,
            draw_pile=list(self.draw_pile),
            discard_pile=list(self.discard_pile),
            players=[replace(p, hand=list(p.hand)) for p in self.players],
        )

    def to_dict(self) -> dict:
        """Convert to the JSON snapshot sent over the relay."""
        return {
            "drawPile": [c.to_dict() for c in self.draw_pile],
            "discardPile": [c.to_dict() for c in self.discard_pile],
            "players": [p.to_dict() for p in self.players],
            "currentPlayerIndex": self.current_player_index,
            "direction": self.direction,
            "status": self.status.value,
            "winner": self.winner,
            "activeColor": self.active_color.value,
            "drawStack": self.draw_stack,
            "lastActionMessage": self.last_action_message,
            "rules": self.rules.to_dict(),
            "unoCalled": self.uno_called,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "GameState":
        """
        Rebuild a snapshot received from a peer.

        Raises:
            ValueError: If the snapshot is malformed or internally inconsistent.
        """
        if not isinstance(d, dict):
            raise ValueError("game state must be an object")
        try:
            players = [Player.from_dict(p) for p in d.get("players", [])]
            state = cls(
                draw_pile=[Card.from_dict(c) for c in d.get("drawPile", [])],
                discard_pile=[Card.from_dict(c) for c in d.get("discardPile", [])],
                players=players,
                current_player_index=int(d.get("currentPlayerIndex", 0)),
                direction=int(d.get("direction", 1)),
                status=GameStatus(d.get("status", GameStatus.LOBBY.value)),
                winner=d.get("winner"),
                active_color=CardColor(d.get("activeColor", CardColor.RED.value)),
                draw_stack=max(0, int(d.get("drawStack", 0))),
                last_action_message=str(d.get("lastActionMessage", "")),
                rules=GameRules.from_dict(d.get("rules") or {}),
                uno_called=bool(d.get("unoCalled", False)),
                version=int(d.get("version", 0)),
            )
        except (TypeError, AttributeError) as e:
            raise ValueError(f"malformed game state: {e}") from e

        if state.direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1, got {state.direction}")
        if state.status != GameStatus.LOBBY:
            if not players:
                raise ValueError(f"a {state.status.value} game needs players")
            if not state.discard_pile:
                raise ValueError(f"a {state.status.value} game needs a discard pile")
        if players and not 0 <= state.current_player_index < len(players):
            raise ValueError(f"current player index {state.current_player_index} out of range")
        if state.winner is not None and not (
            isinstance(state.winner, int) and 0 <= state.winner < len(players)
        ):
            raise ValueError(f"winner {state.winner!r} is not a seat")
        if state.status != GameStatus.LOBBY and state.active_color == CardColor.WILD:
            raise ValueError("active color cannot be wild once a game has started")
        return state

