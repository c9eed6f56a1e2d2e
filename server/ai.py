"""AI strategies for CPU players in UNO."""

import logging
import os
import random
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from models.game_state import Card, CardColor, CardType, GameState
from rules import can_stack, is_valid_play


# Debug logging configuration
# Set AI_DEBUG=1 environment variable to enable detailed AI decision logging
AI_DEBUG = os.environ.get("AI_DEBUG", "0") == "1"

# Create a dedicated logger for AI decisions
ai_logger = logging.getLogger("uno.ai")
if AI_DEBUG:
    ai_logger.setLevel(logging.DEBUG)
    if not ai_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [AI] %(message)s", datefmt="%H:%M:%S"
        ))
        ai_logger.addHandler(handler)


def ai_log(message: str):
    """Log AI decision info when AI_DEBUG is enabled."""
    if AI_DEBUG:
        ai_logger.debug(message)


# =============================================================================
# CPU Turn Timing Configuration (seconds)
# =============================================================================

CPU_TIMING = {
    # "Thinking" delay before a CPU acts, long enough for the previous play
    # to animate on every client
    "think": (1.5, 2.5),
}


def think_time(rng: Optional[random.Random] = None,
               low: Optional[float] = None, high: Optional[float] = None) -> float:
    """Randomized CPU thinking delay in seconds."""
    rng = rng or random
    default_low, default_high = CPU_TIMING["think"]
    return rng.uniform(
        default_low if low is None else low,
        default_high if high is None else high,
    )


def legal_plays(hand: list[Card], top_card: Card, active_color: CardColor) -> list[Card]:
    """Cards in ``hand`` that may be played, in hand order."""
    return [card for card in hand if is_valid_play(card, top_card, active_color)]


# =============================================================================
# Strategies
# =============================================================================

class AIStrategy:
    """
    Base class for CPU decision making.

    A strategy is picked once when the game starts and handed to whatever
    drives CPU turns. Subclasses decide which card to play and which color
    to name; the shared helpers cover the rule variants.
    """

    name = "base"
    difficulty = ""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def choose_move(self, hand: list[Card], top_card: Card,
                    active_color: CardColor) -> Optional[Card]:
        """Pick a legal card to play, or None if the CPU must draw."""
        raise NotImplementedError

    def choose_color(self, hand: list[Card]) -> CardColor:
        """Pick the color to name for a Wild."""
        raise NotImplementedError

    def choose_stack_response(self, hand: list[Card], top_card: Card) -> Optional[Card]:
        """Answer a pending draw stack. Draw Two is kept cheaper than Draw Four."""
        options = [card for card in hand if can_stack(card, top_card)]
        if not options:
            return None
        options.sort(key=lambda c: c.type != CardType.DRAW_TWO)
        return options[0]

    def choose_swap_target(self, state: GameState, player_index: int) -> int:
        """Pick whose hand to take for a 7: the opponent holding the fewest cards."""
        opponents = [i for i in range(len(state.players)) if i != player_index]
        return min(opponents, key=lambda i: len(state.players[i].hand))


class RandomStrategy(AIStrategy):
    """Easy CPU: any legal card, any color."""

    name = "Random"
    difficulty = "easy"

    def choose_move(self, hand, top_card, active_color):
        playable = legal_plays(hand, top_card, active_color)
        if not playable:
            return None
        return self.rng.choice(playable)

    def choose_color(self, hand):
        return self.rng.choice(CardColor.playable())


class GreedyStrategy(AIStrategy):
    """
    Hard CPU: aggressive fixed priority.

    Priority order:
        1. Draw Two
        2. Wild Draw Four
        3. Skip or Reverse
        4. Highest-scoring number card
        5. Plain Wild
        6. First remaining legal card
    """

    name = "Greedy"
    difficulty = "hard"

    def choose_move(self, hand, top_card, active_color):
        playable = legal_plays(hand, top_card, active_color)
        if not playable:
            return None

        for wanted in (CardType.DRAW_TWO, CardType.WILD_DRAW_FOUR):
            for card in playable:
                if card.type == wanted:
                    return card

        for card in playable:
            if card.type in (CardType.SKIP, CardType.REVERSE):
                return card

        numbers = [card for card in playable if card.type == CardType.NUMBER]
        if numbers:
            return max(numbers, key=lambda c: c.score)

        for card in playable:
            if card.type == CardType.WILD:
                return card

        return playable[0]

    def choose_color(self, hand):
        counts = Counter(card.color for card in hand if card.color != CardColor.WILD)
        best = max((counts[color] for color in CardColor.playable()), default=0)
        tied = [color for color in CardColor.playable() if counts[color] == best]
        return self.rng.choice(tied)


STRATEGIES: dict[str, type[AIStrategy]] = {
    RandomStrategy.difficulty: RandomStrategy,
    GreedyStrategy.difficulty: GreedyStrategy,
}


def get_strategy(difficulty: str, rng: Optional[random.Random] = None) -> AIStrategy:
    """
    Build the strategy for a difficulty name ("easy" or "hard").

    Unknown names fall back to easy.
    """
    strategy_cls = STRATEGIES.get(difficulty.lower(), RandomStrategy)
    return strategy_cls(rng)


def choose_move(hand: list[Card], top_card: Card, active_color: CardColor,
                difficulty: str = "easy", rng: Optional[random.Random] = None) -> Optional[Card]:
    """One-shot move choice for callers that track difficulty by name."""
    return get_strategy(difficulty, rng).choose_move(hand, top_card, active_color)


def choose_color(hand: list[Card], difficulty: str = "easy",
                 rng: Optional[random.Random] = None) -> CardColor:
    """One-shot color choice for callers that track difficulty by name."""
    return get_strategy(difficulty, rng).choose_color(hand)


# =============================================================================
# Turn Decisions
# =============================================================================

@dataclass
class AIAction:
    """
    A CPU decision for one turn.

    Attributes:
        card: Card to play, or None to draw.
        color: Color to name when ``card`` is a Wild.
        swap_target: Seat to swap with when ``card`` is a 7 under seven-zero.
    """

    card: Optional[Card] = None
    color: Optional[CardColor] = None
    swap_target: Optional[int] = None

    @property
    def is_draw(self) -> bool:
        return self.card is None


def choose_ai_action(state: GameState, strategy: AIStrategy) -> AIAction:
    """Decide what the current (CPU) player does with ``state``."""
    index = state.current_player_index
    player = state.players[index]
    top = state.top_card

    if state.draw_stack > 0:
        card = strategy.choose_stack_response(player.hand, top)
    else:
        card = strategy.choose_move(player.hand, top, state.active_color)

    if card is None:
        ai_log(f"{player.name} ({strategy.name}) has no play, drawing")
        return AIAction()

    action = AIAction(card=card)
    if card.is_wild:
        remaining = [c for c in player.hand if c.id != card.id]
        action.color = strategy.choose_color(remaining)
    if state.rules.seven_zero and card.type == CardType.NUMBER and card.value == 7:
        action.swap_target = strategy.choose_swap_target(state, index)

    named = f", names {action.color.value}" if action.color else ""
    ai_log(f"{player.name} ({strategy.name}) plays {card.label()}{named}")
    return action
