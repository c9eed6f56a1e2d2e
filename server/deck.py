"""
Deck management for UNO.

Builds the canonical 108-card deck, shuffles, and moves cards from the draw
pile into hands, recycling the discard pile when the draw pile runs out.

All functions take an optional ``rng`` (a ``random.Random``) so tests and
simulations can seed the shuffle; without one the module-level generator is
used.
"""

import logging
import random
from typing import Optional

from constants import (
    ACTION_CARD_SCORE,
    ACTION_COPIES,
    NUMBER_COPIES,
    WILD_CARD_SCORE,
    WILD_COPIES,
)
from models.game_state import Card, CardColor, CardType, GameState

logger = logging.getLogger(__name__)


def build_deck() -> list[Card]:
    """
    Build the 108 cards of a standard deck in a fixed order.

    Per color: one 0, two each of 1-9, two each of Skip/Reverse/Draw Two.
    Plus four Wild and four Wild Draw Four.
    """
    cards: list[Card] = []
    next_id = 0

    def make(color: CardColor, card_type: CardType, value: Optional[int], score: int) -> Card:
        nonlocal next_id
        card = Card(f"card-{next_id}", color, card_type, value, score)
        next_id += 1
        return card

    for color in CardColor.playable():
        for number, copies in NUMBER_COPIES.items():
            for _ in range(copies):
                cards.append(make(color, CardType.NUMBER, number, number))

        for card_type in (CardType.SKIP, CardType.REVERSE, CardType.DRAW_TWO):
            for _ in range(ACTION_COPIES):
                cards.append(make(color, card_type, None, ACTION_CARD_SCORE))

    for _ in range(WILD_COPIES):
        cards.append(make(CardColor.WILD, CardType.WILD, None, WILD_CARD_SCORE))
        cards.append(make(CardColor.WILD, CardType.WILD_DRAW_FOUR, None, WILD_CARD_SCORE))

    return cards


def shuffle(cards: list[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """
    Return a uniformly shuffled copy of ``cards`` (Fisher-Yates).

    The input list is left untouched.
    """
    rng = rng or random
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def generate_deck(rng: Optional[random.Random] = None) -> list[Card]:
    """Build and shuffle a fresh deck."""
    return shuffle(build_deck(), rng)


def draw_opening_card(
    draw_pile: list[Card], rng: Optional[random.Random] = None
) -> tuple[list[Card], Card]:
    """
    Draw the first discard card from a freshly dealt draw pile.

    A Wild Draw Four is returned to the pile, the pile reshuffled, and
    another card drawn, until the card is anything else.

    Returns:
        Tuple of (remaining draw pile, opening card).
    """
    pile = list(draw_pile)
    card = pile.pop()
    while card.type == CardType.WILD_DRAW_FOUR:
        pile.append(card)
        pile = shuffle(pile, rng)
        card = pile.pop()
    return pile, card


def recycle_discard_pile(
    draw_pile: list[Card],
    discard_pile: list[Card],
    rng: Optional[random.Random] = None,
) -> tuple[list[Card], list[Card]]:
    """
    Turn all but the top discard into a new shuffled draw pile.

    The top card stays behind as the sole discard. With one or no discards
    there is nothing to recycle and the piles come back unchanged.

    Returns:
        Tuple of (draw pile, discard pile).
    """
    if len(discard_pile) <= 1:
        return draw_pile, discard_pile

    top = discard_pile[-1]
    recycled = shuffle(discard_pile[:-1], rng)
    logger.debug(f"Reshuffled {len(recycled)} discards into the draw pile")
    return draw_pile + recycled, [top]


def draw_cards(
    state: GameState,
    player_index: int,
    count: int,
    rng: Optional[random.Random] = None,
) -> tuple[GameState, list[Card]]:
    """
    Move up to ``count`` cards from the draw pile into a player's hand.

    When the draw pile empties mid-draw, the discard pile (minus its top
    card) is reshuffled into a new draw pile. If both piles are exhausted
    the draw stops early rather than failing.

    Args:
        state: Current snapshot (not modified).
        player_index: Seat receiving the cards.
        count: Cards requested.
        rng: Random source for any reshuffle.

    Returns:
        Tuple of (new state, cards actually drawn in draw order).
    """
    new_state = state.copy()
    player = new_state.players[player_index]
    drawn: list[Card] = []

    for _ in range(count):
        if not new_state.draw_pile:
            new_state.draw_pile, new_state.discard_pile = recycle_discard_pile(
                new_state.draw_pile, new_state.discard_pile, rng
            )
            if not new_state.draw_pile:
                logger.debug(
                    f"Both piles exhausted, {player.name} drew {len(drawn)} of {count}"
                )
                break
        card = new_state.draw_pile.pop()
        player.hand.append(card)
        drawn.append(card)

    return new_state, drawn
