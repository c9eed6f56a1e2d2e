"""
Rule engine for UNO.

Pure functions that decide whether a card may be played and compute the
state that follows a play or a draw. Nothing here touches timers, sockets
or the UI; the turn state machine in game.py calls in here and commits the
result.

Turn advance order for a resolved play:
    1. Direction changes (Reverse) take effect first.
    2. Skip moves the index twice instead of once.
    3. A forced draw lands on the player who would take the next turn,
       and the turn then moves past them.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from deck import draw_cards
from models.game_state import (
    NORMAL_RULES,
    NO_MERCY_RULES,
    RULE_PRESETS,
    Card,
    CardColor,
    CardType,
    GameRules,
    GameState,
    GameStatus,
    rules_for_mode,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Effect",
    "GameRules",
    "NORMAL_RULES",
    "NO_MERCY_RULES",
    "RULE_PRESETS",
    "PlayOutcome",
    "can_jump_in",
    "can_stack",
    "get_next_player_index",
    "is_playable_now",
    "is_valid_play",
    "resolve_draw",
    "resolve_play",
    "rules_for_mode",
]


class Effect(str, Enum):
    """Presentation tags describing what a transition did (sound, overlays)."""

    DEAL = "deal"
    PLAY = "play"
    SKIP = "skip"
    REVERSE = "reverse"
    DRAW_TWO = "draw_two"
    WILD = "wild"
    WILD_DRAW_FOUR = "wild_draw_four"
    DRAW = "draw"
    UNO = "uno"
    UNO_PENALTY = "uno_penalty"
    SWAP = "swap"
    ROTATE = "rotate"
    WIN = "win"


_CARD_EFFECTS = {
    CardType.NUMBER: Effect.PLAY,
    CardType.SKIP: Effect.SKIP,
    CardType.REVERSE: Effect.REVERSE,
    CardType.DRAW_TWO: Effect.DRAW_TWO,
    CardType.WILD: Effect.WILD,
    CardType.WILD_DRAW_FOUR: Effect.WILD_DRAW_FOUR,
}


@dataclass
class PlayOutcome:
    """
    Result of resolving a play or a draw.

    Attributes:
        state: The new snapshot.
        effects: Presentation tags, in the order they happened.
        drawn: Cards drawn during the transition (forced draws, penalties,
            or the draw itself).
    """

    state: GameState
    effects: list[Effect] = field(default_factory=list)
    drawn: list[Card] = field(default_factory=list)


# -------------------------------------------------------------------------
# Legality
# -------------------------------------------------------------------------

def is_valid_play(card: Card, top_card: Card, active_color: CardColor) -> bool:
    """
    Check whether ``card`` may be played onto ``top_card``.

    Wild cards are always legal. On a Wild top card only the active color
    matches. Otherwise a card matches on active color, on number, or on
    face (Skip on Skip, Reverse on Reverse, Draw Two on Draw Two).
    """
    if card.is_wild:
        return True

    if top_card.is_wild:
        return card.color == active_color

    if card.color == active_color:
        return True
    if card.type == CardType.NUMBER and top_card.type == CardType.NUMBER:
        return card.value == top_card.value
    return card.type == top_card.type


def can_stack(card: Card, top_card: Card) -> bool:
    """
    Check whether ``card`` may answer a pending draw stack.

    A Wild Draw Four always stacks; a Draw Two only stacks on a Draw Two.
    """
    if card.type == CardType.WILD_DRAW_FOUR:
        return True
    return card.type == CardType.DRAW_TWO and top_card.type == CardType.DRAW_TWO


def can_jump_in(card: Card, top_card: Card) -> bool:
    """Check whether ``card`` is identical to a non-Wild ``top_card``."""
    if top_card.is_wild or card.is_wild:
        return False
    return (
        card.color == top_card.color
        and card.type == top_card.type
        and card.value == top_card.value
    )


def is_playable_now(card: Card, state: GameState) -> bool:
    """Legality for the current player, honoring a pending draw stack."""
    top = state.top_card
    if top is None:
        return False
    if state.draw_stack > 0:
        return can_stack(card, top)
    return is_valid_play(card, top, state.active_color)


def get_next_player_index(current_index: int, direction: int, total_players: int) -> int:
    """Seat after ``current_index`` in ``direction``, wrapping around the table."""
    return (current_index + direction) % total_players


# -------------------------------------------------------------------------
# Resolution
# -------------------------------------------------------------------------

def _swap_hands(state: GameState, a: int, b: int) -> None:
    state.players[a].hand, state.players[b].hand = (
        state.players[b].hand,
        state.players[a].hand,
    )


def _rotate_hands(state: GameState) -> None:
    """Every hand moves to the next seat in the direction of play."""
    hands = [p.hand for p in state.players]
    total = len(hands)
    for i, hand in enumerate(hands):
        state.players[get_next_player_index(i, state.direction, total)].hand = hand


def resolve_play(
    state: GameState,
    card: Card,
    color_choice: Optional[CardColor] = None,
    swap_target: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> PlayOutcome:
    """
    Compute the state after the current player plays ``card``.

    The card must already be legal and already removed from the current
    player's hand. ``state`` is not modified.

    Args:
        state: Snapshot with the card removed from the player's hand.
        card: The card being played.
        color_choice: Color named for a Wild; ignored for other cards.
        swap_target: Seat to swap hands with when a 7 is played under the
            seven-zero rule. Defaults to the next player.
        rng: Random source for any reshuffle during forced draws.

    Returns:
        PlayOutcome with the new state, effect tags and any cards drawn.
    """
    new_state = state.copy()
    rules = new_state.rules
    index = new_state.current_player_index
    player = new_state.players[index]
    total = len(new_state.players)
    outcome = PlayOutcome(state=new_state, effects=[_CARD_EFFECTS[card.type]])

    new_state.discard_pile.append(card)
    if card.is_wild:
        new_state.active_color = color_choice if color_choice in CardColor.playable() else CardColor.RED
    else:
        new_state.active_color = card.color
    new_state.version += 1

    # A winning card ends the game before any effect fires
    if not player.hand:
        new_state.status = GameStatus.GAME_OVER
        new_state.winner = index
        new_state.uno_called = False
        new_state.draw_stack = 0
        new_state.last_action_message = f"{player.name} plays their last card and WINS!"
        outcome.effects.append(Effect.WIN)
        logger.info(f"{player.name} won with {card.label()}")
        return outcome

    message = f"{player.name} played {card.label()}"
    if card.is_wild:
        message += f" ({new_state.active_color.value})"

    if rules.seven_zero and card.type == CardType.NUMBER:
        if card.value == 7:
            target = swap_target
            if target is None or target == index or not 0 <= target < total:
                target = get_next_player_index(index, new_state.direction, total)
            _swap_hands(new_state, index, target)
            message += f" and swapped hands with {new_state.players[target].name}"
            outcome.effects.append(Effect.SWAP)
        elif card.value == 0:
            _rotate_hands(new_state)
            message += " and rotated all hands"
            outcome.effects.append(Effect.ROTATE)

    # UNO check applies to whatever hand the player ends up holding
    if len(player.hand) == 1:
        if player.is_human and not new_state.uno_called:
            penalty = rules.uno_penalty_count
            new_state, penalty_cards = draw_cards(new_state, index, penalty, rng)
            outcome.drawn.extend(penalty_cards)
            outcome.effects.append(Effect.UNO_PENALTY)
            message += f" (Forgot UNO! +{penalty})"
        else:
            outcome.effects.append(Effect.UNO)
            message += " - UNO!"

    skip = False
    if card.type == CardType.REVERSE:
        if total == 2:
            skip = True
        else:
            new_state.direction = -new_state.direction
    elif card.type == CardType.SKIP:
        skip = True

    next_index = get_next_player_index(index, new_state.direction, total)
    if skip:
        next_index = get_next_player_index(next_index, new_state.direction, total)

    if card.draw_amount:
        victim = new_state.players[next_index]
        if rules.stacking:
            new_state.draw_stack += card.draw_amount
            message += f"; {victim.name} faces +{new_state.draw_stack}"
        else:
            new_state, forced = draw_cards(new_state, next_index, card.draw_amount, rng)
            outcome.drawn.extend(forced)
            message += f"; {victim.name} draws {len(forced)}"
            next_index = get_next_player_index(next_index, new_state.direction, total)

    new_state.current_player_index = next_index
    new_state.uno_called = False
    new_state.last_action_message = message
    outcome.state = new_state
    return outcome


def resolve_draw(state: GameState, rng: Optional[random.Random] = None) -> PlayOutcome:
    """
    Compute the state after the current player draws instead of playing.

    - A pending draw stack is drawn in full, cleared, and the turn passes.
    - Under draw-until-play, cards are drawn one at a time until a legal
      card arrives; the turn stays with the player if one did.
    - Otherwise one card is drawn and the turn passes.

    ``state`` is not modified.
    """
    index = state.current_player_index
    player_name = state.players[index].name
    total = len(state.players)
    new_state = state

    if state.draw_stack > 0:
        stack = state.draw_stack
        new_state, drawn = draw_cards(state, index, stack, rng)
        new_state.draw_stack = 0
        new_state.current_player_index = get_next_player_index(index, new_state.direction, total)
        message = f"{player_name} took the stack of {stack} ({len(drawn)} drawn)"
        new_state.uno_called = False
    elif state.rules.draw_until_play:
        drawn = []
        keep_turn = False
        while True:
            new_state, batch = draw_cards(new_state, index, 1, rng)
            if not batch:
                break
            drawn.extend(batch)
            if is_valid_play(batch[0], new_state.top_card, new_state.active_color):
                keep_turn = True
                break
        if keep_turn:
            message = f"{player_name} drew {len(drawn)} until a playable card"
        else:
            new_state.current_player_index = get_next_player_index(index, new_state.direction, total)
            message = f"{player_name} drew {len(drawn)} and passed"
            new_state.uno_called = False
    else:
        new_state, drawn = draw_cards(state, index, 1, rng)
        new_state.current_player_index = get_next_player_index(index, new_state.direction, total)
        message = f"{player_name} drew and passed"
        new_state.uno_called = False

    new_state.version += 1
    new_state.last_action_message = message
    return PlayOutcome(state=new_state, effects=[Effect.DRAW], drawn=drawn)
