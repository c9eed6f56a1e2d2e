"""
Turn and lifecycle state machine for UNO.

The Game class owns the canonical GameState for one client (or one
simulation) and is the only place transitions are committed. Every action
validates first, computes the next snapshot through the rule engine, and
commits it with a single assignment, so a rejected action never leaves a
partial change behind.

Lifecycle:
    LOBBY -> DEALING -> PLAYING -> GAME_OVER
    restart() returns to LOBBY from any status.

Actions return True when they changed the state and False when they were
rejected (wrong status, not the player's turn, illegal card, ...).
"""

import logging
import random
from typing import Callable, Optional, Union

from constants import DECK_SIZE, INITIAL_HAND_SIZE, MAX_PLAYERS, MIN_PLAYERS, WILD_COPIES
from deck import draw_opening_card, generate_deck
from models.game_state import (
    Card,
    CardColor,
    GameRules,
    GameState,
    GameStatus,
    Player,
)
from rules import (
    Effect,
    PlayOutcome,
    can_jump_in,
    is_playable_now,
    resolve_draw,
    resolve_play,
)

logger = logging.getLogger(__name__)

# Cards that must stay undealt so a non Wild Draw Four can open the discard pile
MIN_UNDEALT = WILD_COPIES + 1

# listener(state, effects, remote)
StateListener = Callable[[GameState, list[Effect], bool], None]


class Game:
    """
    Main game state holder and turn controller.

    Attributes:
        state: The current snapshot. Replaced, never edited, by transitions.
        rng: Random source for shuffles, injectable for tests.
        hand_size: Cards dealt to each player.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        hand_size: int = INITIAL_HAND_SIZE,
    ) -> None:
        if hand_size < 1 or hand_size * MIN_PLAYERS > DECK_SIZE - MIN_UNDEALT:
            raise ValueError(f"hand size {hand_size} cannot be dealt from a {DECK_SIZE}-card deck")
        self.rng = rng or random.Random()
        self.hand_size = hand_size
        self.state = GameState()
        self._listeners: list[StateListener] = []

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> None:
        """
        Register a callback for committed transitions.

        The callback receives the new state, the effect tags of the
        transition, and whether the state came from a peer.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _commit(self, state: GameState, effects: list[Effect], remote: bool = False) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state, effects, remote)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def status(self) -> GameStatus:
        return self.state.status

    def current_player(self) -> Optional[Player]:
        """Get the player whose turn it currently is."""
        return self.state.current_player

    def top_card(self) -> Optional[Card]:
        return self.state.top_card

    def legal_cards(self, player_index: int) -> list[Card]:
        """Cards the given seat could play right now (empty if not their turn)."""
        if self.state.status != GameStatus.PLAYING:
            return []
        if player_index != self.state.current_player_index:
            return []
        hand = self.state.players[player_index].hand
        return [card for card in hand if is_playable_now(card, self.state)]

    def is_player_turn(self, player_index: int) -> bool:
        return (
            self.state.status == GameStatus.PLAYING
            and self.state.winner is None
            and player_index == self.state.current_player_index
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start_game(
        self,
        player_count: int,
        rules: Optional[GameRules] = None,
        player_names: Optional[list[str]] = None,
        human_seat: Optional[int] = 0,
    ) -> bool:
        """
        Deal a new game and enter DEALING.

        By default seat 0 is the local human and every other seat is a CPU.
        Multiplayer hosts rewrite the seats afterwards with ``assign_seats``.

        Args:
            player_count: Number of seats (2-4).
            rules: Rule variants; Normal rules if omitted.
            player_names: Optional display names by seat.
            human_seat: Seat played by the local human; None for an
                all-CPU table.

        Returns:
            True if the game was dealt, False if not in LOBBY, the seat
            count is out of range, or the hands would exhaust the deck.
        """
        if self.state.status != GameStatus.LOBBY:
            logger.debug(f"start_game ignored in status {self.state.status.value}")
            return False
        if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
            logger.warning(f"start_game rejected: {player_count} players")
            return False
        if self.hand_size * player_count > DECK_SIZE - MIN_UNDEALT:
            logger.warning(
                f"start_game rejected: {player_count} hands of {self.hand_size} exhaust the deck"
            )
            return False

        rules = rules or GameRules()
        draw_pile = generate_deck(self.rng)

        players = []
        for i in range(player_count):
            default_name = "You" if i == human_seat else f"CPU {i}"
            name = player_names[i] if player_names and i < len(player_names) else default_name
            players.append(Player(id=str(i), name=name, is_human=(i == human_seat)))

        for player in players:
            for _ in range(self.hand_size):
                player.hand.append(draw_pile.pop())

        draw_pile, opening = draw_opening_card(draw_pile, self.rng)
        active_color = CardColor.RED if opening.is_wild else opening.color

        state = GameState(
            draw_pile=draw_pile,
            discard_pile=[opening],
            players=players,
            current_player_index=0,
            direction=1,
            status=GameStatus.DEALING,
            winner=None,
            active_color=active_color,
            draw_stack=0,
            last_action_message=f"Starting {rules.mode_name} Game...",
            rules=rules,
            uno_called=False,
            version=self.state.version + 1,
        )
        logger.info(
            f"Dealt {rules.mode_name} game for {player_count} players, "
            f"opening card {opening.label()}"
        )
        self._commit(state, [Effect.DEAL])
        return True

    def begin_play(self) -> bool:
        """Finish dealing and open the table for actions."""
        if self.state.status != GameStatus.DEALING:
            return False
        state = self.state.copy()
        state.status = GameStatus.PLAYING
        state.uno_called = False
        state.last_action_message = "Game Started!"
        self._commit(state, [Effect.DEAL])
        return True

    def restart(self) -> None:
        """Abandon the current game and return to LOBBY."""
        self._commit(
            GameState(
                rules=self.state.rules,
                active_color=CardColor.RED,
                version=self.state.version + 1,
            ),
            [],
        )

    def assign_seats(self, members: list[dict]) -> bool:
        """
        Map seats to relay room members before a multiplayer game starts.

        Seat i takes the id and name of ``members[i]`` and becomes human.
        Seats without a member stay CPU-controlled.

        Args:
            members: Room member dicts with "id" and "name".

        Returns:
            True if seats were patched, False if not in DEALING.
        """
        if self.state.status != GameStatus.DEALING:
            return False
        state = self.state.copy()
        for player, member in zip(state.players, members):
            player.id = str(member["id"])
            player.name = str(member.get("name") or player.name)
            player.is_human = True
        state.last_action_message = "Game Started by Host!"
        self._commit(state, [])
        return True

    def replace_state(self, new_state: Union[GameState, dict]) -> None:
        """
        Replace the local snapshot wholesale with one received from a peer.

        Raises:
            ValueError: If a dict snapshot is malformed; the local state is
                kept in that case.
        """
        if not isinstance(new_state, GameState):
            new_state = GameState.from_dict(new_state)
        self._commit(new_state, [], remote=True)

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def call_uno(self, player_index: int) -> bool:
        """Declare UNO for the current turn."""
        if not self.is_player_turn(player_index) or self.state.uno_called:
            return False
        state = self.state.copy()
        state.uno_called = True
        state.last_action_message = f"{state.players[player_index].name} called UNO!"
        self._commit(state, [Effect.UNO])
        return True

    def play_card(
        self,
        player_index: int,
        card_id: str,
        color_choice: Optional[CardColor] = None,
        swap_target: Optional[int] = None,
    ) -> bool:
        """
        Play a card from the current player's hand.

        Args:
            player_index: Seat attempting the play; must be the current seat.
            card_id: Id of the card in that seat's hand.
            color_choice: Required for Wild cards; one of the four colors.
            swap_target: Seat to swap with for a 7 under seven-zero.

        Returns:
            True if the play was resolved, False if rejected.
        """
        if not self.is_player_turn(player_index):
            return False

        player = self.state.players[player_index]
        card = player.find_card(card_id)
        if card is None:
            return False

        if not is_playable_now(card, self.state):
            logger.debug(f"Rejected {card.label()} from {player.name}")
            return False

        if card.is_wild and color_choice not in CardColor.playable():
            logger.debug(f"Rejected {card.label()} from {player.name}: no color chosen")
            return False

        return self._resolve(player_index, card, color_choice, swap_target)

    def jump_in(self, player_index: int, card_id: str, uno_called: bool = False) -> bool:
        """
        Play an identical card out of turn.

        Only allowed under the jump-in rule, while no draw stack is pending.
        Play continues from the jumper as if it had been their turn.
        ``uno_called`` carries a declaration made together with the jump,
        since the jumper cannot call UNO before it is their turn.
        """
        state = self.state
        if not state.rules.jump_in or state.status != GameStatus.PLAYING:
            return False
        if state.draw_stack > 0 or not 0 <= player_index < len(state.players):
            return False

        card = state.players[player_index].find_card(card_id)
        if card is None or not can_jump_in(card, state.top_card):
            return False

        logger.debug(f"{state.players[player_index].name} jumps in with {card.label()}")
        return self._resolve(player_index, card, None, None, jumped=True, uno_called=uno_called)

    def draw(self, player_index: int) -> bool:
        """
        Draw instead of playing.

        Rejected under force-play while the player holds a legal card,
        unless a draw stack is pending.
        """
        if not self.is_player_turn(player_index):
            return False

        if (
            self.state.rules.force_play
            and self.state.draw_stack == 0
            and self.legal_cards(player_index)
        ):
            logger.debug("Draw rejected: force play with a legal card in hand")
            return False

        outcome = resolve_draw(self.state, self.rng)
        self._commit(outcome.state, outcome.effects)
        return True

    def _resolve(
        self,
        player_index: int,
        card: Card,
        color_choice: Optional[CardColor],
        swap_target: Optional[int],
        jumped: bool = False,
        uno_called: bool = False,
    ) -> bool:
        state = self.state.copy()
        if jumped and player_index != state.current_player_index:
            state.current_player_index = player_index
            state.uno_called = uno_called
        elif jumped and uno_called:
            state.uno_called = True
        hand = state.players[player_index].hand
        hand.remove(card)

        outcome: PlayOutcome = resolve_play(state, card, color_choice, swap_target, self.rng)
        if jumped:
            name = outcome.state.players[player_index].name
            outcome.state.last_action_message = f"{name} jumped in! " + outcome.state.last_action_message
        self._commit(outcome.state, outcome.effects)
        return True
