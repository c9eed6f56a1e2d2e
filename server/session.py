"""
Asynchronous driver for one client's game.

GameSession wraps a Game with the timed parts of play:
    - the dealing cooldown that moves DEALING to PLAYING,
    - CPU turns, run after a randomized "thinking" delay,
    - publishing local transitions to the relay in multiplayer.

All scheduling is cooperative on the running asyncio loop. At most one CPU
decision is in flight at a time; a timer that fires after the table has
moved on (new turn, restart, remote replace) does nothing.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from ai import AIStrategy, choose_ai_action, get_strategy, think_time
from config import config
from game import Game
from models.game_state import CardColor, GameRules, GameState, GameStatus
from rules import Effect

logger = logging.getLogger(__name__)

Publisher = Callable[[GameState], Awaitable[None]]


class GameSession:
    """
    One client's view of a game: the local Game plus its timers.

    Attributes:
        game: The turn state machine.
        strategy: CPU strategy, chosen once for the whole game.
        local_player_index: Seat controlled by this client's human.
        runs_ai: Whether this client plays the CPU seats. True in solo play
            and for the multiplayer host.
        publisher: Coroutine called with every local transition worth
            sharing; set by the relay client in multiplayer.
    """

    def __init__(
        self,
        game: Optional[Game] = None,
        strategy: Optional[AIStrategy] = None,
        local_player_index: int = 0,
        deal_duration: Optional[float] = None,
        think_range: Optional[tuple[float, float]] = None,
        runs_ai: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        defaults = config.game_defaults
        self.rng = rng or random.Random()
        self.game = game or Game(rng=self.rng, hand_size=defaults.initial_hand_size)
        self.strategy = strategy or get_strategy(defaults.difficulty, self.rng)
        self.local_player_index = local_player_index
        self.deal_duration = defaults.deal_duration if deal_duration is None else deal_duration
        self.think_range = think_range or (defaults.ai_think_min, defaults.ai_think_max)
        self.runs_ai = runs_ai
        self.publisher: Optional[Publisher] = None

        self._deal_task: Optional[asyncio.Task] = None
        self._ai_task: Optional[asyncio.Task] = None
        self._publish_tasks: set[asyncio.Task] = set()
        self._closed = False

        self.game.add_listener(self._on_transition)

    @property
    def state(self) -> GameState:
        return self.game.state

    @property
    def ai_in_flight(self) -> bool:
        return self._ai_task is not None

    # -------------------------------------------------------------------------
    # Player intents
    # -------------------------------------------------------------------------

    def start(self, player_count: int, rules: Optional[GameRules] = None,
              strategy: Optional[AIStrategy] = None) -> bool:
        """Deal a new game; play opens after the dealing cooldown."""
        if strategy is not None:
            self.strategy = strategy
        return self.game.start_game(player_count, rules)

    def play_card(self, card_id: str, color_choice: Optional[CardColor] = None,
                  swap_target: Optional[int] = None) -> bool:
        return self.game.play_card(self.local_player_index, card_id, color_choice, swap_target)

    def draw(self) -> bool:
        return self.game.draw(self.local_player_index)

    def call_uno(self) -> bool:
        return self.game.call_uno(self.local_player_index)

    def jump_in(self, card_id: str, uno_called: bool = False) -> bool:
        return self.game.jump_in(self.local_player_index, card_id, uno_called)

    def restart(self) -> None:
        self._cancel_timers()
        self.game.restart()

    def apply_remote_state(self, state) -> None:
        """
        Replace the local state with a snapshot from the relay.

        Raises:
            ValueError: If the snapshot is malformed.
        """
        self.game.replace_state(state)

    async def close(self) -> None:
        """Cancel timers and wait for pending publishes."""
        self._closed = True
        self._cancel_timers()
        if self._publish_tasks:
            await asyncio.gather(*self._publish_tasks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def _on_transition(self, state: GameState, effects: list[Effect], remote: bool) -> None:
        if self._closed:
            return

        if state.status == GameStatus.DEALING:
            self._schedule_deal()
        elif state.status != GameStatus.PLAYING:
            self._cancel_timers()

        if not remote and self._should_publish(state, effects):
            self._schedule_publish(state)

        self.maybe_schedule_ai()

    @staticmethod
    def _should_publish(state: GameState, effects: list[Effect]) -> bool:
        # Every client runs its own dealing cooldown, so that step stays local
        if Effect.DEAL in effects:
            return False
        return state.status in (GameStatus.PLAYING, GameStatus.GAME_OVER)

    def _schedule_publish(self, state: GameState) -> None:
        if self.publisher is None:
            return
        task = asyncio.create_task(self.publisher(state))
        self._publish_tasks.add(task)
        task.add_done_callback(self._publish_tasks.discard)

    def _schedule_deal(self) -> None:
        if self._deal_task is not None and not self._deal_task.done():
            return
        self._deal_task = asyncio.create_task(self._finish_dealing())

    async def _finish_dealing(self) -> None:
        await asyncio.sleep(self.deal_duration)
        self._deal_task = None
        self.game.begin_play()

    def maybe_schedule_ai(self) -> None:
        """Start a CPU decision if a CPU seat is up and none is in flight."""
        if self._closed or not self.runs_ai or self._ai_task is not None:
            return
        state = self.game.state
        if state.status != GameStatus.PLAYING or state.winner is not None:
            return
        current = state.current_player
        if current is None or current.is_human:
            return
        self._ai_task = asyncio.create_task(
            self._run_ai_turn(state.current_player_index, state.version)
        )

    async def _run_ai_turn(self, player_index: int, version: int) -> None:
        try:
            low, high = self.think_range
            await asyncio.sleep(think_time(self.rng, low, high))

            state = self.game.state
            stale = (
                state.status != GameStatus.PLAYING
                or state.current_player_index != player_index
                or state.version != version
            )
            # Clear the guard first so the commit below can queue the next CPU
            self._ai_task = None
            if stale:
                logger.debug("CPU timer fired after the table moved on")
            else:
                action = choose_ai_action(state, self.strategy)
                if action.is_draw:
                    self.game.draw(player_index)
                else:
                    self.game.play_card(
                        player_index, action.card.id, action.color, action.swap_target
                    )
        finally:
            if self._ai_task is asyncio.current_task():
                self._ai_task = None
        self.maybe_schedule_ai()

    def _cancel_timers(self) -> None:
        for task in (self._deal_task, self._ai_task):
            if task is not None and not task.done():
                task.cancel()
        self._deal_task = None
        self._ai_task = None
