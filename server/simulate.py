"""
UNO AI Simulation Runner

Runs AI-vs-AI games headlessly to compare strategies and to check that the
engine keeps every card accounted for. No server/websocket needed - runs
games directly against the Game state machine.

Usage:
    python simulate.py [num_games] [num_players] [mode]

Examples:
    python simulate.py 100            # 100 Normal games, 4 players each
    python simulate.py 50 2           # 50 Normal games, 2 players each
    python simulate.py 50 4 nomercy   # 50 No Mercy games
    python simulate.py detail 3       # One game with turn-by-turn output
"""

import logging
import random
import sys
from typing import Optional

from ai import AIStrategy, GreedyStrategy, RandomStrategy, choose_ai_action
from game import Game
from models.game_state import GameRules, GameStatus, rules_for_mode

logger = logging.getLogger(__name__)

MAX_TURNS = 2000  # Safety limit per game


class ConservationError(AssertionError):
    """Raised when a transition loses or duplicates cards."""


class SimulationStats:
    """Track simulation statistics."""

    def __init__(self):
        self.games_played = 0
        self.games_unfinished = 0
        self.total_turns = 0
        self.strategy_wins: dict[str, int] = {}
        self.strategy_seats: dict[str, int] = {}
        self.actions: dict[str, dict[str, int]] = {}  # strategy -> {action: count}

    def record_game(self, winner_strategy: Optional[str], strategies: list[AIStrategy], turns: int):
        self.games_played += 1
        self.total_turns += turns
        for strategy in strategies:
            self.strategy_seats[strategy.name] = self.strategy_seats.get(strategy.name, 0) + 1
        if winner_strategy is None:
            self.games_unfinished += 1
        else:
            self.strategy_wins[winner_strategy] = self.strategy_wins.get(winner_strategy, 0) + 1

    def record_action(self, strategy_name: str, action: str):
        per_strategy = self.actions.setdefault(strategy_name, {})
        per_strategy[action] = per_strategy.get(action, 0) + 1

    def report(self) -> str:
        lines = [
            "=" * 50,
            "SIMULATION RESULTS",
            "=" * 50,
            f"Games played: {self.games_played}",
            f"Unfinished (turn limit): {self.games_unfinished}",
            f"Total turns: {self.total_turns}",
            f"Avg turns/game: {self.total_turns / max(1, self.games_played):.1f}",
            "",
            "WINS PER STRATEGY (wins / seats played):",
        ]

        for name, seats in sorted(self.strategy_seats.items()):
            wins = self.strategy_wins.get(name, 0)
            pct = wins / max(1, seats) * 100
            lines.append(f"  {name}: {wins} / {seats} ({pct:.1f}%)")

        lines.append("")
        lines.append("ACTION BREAKDOWN:")
        for name, actions in sorted(self.actions.items()):
            total = sum(actions.values())
            lines.append(f"  {name}:")
            for action, count in sorted(actions.items()):
                pct = count / max(1, total) * 100
                lines.append(f"    {action}: {count} ({pct:.1f}%)")

        return "\n".join(lines)


def create_strategies(num_players: int, rng: random.Random) -> list[AIStrategy]:
    """Alternate easy and hard CPUs around the table."""
    classes = [RandomStrategy, GreedyStrategy]
    return [classes[i % 2](rng) for i in range(num_players)]


def run_game(
    strategies: list[AIStrategy],
    rules: GameRules,
    stats: SimulationStats,
    rng: Optional[random.Random] = None,
    verbose: bool = False,
) -> Optional[int]:
    """
    Play one all-CPU game to the end.

    Deck conservation is checked after every committed transition.

    Returns:
        The winning seat, or None if the turn limit was hit.

    Raises:
        ConservationError: If the card count ever drifts from the deck size.
    """
    game = Game(rng=rng)

    def check(state, effects, remote):
        if state.status != GameStatus.LOBBY and not state.is_conserved():
            raise ConservationError(
                f"{state.total_cards()} cards in play after {state.last_action_message!r}"
            )

    game.add_listener(check)
    names = [f"{s.name} {i}" for i, s in enumerate(strategies)]
    game.start_game(len(strategies), rules, player_names=names, human_seat=None)
    game.begin_play()

    turns = 0
    while game.status == GameStatus.PLAYING and turns < MAX_TURNS:
        state = game.state
        index = state.current_player_index
        strategy = strategies[index]
        action = choose_ai_action(state, strategy)

        if action.is_draw:
            accepted = game.draw(index)
            stats.record_action(strategy.name, "draw")
        else:
            accepted = game.play_card(index, action.card.id, action.color, action.swap_target)
            stats.record_action(strategy.name, action.card.type.value)

        if not accepted:
            logger.error(f"Engine rejected CPU action at turn {turns}: {action}")
            break

        if verbose:
            print(f"  Turn {turns + 1}: {game.state.last_action_message}")
        turns += 1

    winner = game.state.winner
    winner_name = strategies[winner].name if winner is not None else None
    stats.record_game(winner_name, strategies, turns)
    return winner


def run_simulation(
    num_games: int = 100,
    num_players: int = 4,
    rules: Optional[GameRules] = None,
    seed: Optional[int] = None,
    verbose: bool = True,
) -> SimulationStats:
    """Run multiple games and report statistics."""
    rules = rules or GameRules()
    rng = random.Random(seed)
    stats = SimulationStats()

    if verbose:
        print(f"\nRunning {num_games} {rules.mode_name} games with {num_players} players each...")
        print("=" * 50)

    for i in range(num_games):
        strategies = create_strategies(num_players, rng)
        # Rotate seats so neither strategy always opens
        shift = i % num_players
        strategies = strategies[shift:] + strategies[:shift]
        winner = run_game(strategies, rules, stats, rng)
        if verbose and winner is not None:
            print(f"Game {i + 1}/{num_games}: won by seat {winner} ({strategies[winner].name})")

    if verbose:
        print("\n")
        print(stats.report())
    return stats


def run_detailed_game(num_players: int = 4, rules: Optional[GameRules] = None):
    """Run a single game with turn-by-turn output."""
    rules = rules or GameRules()
    rng = random.Random()
    strategies = create_strategies(num_players, rng)

    print(f"\nRunning detailed {rules.mode_name} game with {num_players} players...")
    print("=" * 50)
    for i, strategy in enumerate(strategies):
        print(f"  Seat {i}: {strategy.name} ({strategy.difficulty})")
    print("-" * 50)

    stats = SimulationStats()
    winner = run_game(strategies, rules, stats, rng, verbose=True)

    print("=" * 50)
    if winner is None:
        print("No winner within the turn limit")
    else:
        print(f"Winner: seat {winner} ({strategies[winner].name}) after {stats.total_turns} turns")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    if len(sys.argv) > 1 and sys.argv[1] == "detail":
        num_players = int(sys.argv[2]) if len(sys.argv) > 2 else 4
        mode = sys.argv[3] if len(sys.argv) > 3 else "normal"
        run_detailed_game(num_players, rules_for_mode(mode.replace("nomercy", "no mercy")))
    else:
        num_games = int(sys.argv[1]) if len(sys.argv) > 1 else 100
        num_players = int(sys.argv[2]) if len(sys.argv) > 2 else 4
        mode = sys.argv[3] if len(sys.argv) > 3 else "normal"
        run_simulation(num_games, num_players, rules_for_mode(mode.replace("nomercy", "no mercy")))
