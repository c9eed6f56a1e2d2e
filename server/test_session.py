"""
Test suite for GameSession: dealing cooldown, CPU scheduling, cancellation
and publishing of local transitions.

Timers are shortened to (near) zero so the tests run quickly.

Run with: pytest test_session.py -v
"""

import asyncio
import random

import pytest

from ai import GreedyStrategy
from game import Game
from models.game_state import Card, CardColor, CardType, GameRules, GameState, GameStatus, Player
from session import GameSession

R, B, G, Y = CardColor.RED, CardColor.BLUE, CardColor.GREEN, CardColor.YELLOW


def num(card_id, color, value):
    return Card(card_id, color, CardType.NUMBER, value, value)


async def wait_for(predicate, timeout: float = 2.0) -> bool:
    """Yield to the loop until ``predicate()`` holds or the timeout passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.005)
    return True


def rigged_state(current=1, version=10) -> GameState:
    """Two seats: human 0 and CPU 1, CPU holding a playable Red 6."""
    return GameState(
        draw_pile=[num(f"p{i}", Y, 9) for i in range(10)],
        discard_pile=[num("top", R, 3)],
        players=[
            Player(id="0", name="You", is_human=True, hand=[num("h1", B, 1), num("h2", B, 2)]),
            Player(id="1", name="CPU 1", hand=[num("c6", R, 6), num("c1", G, 1)]),
        ],
        current_player_index=current,
        status=GameStatus.PLAYING,
        active_color=R,
        rules=GameRules(),
        version=version,
    )


def make_session(think=(0.0, 0.0), deal=0.0, runs_ai=True) -> GameSession:
    rng = random.Random(0)
    return GameSession(
        game=Game(rng=rng),
        strategy=GreedyStrategy(rng),
        deal_duration=deal,
        think_range=think,
        runs_ai=runs_ai,
        rng=rng,
    )


class TestDealing:

    @pytest.mark.asyncio
    async def test_dealing_moves_to_playing(self):
        session = make_session(deal=0.01)
        assert session.start(2)
        assert session.state.status == GameStatus.DEALING
        assert await wait_for(lambda: session.state.status == GameStatus.PLAYING)
        await session.close()

    @pytest.mark.asyncio
    async def test_actions_ignored_during_dealing(self):
        session = make_session(deal=0.2)
        session.start(2)
        card = session.state.players[0].hand[0]
        assert not session.play_card(card.id, R)
        assert not session.draw()
        await session.close()

    @pytest.mark.asyncio
    async def test_restart_cancels_dealing(self):
        session = make_session(deal=0.02)
        session.start(2)
        session.restart()
        await asyncio.sleep(0.06)
        assert session.state.status == GameStatus.LOBBY
        await session.close()


class TestCpuTurns:

    @pytest.mark.asyncio
    async def test_cpu_plays_its_turn(self):
        session = make_session()
        session.game.replace_state(rigged_state())
        assert await wait_for(lambda: session.state.current_player_index == 0)
        assert session.state.top_card.id == "c6"
        assert not session.ai_in_flight
        await session.close()

    @pytest.mark.asyncio
    async def test_in_flight_guard(self):
        session = make_session(think=(0.03, 0.03))
        session.game.replace_state(rigged_state())
        first = session._ai_task
        session.maybe_schedule_ai()
        session.maybe_schedule_ai()
        assert session._ai_task is first

        assert await wait_for(lambda: session.state.current_player_index == 0)
        # Exactly one CPU play happened
        assert session.state.version == 11
        await session.close()

    @pytest.mark.asyncio
    async def test_stale_timer_does_nothing(self):
        session = make_session(think=(0.03, 0.03))
        session.game.replace_state(rigged_state())
        assert session.ai_in_flight

        # The table moves on before the CPU wakes up
        session.game.replace_state(rigged_state(current=0, version=20))
        await asyncio.sleep(0.08)
        assert session.state.version == 20
        assert session.state.top_card.id == "top"
        await session.close()

    @pytest.mark.asyncio
    async def test_human_turn_not_scheduled(self):
        session = make_session()
        session.game.replace_state(rigged_state(current=0))
        assert not session.ai_in_flight
        await session.close()

    @pytest.mark.asyncio
    async def test_runs_ai_false(self):
        session = make_session(runs_ai=False)
        session.game.replace_state(rigged_state())
        await asyncio.sleep(0.03)
        assert session.state.current_player_index == 1
        assert not session.ai_in_flight
        await session.close()

    @pytest.mark.asyncio
    async def test_restart_cancels_cpu(self):
        session = make_session(think=(0.03, 0.03))
        session.game.replace_state(rigged_state())
        session.restart()
        await asyncio.sleep(0.06)
        assert session.state.status == GameStatus.LOBBY
        assert not session.ai_in_flight
        await session.close()

    @pytest.mark.asyncio
    async def test_full_solo_game_reaches_game_over(self):
        rng = random.Random(11)
        session = GameSession(
            game=Game(rng=rng),
            strategy=GreedyStrategy(rng),
            deal_duration=0.0,
            think_range=(0.0, 0.0),
            rng=rng,
        )
        # Seat 0 is human; let it draw or play the first legal card
        session.start(3)

        async def human_loop():
            while session.state.status != GameStatus.GAME_OVER:
                state = session.state
                if state.status == GameStatus.PLAYING and state.current_player_index == 0:
                    legal = session.game.legal_cards(0)
                    if len(state.players[0].hand) == 2:
                        session.call_uno()
                    if legal:
                        session.play_card(legal[0].id, R if legal[0].is_wild else None)
                    else:
                        session.draw()
                await asyncio.sleep(0)

        await asyncio.wait_for(human_loop(), timeout=10)
        assert session.state.winner is not None
        assert session.state.is_conserved()
        await session.close()


class TestPublishing:

    @pytest.mark.asyncio
    async def test_local_plays_published(self):
        published = []

        async def publisher(state):
            published.append(state)

        session = make_session(runs_ai=False)
        session.publisher = publisher
        session.game.replace_state(rigged_state(current=0))
        session.game.state.players[0].hand.append(num("r9", R, 9))
        assert session.play_card("r9")
        await asyncio.sleep(0.01)

        assert len(published) == 1
        assert published[0].top_card.id == "r9"
        await session.close()

    @pytest.mark.asyncio
    async def test_remote_and_dealing_not_published(self):
        published = []

        async def publisher(state):
            published.append(state)

        session = make_session(deal=0.0, runs_ai=False)
        session.publisher = publisher
        session.start(2)
        assert await wait_for(lambda: session.state.status == GameStatus.PLAYING)
        session.apply_remote_state(rigged_state(current=0).to_dict())
        await asyncio.sleep(0.01)
        assert published == []
        await session.close()

    @pytest.mark.asyncio
    async def test_malformed_remote_state_raises(self):
        session = make_session()
        with pytest.raises(ValueError):
            session.apply_remote_state({"direction": 0, "players": []})
        assert session.state.status == GameStatus.LOBBY
        await session.close()
