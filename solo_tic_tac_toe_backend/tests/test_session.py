"""
Tests for browser sessions: snapshots, the line reveal and the auto-reset.
"""

import asyncio

import pytest

from game_api.core import COMPUTER_MARK, HUMAN_MARK
from game_api.session import GameSession, SessionRegistry

from conftest import board_from, count


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_start_opens_with_computer_move():
    session = GameSession(seed=1)
    state = session.start()

    assert state.status == "in_progress"
    assert count(state.board, COMPUTER_MARK) == 1
    assert session.generation == 1

    snap = session.snapshot()
    assert snap.status == "in_progress"
    assert snap.winning_line is None
    assert not snap.game_over
    assert not snap.reset_pending


def test_same_seed_same_opening():
    assert GameSession(seed=4).start().board == GameSession(seed=4).start().board


def test_ignored_click_returns_same_state():
    session = GameSession(seed=2)
    state = session.start()
    (row, col), = [(r, c) for r in range(3) for c in range(3) if state.board[r][c]]
    assert session.click(row, col) is state


def test_win_arms_timers_and_reveals_line(o_about_to_win):
    clock = FakeClock(1000)

    async def scenario():
        session = GameSession(seed=0, clock=clock, reveal_duration_ms=500, auto_reset_delay_ms=2000)
        session.game.state = o_about_to_win
        session.click(0, 2)

        assert session.reveal_timer.pending
        assert session.reset_timer.pending

        clock.now = 1250
        halfway = session.snapshot()
        session.close()
        return halfway

    snap = asyncio.run(scenario())

    assert snap.status == "won"
    assert snap.winner == HUMAN_MARK
    assert snap.game_over
    assert snap.reset_pending
    line = snap.winning_line
    assert line.cells == [[0, 0], [0, 1], [0, 2]]
    assert (line.start.x, line.start.y) == (0, 32)
    assert (line.end.x, line.end.y) == (192, 32)
    assert line.length == 192
    assert line.revealed_length == pytest.approx(96)


def test_reveal_completes_then_game_resets(o_about_to_win):
    async def scenario():
        session = GameSession(seed=0, reveal_duration_ms=5, auto_reset_delay_ms=100)
        session.start()
        session.game.state = o_about_to_win
        session.click(0, 2)

        await asyncio.sleep(0.015)
        revealed = session.snapshot()
        await asyncio.sleep(0.2)
        return session, revealed

    session, revealed = asyncio.run(scenario())

    assert revealed.status == "won"
    assert revealed.winning_line.revealed_length == revealed.winning_line.length
    assert session.state.status == "in_progress"
    assert count(session.state.board, COMPUTER_MARK) == 1
    assert count(session.state.board, HUMAN_MARK) == 0
    assert session.generation == 2
    assert not session.snapshot().reset_pending


def test_draw_has_no_line_and_still_resets(one_move_from_draw):
    async def scenario():
        session = GameSession(seed=0, auto_reset_delay_ms=10)
        session.game.state = one_move_from_draw
        state = session.click(1, 2)
        snap = session.snapshot()
        await asyncio.sleep(0.04)
        return session, state, snap

    session, state, snap = asyncio.run(scenario())

    assert state.status == "draw"
    assert snap.winning_line is None
    assert snap.reset_pending
    assert not session.reveal_timer.pending
    assert session.state.status == "in_progress"


def test_manual_restart_cancels_pending_timers(o_about_to_win):
    async def scenario():
        session = GameSession(seed=0, reveal_duration_ms=5, auto_reset_delay_ms=10)
        session.game.state = o_about_to_win
        session.click(0, 2)
        restarted = session.start()
        await asyncio.sleep(0.04)
        return session, restarted

    session, restarted = asyncio.run(scenario())

    assert not session.reset_timer.pending
    assert not session.reveal_timer.pending
    # The old auto-reset would have replaced this state.
    assert session.state is restarted
    assert session.generation == 1


def test_stale_auto_reset_is_dropped(o_about_to_win):
    async def scenario():
        session = GameSession(seed=0)
        session.game.state = o_about_to_win
        session.click(0, 2)
        old_generation = session.generation
        current = session.start()
        session._auto_reset(old_generation)
        session._reveal_done(old_generation)
        session.close()
        return session, current

    session, current = asyncio.run(scenario())

    assert session.state is current
    assert not session.reveal_complete


def test_finished_game_ignores_clicks(o_about_to_win):
    async def scenario():
        session = GameSession(seed=0)
        session.game.state = o_about_to_win
        finished = session.click(0, 2)
        for row in range(3):
            for col in range(3):
                assert session.click(row, col) is finished
        session.close()

    asyncio.run(scenario())


def test_registry_create_get_drop():
    registry = SessionRegistry()
    session = registry.create(seed=3)

    assert registry.get(session.session_id) is session
    assert len(registry) == 1

    registry.drop(session.session_id)

    assert registry.get(session.session_id) is None
    assert len(registry) == 0
    registry.drop(session.session_id)


def test_click_before_start_is_ignored():
    session = GameSession(seed=0)
    fresh = session.state

    assert session.click(1, 1) is fresh
    snap = session.snapshot()
    assert snap.status == "fresh"
    assert count(snap.board, HUMAN_MARK) == 0
    assert not snap.game_over


def test_game_ending_click_outside_event_loop_keeps_state(o_about_to_win):
    session = GameSession(seed=0)
    session.game.state = o_about_to_win

    with pytest.raises(RuntimeError):
        session.click(0, 2)

    assert session.state is o_about_to_win
    assert session.finished_at is None
    assert not session.reset_timer.pending
    assert not session.reveal_timer.pending


def test_registry_drops_sessions_older_than_max_age():
    clock = FakeClock(1000)
    registry = SessionRegistry(max_age_seconds=60, clock=clock)
    old = registry.create(seed=1)

    clock.now = 1060
    kept = registry.create(seed=2)
    assert registry.get(old.session_id) is old

    clock.now = 1061
    newest = registry.create(seed=3)

    assert registry.get(old.session_id) is None
    assert registry.get(kept.session_id) is kept
    assert registry.get(newest.session_id) is newest
    assert len(registry) == 2


def test_stale_session_timers_are_cancelled(o_about_to_win):
    clock = FakeClock(0)

    async def scenario():
        registry = SessionRegistry(max_age_seconds=60, clock=clock)
        old = registry.create(seed=0)
        old.game.state = o_about_to_win
        old.click(0, 2)
        assert old.reset_timer.pending

        clock.now = 120
        dropped = registry.cleanup_stale_sessions()
        return old, dropped, len(registry)

    old, dropped, remaining = asyncio.run(scenario())

    assert dropped == 1
    assert remaining == 0
    assert not old.reset_timer.pending
    assert not old.reveal_timer.pending
