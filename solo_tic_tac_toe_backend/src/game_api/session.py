"""
Browser sessions.

A session is the engine's only writer for one browser tab. It arms the
line-reveal and auto-reset timers when a game ends and builds the read-only
snapshots the UI renders from.
"""

import logging
import random
import time
import uuid
from typing import Dict, Optional

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, AUTO_RESET_DELAY_MS, CELL_SIZE, LINE_REVEAL_DURATION_MS
from .core import GameState, TicTacToeGame
from .geometry import line_endpoints, line_length, reveal_progress
from .models import GameSnapshot, LineGeometry
from .timers import CancellableTimer

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.monotonic() * 1000


class GameSession:
    """Owns one game and the timers that follow a finished game."""

    def __init__(
        self,
        session_id: Optional[str] = None,
        seed: Optional[int] = None,
        cell_size: float = CELL_SIZE,
        reveal_duration_ms: float = LINE_REVEAL_DURATION_MS,
        auto_reset_delay_ms: float = AUTO_RESET_DELAY_MS,
        clock=_now_ms,
        created_at: Optional[float] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.created_at = created_at if created_at is not None else time.time()
        self.game = TicTacToeGame(random.Random(seed))
        self.cell_size = cell_size
        self.reveal_duration_ms = reveal_duration_ms
        self.auto_reset_delay_ms = auto_reset_delay_ms
        self.clock = clock
        self.generation = 0
        self.finished_at: Optional[float] = None
        self.reveal_complete = False
        self.reveal_timer = CancellableTimer("line reveal")
        self.reset_timer = CancellableTimer("auto-reset")

    @property
    def state(self) -> GameState:
        return self.game.state

    # PUBLIC_INTERFACE
    def start(self) -> GameState:
        """Start a new game now, dropping any timers left from the previous one."""
        self.reveal_timer.cancel()
        self.reset_timer.cancel()
        self.generation += 1
        self.finished_at = None
        self.reveal_complete = False
        state = self.game.start_or_reset()
        logger.info("Session %s: game %d started", self.session_id, self.generation)
        return state

    # PUBLIC_INTERFACE
    def click(self, row: int, col: int) -> GameState:
        """Handle a click on a cell. Returns the resulting state.

        A click that ends the game arms the reveal and auto-reset timers, so it
        must run inside the event loop. Without one it raises ``RuntimeError``
        and the session keeps its previous state.
        """
        before = self.state
        state = self.game.apply_human_move(row, col)
        if state is before:
            logger.debug("Session %s: click (%d, %d) ignored", self.session_id, row, col)
            return state
        if state.is_terminal:
            try:
                self._on_game_over(state)
            except RuntimeError:
                self.game.state = before
                raise
        return state

    def _on_game_over(self, state: GameState) -> None:
        generation = self.generation
        self.reset_timer.start(self.auto_reset_delay_ms, lambda: self._auto_reset(generation))
        if state.winning_line is not None:
            self.reveal_timer.start(self.reveal_duration_ms, lambda: self._reveal_done(generation))
        else:
            self.reveal_complete = True
        self.finished_at = self.clock()
        if state.status == "won":
            logger.info("Session %s: %s wins on %s", self.session_id, state.winner, list(state.winning_line))
        else:
            logger.info("Session %s: draw", self.session_id)

    def _reveal_done(self, generation: int) -> None:
        if generation == self.generation:
            self.reveal_complete = True

    def _auto_reset(self, generation: int) -> None:
        if generation != self.generation:
            logger.debug("Session %s: stale auto-reset for game %d dropped", self.session_id, generation)
            return
        logger.info("Session %s: auto-reset", self.session_id)
        self.start()

    def close(self) -> None:
        self.reveal_timer.cancel()
        self.reset_timer.cancel()

    # PUBLIC_INTERFACE
    def snapshot(self, message: Optional[str] = None) -> GameSnapshot:
        """Read-only view of the current game for the renderer."""
        state = self.state
        line = None
        if state.winning_line is not None:
            start, end = line_endpoints(state.winning_line, self.cell_size)
            total = line_length(start, end)
            elapsed = self.clock() - self.finished_at if self.finished_at is not None else 0
            progress = 1.0 if self.reveal_complete else reveal_progress(elapsed, self.reveal_duration_ms)
            line = LineGeometry(
                cells=[list(cell) for cell in state.winning_line],
                start=start._asdict(),
                end=end._asdict(),
                length=total,
                revealed_length=total * progress,
            )
        return GameSnapshot(
            board=self.game.serialize_board(),
            status=state.status,
            winner=state.winner,
            winning_line=line,
            game_over=state.is_terminal,
            reset_pending=self.reset_timer.pending,
            message=message,
        )


class SessionRegistry:
    """In-memory sessions, keyed by id. Nothing is persisted.

    A session lives as long as the token issued for it. Sessions older than
    ``max_age_seconds`` can no longer be reached and are dropped whenever a new
    one is created.
    """

    def __init__(self, max_age_seconds: float = ACCESS_TOKEN_EXPIRE_MINUTES * 60, clock=time.time):
        self._sessions: Dict[str, GameSession] = {}
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    def create(self, seed: Optional[int] = None, **options) -> GameSession:
        self.cleanup_stale_sessions()
        session = GameSession(seed=seed, created_at=self.clock(), **options)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[GameSession]:
        return self._sessions.get(session_id)

    def drop(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()

    def cleanup_stale_sessions(self) -> int:
        """Drop sessions older than ``max_age_seconds``. Returns how many were dropped."""
        now = self.clock()
        stale = [
            session_id for session_id, session in self._sessions.items()
            if now - session.created_at > self.max_age_seconds
        ]
        for session_id in stale:
            self.drop(session_id)
        if stale:
            logger.info("Dropped %d stale sessions", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
