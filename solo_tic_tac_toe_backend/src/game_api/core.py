import logging
import random
from dataclasses import dataclass
from typing import List, Literal, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

COMPUTER_MARK = "X"
HUMAN_MARK = "O"

Cell = Optional[str]
Coord = Tuple[int, int]
Board = Tuple[Tuple[Cell, ...], ...]
WinningLine = Tuple[Coord, Coord, Coord]
GameStatus = Literal["fresh", "in_progress", "won", "draw"]

# Checked in this order; the first complete line wins.
WINNING_LINES: Tuple[WinningLine, ...] = (
    ((0, 0), (0, 1), (0, 2)),
    ((1, 0), (1, 1), (1, 2)),
    ((2, 0), (2, 1), (2, 2)),
    ((0, 0), (1, 0), (2, 0)),
    ((0, 1), (1, 1), (2, 1)),
    ((0, 2), (1, 2), (2, 2)),
    ((0, 0), (1, 1), (2, 2)),
    ((0, 2), (1, 1), (2, 0)),
)

NEIGHBOUR_DELTAS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
)


class WinnerResult(NamedTuple):
    winner: Cell
    line: Optional[WinningLine]


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of one game: the board and its status."""

    board: Board
    status: GameStatus = "in_progress"
    winner: Cell = None
    winning_line: Optional[WinningLine] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("won", "draw")


# PUBLIC_INTERFACE
def empty_board() -> Board:
    return tuple(tuple(None for _ in range(3)) for _ in range(3))


def _freeze(board: Sequence[Sequence[Cell]]) -> Board:
    return tuple(tuple(row) for row in board)


def _with_mark(board: Sequence[Sequence[Cell]], row: int, col: int, mark: str) -> Board:
    rows = [list(r) for r in board]
    rows[row][col] = mark
    return _freeze(rows)


# PUBLIC_INTERFACE
def evaluate_winner(board: Sequence[Sequence[Cell]]) -> WinnerResult:
    """Checks rows, then columns, then both diagonals. Returns the first complete line."""
    for line in WINNING_LINES:
        (r0, c0), (r1, c1), (r2, c2) = line
        first = board[r0][c0]
        if first and first == board[r1][c1] == board[r2][c2]:
            return WinnerResult(first, line)
    return WinnerResult(None, None)


# PUBLIC_INTERFACE
def empty_cells(board: Sequence[Sequence[Cell]]) -> List[Coord]:
    """All empty coordinates in row-major order."""
    return [(r, c) for r in range(3) for c in range(3) if board[r][c] is None]


def _neighbours(row: int, col: int) -> List[Coord]:
    return [
        (row + dr, col + dc)
        for dr, dc in NEIGHBOUR_DELTAS
        if 0 <= row + dr < 3 and 0 <= col + dc < 3
    ]


# PUBLIC_INTERFACE
def computer_move(board: Sequence[Sequence[Cell]], rng: random.Random) -> Board:
    """Place an X next to an existing X if possible, otherwise anywhere empty.

    The choice is uniform over the candidate cells. Candidates are sorted
    row-major before drawing so a seeded ``rng`` always picks the same cell.
    A full board is returned unchanged.
    """
    empty = empty_cells(board)
    if not empty:
        return _freeze(board)

    adjacent = set()
    for r in range(3):
        for c in range(3):
            if board[r][c] == COMPUTER_MARK:
                adjacent.update(
                    (nr, nc) for nr, nc in _neighbours(r, c) if board[nr][nc] is None
                )

    candidates = sorted(adjacent) if adjacent else empty
    row, col = rng.choice(candidates)
    logger.debug("Computer plays (%d, %d) from %d candidates", row, col, len(candidates))
    return _with_mark(board, row, col, COMPUTER_MARK)


def _resolve(board: Board) -> GameState:
    winner, line = evaluate_winner(board)
    if winner:
        return GameState(board=board, status="won", winner=winner, winning_line=line)
    if not empty_cells(board):
        return GameState(board=board, status="draw")
    return GameState(board=board)


# PUBLIC_INTERFACE
def apply_human_move(state: GameState, row: int, col: int, rng: random.Random) -> GameState:
    """Play O at (row, col), then let the computer answer.

    Occupied cells, finished games and games the computer has not opened yet
    are ignored: the same state comes back.
    """
    if not (0 <= row < 3 and 0 <= col < 3):
        raise ValueError(f"Cell ({row}, {col}) is outside the 3x3 board")
    if state.status != "in_progress" or state.board[row][col] is not None:
        return state

    board = _with_mark(state.board, row, col, HUMAN_MARK)
    winner, line = evaluate_winner(board)
    if winner:
        return GameState(board=board, status="won", winner=winner, winning_line=line)

    return _resolve(computer_move(board, rng))


# PUBLIC_INTERFACE
def start_or_reset(rng: random.Random) -> GameState:
    """New board with the computer's opening move already on it."""
    return _resolve(computer_move(empty_board(), rng))


class TicTacToeGame:
    """Core game logic for Tic Tac Toe against the computer."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self.state = GameState(board=empty_board(), status="fresh")

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    # PUBLIC_INTERFACE
    def start_or_reset(self) -> GameState:
        """Replace the current game with a fresh one. The computer moves first."""
        self.state = start_or_reset(self.rng)
        return self.state

    # PUBLIC_INTERFACE
    def apply_human_move(self, row: int, col: int) -> GameState:
        """Play the human's move. Returns the new state, or the old one if the move was ignored."""
        self.state = apply_human_move(self.state, row, col, self.rng)
        return self.state

    # PUBLIC_INTERFACE
    def serialize_board(self) -> List[List[Cell]]:
        return [list(row) for row in self.state.board]
