"""
Pixel geometry for the winning-line strike-through.

The engine only knows cell coordinates; everything here is derived from them
and a cell size, for the renderer.
"""

import math
from typing import NamedTuple, Sequence, Tuple

from .config import CELL_SIZE

Coord = Tuple[int, int]


class Point(NamedTuple):
    x: float
    y: float


def _centre(cell: Coord, cell_size: float) -> Point:
    row, col = cell
    return Point(col * cell_size + cell_size / 2, row * cell_size + cell_size / 2)


# PUBLIC_INTERFACE
def line_endpoints(line: Sequence[Coord], cell_size: float = CELL_SIZE) -> Tuple[Point, Point]:
    """Endpoints of the strike-through, running edge to edge of the board.

    The segment through the first and last cell centres is extended by half a
    cell at each end, so rows span x=0..board, the diagonal runs from the
    top-left corner and the anti-diagonal from the top-right corner.
    """
    first, last = line[0], line[-1]
    dr = (last[0] - first[0]) / 2
    dc = (last[1] - first[1]) / 2
    start_c = _centre(first, cell_size)
    end_c = _centre(last, cell_size)
    half = cell_size / 2
    start = Point(start_c.x - dc * half, start_c.y - dr * half)
    end = Point(end_c.x + dc * half, end_c.y + dr * half)
    return start, end


# PUBLIC_INTERFACE
def line_length(start: Point, end: Point) -> float:
    return math.hypot(end.x - start.x, end.y - start.y)


# PUBLIC_INTERFACE
def reveal_progress(elapsed_ms: float, duration_ms: float) -> float:
    """Fraction of the line drawn after ``elapsed_ms``, clamped to [0, 1]."""
    if duration_ms <= 0:
        return 1.0
    return max(0.0, min(elapsed_ms / duration_ms, 1.0))
