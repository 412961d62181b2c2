"""
Pytest fixtures for the game backend tests.
"""

import random

import pytest

from game_api.core import GameState


class ScriptedRandom(random.Random):
    """Random source that picks pre-chosen cells, failing if one is not a candidate."""

    def __init__(self, picks):
        super().__init__(0)
        self.picks = list(picks)
        self.offered = []

    def choice(self, seq):
        self.offered.append(list(seq))
        pick = self.picks.pop(0)
        assert pick in seq, f"{pick} not among candidates {list(seq)}"
        return pick


def board_from(rows):
    """Build a board from strings like 'XO.'; '.' is an empty cell."""
    return tuple(tuple(None if ch == "." else ch for ch in row) for row in rows)


def count(board, mark):
    return sum(cell == mark for row in board for cell in row)


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def o_about_to_win() -> GameState:
    """O wins by playing (0, 2)."""
    return GameState(board=board_from(["OO.", "XX.", "..."]))


@pytest.fixture
def one_move_from_draw() -> GameState:
    """O plays (1, 2), the computer is forced into (0, 2), and the board is full with no line."""
    return GameState(board=board_from(["XO.", "XO.", "OXX"]))
