from pydantic import BaseModel, Field
from typing import List, Optional, Literal


# PUBLIC_INTERFACE
class NewGameRequest(BaseModel):
    """Request model to start a new game session."""
    seed: Optional[int] = Field(None, description="Seed for the computer's moves, for reproducible games.")


# PUBLIC_INTERFACE
class MoveRequest(BaseModel):
    """Request model for a click on a cell."""
    row: int = Field(..., ge=0, le=2, description="Row in board (0-2).")
    col: int = Field(..., ge=0, le=2, description="Col in board (0-2).")


# PUBLIC_INTERFACE
class PixelPoint(BaseModel):
    x: float
    y: float


# PUBLIC_INTERFACE
class LineGeometry(BaseModel):
    """Winning line: its cells and the strike-through to draw over them."""
    cells: List[List[int]] = Field(..., description="The 3 (row, col) cells of the line, in check order.")
    start: PixelPoint
    end: PixelPoint
    length: float = Field(..., description="Full length of the strike-through, in px.")
    revealed_length: float = Field(..., description="Length drawn so far, in px.")


# PUBLIC_INTERFACE
class GameSnapshot(BaseModel):
    """Current game state as the renderer sees it."""
    board: List[List[Optional[str]]] = Field(..., description="3x3 board, values X, O, or None for each cell.")
    status: Literal["fresh", "in_progress", "won", "draw"]
    winner: Optional[str] = None
    winning_line: Optional[LineGeometry] = None
    game_over: bool = False
    reset_pending: bool = Field(False, description="True while the auto-reset timer is running.")
    message: Optional[str] = None


# PUBLIC_INTERFACE
class NewGameResponse(BaseModel):
    """Returned session token and the opening position."""
    access_token: str = Field(..., description="JWT identifying the game session.")
    token_type: str = Field(default="bearer", description="Type of the token.")
    state: GameSnapshot


# PUBLIC_INTERFACE
class BoardConfig(BaseModel):
    """Board geometry and timings the renderer should use."""
    board_size: float
    cell_size: float
    icon_size: float
    line_reveal_duration_ms: int
    auto_reset_delay_ms: int
