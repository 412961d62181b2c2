import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from .config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    AUTO_RESET_DELAY_MS,
    BOARD_SIZE,
    CELL_SIZE,
    ICON_SIZE,
    LINE_REVEAL_DURATION_MS,
    SECRET_KEY,
)
from .models import BoardConfig, GameSnapshot, MoveRequest, NewGameRequest, NewGameResponse
from .session import GameSession, SessionRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# In-memory sessions, one per browser tab
sessions = SessionRegistry()

# Bearer token from the /new_game response body
bearer_scheme = HTTPBearer(auto_error=False)

app = FastAPI(
    title="Solo Tic Tac Toe API",
    description="Backend for a single-player Tic Tac Toe game. The human plays O, the computer plays X and moves first.",
    version="0.1.0",
    openapi_tags=[
        {"name": "game", "description": "Start/play games against the computer"},
        {"name": "config", "description": "Board geometry and timings for the renderer"},
        {"name": "ws", "description": "Websockets for real-time updates"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

IGNORED_MOVE_MESSAGE = "Move ignored: cell already taken or game is over."


##---- Utility Functions ----##

# PUBLIC_INTERFACE
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token with optional expiry."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def resolve_session(token: str) -> GameSession:
    """Decode a session token and look the session up. Raises HTTPException on error."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Rejected expired session token")
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        logger.warning("Rejected invalid session token")
        raise HTTPException(status_code=401, detail="Could not validate credentials")
    session_id = payload.get("sub")
    if not session_id:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Game session not found")
    return session


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> GameSession:
    if credentials is None:
        raise HTTPException(
            status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"}
        )
    return resolve_session(credentials.credentials)


def _move_message(before, after) -> Optional[str]:
    if after is before:
        return IGNORED_MOVE_MESSAGE
    if after.status == "won":
        return f"Winner is {after.winner}"
    if after.status == "draw":
        return "It's a draw."
    return None


@app.get("/", tags=["health"])
def health_check():
    """Health check route for backend"""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.get("/config", response_model=BoardConfig, tags=["config"], summary="Board geometry and timings")
def get_config():
    """Sizes in px and durations in ms the renderer should lay the board out with."""
    return BoardConfig(
        board_size=BOARD_SIZE,
        cell_size=CELL_SIZE,
        icon_size=ICON_SIZE,
        line_reveal_duration_ms=LINE_REVEAL_DURATION_MS,
        auto_reset_delay_ms=AUTO_RESET_DELAY_MS,
    )


# PUBLIC_INTERFACE
@app.post("/new_game", response_model=NewGameResponse, tags=["game"], summary="Start new game")
async def new_game(request: Optional[NewGameRequest] = None):
    """Open a game session for this browser. The computer's opening move is already on the board.

    Args:
        request (NewGameRequest): Optional seed for reproducible games.
    Returns:
        NewGameResponse: Session token and the opening snapshot.
    """
    seed = request.seed if request is not None else None
    session = sessions.create(seed=seed)
    session.start()
    logger.info("Session %s created (%d active)", session.session_id, len(sessions))
    token = create_access_token({"sub": session.session_id})
    return NewGameResponse(access_token=token, token_type="bearer", state=session.snapshot())


# PUBLIC_INTERFACE
@app.post("/reset", response_model=GameSnapshot, tags=["game"], summary="Restart the game")
async def reset_game(session: GameSession = Depends(get_current_session)):
    """Start over in the same session. Pending reveal/auto-reset timers are cancelled."""
    session.start()
    return session.snapshot()


# PUBLIC_INTERFACE
@app.post("/make_move", response_model=GameSnapshot, tags=["game"], summary="Make a move")
async def make_move(request: MoveRequest, session: GameSession = Depends(get_current_session)):
    """Place an O; the computer answers unless the game just ended. Returns the new state."""
    before = session.state
    after = session.click(request.row, request.col)
    return session.snapshot(message=_move_message(before, after))


# PUBLIC_INTERFACE
@app.get("/game_state", response_model=GameSnapshot, tags=["game"], summary="Get current game state")
async def get_game_state(session: GameSession = Depends(get_current_session)):
    """Get board state and, once the game is over, the winning line geometry."""
    return session.snapshot()


# PUBLIC_INTERFACE
@app.delete("/session", tags=["game"], summary="End the session")
async def end_session(session: GameSession = Depends(get_current_session)):
    """Drop the session and its timers, e.g. when the tab is closed."""
    sessions.drop(session.session_id)
    logger.info("Session %s closed", session.session_id)
    return {"message": "Session closed"}


def _parse_move(data: str) -> MoveRequest:
    parts = data.split()
    if len(parts) != 3:
        raise ValueError("expected 'move <row> <col>'")
    return MoveRequest(row=int(parts[1]), col=int(parts[2]))


# PUBLIC_INTERFACE
@app.websocket("/ws/game")
async def websocket_game_updates(websocket: WebSocket):
    """
    WebSocket for playing and following a game. Usage: connect to ws://host/ws/game?token=...

    Send 'ping' for a pong, 'move <row> <col>' to play, or any other text to get the latest state.
    """
    try:
        session = resolve_session(websocket.query_params.get("token", ""))
    except HTTPException as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.detail)
        return

    await websocket.accept()
    try:
        while True:
            if websocket.application_state != WebSocketState.CONNECTED:
                break
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
            elif data.startswith("move"):
                try:
                    move = _parse_move(data)
                except (ValueError, ValidationError):
                    await websocket.send_text("Invalid move command")
                    continue
                before = session.state
                after = session.click(move.row, move.col)
                await websocket.send_json(session.snapshot(message=_move_message(before, after)).model_dump())
            else:
                await websocket.send_json(session.snapshot().model_dump())
    except WebSocketDisconnect:
        logger.debug("Websocket for session %s disconnected", session.session_id)


# Misc: Docs route for websocket usage notes
@app.get("/websocket_info", tags=["ws"], summary="Get websocket usage instructions")
def websocket_info():
    """Instructions for real-time connection via websocket."""
    return {
        "usage":
            "Connect using WebSocket at ws://HOST/ws/game?token=TOKEN with the token from /new_game. "
            "Send 'ping' for a pong, 'move ROW COL' to play, or any other text to get the latest state."
    }
