import os

# Board geometry, in px
BOARD_SIZE = 192
CELL_SIZE = BOARD_SIZE / 3
ICON_SIZE = CELL_SIZE * 0.6

# Timings, in ms
LINE_REVEAL_DURATION_MS = 500
AUTO_RESET_DELAY_MS = 2000

SECRET_KEY = os.environ.get("TICTACTOE_SECRET_KEY", "tictactoe-secret")  # Override in production.
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 120
