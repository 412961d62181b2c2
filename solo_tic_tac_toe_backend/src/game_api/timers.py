import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CancellableTimer:
    """One-shot callback on the running asyncio loop.

    Starting the timer again replaces the pending call. ``cancel`` is safe to
    call at any time.
    """

    def __init__(self, name: str = "timer"):
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    # PUBLIC_INTERFACE
    def start(self, delay_ms: float, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` after ``delay_ms``. Must be called from the event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay_ms / 1000, self._fire, callback)

    # PUBLIC_INTERFACE
    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Cancelled %s", self.name)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
