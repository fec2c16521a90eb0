"""Change-only forwarding of heart rate readings."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ForwardingState:
    """Last forwarded value and when it was sent."""

    last_bpm: int | None = None
    last_sent: float | None = None


class ForwardingPolicy:
    """Forward a reading only when it differs from the last forwarded one."""

    def __init__(
        self,
        state: ForwardingState | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.state = state if state is not None else ForwardingState()
        self._clock = clock
        self._lock = threading.Lock()

    def should_forward(self, bpm: int) -> bool:
        """Return True and record the reading if it should be forwarded."""
        with self._lock:
            if bpm == self.state.last_bpm:
                return False
            self.state.last_bpm = bpm
            self.state.last_sent = self._clock()
        logger.debug("Forwarding %d bpm", bpm)
        return True
