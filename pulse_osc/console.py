"""Line-based console input for the asyncio driver."""

import asyncio
import sys
import threading
from typing import TextIO


class ConsoleReader:
    """Reads lines from a stream on a daemon thread and queues them for the loop.

    A single reader serves both the "press Enter to stop scanning" interrupt and
    the index prompt, so no line is lost between the two.
    """

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream if stream is not None else sys.stdin
        self._lines: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        loop = asyncio.get_running_loop()
        self._thread = threading.Thread(target=self._pump, args=(loop,), daemon=True)
        self._thread.start()

    def _pump(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            for line in self._stream:
                loop.call_soon_threadsafe(self._lines.put_nowait, line.rstrip("\r\n"))
            loop.call_soon_threadsafe(self._lines.put_nowait, None)  # EOF
        except RuntimeError:
            pass  # Loop closed while waiting for input

    async def readline(self) -> str | None:
        """Next line without its newline, or None at end of input."""
        line = await self._lines.get()
        if line is None:
            self._lines.put_nowait(None)  # EOF stays visible to later reads
        return line

    async def set_on_line(self, event: asyncio.Event) -> None:
        """Set event when the next line arrives, consuming that line."""
        await self.readline()
        event.set()
