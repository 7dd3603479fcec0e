from __future__ import annotations

import asyncio
import os
import select
import sys
from typing import Any, Optional, TextIO

from .log_utils import setup_logger

logger = setup_logger(__name__)

QUIT_KEYS = frozenset({"q", "Q"})


class KeyPoller:
    """Non-blocking single keypress reader for the controlling terminal.

    Inside the ``with`` block a POSIX terminal is switched to cbreak mode so
    keys arrive without Enter; the previous settings are restored on exit.
    When the stream is not an interactive terminal, :meth:`poll` never
    reports a key.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._saved: Optional[Any] = None
        self._enabled = False

    def __enter__(self) -> "KeyPoller":
        try:
            interactive = self._stream.isatty()
        except (AttributeError, ValueError):
            interactive = False
        if not interactive or os.name == "nt":
            logger.info("Keypress polling disabled (stdin is not a POSIX terminal)")
            return self
        import termios
        import tty

        fd = self._stream.fileno()
        self._saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self._enabled = True
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._saved is not None:
            import termios

            termios.tcsetattr(self._stream.fileno(), termios.TCSADRAIN, self._saved)
            self._saved = None
        self._enabled = False

    def poll(self, timeout: float) -> Optional[str]:
        """Return one pending key, waiting at most ``timeout`` seconds."""

        if not self._enabled:
            return None
        ready, _, _ = select.select([self._stream], [], [], max(0.0, timeout))
        if not ready:
            return None
        return os.read(self._stream.fileno(), 1).decode(errors="ignore") or None

    def quit_requested(self, timeout: float) -> bool:
        return self.poll(timeout) in QUIT_KEYS

    async def wait_for_quit(self, timeout: float) -> bool:
        """Awaitable :meth:`quit_requested`; the blocking poll runs off the event loop."""

        if not self._enabled:
            return False
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.quit_requested, timeout)
