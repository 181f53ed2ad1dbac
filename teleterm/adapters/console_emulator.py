"""Local console as the rendering side of a session.

The remote shell does its own echo and line editing, so the local TTY is put
into raw mode while bound and every byte from stdin is forwarded as-is.
Ctrl-] detaches (closes the session) the way telnet does.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import sys
import termios
import tty
from typing import Callable, Optional, TextIO

from teleterm.constants import FALLBACK_COLS, FALLBACK_ROWS
from teleterm.core.emulator import EmulatorAdapter, Geometry
from teleterm.utils import hex_to_rgb

logger = logging.getLogger(__name__)

DETACH_KEY = "\x1d"  # Ctrl-]
_READ_CHUNK = 4096


class ConsoleEmulator(EmulatorAdapter):
    """Bridge stdin/stdout of the current process to a session client."""

    def __init__(
        self,
        *,
        color: Optional[str] = None,
        on_detach: Optional[Callable[[], None]] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        super().__init__()
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._color = color
        self._on_detach = on_detach
        self._saved_tty: list[object] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._listening = False

    def write(self, data: str) -> None:
        try:
            self._stdout.write(data)
            self._stdout.flush()
        except (OSError, ValueError) as e:
            logger.debug("Console write failed: %s", e)

    def geometry(self) -> Geometry:
        size = shutil.get_terminal_size((FALLBACK_COLS, FALLBACK_ROWS))
        return Geometry(cols=size.columns, rows=size.lines)

    def _on_bind(self) -> None:
        self._loop = asyncio.get_running_loop()
        fd = self._stdin.fileno()
        if os.isatty(fd):
            self._saved_tty = termios.tcgetattr(fd)
            tty.setraw(fd)
        self._loop.add_reader(fd, self._read_stdin)
        try:
            self._loop.add_signal_handler(signal.SIGWINCH, self._handle_winch)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("SIGWINCH handler unavailable; resize events disabled")
        self._listening = True

        rgb = hex_to_rgb(self._color) if self._color else None
        if rgb is not None:
            self.write("\x1b[38;2;%d;%d;%dm" % rgb)

    def _on_release(self) -> None:
        if not self._listening or self._loop is None:
            return
        self._listening = False
        fd = self._stdin.fileno()
        self._loop.remove_reader(fd)
        try:
            self._loop.remove_signal_handler(signal.SIGWINCH)
        except (NotImplementedError, RuntimeError, ValueError):
            pass
        if self._saved_tty is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._saved_tty)
            self._saved_tty = None
        self.write("\x1b[0m\r\n")

    def _read_stdin(self) -> None:
        try:
            chunk = os.read(self._stdin.fileno(), _READ_CHUNK)
        except OSError as e:
            logger.debug("stdin read failed: %s", e)
            return
        if not chunk:
            self._detach()
            return

        data = chunk.decode("utf-8", errors="replace")
        if DETACH_KEY in data:
            before = data.split(DETACH_KEY, 1)[0]
            if before:
                self.emit_user_input(before)
            self._detach()
            return
        self.emit_user_input(data)

    def _handle_winch(self) -> None:
        geometry = self.geometry()
        self.emit_resize(geometry.cols, geometry.rows)

    def _detach(self) -> None:
        if self._on_detach is not None:
            self._on_detach()
