"""Boundary to the terminal rendering engine.

The session client writes output through `write`/`writeln` and receives user
input and resize events through the callbacks it binds. An adapter serves one
session client at a time; rebinding requires `release()` first.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from teleterm.errors import EmulatorBusyError

logger = logging.getLogger(__name__)

UserInputCallback = Callable[[str], None]
ResizeCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class Geometry:
    cols: int
    rows: int


class EmulatorAdapter(ABC):
    """Abstract base class for terminal rendering adapters."""

    def __init__(self) -> None:
        self._on_user_input: Optional[UserInputCallback] = None
        self._on_resize: Optional[ResizeCallback] = None

    # ==================== Output ====================

    @abstractmethod
    def write(self, data: str) -> None:
        """Append terminal output. Must not block or raise."""

    def writeln(self, line: str) -> None:
        self.write(line + "\r\n")

    @abstractmethod
    def geometry(self) -> Geometry:
        """Current viewport size."""

    # ==================== Binding ====================

    @property
    def is_bound(self) -> bool:
        return self._on_user_input is not None

    def bind(self, on_user_input: UserInputCallback, on_resize: ResizeCallback) -> None:
        """Attach a session client's callbacks.

        Raises:
            EmulatorBusyError: If another client is still bound
        """
        if self.is_bound:
            raise EmulatorBusyError("Emulator adapter is already bound to a session")
        self._on_user_input = on_user_input
        self._on_resize = on_resize
        self._on_bind()

    def unbind(self) -> None:
        """Stop delivering input and resize events."""
        self._on_user_input = None
        self._on_resize = None

    def release(self) -> None:
        """Unbind and free rendering-side resources."""
        self.unbind()
        self._on_release()

    def _on_bind(self) -> None:
        """Hook for subclasses that start listening on bind."""

    def _on_release(self) -> None:
        """Hook for subclasses that free resources on release."""

    # ==================== Events from the rendering side ====================

    def emit_user_input(self, data: str) -> None:
        callback = self._on_user_input
        if callback is None:
            logger.debug("Dropping %d bytes of input: adapter not bound", len(data))
            return
        callback(data)

    def emit_resize(self, cols: int, rows: int) -> None:
        callback = self._on_resize
        if callback is None:
            return
        callback(cols, rows)


class BufferEmulator(EmulatorAdapter):
    """Headless adapter that records output in memory.

    Used for scripted sessions where nothing is rendered, such as `teleterm run`.
    """

    def __init__(self, cols: int = 80, rows: int = 24) -> None:
        super().__init__()
        self._geometry = Geometry(cols=cols, rows=rows)
        self.writes: list[str] = []
        self.released = False

    def write(self, data: str) -> None:
        self.writes.append(data)

    def geometry(self) -> Geometry:
        return self._geometry

    @property
    def output(self) -> str:
        return "".join(self.writes)

    def type_text(self, data: str) -> None:
        """Simulate the user typing or pasting `data`."""
        self.emit_user_input(data)

    def set_geometry(self, cols: int, rows: int) -> None:
        """Simulate a viewport resize."""
        self._geometry = Geometry(cols=cols, rows=rows)
        self.emit_resize(cols, rows)

    def _on_bind(self) -> None:
        self.released = False

    def _on_release(self) -> None:
        self.released = True
