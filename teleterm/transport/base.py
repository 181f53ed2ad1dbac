"""Event-driven transport interface.

A transport is owned by exactly one session client and used once: opened,
streamed, closed. Events reach the listener in arrival order on the event loop.
"""

from abc import ABC, abstractmethod
from typing import Protocol


class TransportListener(Protocol):
    def on_open(self) -> None: ...

    def on_message(self, frame: str) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_close(self) -> None: ...


class Transport(ABC):
    """Abstract duplex connection to the terminal host."""

    @abstractmethod
    def open(self, listener: TransportListener) -> None:
        """Start connecting. Returns immediately; progress arrives via listener."""

    @abstractmethod
    def send(self, text: str) -> bool:
        """Queue one frame. Never blocks.

        Returns:
            False if the transport is not open and the frame was dropped
        """

    @abstractmethod
    def close(self) -> None:
        """Close without waiting for the host (fire-and-forget)."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True between the open event and close."""
