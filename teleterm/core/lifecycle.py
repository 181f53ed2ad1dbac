"""Connected/disconnected notifications for the embedding layer.

Each edge is delivered at most once per notifier, so an online/offline
indicator never flickers on duplicate transport events. Listener failures are
logged and never reach the session client.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[[], None]


class LifecycleListener(Protocol):
    def connected(self) -> None: ...

    def disconnected(self) -> None: ...


class LifecycleNotifier:
    """Fan out lifecycle edges to callbacks and listeners."""

    def __init__(
        self,
        on_connect: Optional[LifecycleCallback] = None,
        on_disconnect: Optional[LifecycleCallback] = None,
    ) -> None:
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._listeners: list[LifecycleListener] = []
        self._connected_sent = False
        self._disconnected_sent = False

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    @property
    def connected_sent(self) -> bool:
        return self._connected_sent

    @property
    def disconnected_sent(self) -> bool:
        return self._disconnected_sent

    def connected(self) -> None:
        """Deliver the connected edge (no-op after the first call)."""
        if self._connected_sent:
            logger.debug("connected() already delivered; skipping")
            return
        self._connected_sent = True
        self._dispatch("connected", self._on_connect)

    def disconnected(self) -> None:
        """Deliver the disconnected edge (no-op after the first call)."""
        if self._disconnected_sent:
            logger.debug("disconnected() already delivered; skipping")
            return
        self._disconnected_sent = True
        self._dispatch("disconnected", self._on_disconnect)

    def _dispatch(self, edge: str, callback: Optional[LifecycleCallback]) -> None:
        targets: list[LifecycleCallback] = []
        if callback is not None:
            targets.append(callback)
        targets.extend(getattr(listener, edge) for listener in self._listeners)

        for target in targets:
            try:
                target()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Lifecycle %s handler failed: %s", edge, exc, exc_info=True)
