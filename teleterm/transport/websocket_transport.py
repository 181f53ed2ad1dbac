"""WebSocket transport built on the `websockets` asyncio client."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, WebSocketException

from teleterm.constants import OPEN_TIMEOUT_S
from teleterm.errors import TransportError
from teleterm.transport.base import Transport, TransportListener

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    """One WebSocket connection, driven by a reader task and a sender task.

    Outbound frames go through an outbox queue so `send()` never blocks and
    frames leave in the order they were queued.
    """

    def __init__(self, url: str, open_timeout: float = OPEN_TIMEOUT_S) -> None:
        self.url = url
        self._open_timeout = open_timeout
        self._listener: Optional[TransportListener] = None
        self._ws: ClientConnection | None = None
        self._task: asyncio.Task[None] | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._closing = False
        self._close_reported = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closing

    def open(self, listener: TransportListener) -> None:
        """Start the connection task on the running event loop.

        Raises:
            TransportError: If this transport was already opened
        """
        if self._task is not None:
            raise TransportError(f"Transport to {self.url} was already opened")
        self._listener = listener
        self._outbox = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(self._run(listener), name="ws-transport")
        logger.debug("WebSocket transport opening: %s", self.url)

    def send(self, text: str) -> bool:
        if not self.is_open or self._outbox is None:
            logger.debug("WebSocket not open; dropping frame (%d chars)", len(text))
            return False
        self._outbox.put_nowait(text)
        return True

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        # Cancelling the reader unwinds `async with connect(...)`, which sends the close frame.
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("WebSocket transport closing: %s", self.url)

    async def wait_closed(self) -> None:
        """Wait until the connection task has finished (tests and shutdown paths)."""
        if self._task is None:
            return
        with suppress(asyncio.CancelledError):
            await self._task

    async def _run(self, listener: TransportListener) -> None:
        try:
            async with connect(self.url, open_timeout=self._open_timeout) as ws:
                if self._closing:
                    return
                self._ws = ws
                sender = asyncio.create_task(self._drain_outbox(ws), name="ws-transport-sender")
                try:
                    listener.on_open()
                    async for frame in ws:
                        if isinstance(frame, bytes):
                            frame = frame.decode("utf-8", errors="replace")
                        listener.on_message(frame)
                finally:
                    sender.cancel()
                    with suppress(asyncio.CancelledError):
                        await sender
        except ConnectionClosedError as e:
            logger.info("WebSocket connection lost: %s", e)
            self._report_error(listener, TransportError(f"Connection to {self.url} lost: {e}"))
        except (OSError, TimeoutError, WebSocketException) as e:
            logger.warning("WebSocket connection to %s failed: %s", self.url, e)
            self._report_error(listener, TransportError(f"Connection to {self.url} failed: {e}"))
        except asyncio.CancelledError:
            if not self._closing:
                raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected WebSocket error: %s", e, exc_info=True)
            self._report_error(listener, TransportError(f"Unexpected transport error: {e}"))
        finally:
            self._ws = None
            if not self._close_reported:
                self._close_reported = True
                listener.on_close()

    def _report_error(self, listener: TransportListener, error: TransportError) -> None:
        if self._closing:
            return
        listener.on_error(error)

    async def _drain_outbox(self, ws: ClientConnection) -> None:
        outbox = self._outbox
        if outbox is None:
            return
        while True:
            text = await outbox.get()
            try:
                await ws.send(text)
            except WebSocketException as e:
                logger.debug("WebSocket send failed; stopping sender: %s", e)
                return
