"""Ship client log records to the terminal host.

Records are batched and posted to the host's console-log endpoint a short
while after the last one arrives, so a burst of log lines costs one request.
The host is a development convenience here: when it is down, batches are
dropped without noise.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional, TypedDict

import httpx

from teleterm.constants import CONSOLE_LOG_PATH, LOG_FLUSH_DELAY_S, LOG_POST_TIMEOUT_S

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class ConsoleLogEntry(TypedDict, total=False):
    level: str
    message: str
    timestamp: int
    source: str


class ConsoleLogForwarder(logging.Handler):
    """Logging handler that batches records and POSTs them with httpx."""

    def __init__(
        self,
        base_url: str,
        *,
        flush_delay_s: float = LOG_FLUSH_DELAY_S,
        client: Optional[httpx.Client] = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.url = base_url.rstrip("/") + CONSOLE_LOG_PATH
        self.flush_delay_s = flush_delay_s
        self._client = client
        self._owns_client = client is None
        self._buffer: list[ConsoleLogEntry] = []
        self._buffer_lock = threading.Lock()
        # Held across a POST so close() cannot shut the client under it.
        self._send_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._closed = False

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: ConsoleLogEntry = {
                "level": _LEVEL_NAMES.get(record.levelno, "log"),
                "message": record.getMessage(),
                "timestamp": int(record.created * 1000),
                "source": f"{os.path.basename(record.pathname)}:{record.lineno}",
            }
        except Exception:  # pylint: disable=broad-exception-caught
            self.handleError(record)
            return

        with self._buffer_lock:
            if self._closed:
                return
            self._buffer.append(entry)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.flush_delay_s, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Send everything buffered so far in one request."""
        with self._send_lock:
            with self._buffer_lock:
                if self._closed:
                    return
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                batch = self._buffer
                self._buffer = []
            if not batch:
                return

            try:
                self._http().post(self.url, json={"logs": batch}, timeout=LOG_POST_TIMEOUT_S)
            except httpx.HTTPError:
                # Host not running; diagnostics are best effort.
                pass

    def close(self) -> None:
        self.flush()
        with self._send_lock:
            with self._buffer_lock:
                self._closed = True
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                self._buffer = []
            if self._owns_client and self._client is not None:
                self._client.close()
                self._client = None
        super().close()

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client()
        return self._client


def install_log_forwarder(
    base_url: str,
    *,
    flush_delay_s: float = LOG_FLUSH_DELAY_S,
    logger_name: str = "teleterm",
) -> ConsoleLogForwarder:
    """Attach a forwarder to the teleterm logger tree and return it."""
    handler = ConsoleLogForwarder(base_url, flush_delay_s=flush_delay_s)
    logging.getLogger(logger_name).addHandler(handler)
    return handler
