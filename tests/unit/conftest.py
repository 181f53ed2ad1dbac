"""Shared fixtures for unit tests: an in-memory transport the test drives by hand."""

import json

import pytest

from teleterm.config.schema import ClientConfig
from teleterm.core.emulator import BufferEmulator
from teleterm.errors import TransportError
from teleterm.transport.base import Transport, TransportListener


class FakeTransport(Transport):
    """Transport whose events are fired explicitly by the test."""

    def __init__(self) -> None:
        self.listener: TransportListener | None = None
        self.sent: list[str] = []
        self.open_calls = 0
        self.close_calls = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, listener: TransportListener) -> None:
        self.open_calls += 1
        self.listener = listener

    def send(self, text: str) -> bool:
        if not self._open:
            return False
        self.sent.append(text)
        return True

    def close(self) -> None:
        self.close_calls += 1
        self._open = False

    # --- driving helpers ---

    def fire_open(self) -> None:
        assert self.listener is not None
        self._open = True
        self.listener.on_open()

    def fire_message(self, record: dict[str, object] | str) -> None:
        assert self.listener is not None
        frame = record if isinstance(record, str) else json.dumps(record)
        self.listener.on_message(frame)

    def fire_error(self, error: Exception | None = None) -> None:
        assert self.listener is not None
        self.listener.on_error(error or TransportError("connection refused"))

    def fire_close(self) -> None:
        assert self.listener is not None
        self._open = False
        self.listener.on_close()

    def sent_records(self) -> list[dict[str, object]]:
        return [json.loads(text) for text in self.sent]

    def sent_types(self) -> list[str]:
        return [str(record["type"]) for record in self.sent_records()]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def emulator() -> BufferEmulator:
    return BufferEmulator(cols=120, rows=40)


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(settle_delay_s=0.01, working_dir="/srv/work", terminal_type="bash")


@pytest.fixture
def make_transport():
    """Factory for additional transports in multi-session tests."""
    return FakeTransport
