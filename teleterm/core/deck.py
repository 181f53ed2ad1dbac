"""A deck of terminal sessions shown side by side.

Each card gets its own client, transport and emulator against the same host.
Online state is tracked from lifecycle edges only, never from protocol
internals. Reconnecting a card means building a fresh client, which gets a
fresh identity.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from teleterm.config.schema import ClientConfig, TerminalCardConfig
from teleterm.core.emulator import BufferEmulator, EmulatorAdapter
from teleterm.core.lifecycle import LifecycleNotifier
from teleterm.core.session_client import TerminalSessionClient
from teleterm.errors import SessionStateError
from teleterm.transport.base import Transport
from teleterm.transport.websocket_transport import WebSocketTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[ClientConfig], Transport]
EmulatorFactory = Callable[[TerminalCardConfig], EmulatorAdapter]


def _default_transport(config: ClientConfig) -> Transport:
    return WebSocketTransport(config.host_url, open_timeout=config.open_timeout_s)


def _default_emulator(_card: TerminalCardConfig) -> EmulatorAdapter:
    return BufferEmulator()


@dataclass
class DeckEntry:
    card: TerminalCardConfig
    emulator: EmulatorAdapter
    client: TerminalSessionClient
    online: bool = False


class TerminalDeck:
    """Open, track and close one session per configured card."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        emulator_factory: Optional[EmulatorFactory] = None,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self.config = config
        self._emulator_factory = emulator_factory or _default_emulator
        self._transport_factory = transport_factory or _default_transport
        self._entries: dict[str, DeckEntry] = {}

    @property
    def entries(self) -> list[DeckEntry]:
        return list(self._entries.values())

    def get(self, name: str) -> DeckEntry:
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"No terminal card named {name!r}") from None

    def online_names(self) -> list[str]:
        return [entry.card.name for entry in self._entries.values() if entry.online]

    def open_all(self) -> list[TerminalSessionClient]:
        """Start a session for every configured card."""
        return [self.open(card) for card in self.config.terminals]

    def open(self, card: TerminalCardConfig) -> TerminalSessionClient:
        """Start a session for one card.

        Raises:
            SessionStateError: If the card already has a session that is not closed
        """
        existing = self._entries.get(card.name)
        if existing is not None and not existing.client.is_closed:
            raise SessionStateError(f"Terminal card {card.name!r} already has a live session")

        emulator = existing.emulator if existing is not None else self._emulator_factory(card)
        client = self._build_client(card, emulator)
        self._entries[card.name] = DeckEntry(card=card, emulator=emulator, client=client)
        client.start()
        logger.info("Opened terminal card %s as %s", card.name, client.requested_name)
        return client

    def reopen(self, name: str) -> TerminalSessionClient:
        """Replace a closed card's session with a new one (new identity)."""
        return self.open(self.get(name).card)

    def close(self, name: str) -> None:
        self.get(name).client.close()

    def close_all(self) -> None:
        for entry in self._entries.values():
            entry.client.close()

    async def wait_all_closed(self) -> None:
        await asyncio.gather(*(entry.client.wait_closed() for entry in self._entries.values()))

    def _build_client(self, card: TerminalCardConfig, emulator: EmulatorAdapter) -> TerminalSessionClient:
        name = card.name
        notifier = LifecycleNotifier(
            on_connect=lambda: self._set_online(name, True),
            on_disconnect=lambda: self._set_online(name, False),
        )
        return TerminalSessionClient(
            self._transport_factory(self.config),
            emulator,
            owner=name,
            color=card.color,
            config=self.config,
            notifier=notifier,
        )

    def _set_online(self, name: str, online: bool) -> None:
        entry = self._entries.get(name)
        if entry is None:
            return
        entry.online = online
        logger.debug("Terminal card %s is %s", name, "online" if online else "offline")
