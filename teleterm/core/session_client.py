"""Terminal session client: one logical remote shell over a shared transport.

The host broadcasts spawn confirmations and output to every connection, so
this client trusts nothing about routing. Confirmations are accepted only for
our requested name; output only for our assigned id. Everything else is
someone else's session and is dropped.

State machine:
    IDLE -> CONNECTING -> AWAITING_SPAWN_CONFIRMATION -> ACTIVE -> CLOSING -> CLOSED

CLOSED is terminal. A new session needs a new client (and gets a new identity).
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from teleterm.config.schema import ClientConfig
from teleterm.constants import DEFAULT_COLOR, DEFAULT_OWNER
from teleterm.core.emulator import EmulatorAdapter
from teleterm.core.identity import SessionIdentity
from teleterm.core.lifecycle import LifecycleNotifier
from teleterm.core.protocol import (
    InputRequest,
    RawOutput,
    Request,
    ResizeRequest,
    SpawnConfig,
    SpawnRequest,
    TerminalOutput,
    TerminalSpawned,
    decode,
    encode,
)
from teleterm.errors import SessionStateError
from teleterm.transport.base import Transport

logger = logging.getLogger(__name__)

# ANSI-styled status lines written into the terminal itself
_GREEN = "\x1b[1;32m"
_GREY = "\x1b[1;90m"
_CYAN = "\x1b[1;36m"
_YELLOW = "\x1b[1;33m"
_RED = "\x1b[1;31m"
_RESET = "\x1b[0m"


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_SPAWN_CONFIRMATION = "awaiting_spawn_confirmation"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class CloseReason(str, Enum):
    CLIENT_CLOSED = "client_closed"
    TRANSPORT_ERROR = "transport_error"
    CONNECTION_LOST = "connection_lost"  # closed after the session was active
    SPAWN_FAILED = "spawn_failed"  # closed before our confirmation arrived


_LIVE_STATES = frozenset(
    {SessionState.CONNECTING, SessionState.AWAITING_SPAWN_CONFIRMATION, SessionState.ACTIVE}
)


class TerminalSessionClient:
    """Own one session's lifecycle: connect, spawn, stream, resize, close.

    Driven entirely by transport events and emulator callbacks on a single
    event loop. No method blocks.

    Attributes:
        identity: Requested name (set now) and assigned id (set on confirmation)
        state: Current SessionState
        close_reason: Why the session ended, once CLOSED
    """

    def __init__(
        self,
        transport: Transport,
        emulator: EmulatorAdapter,
        *,
        owner: str = DEFAULT_OWNER,
        color: str = DEFAULT_COLOR,
        config: Optional[ClientConfig] = None,
        notifier: Optional[LifecycleNotifier] = None,
    ) -> None:
        self.transport = transport
        self.emulator = emulator
        self.owner = owner
        self.color = color
        self.config = config or ClientConfig()
        self.notifier = notifier or LifecycleNotifier()

        self.identity = SessionIdentity.for_owner(owner)
        self.state = SessionState.IDLE
        self.close_reason: CloseReason | None = None

        self._resize_timer: asyncio.TimerHandle | None = None
        self._closed = asyncio.Event()

    # ==================== Public API ====================

    @property
    def requested_name(self) -> str:
        return self.identity.requested_name

    @property
    def assigned_id(self) -> str | None:
        return self.identity.assigned_id

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def start(self) -> None:
        """Bind the emulator and open the transport. Must run inside an event loop.

        Raises:
            SessionStateError: If the client was already started
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError(
                f"Session {self.requested_name} cannot start from state {self.state.value}",
                details={"state": self.state.value},
            )
        self.emulator.bind(self.handle_user_input, self.handle_resize)
        self._set_state(SessionState.CONNECTING)
        self.transport.open(self)

    def close(self) -> None:
        """Tear the session down on request of the embedder. Idempotent."""
        self._teardown(CloseReason.CLIENT_CLOSED)

    async def wait_closed(self) -> CloseReason | None:
        """Wait until the session reaches CLOSED and return why it closed."""
        await self._closed.wait()
        return self.close_reason

    # ==================== Transport events ====================

    def on_open(self) -> None:
        if self.state is not SessionState.CONNECTING:
            logger.debug("Ignoring transport open in state %s", self.state.value)
            return

        logger.info("[%s] Connected to terminal host", self.requested_name)
        self._set_state(SessionState.AWAITING_SPAWN_CONFIRMATION)
        self.emulator.writeln(f"{_GREEN}✓ Connected to terminal backend{_RESET}")
        self.emulator.writeln(f"{_GREY}Spawning {self.config.terminal_type} session...{_RESET}")
        self.notifier.connected()

        # connected() handlers may have closed us already.
        if self.state is not SessionState.AWAITING_SPAWN_CONFIRMATION:
            return
        self._send(
            SpawnRequest(
                config=SpawnConfig(
                    terminal_type=self.config.terminal_type,
                    name=self.requested_name,
                    working_dir=self.config.working_dir,
                )
            )
        )

    def on_message(self, frame: str) -> None:
        if self.state not in (SessionState.AWAITING_SPAWN_CONFIRMATION, SessionState.ACTIVE):
            logger.debug("Ignoring frame in state %s", self.state.value)
            return

        message = decode(frame)
        if isinstance(message, TerminalSpawned):
            self._handle_spawned(message)
        elif isinstance(message, TerminalOutput):
            self._handle_output(message)
        elif isinstance(message, RawOutput):
            self.emulator.write(message.data)
        else:
            logger.debug("Received message: %s", getattr(message, "type", None))

    def on_error(self, error: Exception) -> None:
        if self.state not in _LIVE_STATES:
            return
        logger.warning("[%s] Transport error: %s", self.requested_name, error)
        self.emulator.writeln(f"\r\n{_RED}✗ Connection failed to terminal backend{_RESET}")
        self._teardown(CloseReason.TRANSPORT_ERROR)

    def on_close(self) -> None:
        if self.state not in _LIVE_STATES:
            return
        if self.state is SessionState.ACTIVE:
            logger.info("[%s] Connection closed by host", self.requested_name)
            self.emulator.writeln(f"\r\n{_YELLOW}⚠ Connection closed{_RESET}")
            self._teardown(CloseReason.CONNECTION_LOST)
            return
        logger.warning("[%s] Connection closed before terminal was spawned", self.requested_name)
        self.emulator.writeln(f"\r\n{_RED}✗ Spawn failed: connection closed before terminal was ready{_RESET}")
        self._teardown(CloseReason.SPAWN_FAILED)

    # ==================== Emulator events ====================

    def handle_user_input(self, data: str) -> None:
        """Forward keystrokes or pasted text to our terminal."""
        terminal_id = self._data_plane_id()
        if terminal_id is None:
            logger.debug("Dropping input before terminal is active (%d chars)", len(data))
            return
        self._send(InputRequest(terminal_id=terminal_id, command=data))

    def handle_resize(self, cols: int, rows: int) -> None:
        # Hidden or collapsed views report 0x0; the host only accepts positive sizes.
        if cols < 1 or rows < 1:
            logger.debug("Dropping resize to empty geometry %dx%d", cols, rows)
            return
        terminal_id = self._data_plane_id()
        if terminal_id is None:
            logger.debug("Dropping resize %dx%d before terminal is active", cols, rows)
            return
        self._send(ResizeRequest(terminal_id=terminal_id, cols=cols, rows=rows))

    # ==================== Handshake and streaming ====================

    def _handle_spawned(self, message: TerminalSpawned) -> None:
        data = message.data
        if self.state is not SessionState.AWAITING_SPAWN_CONFIRMATION:
            logger.debug("Ignoring spawn confirmation for %s: session already active", data.name)
            return
        if not self.identity.matches_name(data.name):
            logger.debug("Ignoring spawn for different terminal: %s vs %s", data.name, self.requested_name)
            return
        if data.id is None:
            logger.warning("[%s] Spawn confirmation without terminal id; still waiting", self.requested_name)
            return

        self.identity.assign(data.id, data.session_name)
        self._set_state(SessionState.ACTIVE)
        logger.info(
            "[%s] Terminal spawned: id=%s session=%s", self.requested_name, data.id, data.session_name
        )
        self.emulator.writeln(f"{_CYAN}✓ Terminal ready: {self.owner}{_RESET}")
        self.emulator.writeln(f"{_YELLOW}Session: {data.session_name or data.id}{_RESET}")

        # The host allocates the process asynchronously; sizing it too early is undefined.
        loop = asyncio.get_running_loop()
        self._resize_timer = loop.call_later(self.config.settle_delay_s, self._send_initial_resize)

    def _send_initial_resize(self) -> None:
        self._resize_timer = None
        if not self.transport.is_open:
            return
        geometry = self.emulator.geometry()
        self.handle_resize(geometry.cols, geometry.rows)

    def _handle_output(self, message: TerminalOutput) -> None:
        if self.state is not SessionState.ACTIVE:
            logger.debug("Ignoring output for %s before spawn confirmation", message.terminal_id)
            return
        if not self.identity.matches_id(message.terminal_id):
            logger.debug(
                "Received output for different terminal: %s vs %s", message.terminal_id, self.assigned_id
            )
            return
        self.emulator.write(message.data)

    def _data_plane_id(self) -> str | None:
        if self.state is not SessionState.ACTIVE or not self.transport.is_open:
            return None
        return self.identity.assigned_id

    def _send(self, request: Request) -> None:
        if not self.transport.send(encode(request)):
            logger.debug("Transport refused %s request", request.type)

    # ==================== Teardown ====================

    def _teardown(self, reason: CloseReason) -> None:
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        if self.state is SessionState.IDLE:
            # Never started: nothing was bound, opened or announced.
            self.close_reason = reason
            self._set_state(SessionState.CLOSED)
            self._closed.set()
            return

        self.close_reason = reason
        self._set_state(SessionState.CLOSING)

        if self._resize_timer is not None:
            self._resize_timer.cancel()
            self._resize_timer = None
        self.emulator.unbind()
        # Also cancels a connection attempt that has not opened yet.
        self.transport.close()
        self.notifier.disconnected()
        self.emulator.release()

        self._set_state(SessionState.CLOSED)
        self._closed.set()
        logger.info("[%s] Session closed (%s)", self.requested_name, reason.value)

    def _set_state(self, state: SessionState) -> None:
        logger.debug("[%s] %s -> %s", self.requested_name, self.state.value, state.value)
        self.state = state
