"""teleterm: open terminal sessions on a shared terminal host."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from teleterm import __version__
from teleterm.adapters.console_emulator import ConsoleEmulator
from teleterm.config import ClientConfig, TerminalCardConfig, load_client_config
from teleterm.constants import DEFAULT_COLOR, DEFAULT_OWNER
from teleterm.core.deck import TerminalDeck
from teleterm.core.emulator import BufferEmulator
from teleterm.core.session_client import CloseReason, TerminalSessionClient
from teleterm.diagnostics.log_forwarder import install_log_forwarder
from teleterm.errors import TeletermError
from teleterm.logging_config import setup_logging
from teleterm.transport.websocket_transport import WebSocketTransport
from teleterm.utils import hex_to_rgb

logger = logging.getLogger(__name__)

_FAILED_REASONS = frozenset({CloseReason.TRANSPORT_ERROR, CloseReason.SPAWN_FAILED})
_ACTIVE_POLL_S = 0.05


def _session_options(default: object) -> argparse.ArgumentParser:
    """Options accepted both before and after the subcommand."""
    options = argparse.ArgumentParser(add_help=False, argument_default=default)
    options.add_argument("--config", type=Path, help="Config file (default: ~/.teleterm/teleterm.yml)")
    options.add_argument("--url", help="Host WebSocket URL, e.g. ws://localhost:8129")
    options.add_argument("--shell", help="Terminal type to spawn (default: bash)")
    options.add_argument("--cwd", help="Working directory for the remote shell")
    options.add_argument("--log-level", help="Override TELETERM_LOG_LEVEL")
    return options


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="teleterm",
        description="Terminal sessions on a shared terminal host.",
        parents=[_session_options(None)],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # SUPPRESS keeps a subcommand from resetting values given before it.
    shared = _session_options(argparse.SUPPRESS)
    sub = parser.add_subparsers(dest="command", required=True)

    attach = sub.add_parser(
        "attach", parents=[shared], help="Open one interactive session on this console (Ctrl-] detaches)"
    )
    attach.add_argument("--owner", default=DEFAULT_OWNER, help="Owner label used in the session name")
    attach.add_argument("--color", default=DEFAULT_COLOR, help="Foreground color, e.g. #00ff00")

    run = sub.add_parser(
        "run", parents=[shared], help="Run a command in several concurrent sessions and print their output"
    )
    run.add_argument("--count", type=int, help="Number of sessions (default: one per configured terminal)")
    run.add_argument("--timeout", type=float, default=3.0, help="Seconds to collect output (default: 3)")
    run.add_argument("shell_command", metavar="COMMAND", help="Command line sent to every session")
    return parser


def _apply_overrides(config: ClientConfig, args: argparse.Namespace) -> ClientConfig:
    update: dict[str, object] = {}
    if args.url:
        update["host_url"] = args.url
    if args.shell:
        update["terminal_type"] = args.shell
    if args.cwd:
        update["working_dir"] = str(Path(args.cwd).expanduser())
    if not update:
        return config
    return ClientConfig.model_validate({**config.model_dump(), **update})


async def _attach(config: ClientConfig, owner: str, color: str) -> int:
    transport = WebSocketTransport(config.host_url, open_timeout=config.open_timeout_s)
    client: TerminalSessionClient | None = None

    def detach() -> None:
        if client is not None:
            client.close()

    emulator = ConsoleEmulator(color=color, on_detach=detach)
    client = TerminalSessionClient(transport, emulator, owner=owner, color=color, config=config)
    client.start()
    reason = await client.wait_closed()
    await transport.wait_closed()
    return 1 if reason in _FAILED_REASONS else 0


async def _wait_active(client: TerminalSessionClient, deadline: float) -> bool:
    loop = asyncio.get_running_loop()
    while not client.is_active:
        if client.is_closed or loop.time() >= deadline:
            return False
        await asyncio.sleep(_ACTIVE_POLL_S)
    return True


def _border_style(color: str) -> str:
    # rich only parses six-digit hex, cards may use #rgb
    rgb = hex_to_rgb(color)
    return f"rgb({rgb[0]},{rgb[1]},{rgb[2]})" if rgb else "default"


async def _run_everywhere(config: ClientConfig, command: str, count: Optional[int], timeout: float) -> int:
    if count is not None:
        config = config.model_copy(
            update={"terminals": [TerminalCardConfig(name=f"run-{i + 1}") for i in range(count)]}
        )

    deck = TerminalDeck(config)
    deck.open_all()
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    async def drive(name: str) -> None:
        entry = deck.get(name)
        if not await _wait_active(entry.client, deadline):
            return
        await asyncio.sleep(config.settle_delay_s)
        if isinstance(entry.emulator, BufferEmulator):
            entry.emulator.type_text(command + "\r")

    await asyncio.gather(*(drive(entry.card.name) for entry in deck.entries))
    await asyncio.sleep(max(0.0, deadline - loop.time()))
    deck.close_all()
    await deck.wait_all_closed()

    console = Console()
    failures = 0
    for entry in deck.entries:
        client = entry.client
        if client.close_reason in _FAILED_REASONS:
            failures += 1
        output = entry.emulator.output if isinstance(entry.emulator, BufferEmulator) else ""
        title = f"{entry.card.name} [{client.identity.display_name}]"
        console.print(Panel(Text.from_ansi(output), title=title, border_style=_border_style(entry.card.color)))
    return 1 if failures else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = _apply_overrides(load_client_config(args.config), args)
    except (TeletermError, ValueError) as exc:
        parser.error(str(exc))

    forwarder = None
    if config.log_forwarding.enabled:
        forwarder = install_log_forwarder(config.console_log_url(), flush_delay_s=config.log_forwarding.flush_delay_s)

    try:
        if args.command == "attach":
            return asyncio.run(_attach(config, args.owner, args.color))
        return asyncio.run(_run_everywhere(config, args.shell_command, args.count, args.timeout))
    except KeyboardInterrupt:
        return 130
    finally:
        if forwarder is not None:
            logging.getLogger("teleterm").removeHandler(forwarder)
            forwarder.close()


if __name__ == "__main__":
    raise SystemExit(main())
