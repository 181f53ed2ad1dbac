"""Shared fixtures for integration tests: a local broadcast terminal host."""

import itertools
import json
from contextlib import suppress

import pytest_asyncio
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed


class BroadcastTerminalHost:
    """Fake terminal host that, like the real one, broadcasts to every connection.

    Spawns are confirmed by name; `command` frames are echoed back as output
    tagged with the terminal id.
    """

    def __init__(self) -> None:
        self.connections: set[ServerConnection] = set()
        self.received: list[dict[str, object]] = []
        self.close_on_spawn = False
        self._ids = itertools.count(1)

    async def handler(self, ws: ServerConnection) -> None:
        self.connections.add(ws)
        try:
            async for frame in ws:
                record = json.loads(frame)
                self.received.append(record)
                await self._handle(ws, record)
        finally:
            self.connections.discard(ws)

    async def _handle(self, ws: ServerConnection, record: dict) -> None:
        if record["type"] == "spawn":
            if self.close_on_spawn:
                await ws.close()
                return
            terminal_id = str(next(self._ids))
            await self.broadcast(
                {
                    "type": "terminal-spawned",
                    "data": {
                        "id": terminal_id,
                        "name": record["config"]["name"],
                        "sessionName": f"tt-bash-{terminal_id}",
                    },
                }
            )
        elif record["type"] == "command":
            await self.broadcast(
                {"type": "terminal-output", "terminalId": record["terminalId"], "data": f"echo:{record['command']}"}
            )

    async def broadcast(self, record: dict) -> None:
        frame = json.dumps(record)
        for ws in list(self.connections):
            with suppress(ConnectionClosed):
                await ws.send(frame)

    def received_of_type(self, msg_type: str) -> list[dict[str, object]]:
        return [record for record in self.received if record["type"] == msg_type]



@pytest_asyncio.fixture
async def terminal_host():
    host = BroadcastTerminalHost()
    async with serve(host.handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        yield host, f"ws://127.0.0.1:{port}"
