import asyncio
import functools
import logging
from typing import Awaitable, Callable

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.frames import CloseCode

from lspbridge.core.bridge.session import Session
from lspbridge.core.errors import BackendConnectError, BindError
from lspbridge.core.helpers.spawn import TaskSpawner
from lspbridge.core.helpers.traffic import TrafficLogger
from lspbridge.core.models.config import BridgeConfig
from lspbridge.core.models.state import SessionRegistry
from lspbridge.core.ports.connection import Connection
from lspbridge.infra.stream import StreamConnection
from lspbridge.infra.websocket import WebSocketConnection

BackendConnector = Callable[[str, int], Awaitable[Connection]]
"""
Coroutine function dialing the backend at (host, port). It must raise
BackendConnectError when the connection cannot be established.
"""


class BridgeServer:
    """
    Owns the lifecycle of the WebSocket listener that fronts an LSP backend.

    It binds to the configured host and port using `websockets.serve`, which
    performs the HTTP upgrade and runs `handle()` once per accepted
    connection. For each of them the bridge dials a new, dedicated backend
    connection, pairs both legs in a Session, registers it and runs it for as
    long as the WebSocket connection lives. When the backend cannot be
    reached, the WebSocket connection is closed right away and nothing is
    registered.

    Sessions are fully independent; the registry is the only structure they
    share and it serializes its own mutations.

    On `stop()`, the bridge stops accepting, tears down every registered
    session, and waits for connection handlers and pump tasks to finish. If
    the graceful shutdown timeout is exceeded, remaining tasks are cancelled
    and an error is logged. Both `start()` and `stop()` are idempotent.
    """
    def __init__(
        self,
        config: BridgeConfig,
        registry: SessionRegistry | None = None,
        connector: BackendConnector | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._loop = loop or asyncio.get_event_loop()
        self.registry = registry if registry is not None else SessionRegistry()
        self._connector = connector or functools.partial(
            StreamConnection.open, read_chunk_size=config.read_chunk_size
        )
        self._spawner = TaskSpawner(loop=self._loop)
        self._traffic = TrafficLogger(
            enabled=config.traffic_logging,
            max_log_bytes=config.max_log_bytes,
            dump_dir=config.dump_dir,
        )
        self._server: Server | None = None
        self._accepting = False
        self._logger = logging.getLogger("core.bridge.server")

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def listen(self) -> tuple[str, int]:
        """Actual bound address, which differs from the config when port is 0."""
        if self._server is None:
            return self._config.host, self._config.port

        sockname = self._server.sockets[0].getsockname()
        return sockname[0], sockname[1]

    @property
    def spawner(self) -> TaskSpawner:
        return self._spawner

    async def start(self) -> None:
        if self._server is not None:
            return

        config = self._config
        try:
            self._server = await serve(
                self.handle,
                host=config.host,
                port=config.port,
                ssl=config.ssl_ctx,
                ping_interval=config.ping_interval,
            )
        except OSError as ex:
            raise BindError(
                f"Unable to listen on {config.host}:{config.port}: {ex}"
            ) from ex

        self._accepting = True
        self._logger.info(
            "Bridge listening at %s:%d, backend %s", *self.listen, config.backend_address
        )

    async def handle(self, connection: ServerConnection) -> None:
        message = WebSocketConnection(connection)
        address = message.remote_address
        who = "%s:%d" % address if address else ""

        if not self._accepting:
            await message.close(CloseCode.GOING_AWAY, "bridge is stopping")
            return

        max_sessions = self._config.max_sessions
        if max_sessions is not None and len(self.registry) >= max_sessions:
            self._logger.warning(
                f"{who} - Rejecting connection, {max_sessions} sessions already live"
            )
            await message.close(CloseCode.TRY_AGAIN_LATER, "too many sessions")
            return

        try:
            stream = await self._connector(
                self._config.backend_host, self._config.backend_port
            )
        except BackendConnectError as ex:
            self._logger.warning(f"{who} - Dropping connection: {ex}")
            await message.close(CloseCode.INTERNAL_ERROR, "backend unavailable")
            return

        if not self._accepting:
            await stream.close()
            await message.close(CloseCode.GOING_AWAY, "bridge is stopping")
            return

        session = Session(
            message=message,
            stream=stream,
            registry=self.registry,
            spawner=self._spawner,
            traffic=self._traffic,
            max_frame_size=self._config.max_frame_size,
        )
        await self.registry.add(session)
        self._logger.info(f"{who} - Session {session.id} bridged to {self._config.backend_address}")

        await session.run()

    async def stop(self) -> None:
        self._accepting = False
        server = self._server

        if server is not None:
            server.close(close_connections=False)

        sessions = await self.registry.snapshot()
        if sessions:
            self._logger.info(f"Closing {len(sessions)} live session(s).")
        await asyncio.gather(*(session.close() for session in sessions))

        try:
            await asyncio.wait_for(
                self._wait_task_complete(server),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {self._spawner.remaining_tasks} running task(s), "
                f"timeout graceful shutdown: {self._spawner.tasks}"
            )
            self._spawner.cancel_all()

        self._server = None

    async def _wait_task_complete(self, server: Server | None) -> None:
        if self._spawner.remaining_tasks:
            self._logger.info("Waiting for session tasks to complete.")

        while self._spawner.remaining_tasks:
            await asyncio.sleep(0.1)

        if server is not None:
            await server.wait_closed()
