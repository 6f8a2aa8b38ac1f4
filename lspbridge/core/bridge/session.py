import asyncio
import logging
import uuid

from lspbridge.core.framing.buffer import StreamBuffer
from lspbridge.core.framing.codec import encode
from lspbridge.core.helpers.spawn import TaskSpawner
from lspbridge.core.helpers.traffic import TrafficLogger, TCP_TO_WS, WS_TO_TCP
from lspbridge.core.models.state import SessionPhase, SessionRegistry
from lspbridge.core.ports.connection import Connection


def new_session_id() -> str:
    return uuid.uuid4().hex


class Session:
    """
    Relays payloads between one WebSocket connection and one dedicated backend
    stream connection.

    Two pumps run as independent tasks. The message pump reads WebSocket
    messages, wraps each non-empty one in a Content-Length frame and writes
    it to the backend. The stream pump reads raw backend bytes into the
    session's StreamBuffer and forwards every complete frame, in arrival
    order, as one WebSocket message. Neither pump waits on the other.

    The legs live and die together. Whichever pump first observes EOF, a read
    failure or a write failure triggers `close()`, which cancels the sibling
    pump, closes both connections and removes the session from the registry.
    `close()` is idempotent and may race between both pumps and the bridge's
    `stop()`: the phase check guarantees each leg is closed at most once, and
    late callers simply wait for the first teardown to finish.

    The session never inspects payloads, never retries and never reconnects.
    """
    def __init__(
        self,
        message: Connection,
        stream: Connection,
        registry: SessionRegistry,
        spawner: TaskSpawner,
        traffic: TrafficLogger | None = None,
        max_frame_size: int | None = None,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or new_session_id()
        self.phase = SessionPhase.active

        self._message = message
        self._stream = stream
        self._registry = registry
        self._spawner = spawner
        self._traffic = traffic or TrafficLogger()
        self._buffer = StreamBuffer(max_frame_size=max_frame_size)

        self._pumps: list[asyncio.Task[None]] = []
        self._closed = asyncio.Event()
        self._logger = logging.getLogger("core.bridge.session")

    @property
    def closed(self) -> bool:
        return self.phase == SessionPhase.closed

    def start(self) -> None:
        """Start both pumps. Has no effect once the session left `active`."""
        if self._pumps or self.phase != SessionPhase.active:
            return

        self._pumps = [
            self._spawner.spawn(
                self._pump_message(), name=f"session-{self.id}-ws-to-tcp"
            ),
            self._spawner.spawn(
                self._pump_stream(), name=f"session-{self.id}-tcp-to-ws"
            ),
        ]
        self._logger.debug(f"{self.id} - Session started")

    async def run(self) -> None:
        """Start both pumps and suspend until the session is fully closed."""
        self.start()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def close(self) -> None:
        if self.phase != SessionPhase.active:
            await self._closed.wait()
            return

        self.phase = SessionPhase.closing
        self._logger.debug(f"{self.id} - Session closing")

        current = asyncio.current_task()
        for task in self._pumps:
            if task is not current:
                task.cancel()

        try:
            await self._message.close()
        except Exception as exc:
            self._logger.warning(f"{self.id} - Error closing WebSocket leg: {exc}")

        try:
            await self._stream.close()
        except Exception as exc:
            self._logger.warning(f"{self.id} - Error closing backend leg: {exc}")

        self._buffer.clear()
        await self._registry.remove(self.id)

        self.phase = SessionPhase.closed
        self._closed.set()
        self._logger.info(f"{self.id} - Session closed")

    async def _pump_message(self) -> None:
        try:
            while True:
                payload = await self._message.read()
                if payload is None:
                    self._logger.debug(f"{self.id} - WebSocket closed by peer")
                    break

                if not payload:
                    continue

                self._traffic.log(WS_TO_TCP, payload, self.id)
                await self._stream.write(encode(payload))
        except ConnectionError as exc:
            self._logger.info(f"{self.id} - {WS_TO_TCP} relay stopped: {exc}")
        except Exception as exc:
            self._logger.error(
                f"{self.id} - Unexpected error in {WS_TO_TCP} relay", exc_info=exc
            )

        await self.close()

    async def _pump_stream(self) -> None:
        try:
            while True:
                data = await self._stream.read()
                if data is None:
                    self._logger.debug(f"{self.id} - Backend closed the stream")
                    break

                for payload in self._buffer.feed(data):
                    self._traffic.log(TCP_TO_WS, payload, self.id)
                    self._traffic.dump(payload)
                    await self._message.write(payload)
        except ConnectionError as exc:
            self._logger.info(f"{self.id} - {TCP_TO_WS} relay stopped: {exc}")
        except Exception as exc:
            self._logger.error(
                f"{self.id} - Unexpected error in {TCP_TO_WS} relay", exc_info=exc
            )

        await self.close()
