import logging

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.frames import CloseCode


class WebSocketConnection:
    """
    Editor leg of a session, wrapping an accepted `websockets` connection.

    Each WebSocket message is one payload. Incoming text frames are handed
    over as their UTF-8 bytes. Outgoing payloads are sent as text frames when
    they decode as UTF-8 (LSP JSON always does) and as binary frames
    otherwise.

    A clean close from the peer reads as None; an abnormal close, on read or
    on write, is raised as ConnectionError.
    """
    def __init__(self, connection: ServerConnection) -> None:
        self._connection = connection
        self._logger = logging.getLogger("infra.websocket")

    @property
    def remote_address(self) -> tuple[str, int] | None:
        address = self._connection.remote_address
        if isinstance(address, tuple) and len(address) >= 2:
            return address[0], address[1]
        return None

    async def read(self) -> bytes | None:
        try:
            message = await self._connection.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as ex:
            raise ConnectionError(f"WebSocket closed abnormally: {ex}") from ex

        if isinstance(message, str):
            return message.encode("utf-8")
        return message

    async def write(self, data: bytes) -> None:
        try:
            message: str | bytes = data.decode("utf-8")
        except UnicodeDecodeError:
            message = data

        try:
            await self._connection.send(message)
        except ConnectionClosed as ex:
            raise ConnectionError(f"WebSocket send failed: {ex}") from ex

    async def close(
        self,
        code: int = CloseCode.NORMAL_CLOSURE,
        reason: str = "",
    ) -> None:
        self._logger.debug(f"Closing WebSocket with code {code}")
        await self._connection.close(code, reason)
