import asyncio
import logging
import ssl

from lspbridge.core.errors import BackendConnectError

DEFAULT_READ_CHUNK_SIZE = 64 * 1024


class StreamConnection:
    """
    Backend leg of a session: a raw TCP connection to the LSP server, carried
    by an asyncio StreamReader/StreamWriter pair.

    `read()` returns whatever bytes are available, from 1 up to
    `read_chunk_size`. Frame boundaries are reconstructed by the session's
    StreamBuffer, not here. `write()` waits for the transport buffer to drain
    so that a broken connection is reported on the write that hit it or on the
    next one.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._read_chunk_size = read_chunk_size
        self._closed = False
        self._logger = logging.getLogger("infra.stream")

    @classmethod
    async def open(
        cls,
        host: str,
        port: int,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        ssl_context: ssl.SSLContext | None = None,
    ) -> "StreamConnection":
        """
        Dial the backend. Any failure to connect is reported as
        BackendConnectError, there is no retry.
        """
        try:
            reader, writer = await asyncio.open_connection(
                host=host,
                port=port,
                ssl=ssl_context,
            )
        except OSError as ex:
            raise BackendConnectError(
                f"Unable to connect to backend {host}:{port}: {ex}"
            ) from ex

        return cls(reader, writer, read_chunk_size=read_chunk_size)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def peer(self) -> tuple[str, int] | None:
        peername = self._writer.get_extra_info("peername")
        if isinstance(peername, tuple) and len(peername) >= 2:
            return peername[0], peername[1]
        return None

    async def read(self) -> bytes | None:
        try:
            data = await self._reader.read(self._read_chunk_size)
        except OSError as ex:
            raise ConnectionError(f"Backend read failed: {ex}") from ex

        return data or None

    async def write(self, data: bytes) -> None:
        if self._closed or self._writer.is_closing():
            raise ConnectionError("Backend connection is closed")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as ex:
            raise ConnectionError(f"Backend write failed: {ex}") from ex

    async def close(self) -> None:
        if self._closed:
            return

        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as ex:
            self._logger.debug(f"Backend connection closed with error: {ex}")
