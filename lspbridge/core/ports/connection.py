from typing import Protocol


class Connection(Protocol):
    """
    One already-connected leg of a bridged session.

    Both the WebSocket side and the backend stream side expose the same three
    operations, so a Session never needs to know which concrete socket it is
    driving. Test doubles implement the same interface.

    Implementations must translate their library-specific failures into the
    contract below. In particular they must not leak transport exceptions
    other than ConnectionError out of `read()` or `write()`.
    """

    async def read(self) -> bytes | None:
        """
        Suspend until data is available.

        On the message side, return exactly one complete message. On the
        stream side, return whatever bytes are available (at least one).
        Return None once the peer has closed the connection cleanly, and raise
        ConnectionError on any other failure.
        """

    async def write(self, data: bytes) -> None:
        """
        Send `data` to the peer: one message on the message side, raw bytes
        on the stream side. Raise ConnectionError if the connection is closed
        or the write fails.
        """

    async def close(self) -> None:
        """Release the connection. Calling it more than once is harmless."""
