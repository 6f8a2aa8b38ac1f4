import logging

from lspbridge.core.framing.codec import HEADER_TERMINATOR, MAX_HEADER_SIZE, scan


class StreamBuffer:
    """
    Accumulates bytes read from the backend stream until they form complete
    frames.

    Data is appended at the tail and removed from the head only once a whole
    frame (header and full body) has been extracted, or once a malformed
    header block has been skipped. A partial header or a short body stays
    untouched until more bytes arrive.

    When a frame size limit is set, an oversized frame is dropped as its
    bytes arrive, and an unterminated header is not allowed to grow past
    MAX_HEADER_SIZE: its leading bytes are discarded and the rest of the
    block is dropped as malformed once its terminator shows up.

    A StreamBuffer belongs to exactly one Session and is only touched by the
    stream-to-message pump of that session, so it carries no locking.
    """
    def __init__(self, max_frame_size: int | None = None) -> None:
        self._data = bytearray()
        self._max_frame_size = max_frame_size
        # Upcoming bytes belonging to an oversized body.
        self._skip = 0
        # Head bytes already searched for a header terminator.
        self._searched = 0
        # Head of the buffer is the tail of a header cut by _limit_header.
        self._truncated = False
        self._logger = logging.getLogger("core.framing.buffer")

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def append(self, data: bytes) -> None:
        if self._skip:
            dropped = min(self._skip, len(data))
            self._skip -= dropped
            data = data[dropped:]
        self._data.extend(data)

    def drain(self) -> list[bytes]:
        """Remove and return every complete payload currently buffered."""
        start = max(0, self._searched - len(HEADER_TERMINATOR) + 1)
        if self._data.find(HEADER_TERMINATOR, start) == -1:
            self._searched = len(self._data)
            self._limit_header()
            return []

        if self._truncated:
            self._drop_truncated_header()

        frames, consumed = scan(self._data, self._max_frame_size)
        if consumed > len(self._data):
            self._skip = consumed - len(self._data)
            consumed = len(self._data)
        if consumed:
            del self._data[:consumed]
        self._searched = 0
        return frames

    def feed(self, data: bytes) -> list[bytes]:
        self.append(data)
        return self.drain()

    def clear(self) -> None:
        self._data.clear()
        self._skip = 0
        self._searched = 0
        self._truncated = False

    def _limit_header(self) -> None:
        if self._max_frame_size is None or len(self._data) <= MAX_HEADER_SIZE:
            return

        # A terminator may straddle the next read.
        keep = len(HEADER_TERMINATOR) - 1
        self._logger.warning(
            f"Discarding {len(self._data) - keep} bytes of unterminated header"
        )
        del self._data[:-keep]
        self._searched = len(self._data)
        self._truncated = True

    def _drop_truncated_header(self) -> None:
        end = self._data.find(HEADER_TERMINATOR) + len(HEADER_TERMINATOR)
        self._logger.warning(f"Discarding {end} bytes ending an oversized header")
        del self._data[:end]
        self._truncated = False
