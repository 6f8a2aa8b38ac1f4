"""
Content-Length framing used by LSP servers over a byte stream.

A frame is a block of ``Name: value`` header lines terminated by CRLF, an
empty line, and exactly ``Content-Length`` bytes of opaque body::

    Content-Length: 5\\r\\n
    \\r\\n
    hello

Only ``Content-Length`` is interpreted. Other header fields are ignored on
input and never emitted on output.
"""
import logging

from lspbridge.core.errors import FrameParseError, FrameTooLargeError

HEADER_TERMINATOR = b"\r\n\r\n"
LINE_SEPARATOR = "\r\n"
CONTENT_LENGTH = "content-length"
MAX_HEADER_SIZE = 8192

logger = logging.getLogger("core.framing.codec")


def encode(payload: bytes) -> bytes:
    """Wrap a payload into a single stream frame."""
    header = f"Content-Length: {len(payload)}{LINE_SEPARATOR}{LINE_SEPARATOR}"
    return header.encode("ascii") + payload


def parse_header(header: bytes, max_frame_size: int | None = None) -> int:
    """
    Return the body length declared by a header block (terminator excluded).

    The field name is matched case-insensitively and the last occurrence
    wins. The value must be a plain non-negative decimal number.
    """
    try:
        text = header.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FrameParseError(f"Header is not valid UTF-8: {exc}") from exc

    raw: str | None = None
    for line in text.split(LINE_SEPARATOR):
        name, sep, value = line.partition(":")
        if sep and name.strip().lower() == CONTENT_LENGTH:
            raw = value.strip()

    if raw is None:
        raise FrameParseError("Missing Content-Length header")

    if not (raw.isascii() and raw.isdigit()):
        raise FrameParseError(f"Invalid Content-Length value: {raw!r}")

    try:
        length = int(raw)
    except ValueError as exc:
        raise FrameParseError(f"Content-Length out of range: {exc}") from exc

    if max_frame_size is not None and length > max_frame_size:
        raise FrameTooLargeError(length, max_frame_size)

    return length


def scan(
    buffer: bytes | bytearray,
    max_frame_size: int | None = None,
) -> tuple[list[bytes], int]:
    """
    Extract every complete frame from the head of ``buffer``.

    Returns the payloads in arrival order together with the number of
    leading bytes that were consumed, either by complete frames or by
    malformed header blocks that were skipped. Bytes past that offset form
    an incomplete header or body and must be kept for the next call.

    A frame above ``max_frame_size`` is skipped with its body. When that body
    has not fully arrived yet, the returned offset points past the end of
    ``buffer`` and the difference is the number of upcoming bytes to drop.
    """
    frames: list[bytes] = []
    offset = 0

    while True:
        header_end = buffer.find(HEADER_TERMINATOR, offset)
        if header_end == -1:
            break

        body_start = header_end + len(HEADER_TERMINATOR)
        try:
            length = parse_header(bytes(buffer[offset:header_end]), max_frame_size)
        except FrameTooLargeError as exc:
            logger.warning(f"Discarding {body_start - offset + exc.length} frame bytes: {exc}")
            offset = body_start + exc.length
            if offset >= len(buffer):
                break
            continue
        except FrameParseError as exc:
            logger.warning(f"Discarding {body_start - offset} header bytes: {exc}")
            offset = body_start
            continue

        body_end = body_start + length
        if len(buffer) < body_end:
            break

        frames.append(bytes(buffer[body_start:body_end]))
        offset = body_end

    return frames, offset


def decode(
    buffer: bytes | bytearray,
    max_frame_size: int | None = None,
) -> tuple[list[bytes], bytes]:
    """
    Split ``buffer`` into complete payloads and the unparsed remainder.

    The remainder is empty when an oversized frame runs past the end of
    ``buffer``; callers that keep reading use StreamBuffer, which remembers
    how much of that body is still to be dropped.
    """
    frames, consumed = scan(buffer, max_frame_size)
    return frames, bytes(buffer[consumed:])
