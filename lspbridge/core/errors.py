class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class InvalidPortError(BridgeError, ValueError):
    """
    Raised when a configured port is outside the range accepted for its role.
    The listener accepts 0 (OS-assigned), the backend does not.
    """
    def __init__(self, name: str, port: int) -> None:
        super().__init__(f"Invalid {name}: {port}")
        self.name = name
        self.port = port


class BindError(BridgeError):
    """The WebSocket listener could not bind its address."""


class BackendConnectError(BridgeError):
    """
    The dedicated backend connection for one accepted WebSocket connection
    could not be established. Only that connection is dropped.
    """


class FrameParseError(BridgeError):
    """
    A stream header block is malformed. Never leaves the codec: the offending
    region is discarded and parsing resumes after it.
    """


class FrameTooLargeError(FrameParseError):
    """
    The header is well formed but declares a body above the frame size
    limit. The body is skipped along with the header.
    """
    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"Content-Length {length} exceeds limit of {limit} bytes")
        self.length = length
        self.limit = limit
