import ssl
from dataclasses import dataclass
from pathlib import Path

from lspbridge.core.errors import InvalidPortError

MAX_PORT = 65535


@dataclass
class BridgeConfig:
    """
    Static configuration for a BridgeServer.

    Defines where the WebSocket listener binds, which backend every session
    dials, and the runtime limits and diagnostics applied to each session.
    Ports are validated on construction.
    """
    host: str = "127.0.0.1"
    """
    IP address or hostname on which the WebSocket listener binds.
    """

    port: int = 6009
    """
    WebSocket listener port. If set to 0, the OS selects an available port.
    """

    backend_host: str = "127.0.0.1"
    """
    Host of the LSP backend speaking Content-Length framing over TCP.
    """

    backend_port: int = 6005
    """
    Port of the LSP backend. Must be an actual port, 0 is rejected.
    """

    ssl_ctx: ssl.SSLContext | None = None
    """
    Optional TLS context. When set, the listener serves wss:// instead of ws://.
    """

    ping_interval: float | None = None
    """
    Interval in seconds between keepalive pings sent by the listener.
    None disables keepalive pings. Pings from clients are always answered.
    """

    max_sessions: int | None = None
    """
    Maximum number of live sessions. Extra WebSocket connections are closed
    before a backend connection is opened. None means unbounded.
    """

    read_chunk_size: int = 64 * 1024
    """
    Maximum number of bytes requested per read on the backend stream.
    """

    max_frame_size: int | None = None
    """
    Largest Content-Length accepted from the backend. Larger declarations are
    handled like any other malformed header. None means unbounded.
    """

    traffic_logging: bool = False
    """
    Log a preview of every payload relayed in either direction.
    """

    max_log_bytes: int = 2 * 1024
    """
    Preview length cap for traffic logging.
    """

    dump_dir: Path | None = None
    """
    If set, every payload relayed from the backend is also written there as
    DUMP-<n>. Debugging aid only.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) `stop()` waits for connection handlers and
    session tasks to finish before cancelling what remains.
    """

    def __post_init__(self) -> None:
        if not 0 <= self.port <= MAX_PORT:
            raise InvalidPortError("listener port", self.port)
        if not 0 < self.backend_port <= MAX_PORT:
            raise InvalidPortError("backend port", self.backend_port)

    @property
    def backend_address(self) -> str:
        return f"{self.backend_host}:{self.backend_port}"
