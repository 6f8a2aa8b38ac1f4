import logging
from pathlib import Path

WS_TO_TCP = "WS->TCP"
TCP_TO_WS = "TCP->WS"


class TrafficLogger:
    """
    Diagnostic side channel for relayed payloads.

    When enabled, every payload is logged with its direction tag and a preview
    capped at `max_log_bytes`: UTF-8 payloads are shown as text, anything else
    as hex. When `dump_dir` is set, payloads coming from the backend are also
    written to numbered DUMP-<n> files.

    Nothing here may affect a session: dump failures are logged and dropped.
    A single TrafficLogger is shared by all sessions of a bridge, which keeps
    dump numbering unique across sessions.
    """
    def __init__(
        self,
        enabled: bool = False,
        max_log_bytes: int = 2 * 1024,
        dump_dir: Path | None = None,
    ) -> None:
        self.enabled = enabled
        self.max_log_bytes = max_log_bytes
        self.dump_dir = dump_dir
        self._dump_counter = 0
        self._logger = logging.getLogger("core.helpers.traffic")

    def preview(self, data: bytes) -> str:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return data[:self.max_log_bytes].hex()
        return text[:self.max_log_bytes]

    def log(self, direction: str, data: bytes, session_id: str = "") -> None:
        if self.enabled:
            who = f"{session_id} - " if session_id else ""
            self._logger.info(f"{who}[LSP][{direction}] {self.preview(data)}")

    def dump(self, data: bytes) -> Path | None:
        if self.dump_dir is None:
            return None

        self._dump_counter += 1
        path = Path(self.dump_dir) / f"DUMP-{self._dump_counter}"
        try:
            path.write_bytes(data)
        except OSError as exc:
            self._logger.warning(f"Failed to write {path}: {exc}")
            return None

        return path
