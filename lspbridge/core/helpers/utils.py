import asyncio
import contextlib
import logging
import signal
import sys
import threading
from typing import Generator

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s"


@contextlib.contextmanager
def setup_signal_handler(
    loop: asyncio.AbstractEventLoop,
) -> Generator[asyncio.Event, None, None]:
    """
    Turn SIGINT/SIGTERM into a stop event for the bridge.

    The handlers are registered on the event loop so that setting the event
    happens inside the loop. Outside the main thread, or on platforms without
    loop signal support, the event is returned untouched and the caller is
    expected to rely on KeyboardInterrupt.
    """
    stop_event = asyncio.Event()

    if threading.current_thread() is not threading.main_thread():
        yield stop_event
        return

    installed: list[signal.Signals] = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(sig)

    try:
        yield stop_event
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def setup_logging(level: str = "INFO", traffic: bool = False) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # Traffic previews are emitted at INFO; keep them visible when enabled
    # even if the root level is stricter.
    if traffic:
        logging.getLogger("core.helpers.traffic").setLevel(logging.INFO)
