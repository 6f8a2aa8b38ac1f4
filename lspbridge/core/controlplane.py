import asyncio
import logging

from lspbridge.bootstrap.config.settings import LspBridgeConfig
from lspbridge.core.bridge.server import BridgeServer
from lspbridge.core.models.config import BridgeConfig


class ControlPlane:
    """
    Process-level owner of the event loop and the bridge.

    Translates file/env settings into the runtime BridgeConfig (which validates
    ports), builds the BridgeServer on a dedicated loop, and runs it until the
    stop event fires.
    """
    def __init__(self, config: LspBridgeConfig) -> None:
        self._config = config
        self._bridge_config = self._build_bridge_config()
        self._loop = self._create_event_loop()
        self._bridge = BridgeServer(config=self._bridge_config, loop=self._loop)
        self._logger = logging.getLogger("lspbridge.controlplane")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def bridge(self) -> BridgeServer:
        return self._bridge

    async def start(self, stop_event: asyncio.Event) -> None:
        await self._bridge.start()
        self._logger.info("Bridge started at %s:%d", *self._bridge.listen)

        await stop_event.wait()

        self._logger.info(
            f"Stop requested, closing {len(self._bridge.registry)} session(s)."
        )
        await self._bridge.stop()

    def _build_bridge_config(self) -> BridgeConfig:
        config = self._config

        return BridgeConfig(
            host=config.server.host,
            port=config.server.port,
            backend_host=config.backend.host,
            backend_port=config.backend.port,
            ssl_ctx=config.get_server_ssl_ctx(),
            ping_interval=config.server.ping_interval,
            max_sessions=config.server.max_sessions,
            read_chunk_size=config.bridge.read_chunk_size,
            max_frame_size=config.bridge.max_frame_size,
            traffic_logging=config.logging.traffic,
            max_log_bytes=config.logging.max_log_bytes,
            dump_dir=config.logging.dump_dir,
            timeout_graceful_shutdown=config.server.timeout_graceful_shutdown,
        )

    @staticmethod
    def _create_event_loop() -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop
