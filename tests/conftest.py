import asyncio
import os

import pytest
import pytest_asyncio
import yaml
from typing import AsyncGenerator, Generator

from tests.fake.fake_backend import FakeBackend
from tests.fake.fake_connection import FakeConnection
from tests.helpers import FakeBridgeConfig
from tests.utils import generate_cert_pair, write_pem

from lspbridge.bootstrap.config.settings import LspBridgeConfig, TLSSettings
from lspbridge.core.helpers.spawn import TaskSpawner
from lspbridge.core.models.state import SessionRegistry


@pytest.fixture
def message():
    return FakeConnection("ws")


@pytest.fixture
def stream():
    return FakeConnection("tcp")


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest_asyncio.fixture
async def spawner() -> TaskSpawner:
    return TaskSpawner(asyncio.get_running_loop())


@pytest_asyncio.fixture
async def backend() -> AsyncGenerator[FakeBackend, None]:
    server = FakeBackend(echo=True)
    await server.start()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture(scope="session")
def tls_settings(tmp_path_factory) -> tuple[TLSSettings, TLSSettings]:
    ca_cert, server_key, server_cert, client_key, client_cert = generate_cert_pair()
    base = tmp_path_factory.mktemp("tls")

    write_pem(ca_cert, base / "ca.pem")
    write_pem(server_cert, base / "server.pem")
    write_pem(server_key, base / "server.key")
    write_pem(client_cert, base / "client.pem")
    write_pem(client_key, base / "client.key")

    server_tls = TLSSettings(
        certfile=base / "server.pem",
        keyfile=base / "server.key",
        cafile=base / "ca.pem"
    )
    client_tls = TLSSettings(
        certfile=base / "client.pem",
        keyfile=base / "client.key",
        cafile=base / "ca.pem"
    )

    return server_tls, client_tls


@pytest.fixture(scope="session")
def config_file(tmp_path_factory, tls_settings):
    server_tls, _ = tls_settings
    base = tmp_path_factory.mktemp("config")
    file = base / "lspbridge.yaml"

    data = {
        "server": {
            "host": "127.0.0.1",
            "port": 0,
            "tls": {
                "certfile": str(server_tls.certfile),
                "keyfile": str(server_tls.keyfile),
                "cafile": str(server_tls.cafile),
            },
            "max_sessions": 4,
            "timeout_graceful_shutdown": 1,
        },
        "backend": {
            "host": "127.0.0.1",
            "port": 7005,
        },
        "bridge": {
            "read_chunk_size": 1024,
            "max_frame_size": 1024 * 1024,
        },
        "logging": {
            "traffic": True,
            "max_log_bytes": 64,
        },
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture
def bridge_config(config_file) -> Generator[LspBridgeConfig, None, None]:
    backup = os.environ.copy()

    try:
        os.environ["TEST_LSPBRIDGECONFIG"] = str(config_file)
        yield FakeBridgeConfig()
    finally:
        os.environ.clear()
        os.environ.update(backup)
