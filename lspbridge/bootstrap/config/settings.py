import ssl
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from typing import Annotated
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from lspbridge.bootstrap.config.loader import get_configfile


class TLSSettings(BaseModel):
    certfile: Annotated[
        Path,
        Field(
            description="Path to the listener's TLS certificate (PEM)."
        )
    ]

    keyfile: Annotated[
        Path,
        Field(
            description="Path to the listener's TLS private key (PEM)."
        )
    ]

    cafile: Annotated[
        Path | None,
        Field(
            description=(
                "Optional CA certificate (PEM) used to verify client certificates.\n"
                "When set, editors must present a certificate signed by this CA."
            ),
            default=None
        )
    ]

    @field_validator("certfile", "keyfile", "cafile")
    @classmethod
    def validate_path(cls, v: Path | None) -> Path | None:
        if v is not None and not v.exists():
            raise ValueError(f"Path {v} does not exist.")
        return v


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Bind address for the WebSocket listener.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="Port for the WebSocket listener. 0 lets the OS choose.",
            default=6009
        )
    ]

    tls: Annotated[
        TLSSettings | None,
        Field(
            description="Serve wss:// instead of ws:// when provided.",
            default=None
        )
    ]

    ping_interval: Annotated[
        float | None,
        Field(
            description=(
                "Seconds between keepalive pings sent to editors.\n"
                "Leave empty to disable. Pings from editors are always answered."
            ),
            default=None
        )
    ]

    max_sessions: Annotated[
        int | None,
        Field(
            description="Maximum number of simultaneous sessions. Empty means unbounded.",
            default=None
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for graceful shutdown.",
            default=5.0
        )
    ]


class BackendSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Host of the LSP server speaking Content-Length framing over TCP.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the LSP server.",
            default=6005
        )
    ]


class BridgeSettings(BaseModel):
    read_chunk_size: Annotated[
        int,
        Field(
            description="Maximum number of bytes read from the backend at once.",
            default=64 * 1024,
            gt=0
        )
    ]

    max_frame_size: Annotated[
        int | None,
        Field(
            description=(
                "Largest Content-Length accepted from the backend.\n"
                "Frames declaring more are skipped like malformed headers."
            ),
            default=None
        )
    ]


class LoggingSettings(BaseModel):
    traffic: Annotated[
        bool,
        Field(
            description="Log a preview of every relayed payload.",
            default=False
        )
    ]

    max_log_bytes: Annotated[
        int,
        Field(
            description="Preview length cap for traffic logging.",
            default=2 * 1024
        )
    ]

    dump_dir: Annotated[
        Path | None,
        Field(
            description=(
                "Directory receiving a DUMP-<n> file per payload relayed from\n"
                "the backend. Debugging aid only."
            ),
            default=None
        )
    ]


class LspBridgeConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LSPBRIDGE_",
        env_nested_delimiter="__",
        extra="allow"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "WebSocket listener configuration.\n"
                "Controls where editors connect, optional TLS, keepalive and\n"
                "limits applied to the number of concurrent sessions."
            ),
            default_factory=ServerSettings
        )
    ]

    backend: Annotated[
        BackendSettings,
        Field(
            description=(
                "LSP backend address.\n"
                "Every editor connection gets its own dedicated TCP connection here."
            ),
            default_factory=BackendSettings
        )
    ]

    bridge: Annotated[
        BridgeSettings,
        Field(
            description="Per-session relay limits.",
            default_factory=BridgeSettings
        )
    ]

    logging: Annotated[
        LoggingSettings,
        Field(
            description="Traffic diagnostics.",
            default_factory=LoggingSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )

    def get_server_ssl_ctx(self) -> ssl.SSLContext | None:
        tls = self.server.tls
        if tls is None:
            return None

        ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        ctx.load_cert_chain(
            certfile=tls.certfile,
            keyfile=tls.keyfile
        )
        if tls.cafile is not None:
            ctx.verify_mode = ssl.CERT_REQUIRED
            ctx.load_verify_locations(cafile=tls.cafile)

        return ctx
