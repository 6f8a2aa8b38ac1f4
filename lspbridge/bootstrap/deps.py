import json
from functools import lru_cache

from pydantic import ValidationError

from lspbridge.bootstrap.config.settings import LspBridgeConfig
from lspbridge.core.controlplane import ControlPlane
from lspbridge.core.errors import InvalidPortError


@lru_cache
def get_cp() -> ControlPlane:
    try:
        return ControlPlane(config=get_config())
    except InvalidPortError as ex:
        raise SystemExit(f"Configuration validation failed: {ex}")


@lru_cache
def get_config() -> LspBridgeConfig:
    try:
        return LspBridgeConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        raise SystemExit(format_validation_error(ex))


def format_validation_error(ex: ValidationError) -> str:
    msg = ["Configuration validation failed:"]
    errs = json.loads(ex.json())
    for err in errs:
        msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
    return "\n".join(msg)
