import logging

from lspbridge.bootstrap.config.loader import get_cli_args
from lspbridge.bootstrap.deps import get_config, get_cp
from lspbridge.core.errors import BindError
from lspbridge.core.helpers.utils import setup_signal_handler, setup_logging


def main():
    cli = get_cli_args()
    config = get_config()

    setup_logging(cli.log_level, traffic=config.logging.traffic)

    controlplane = get_cp()
    loop = controlplane.loop

    try:
        with setup_signal_handler(loop) as stop_event:
            loop.run_until_complete(controlplane.start(stop_event))
    except BindError as ex:
        logging.getLogger("lspbridge.boot").critical(str(ex))
        raise SystemExit(1)
    except KeyboardInterrupt:
        loop.run_until_complete(controlplane.bridge.stop())
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()
