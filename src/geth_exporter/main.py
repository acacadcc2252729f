import asyncio
import signal
import sys

import uvicorn

from .app import create_app
from .context import ApplicationContext, get_application_context
from .exceptions import ConfigError, RpcError
from .logging import build_log_extra, get_logger
from .settings import get_settings

SETTINGS = get_settings()
LOGGER = get_logger(__name__)


def bootstrap(context: ApplicationContext) -> None:
    """Connect to the node and publish the initial snapshot.

    Raises:
        RpcError: If the node is unreachable or the first block cannot be fetched.
    """
    LOGGER.info("Connecting to Ethereum node")
    context.sampler.bootstrap()


async def run_server() -> None:
    """Serve the exporter until a termination signal is received."""
    config = uvicorn.Config(
        create_app(),
        host=SETTINGS.server.host,
        port=SETTINGS.server.metrics_port,
        log_config=None,
    )

    server = uvicorn.Server(config)

    LOGGER.info(
        "Geth exporter running on http://%s:%s/metrics",
        SETTINGS.server.host,
        SETTINGS.server.metrics_port,
    )

    await server.serve()


def run() -> None:
    """Bootstrap the node connection, then run the HTTP server.

    Configuration errors and a node that cannot serve its latest block are
    fatal: the process exits with status 1 without retrying.
    """
    def _signal_handler(signum: int, frame: object) -> None:
        """Handle termination signals by raising KeyboardInterrupt."""
        raise KeyboardInterrupt(f"Received signal {signum}")

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    try:
        context = get_application_context()
        bootstrap(context)
    except (ConfigError, RpcError) as exc:
        LOGGER.critical(
            "Unable to start exporter: %s",
            exc,
            extra=build_log_extra(additional=exc.context),
        )
        sys.exit(1)

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        # Gracefully handle termination signals without showing traceback.
        sys.exit(0)


if __name__ == "__main__":
    run()
