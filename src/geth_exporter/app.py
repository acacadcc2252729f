import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI

from .api import register_routes
from .context import ApplicationContext, get_application_context, set_application_context
from .exceptions import ConfigError
from .logging import JsonFormatter, StructuredTextFormatter, build_log_extra, get_logger
from .poller.intervals import determine_poll_interval_seconds
from .poller.manager import get_poller_manager
from .settings import AppSettings, get_settings

SETTINGS = get_settings()

SHUTDOWN_TIMEOUT_SECONDS = 2.0
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _formatter_config(settings: AppSettings) -> dict[str, Any]:
    if settings.logging.format == "json":
        return {"()": JsonFormatter, "datefmt": LOG_DATE_FORMAT}

    return {
        "()": StructuredTextFormatter,
        "format": TEXT_LOG_FORMAT,
        "datefmt": LOG_DATE_FORMAT,
        "color_enabled": settings.logging.color_enabled,
    }


def _configure_logging(settings: AppSettings) -> None:
    """Install the exporter's log format on the root and uvicorn loggers."""
    level = settings.logging.level

    if level not in logging.getLevelNamesMapping():
        level = "INFO"

    # uvicorn is started with log_config=None, so its loggers are routed here.
    uvicorn_loggers = {
        name: {"handlers": ["default"], "level": level, "propagate": False}
        for name in UVICORN_LOGGERS
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": _formatter_config(settings)},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "standard"},
            },
            "root": {"level": level, "handlers": ["default"]},
            "loggers": uvicorn_loggers,
        }
    )


_configure_logging(SETTINGS)
LOGGER = get_logger(__name__)


APP_TITLE = "Geth Prometheus Exporter"
APP_DESCRIPTION = "Exposes Prometheus metrics sampled from an Ethereum node."


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the sampling loop for as long as the app is serving.

    The node has already been bootstrapped by ``main.run``; this only starts
    the background task and cancels it on shutdown.
    """
    try:
        context = get_application_context()
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc, extra=build_log_extra(additional=exc.context))
        raise

    interval_seconds = determine_poll_interval_seconds(context.config)
    manager = get_poller_manager()

    app.state.context = context
    app.state.polling_task = manager.create_task(
        context.sampler,
        interval_seconds=interval_seconds,
        max_backoff_seconds=context.settings.poller.max_failure_backoff_seconds,
    )

    LOGGER.info(
        "Sampling node with %d watched address(es)",
        len(context.config.watch_addresses),
        extra=build_log_extra(additional={"interval_seconds": interval_seconds}),
    )

    try:
        yield
    finally:
        try:
            await manager.shutdown_tasks(timeout_seconds=SHUTDOWN_TIMEOUT_SECONDS)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Error while stopping polling task: %s", exc, exc_info=exc)

        manager.reset()
        app.state.polling_task = None
        app.state.context = None


def create_app(*, context: ApplicationContext | None = None) -> FastAPI:
    """Create the exporter's FastAPI app with metrics and health routes.

    Args:
        context: Context to install globally, mainly for tests. When omitted
            the context is built from the environment on first use.
    """
    if context is not None:
        set_application_context(context)

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        lifespan=_lifespan,
    )

    register_routes(app)

    return app


app = create_app()
