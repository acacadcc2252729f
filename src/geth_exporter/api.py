"""HTTP API surface for the geth exporter."""

from __future__ import annotations

from fastapi import FastAPI, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from .context import get_application_context
from .exceptions import SnapshotUnavailableError
from .health import generate_health_report, generate_readiness_report
from .logging import get_logger
from .projector import render_metrics

LOGGER = get_logger(__name__)


def register_health_routes(app: FastAPI) -> None:
    """Register health check endpoints.

    Registers the following endpoints:
    - GET /health: Overall status with details of the latest snapshot
    - GET /health/livez: Liveness probe (always returns 200)
    - GET /health/readyz: Readiness probe (returns 200 if ready, 503 if not)
    """
    @app.get("/health", response_class=JSONResponse)
    async def health() -> JSONResponse:
        context = get_application_context()
        overall_status, status_code, details = generate_health_report(
            context.store.current(),
            stale_threshold_seconds=context.settings.health.readiness_stale_threshold_seconds,
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "status": overall_status,
                "details": details,
            },
        )

    @app.get("/health/livez", response_class=JSONResponse)
    async def livez() -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "alive"},
        )

    @app.get("/health/readyz", response_class=JSONResponse)
    async def readyz() -> JSONResponse:
        context = get_application_context()
        ready, details = generate_readiness_report(
            context.store.current(),
            stale_threshold_seconds=context.settings.health.readiness_stale_threshold_seconds,
        )

        status_code = (
            status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "status": "ready" if ready else "not_ready",
                "details": details,
            },
        )


def register_metrics_routes(app: FastAPI) -> None:
    """Register the Prometheus metrics endpoint.

    Registers:
    - GET /metrics: 200 with the rendered snapshot, or 500 before the first snapshot
    """
    @app.get("/metrics", response_class=Response)
    async def metrics() -> Response:
        context = get_application_context()

        try:
            payload = render_metrics(context.store.current(), context.metric_prefix)
        except SnapshotUnavailableError as exc:
            LOGGER.warning("Metrics requested before a snapshot was available.")

            return PlainTextResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=str(exc),
            )

        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


def register_routes(app: FastAPI) -> None:
    """Register health and metrics routes on a single app."""
    register_health_routes(app)
    register_metrics_routes(app)


__all__ = [
    "register_health_routes",
    "register_metrics_routes",
    "register_routes",
]
