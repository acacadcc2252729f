"""Runtime dependency container wiring settings, node client, store and sampler."""

from __future__ import annotations

from dataclasses import dataclass

from .config import NodeConfig, load_node_config
from .poller.collect import NodeSampler
from .rpc import NodeQueryClient, NodeQueryClientProtocol
from .settings import AppSettings, get_settings
from .store import SnapshotStore


@dataclass(slots=True)
class ApplicationContext:
    """Bundle of services required while the exporter is running."""

    settings: AppSettings

    config: NodeConfig

    client: NodeQueryClientProtocol

    store: SnapshotStore

    sampler: NodeSampler

    @property
    def metric_prefix(self) -> str:
        return self.config.metric_prefix


def default_client_factory(config: NodeConfig, settings: AppSettings) -> NodeQueryClient:
    """Create a timeout-bounded `NodeQueryClient` for the configured node."""

    from .poller.intervals import create_web3_client

    web3_client = create_web3_client(
        config.rpc_url,
        settings.poller.rpc_request_timeout_seconds,
    )

    return NodeQueryClient(
        web3_client,
        config.rpc_url,
        max_attempts=settings.poller.rpc_max_attempts,
    )


def build_context(
    config: NodeConfig,
    client: NodeQueryClientProtocol,
    settings: AppSettings | None = None,
) -> ApplicationContext:
    """Assemble a context around an existing node client."""

    store = SnapshotStore(config.watch_addresses)

    return ApplicationContext(
        settings=settings or get_settings(),
        config=config,
        client=client,
        store=store,
        sampler=NodeSampler(client, store, config.watch_addresses),
    )


def create_default_context() -> ApplicationContext:
    """Build an application context from the environment.

    Raises:
        ConfigError: If the node configuration is missing or invalid.
    """
    settings = get_settings()
    config = load_node_config(settings)

    return build_context(config, default_client_factory(config, settings), settings)


_APPLICATION_CONTEXT: ApplicationContext | None = None


def get_application_context() -> ApplicationContext:
    """Return the current application context, creating one when absent."""

    global _APPLICATION_CONTEXT

    if _APPLICATION_CONTEXT is None:
        _APPLICATION_CONTEXT = create_default_context()

    return _APPLICATION_CONTEXT


def set_application_context(context: ApplicationContext | None) -> None:
    """Replace the globally cached application context."""

    global _APPLICATION_CONTEXT

    _APPLICATION_CONTEXT = context


def reset_application_context() -> None:
    """Clear the cached context so the next access rebuilds dependencies."""

    set_application_context(None)


__all__ = [
    "ApplicationContext",
    "build_context",
    "create_default_context",
    "default_client_factory",
    "get_application_context",
    "reset_application_context",
    "set_application_context",
]
