"""Exception hierarchy for the geth exporter.

Every error carries a ``context`` dict. It is appended to ``str(error)``
and can be passed straight to ``build_log_extra(additional=...)``.
"""

from __future__ import annotations

from typing import Any


def _present(**fields: Any) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None and value != ""}


class GethExporterError(Exception):
    """Base class for errors raised by the exporter."""

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        if not self.context:
            return self.message

        rendered = ", ".join(f"{key}={value!r}" for key, value in self.context.items())

        return f"{self.message} (context: {rendered})"


class RpcError(GethExporterError):
    """A node query failed.

    Args:
        message: Human readable description.
        rpc_url: Node endpoint the query went to.
        operation: Short query name such as ``get_block`` or ``get_balance``.
        attempt: Attempt number within the current cycle.
        max_attempts: Attempts allowed for the query.
        context: Extra context merged after the fields above.
    """

    def __init__(
        self,
        message: str,
        *,
        rpc_url: str | None = None,
        operation: str | None = None,
        attempt: int | None = None,
        max_attempts: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            context={
                **_present(
                    rpc_url=rpc_url,
                    operation=operation,
                    attempt=attempt,
                    max_attempts=max_attempts,
                ),
                **(context or {}),
            },
        )
        self.rpc_url = rpc_url
        self.operation = operation
        self.attempt = attempt
        self.max_attempts = max_attempts


class RpcConnectionError(RpcError):
    """The node endpoint could not be reached."""


class RpcTimeoutError(RpcError):
    """The node did not answer within the request timeout."""


class RpcProtocolError(RpcError):
    """The node answered with a JSON-RPC error object."""

    def __init__(
        self,
        message: str,
        *,
        rpc_error_code: int | None = None,
        rpc_error_message: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            context={
                **(context or {}),
                **_present(rpc_error_code=rpc_error_code, rpc_error_message=rpc_error_message),
            },
            **kwargs,
        )
        self.rpc_error_code = rpc_error_code
        self.rpc_error_message = rpc_error_message


class ConfigError(GethExporterError):
    """The environment does not describe a usable exporter."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            context={**_present(config_key=config_key), **(context or {})},
        )
        self.config_key = config_key


class ValidationError(ConfigError):
    """A configured value is present but malformed."""

    def __init__(
        self,
        message: str,
        *,
        value: Any = None,
        expected_type: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            context={
                **(context or {}),
                **_present(value=value, expected_type=expected_type),
            },
            **kwargs,
        )
        self.value = value
        self.expected_type = expected_type


class SnapshotUnavailableError(GethExporterError):
    """Metrics were requested before the first snapshot was published."""


__all__ = [
    "ConfigError",
    "GethExporterError",
    "RpcConnectionError",
    "RpcError",
    "RpcProtocolError",
    "RpcTimeoutError",
    "SnapshotUnavailableError",
    "ValidationError",
]
