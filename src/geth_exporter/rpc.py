"""Node RPC boundary: error wrapping, bounded retries and the query client."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from web3.exceptions import Web3RPCError

from .exceptions import RpcConnectionError, RpcError, RpcProtocolError, RpcTimeoutError
from .logging import build_log_extra, get_logger
from .models import Block, SyncProgress, block_from_web3, sync_progress_from_web3

LOGGER = get_logger(__name__)

T = TypeVar("T")

RPC_MAX_RETRIES = 1
RPC_INITIAL_BACKOFF_SECONDS = 0.1
RPC_MAX_BACKOFF_SECONDS = 1.0

# Lower-cased fragments of OS-level socket errors raised by requests/urllib3.
_CONNECTION_ERROR_KEYWORDS = (
    "connection refused",
    "network unreachable",
    "name resolution",
    "name or service not known",
    "connection aborted",
    "connection reset",
)

_ERROR_CLASSES: dict[str, type[RpcError]] = {
    "timeout": RpcTimeoutError,
    "connection_error": RpcConnectionError,
    "rpc_error": RpcProtocolError,
}


def _categorize_error(exception: Exception) -> str:
    """Classify ``exception`` as one of ``timeout``, ``connection_error``,
    ``rpc_error``, ``value_error`` or ``unknown``."""

    for error_class, category in (
        (RpcTimeoutError, "timeout"),
        (RpcConnectionError, "connection_error"),
        (RpcError, "rpc_error"),
        (Web3RPCError, "rpc_error"),
    ):
        if isinstance(exception, error_class):
            return category

    type_name = type(exception).__name__.lower()
    text = str(exception).lower()

    for keyword, category in (
        ("timeout", "timeout"),
        ("connection", "connection_error"),
    ):
        if keyword in type_name or keyword in text:
            return category

    if isinstance(exception, OSError) and any(fragment in text for fragment in _CONNECTION_ERROR_KEYWORDS):
        return "connection_error"

    if "rpc" in type_name or "rpc" in text:
        return "rpc_error"

    if isinstance(exception, (ValueError, TypeError, AttributeError, KeyError)):
        return "value_error"

    return "unknown"


def _json_rpc_error(exception: Exception) -> tuple[int | None, str | None]:
    response = getattr(exception, "rpc_response", None)
    error = response.get("error") if isinstance(response, dict) else None

    if not isinstance(error, dict):
        return None, None

    return error.get("code"), error.get("message")


def _wrap_rpc_exception(
    exception: Exception,
    operation: str,
    description: str,
    attempt: int,
    max_attempts: int,
    rpc_url: str | None = None,
) -> RpcError:
    """Translate a web3/transport exception into the matching ``RpcError``."""

    if isinstance(exception, RpcError):
        return exception

    category = _categorize_error(exception)
    error_class = _ERROR_CLASSES.get(category, RpcError)

    kwargs: dict[str, Any] = {
        "rpc_url": rpc_url,
        "operation": operation,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "context": {"original_exception": type(exception).__name__},
    }

    if error_class is RpcProtocolError:
        kwargs["rpc_error_code"], kwargs["rpc_error_message"] = _json_rpc_error(exception)
    elif error_class is RpcError:
        kwargs["context"]["error_type"] = category

    return error_class(f"RPC operation '{description}' failed: {exception}", **kwargs)


def execute_with_retries(
    operation: Callable[[], T],
    description: str,
    max_attempts: int | None = None,
    *,
    operation_type: str | None = None,
    rpc_url: str | None = None,
    log_level: int = logging.WARNING,
) -> T:
    """Run ``operation``, retrying with capped exponential backoff.

    Every failure is logged at ``log_level`` and wrapped into an
    ``RpcError`` subclass; the error from the final attempt is raised.
    """
    attempts = max(max_attempts if max_attempts is not None else RPC_MAX_RETRIES, 1)
    operation_name = operation_type or description

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as exc:  # noqa: BLE001
            error = _wrap_rpc_exception(
                exc,
                operation_name,
                description,
                attempt,
                attempts,
                rpc_url=rpc_url,
            )

            LOGGER.log(
                log_level,
                "RPC operation '%s' failed (attempt %s/%s): %s",
                description,
                attempt,
                attempts,
                exc,
                extra=build_log_extra(operation=operation_name),
            )

            if attempt == attempts:
                if error is exc:
                    raise
                raise error from exc

            time.sleep(min(RPC_INITIAL_BACKOFF_SECONDS * 2 ** (attempt - 1), RPC_MAX_BACKOFF_SECONDS))

    raise RuntimeError(f"RPC operation '{description}' ran no attempts.")


@runtime_checkable
class NodeQueryClientProtocol(Protocol):
    def is_connected(self) -> bool: ...

    def ensure_connected(self) -> None: ...

    def fetch_latest_block(self) -> Block: ...

    def suggest_gas_price(self) -> int: ...

    def pending_transaction_count(self) -> int: ...

    def network_id(self) -> int: ...

    def sync_progress(self) -> SyncProgress | None: ...

    def balance_at(self, address: str, block_number: int) -> int: ...

    def nonce_at(self, address: str, block_number: int) -> int: ...


class NodeQueryClient:
    """The node queries a sampling cycle needs, on top of a web3 client.

    Every query goes through ``execute_with_retries`` so callers only ever
    see ``RpcError`` subclasses, including for malformed payloads.
    """

    def __init__(
        self,
        web3: Any,
        rpc_url: str,
        *,
        max_attempts: int | None = None,
    ) -> None:
        self._web3 = web3
        self._rpc_url = rpc_url
        self._max_attempts = max_attempts

    @property
    def web3(self) -> Any:
        return self._web3

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def _call(
        self,
        operation_type: str,
        description: str,
        operation: Callable[[], T],
        *,
        log_level: int = logging.WARNING,
    ) -> T:
        return execute_with_retries(
            operation,
            description,
            self._max_attempts,
            operation_type=operation_type,
            rpc_url=self._rpc_url,
            log_level=log_level,
        )

    def is_connected(self) -> bool:
        try:
            return bool(self._web3.is_connected())
        except Exception:  # noqa: BLE001
            return False

    def ensure_connected(self) -> None:
        if not self.is_connected():
            raise RpcConnectionError(
                "Unable to connect to the node RPC endpoint.",
                rpc_url=self._rpc_url,
                operation="is_connected",
            )

    def fetch_latest_block(self) -> Block:
        return self._call(
            "get_block",
            "eth_getBlockByNumber(latest)",
            lambda: block_from_web3(self._web3.eth.get_block("latest", full_transactions=True)),
        )

    def suggest_gas_price(self) -> int:
        return self._call("gas_price", "eth_gasPrice", lambda: int(self._web3.eth.gas_price))

    def pending_transaction_count(self) -> int:
        return self._call(
            "pending_transaction_count",
            "eth_getBlockTransactionCountByNumber(pending)",
            lambda: int(self._web3.eth.get_block_transaction_count("pending")),
        )

    def network_id(self) -> int:
        return self._call("network_id", "net_version", lambda: int(self._web3.net.version))

    def sync_progress(self) -> SyncProgress | None:
        # Nodes without sync support answer eth_syncing with an error; keep that quiet.
        return self._call(
            "sync_progress",
            "eth_syncing",
            lambda: sync_progress_from_web3(self._web3.eth.syncing),
            log_level=logging.DEBUG,
        )

    def balance_at(self, address: str, block_number: int) -> int:
        return self._call(
            "get_balance",
            f"eth_getBalance({address}, {block_number})",
            lambda: int(self._web3.eth.get_balance(address, block_identifier=block_number)),
        )

    def nonce_at(self, address: str, block_number: int) -> int:
        return self._call(
            "get_transaction_count",
            f"eth_getTransactionCount({address}, {block_number})",
            lambda: int(self._web3.eth.get_transaction_count(address, block_identifier=block_number)),
        )


__all__ = [
    "NodeQueryClient",
    "NodeQueryClientProtocol",
    "RPC_INITIAL_BACKOFF_SECONDS",
    "RPC_MAX_BACKOFF_SECONDS",
    "RPC_MAX_RETRIES",
    "execute_with_retries",
]
