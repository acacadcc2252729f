from __future__ import annotations

import pytest
from web3 import HTTPProvider

from geth_exporter.config import NodeConfig
from geth_exporter.context import (
    build_context,
    create_default_context,
    default_client_factory,
    get_application_context,
    reset_application_context,
    set_application_context,
)
from geth_exporter.exceptions import ConfigError
from geth_exporter.rpc import NodeQueryClient
from geth_exporter.settings import get_settings

from support import ALICE, FakeNodeClient

CONFIG = NodeConfig(
    rpc_url="http://node.invalid:8545",
    watch_addresses=(ALICE,),
    metric_prefix="geth_node",
    poll_interval_ms=500,
)


def test_build_context_wires_sampler_to_store() -> None:
    client = FakeNodeClient()
    context = build_context(CONFIG, client)

    assert context.client is client
    assert context.sampler.store is context.store
    assert context.metric_prefix == "geth_node"
    assert list(context.store.current().addresses) == [ALICE]


def test_default_client_factory_builds_node_client() -> None:
    client = default_client_factory(CONFIG, get_settings())

    assert isinstance(client, NodeQueryClient)
    assert isinstance(client.web3.provider, HTTPProvider)
    assert client.rpc_url == CONFIG.rpc_url


def test_create_default_context_requires_rpc_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GETH", raising=False)

    with pytest.raises(ConfigError):
        create_default_context()


def test_application_context_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GETH", "http://node.invalid:8545")
    monkeypatch.setenv("ADDRESSES", "")

    first = get_application_context()

    assert get_application_context() is first

    reset_application_context()

    assert get_application_context() is not first


def test_set_application_context_overrides_default() -> None:
    context = build_context(CONFIG, FakeNodeClient())

    set_application_context(context)

    assert get_application_context() is context
