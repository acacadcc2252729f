import pytest

from geth_exporter.context import reset_application_context
from geth_exporter.poller.manager import reset_poller_manager
from geth_exporter.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def reset_exporter_state() -> None:
    reset_application_context()
    reset_settings_cache()
    reset_poller_manager()
    yield
    reset_application_context()
    reset_settings_cache()
    reset_poller_manager()
