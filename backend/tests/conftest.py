"""
Shared test fixtures and configuration.
"""

import pytest
import os

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/askai_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

import httpx

from askai.config import Settings
from askai.services.persistence_gateway import PersistenceGateway
from askai.storage import LocalChatStore, LocalStorage


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        secret_key="test-secret-key-for-testing",
        gemini_api_key="test-key",
        local_storage_path=str(tmp_path / "data"),
        log_file_enabled=False,
    )


@pytest.fixture
def store(tmp_path):
    return LocalChatStore(LocalStorage(str(tmp_path / "data")))


@pytest.fixture
def offline_transport():
    """Transport for a remote API that cannot be reached."""
    return httpx.MockTransport(_unreachable)


@pytest.fixture
def gateway(store, offline_transport, test_settings):
    return PersistenceGateway(
        store,
        api_base_url="http://remote.test/api",
        transport=offline_transport,
        config=test_settings,
    )
