"""Shared test fixtures for all test modules."""

import logging
from collections.abc import Iterator

import httpx
import pytest

from aliyun_exporter.adapters.client import MetricClient
from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.core.namespaces import NamespaceCatalog, default_catalog
from tests.fakes import FakeMonitoringAPI


@pytest.fixture(autouse=True)
def _restore_package_log_level() -> Iterator[None]:
    """Undo log levels applied by ExporterSettings.configure_logging()."""
    package_logger = logging.getLogger("aliyun_exporter")
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def catalog() -> NamespaceCatalog:
    """The default namespace catalog."""
    return default_catalog()


@pytest.fixture
def fake_api() -> FakeMonitoringAPI:
    """Fake monitoring API returning no datapoints by default."""
    return FakeMonitoringAPI()


@pytest.fixture
def metric_client(
    fake_api: FakeMonitoringAPI, catalog: NamespaceCatalog
) -> MetricClient:
    """Retrieval client for account "prod" backed by the fake API."""
    return MetricClient("prod", fake_api, catalog)


@pytest.fixture
def metrics_storage() -> InMemoryMetricsStorage:
    """Fixture providing an empty metrics sink."""
    return InMemoryMetricsStorage()


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(exporter)
            async with asgi_test_client(app) as client:
                response = await client.get("/metrics")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
