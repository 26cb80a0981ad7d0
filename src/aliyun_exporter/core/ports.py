"""Port interfaces for sinks and the monitoring API.

These protocols define the contracts that adapters must implement.
The retrieval client depends only on these interfaces, not concrete
implementations.
"""

from collections.abc import AsyncIterable
from typing import Any, Protocol, runtime_checkable

from aliyun_exporter.core.models import MetricSample


@runtime_checkable
class MetricsSinkPort(Protocol):
    """Port receiving samples produced by a collection.

    Examples: InMemoryMetricsStorage.
    """

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample to the sink."""
        ...


@runtime_checkable
class MetricsStoragePort(MetricsSinkPort, Protocol):
    """Port for sinks whose samples can be read back for exposition."""

    def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape all current metric samples.

        Returns:
            Async iterable of MetricSample objects in write order.
        """
        ...


@runtime_checkable
class MonitoringAPIPort(Protocol):
    """Port for the Cloud Monitor API calls the exporter issues.

    Examples: CMSApi.
    """

    async def describe_metric_last(
        self, namespace: str, metric_name: str, period: str
    ) -> str:
        """Return the serialized datapoint array for the latest bucket.

        Raises:
            RetrievalError: On transport or API failure.
            DecodeError: If the response body is not valid JSON.
        """
        ...

    async def describe_metric_meta_list(
        self, namespace: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        """Return the raw metric resource records for a namespace."""
        ...
