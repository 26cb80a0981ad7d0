"""In-memory sink for collected metric samples."""

from collections.abc import AsyncIterable

from aliyun_exporter.core.models import MetricSample


class InMemoryMetricsStorage:
    """In-memory implementation of MetricsStoragePort.

    Stores metric samples in a list. A fresh instance is used per scrape, so
    nothing outlives the request that produced it.
    """

    def __init__(self) -> None:
        self._samples: list[MetricSample] = []

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample to storage."""
        self._samples.append(sample)

    async def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape all current metric samples, in write order."""
        for sample in self._samples:
            yield sample

    def __len__(self) -> int:
        return len(self._samples)
