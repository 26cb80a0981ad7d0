"""Scrape orchestration across accounts and configured metrics."""

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence

from aliyun_exporter.adapters.client import MetricClient
from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.core.config import ExporterConfig, ExporterSettings
from aliyun_exporter.core.encoding.prometheus import encode_current
from aliyun_exporter.core.models import MetricSpec
from aliyun_exporter.core.namespaces import NamespaceCatalog, default_catalog
from aliyun_exporter.core.ports import MetricsSinkPort

logger = logging.getLogger(__name__)


class Exporter:
    """Fans one scrape out to every (account, namespace, metric) triple.

    Each scrape is stateless: samples are collected into a fresh sink and
    discarded once encoded. Metrics of namespaces missing from the catalog
    are skipped.

    Args:
        clients: One retrieval client per account.
        metrics: Namespace to configured metrics.
        catalog: Registered namespaces.
    """

    def __init__(
        self,
        clients: Iterable[MetricClient],
        metrics: Mapping[str, Sequence[MetricSpec]],
        catalog: NamespaceCatalog,
    ) -> None:
        self.clients = list(clients)
        self.catalog = catalog
        self.metrics: dict[str, list[MetricSpec]] = {}
        for namespace, specs in metrics.items():
            if namespace not in catalog:
                logger.warning(
                    "skipping unknown namespace", extra={"namespace": namespace}
                )
                continue
            self.metrics[namespace] = list(specs)

    @classmethod
    def from_config(
        cls,
        config: ExporterConfig,
        settings: ExporterSettings | None = None,
        catalog: NamespaceCatalog | None = None,
    ) -> "Exporter":
        """Build one rate-limited client per configured account."""
        settings = settings or ExporterSettings()
        settings.configure_logging()
        catalog = catalog or default_catalog()
        clients = [
            MetricClient.from_credential(
                cloud_id,
                credential,
                catalog,
                rate=settings.rate_limit,
                read_timeout=settings.read_timeout,
                endpoint_template=settings.endpoint_template,
                exporter_namespace=settings.exporter_namespace,
            )
            for cloud_id, credential in config.credentials.items()
        ]
        return cls(clients, config.metrics, catalog)

    async def collect(self, sink: MetricsSinkPort) -> int:
        """Collect every configured metric of every account concurrently.

        A collection task failing unexpectedly is logged and contributes no
        samples; the other tasks still complete.

        Returns:
            Total number of samples written.
        """
        jobs = [
            (client, namespace, spec)
            for client in self.clients
            for namespace, specs in self.metrics.items()
            for spec in specs
        ]
        results = await asyncio.gather(
            *(client.collect(namespace, spec, sink) for client, namespace, spec in jobs),
            return_exceptions=True,
        )
        total = 0
        for (client, namespace, spec), result in zip(jobs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "metric collection failed: %r",
                    result,
                    exc_info=result,
                    extra={
                        "cloud_id": client.cloud_id,
                        "namespace": namespace,
                        "metric": str(spec),
                    },
                )
                continue
            total += result
        return total

    async def scrape(self) -> str:
        """Run one collection and encode it in the Prometheus text format."""
        storage = InMemoryMetricsStorage()
        count = await self.collect(storage)
        logger.debug("scrape collected samples", extra={"samples": count})
        return await encode_current(storage.scrape())

    async def aclose(self) -> None:
        for client in self.clients:
            await client.aclose()
