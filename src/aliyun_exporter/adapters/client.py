"""Metric retrieval client: the unit of work per cloud account.

A MetricClient fetches the latest datapoints for one metric at a time,
filters and labels them according to the metric's instance claims and writes
the resulting samples to a sink. Collection never raises: a failing metric
is logged and simply produces no samples for that scrape.
"""

import logging

from aliyun_exporter.adapters.cms import DEFAULT_READ_TIMEOUT, CMSApi
from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.adapters.transport import RateLimitedTransport
from aliyun_exporter.core.datapoint import Datapoint, parse_datapoints
from aliyun_exporter.core.errors import (
    DecodeError,
    DiscoveryError,
    ExporterError,
    RetrievalError,
)
from aliyun_exporter.core.models import (
    DEFAULT_ENDPOINT_TEMPLATE,
    Credential,
    InstanceClaim,
    MetricResource,
    MetricSample,
    MetricSpec,
)
from aliyun_exporter.core.namespaces import NamespaceCatalog
from aliyun_exporter.core.ports import MetricsSinkPort, MonitoringAPIPort

logger = logging.getLogger(__name__)

ACCOUNT_LABEL = "cloudID"
APP_LABEL = "app"
TEAM_LABEL = "team"
META_PAGE_SIZE = 100


class MetricClient:
    """Retrieval client for one cloud account.

    Args:
        cloud_id: Account identifier, exposed as the ``cloudID`` label.
        api: Monitoring API of the account. The client owns it.
        catalog: Namespace catalog used to filter discovery requests.
        exporter_namespace: Prefix of every exported metric name.
    """

    def __init__(
        self,
        cloud_id: str,
        api: MonitoringAPIPort,
        catalog: NamespaceCatalog,
        exporter_namespace: str = "cloudmonitor",
    ) -> None:
        self.cloud_id = cloud_id
        self.api = api
        self.catalog = catalog
        self.exporter_namespace = exporter_namespace
        self._claim_hint_logged: set[tuple[str, str]] = set()
        self._dimension_hint_logged: set[tuple[str, str]] = set()

    @classmethod
    def from_credential(
        cls,
        cloud_id: str,
        credential: Credential,
        catalog: NamespaceCatalog,
        rate: float = 10.0,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        endpoint_template: str = DEFAULT_ENDPOINT_TEMPLATE,
        exporter_namespace: str = "cloudmonitor",
    ) -> "MetricClient":
        """Build a client with its own rate-limited CMS API."""
        api = CMSApi(
            credential,
            transport=RateLimitedTransport(rate),
            endpoint_template=endpoint_template,
            read_timeout=read_timeout,
        )
        return cls(cloud_id, api, catalog, exporter_namespace=exporter_namespace)

    async def retrieve(
        self, namespace: str, metric_name: str, period: str
    ) -> list[Datapoint]:
        """Fetch the latest datapoint of every series of a metric.

        Raises:
            RetrievalError: On transport or API failure.
            DecodeError: If the datapoint payload cannot be parsed.
        """
        try:
            payload = await self.api.describe_metric_last(
                namespace, metric_name, period
            )
            return parse_datapoints(payload)
        except DecodeError as exc:
            logger.debug(
                "undecodable datapoints payload",
                extra={"content": exc.body, "error": str(exc)},
            )
            raise

    def _sample(
        self,
        spec: MetricSpec,
        namespace: str,
        datapoint: Datapoint,
        claim: InstanceClaim | None = None,
    ) -> MetricSample:
        dimensions = spec.dimensions or tuple(datapoint.labels())
        labels = dict(zip(dimensions, datapoint.values(*dimensions)))
        labels[ACCOUNT_LABEL] = self.cloud_id
        if claim is not None:
            labels[APP_LABEL] = claim.app
            labels[TEAM_LABEL] = claim.team
        return MetricSample(
            name=spec.fqname(self.exporter_namespace, namespace),
            timestamp=datapoint.timestamp,
            value=datapoint.measure(spec.measure),
            labels=labels,
            help=spec.help_text,
        )

    async def collect(
        self, namespace: str, spec: MetricSpec, sink: MetricsSinkPort
    ) -> int:
        """Retrieve one metric and write its samples to a sink.

        Without instance claims every datapoint becomes one sample. With
        claims, a datapoint becomes one sample per claim listing its
        instanceId (labelled with the claim's app and team), and datapoints
        matching no claim are dropped.

        Returns:
            Number of samples written. Zero when the metric has no name or
            retrieval failed; both cases are logged, never raised.
        """
        if not spec.name:
            logger.warning(
                "metric name must be set",
                extra={"cloud_id": self.cloud_id, "namespace": namespace},
            )
            return 0

        try:
            datapoints = await self.retrieve(namespace, spec.name, spec.period)
        except (RetrievalError, DecodeError) as exc:
            logger.error(
                "failed to retrieve datapoints: %s",
                exc,
                extra={
                    "cloud_id": self.cloud_id,
                    "namespace": namespace,
                    "metric": str(spec),
                },
            )
            return 0

        self._log_dropped_dimensions(namespace, spec, datapoints)
        written = 0
        if not spec.claims:
            self._log_claim_hint(namespace, spec)
            for datapoint in datapoints:
                await sink.write(self._sample(spec, namespace, datapoint))
                written += 1
            return written

        for datapoint in datapoints:
            instance_id = datapoint.instance_id
            if instance_id is None:
                continue
            for claim in spec.claims:
                if claim.matches(instance_id):
                    await sink.write(self._sample(spec, namespace, datapoint, claim))
                    written += 1
        return written

    async def collect_samples(
        self, namespace: str, spec: MetricSpec
    ) -> list[MetricSample]:
        """Collect one metric into a list."""
        storage = InMemoryMetricsStorage()
        await self.collect(namespace, spec, storage)
        return [s async for s in storage.scrape()]

    def _log_dropped_dimensions(
        self, namespace: str, spec: MetricSpec, datapoints: list[Datapoint]
    ) -> None:
        if not spec.dimensions:
            return
        key = (namespace, spec.name)
        if key in self._dimension_hint_logged:
            return
        configured = set(spec.dimensions)
        dropped = sorted(
            {label for dp in datapoints for label in dp.labels()} - configured
        )
        if not dropped:
            return
        self._dimension_hint_logged.add(key)
        logger.warning(
            "configured dimensions drop datapoint labels %s; series may collide",
            ", ".join(dropped),
            extra={
                "cloud_id": self.cloud_id,
                "namespace": namespace,
                "metric": spec.name,
                "dropped": dropped,
            },
        )

    def _log_claim_hint(self, namespace: str, spec: MetricSpec) -> None:
        key = (namespace, spec.name)
        if key in self._claim_hint_logged:
            return
        self._claim_hint_logged.add(key)
        logger.warning(
            'set "spec" claims to expose only particular instances of a metric',
            extra={
                "cloud_id": self.cloud_id,
                "namespace": namespace,
                "metric": spec.name,
            },
        )

    async def describe_metric_meta_list(
        self, *namespaces: str
    ) -> dict[str, list[MetricResource]]:
        """List the metric resources of each requested namespace.

        Namespaces are filtered through the catalog first: no arguments or
        "all" select every registered namespace, unknown ones are skipped.

        Raises:
            DiscoveryError: If listing any namespace fails. No partial result
                is returned.
        """
        result: dict[str, list[MetricResource]] = {}
        for namespace in self.catalog.filter(*namespaces):
            try:
                records = await self.api.describe_metric_meta_list(
                    namespace, page_size=META_PAGE_SIZE
                )
            except ExporterError as exc:
                raise DiscoveryError(
                    f"failed to list metrics of {namespace}: {exc}",
                    namespace=namespace,
                ) from exc
            result[namespace] = [MetricResource.from_api(r) for r in records]
        return result

    async def aclose(self) -> None:
        close = getattr(self.api, "aclose", None)
        if close is not None:
            await close()
