"""Core domain models for exported cloud monitor data."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_FIRST_CAP = re.compile(r"(.)([A-Z][a-z]+)")
_ALL_CAP = re.compile(r"([a-z0-9])([A-Z])")
_INVALID = re.compile(r"[^a-zA-Z0-9_]")

DEFAULT_REGION = "cn-hangzhou"
DEFAULT_PERIOD = "60"
DEFAULT_MEASURE = "Average"
DEFAULT_ENDPOINT_TEMPLATE = "https://metrics.{region}.aliyuncs.com/"


def snake_case(name: str) -> str:
    """Convert a CMS metric name to a Prometheus-friendly snake_case name.

    Examples:
        CPUUtilization -> cpu_utilization
        IntranetInRate -> intranet_in_rate
        diskusage_utilization -> diskusage_utilization
    """
    name = _INVALID.sub("_", name)
    name = _FIRST_CAP.sub(r"\1_\2", name)
    name = _ALL_CAP.sub(r"\1_\2", name)
    return re.sub("_+", "_", name).lower()


@dataclass(frozen=True)
class Credential:
    """Static access key pair for one cloud account.

    Attributes:
        access_key: AccessKey ID.
        access_key_secret: AccessKey secret.
        region: Region used to pick the API endpoint.
    """

    access_key: str
    access_key_secret: str
    region: str = DEFAULT_REGION


@dataclass(frozen=True)
class InstanceClaim:
    """Ownership rule mapping instance ids to an app and a team."""

    instances: tuple[str, ...]
    app: str
    team: str

    def matches(self, instance_id: str) -> bool:
        return instance_id in self.instances


@dataclass(frozen=True)
class MetricSpec:
    """A configured metric to retrieve from one namespace.

    Attributes:
        name: CMS metric name (e.g., CPUUtilization). Must be non-empty
            before retrieval.
        period: Statistical period in seconds, as the API expects it.
        measure: Datapoint field read as the sample value.
        dimensions: Datapoint fields exposed as labels, in order. When
            empty, each datapoint's own label fields are used.
        claims: Instance claims restricting and labeling the output.
        alias: Optional exported metric name overriding the derived one.
        description: Optional help text.
    """

    name: str
    period: str = DEFAULT_PERIOD
    measure: str = DEFAULT_MEASURE
    dimensions: tuple[str, ...] = ()
    claims: tuple[InstanceClaim, ...] = ()
    alias: str = ""
    description: str = ""

    @property
    def metric_name(self) -> str:
        """Exported metric name without the namespace prefixes."""
        return self.alias or snake_case(self.name)

    @property
    def help_text(self) -> str:
        if self.description:
            return self.description
        return f"Metric {self.name} from Alibaba Cloud Monitor ({self.measure})"

    def fqname(self, exporter_namespace: str, namespace: str) -> str:
        """Fully qualified exported name, e.g. cloudmonitor_acs_ecs_dashboard_cpu_utilization."""
        parts = [exporter_namespace, namespace, self.metric_name]
        return "_".join(p for p in parts if p)

    def __str__(self) -> str:
        return self.metric_name


@dataclass(frozen=True)
class MetricSample:
    """A single exposed metric measurement.

    Attributes:
        name: Fully qualified metric name.
        timestamp: Unix timestamp in seconds reported by the API, or None
            when the datapoint carried none.
        value: The metric value.
        labels: Label names to values, in exposition order.
        help: Help text for the metric family.
    """

    name: str
    timestamp: float | None
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    help: str = ""


@dataclass(frozen=True)
class MetricResource:
    """One metric descriptor returned by the metadata listing API."""

    metric_name: str
    namespace: str
    description: str = ""
    unit: str = ""
    labels: str = ""
    dimensions: str = ""
    statistics: str = ""
    periods: str = ""

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "MetricResource":
        """Build a descriptor from the API's PascalCase resource record."""
        return cls(
            metric_name=str(data.get("MetricName", "")),
            namespace=str(data.get("Namespace", "")),
            description=str(data.get("Description", "")),
            unit=str(data.get("Unit", "")),
            labels=str(data.get("Labels", "")),
            dimensions=str(data.get("Dimensions", "")),
            statistics=str(data.get("Statistics", "")),
            periods=str(data.get("Periods", "")),
        )
