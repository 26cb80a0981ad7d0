"""Prometheus exporter for Alibaba Cloud Monitor metrics.

Example:
    ```python
    from aliyun_exporter import Exporter, ExporterConfig, create_asgi_app

    config = ExporterConfig.from_mapping(document)
    app = create_asgi_app(Exporter.from_config(config))
    ```
"""

from aliyun_exporter.adapters.client import MetricClient
from aliyun_exporter.adapters.cms import CMSApi
from aliyun_exporter.adapters.exporter import Exporter
from aliyun_exporter.adapters.frameworks.asgi import create_asgi_app
from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.adapters.transport import RateLimitedTransport, TokenBucket
from aliyun_exporter.core.config import ExporterConfig, ExporterSettings
from aliyun_exporter.core.datapoint import Datapoint, parse_datapoints
from aliyun_exporter.core.encoding.prometheus import encode_samples
from aliyun_exporter.core.errors import (
    ConfigError,
    DecodeError,
    DiscoveryError,
    ExporterError,
    RetrievalError,
)
from aliyun_exporter.core.models import (
    Credential,
    InstanceClaim,
    MetricResource,
    MetricSample,
    MetricSpec,
)
from aliyun_exporter.core.namespaces import NamespaceCatalog, default_catalog

__all__ = [
    "CMSApi",
    "ConfigError",
    "Credential",
    "Datapoint",
    "DecodeError",
    "DiscoveryError",
    "Exporter",
    "ExporterConfig",
    "ExporterError",
    "ExporterSettings",
    "InMemoryMetricsStorage",
    "InstanceClaim",
    "MetricClient",
    "MetricResource",
    "MetricSample",
    "MetricSpec",
    "NamespaceCatalog",
    "RateLimitedTransport",
    "RetrievalError",
    "TokenBucket",
    "create_asgi_app",
    "default_catalog",
    "encode_samples",
    "parse_datapoints",
]
