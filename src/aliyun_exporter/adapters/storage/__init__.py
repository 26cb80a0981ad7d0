"""Storage adapters implementing core ports."""

from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage

__all__ = [
    "InMemoryMetricsStorage",
]
