"""Registry of Cloud Monitor namespaces supported by the exporter."""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

ALL = "all"

DEFAULT_NAMESPACES: Mapping[str, str] = MappingProxyType(
    {
        "acs_ecs_dashboard": "Elastic Compute Service (ECS)",
        "acs_containerservice_dashboard": "Container Service for Swarm",
        "acs_kubernetes": "Container Service for Kubernetes (ACK)",
        "acs_oss_dashboard": "Object Storage Service (OSS)",
        "acs_slb_dashboard": "Server Load Balancer (SLB)",
        "acs_vpc_eip": "Elastic IP addresses (EIPs)",
        "acs_nat_gateway": "NAT Gateway",
        "acs_anycast_eip": "Anycast Elastic IP address (EIP)",
        "acs_rds_dashboard": "ApsaraDB RDS",
        "acs_mongodb": "ApsaraDB for MongoDB",
        "acs_memcache": "ApsaraDB for Memcache",
        "acs_kvstore": "ApsaraDB for Redis",
        "acs_hitsdb": "Time Series Database (TSDB)",
        "acs_clickhouse": "ClickHouse",
        "acs_cds": "ApsaraDB for Cassandra",
        "waf": "Web Application Firewall (WAF)",
        "acs_elasticsearch": "Elasticsearch",
        "acs_mns_new": "queues of Message Service (MNS)",
        "acs_kafka": "Message Queue for Apache Kafka",
        "acs_amqp": "Alibaba Cloud Message Queue for AMQP instances",
    }
)


class NamespaceCatalog:
    """Immutable lookup of namespace id to service description.

    Built once at startup and passed to the components that validate or
    enumerate namespaces.

    Args:
        entries: Namespace id to human-readable description.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, str]) -> None:
        self._entries: Mapping[str, str] = MappingProxyType(dict(entries))

    def __contains__(self, namespace: object) -> bool:
        return namespace in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> list[str]:
        """Return every registered namespace id, in registration order."""
        return list(self._entries)

    def all_namespaces(self) -> dict[str, str]:
        """Return a copy of the id to description mapping."""
        return dict(self._entries)

    def describe(self, namespace: str) -> str | None:
        return self._entries.get(namespace)

    def filter(self, *requested: str) -> list[str]:
        """Restrict a requested namespace list to the registered ones.

        No arguments, or the literal "all" anywhere in the arguments, selects
        every registered namespace. Otherwise unknown ids are dropped without
        error and the known ones are returned in request order.
        """
        if not requested or ALL in requested:
            return self.names()
        selected: list[str] = []
        for namespace in requested:
            if namespace in self._entries and namespace not in selected:
                selected.append(namespace)
        return selected


def default_catalog() -> NamespaceCatalog:
    """Catalog of every namespace the exporter knows how to describe."""
    return NamespaceCatalog(DEFAULT_NAMESPACES)
