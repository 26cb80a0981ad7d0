"""Typed view over the raw datapoint records returned by Cloud Monitor.

Every accessor is total: a missing or wrongly typed field resolves to a
default instead of raising, so one bad record never blocks the rest of a
batch.
"""

import json
from collections.abc import Iterator, Mapping

from aliyun_exporter.core.errors import DecodeError

DatapointValue = float | int | str

# Fields that carry the sample time or alternative statistics, not identity.
RESERVED_FIELDS = frozenset({"timestamp", "Maximum", "Minimum", "Average"})


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Datapoint(Mapping[str, DatapointValue]):
    """One statistical sample for a metric within a time bucket.

    Example:
        ```python
        dp = Datapoint({"instanceId": "i-1", "Average": 42.0, "timestamp": 1000})
        dp.labels()            # ["instanceId"]
        dp.measure("Average")  # 42.0
        dp.measure("Maximum")  # 0.0
        ```
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, DatapointValue]) -> None:
        self._fields = dict(fields)

    def __getitem__(self, key: str) -> DatapointValue:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Datapoint({self._fields!r})"

    def labels(self) -> list[str]:
        """Return the sorted non-reserved field names of this record."""
        return sorted(k for k in self._fields if k not in RESERVED_FIELDS)

    def measure(self, name: str) -> float:
        """Return the named field as a float, or 0.0 if absent or non-numeric."""
        value = self._fields.get(name)
        if _is_number(value):
            return float(value)  # type: ignore[arg-type]
        return 0.0

    def text(self, name: str) -> str:
        """Return the named field as a label value, or "" if absent."""
        value = self._fields.get(name)
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return str(value)

    def values(self, *labels: str) -> list[str]:
        """Return label values for the given field names, in order."""
        return [self.text(label) for label in labels]

    @property
    def instance_id(self) -> str | None:
        """The instanceId field, or None when absent or not a string."""
        value = self._fields.get("instanceId")
        return value if isinstance(value, str) else None

    @property
    def timestamp(self) -> float | None:
        """Bucket time in seconds (the API reports milliseconds)."""
        value = self._fields.get("timestamp")
        if _is_number(value):
            return float(value) / 1000.0  # type: ignore[arg-type]
        return None


def parse_datapoints(payload: str | None) -> list[Datapoint]:
    """Parse the serialized datapoint array embedded in an API response.

    Args:
        payload: JSON array of flat objects, as found in the ``Datapoints``
            field of a DescribeMetricLast response.

    Returns:
        Datapoints in the order the API returned them. An empty or null
        payload yields an empty list.

    Raises:
        DecodeError: If the payload is not a JSON array of objects.
    """
    if not payload:
        return []
    try:
        raw = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        raise DecodeError(f"invalid datapoints payload: {exc}", body=payload) from exc
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise DecodeError("datapoints payload is not an array", body=payload)
    datapoints = []
    for record in raw:
        if not isinstance(record, dict):
            raise DecodeError("datapoint record is not an object", body=payload)
        datapoints.append(Datapoint(record))
    return datapoints
