"""Prometheus text format encoder for metric samples."""

import math
from collections.abc import AsyncIterable, Iterable

from aliyun_exporter.core.models import MetricSample

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _format_value(value: float) -> str:
    """Format a sample value as Prometheus expects it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return repr(float(value))


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = ",".join(f'{k}="{_escape_label_value(v)}"' for k, v in labels.items())
    return "{" + pairs + "}"


def encode_samples(samples: Iterable[MetricSample]) -> str:
    """Encode metric samples to the Prometheus text exposition format.

    Samples sharing a name are grouped under one HELP/TYPE header, in order
    of first appearance. All samples are exposed as gauges; timestamps are
    left to the scraper.

    Args:
        samples: Metric samples to encode.

    Returns:
        Exposition text, newline terminated. Empty string if no samples.
    """
    families: dict[str, list[MetricSample]] = {}
    for sample in samples:
        families.setdefault(sample.name, []).append(sample)

    lines: list[str] = []
    for name, family in families.items():
        help_text = next((s.help for s in family if s.help), "")
        if help_text:
            lines.append(f"# HELP {name} {_escape_help(help_text)}")
        lines.append(f"# TYPE {name} gauge")
        for sample in family:
            lines.append(
                f"{name}{_format_labels(sample.labels)} {_format_value(sample.value)}"
            )

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


async def encode_current(samples: AsyncIterable[MetricSample]) -> str:
    """Encode samples read from an async source, e.g. a storage scrape."""
    return encode_samples([s async for s in samples])
