"""Tests for the Prometheus text encoder."""

import pytest

from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.core.encoding.prometheus import encode_current, encode_samples
from aliyun_exporter.core.models import MetricSample


def _sample(value: float = 1.0, **labels: str) -> MetricSample:
    return MetricSample(
        name="cloudmonitor_acs_ecs_dashboard_cpu_utilization",
        timestamp=1000.0,
        value=value,
        labels=labels,
        help="CPU usage",
    )


class TestPrometheusEncoder:
    """Tests for encode_samples()."""

    @pytest.mark.encoding
    def test_encode_empty(self) -> None:
        assert encode_samples([]) == ""

    @pytest.mark.encoding
    def test_encode_single_sample(self) -> None:
        result = encode_samples([_sample(42.0, instanceId="i-1", cloudID="prod")])
        assert result == (
            "# HELP cloudmonitor_acs_ecs_dashboard_cpu_utilization CPU usage\n"
            "# TYPE cloudmonitor_acs_ecs_dashboard_cpu_utilization gauge\n"
            "cloudmonitor_acs_ecs_dashboard_cpu_utilization"
            '{instanceId="i-1",cloudID="prod"} 42.0\n'
        )

    @pytest.mark.encoding
    def test_header_written_once_per_family(self) -> None:
        result = encode_samples(
            [_sample(1.0, instanceId="i-1"), _sample(2.0, instanceId="i-2")]
        )
        assert result.count("# TYPE") == 1
        assert result.count("# HELP") == 1
        assert result.strip().endswith('{instanceId="i-2"} 2.0')

    @pytest.mark.encoding
    def test_label_order_is_preserved(self) -> None:
        result = encode_samples([_sample(1.0, b="2", a="1")])
        assert '{b="2",a="1"}' in result

    @pytest.mark.encoding
    def test_label_values_are_escaped(self) -> None:
        result = encode_samples([_sample(1.0, path='C:\\dir "x"\nend')])
        assert 'path="C:\\\\dir \\"x\\"\\nend"' in result

    @pytest.mark.encoding
    @pytest.mark.parametrize(
        ("value", "text"),
        [(float("inf"), "+Inf"), (float("-inf"), "-Inf"), (float("nan"), "NaN")],
    )
    def test_special_values(self, value: float, text: str) -> None:
        result = encode_samples([_sample(value)])
        assert result.strip().endswith(f" {text}")

    @pytest.mark.encoding
    def test_sample_without_labels(self) -> None:
        result = encode_samples([_sample(3.0)])
        assert "cloudmonitor_acs_ecs_dashboard_cpu_utilization 3.0" in result

    @pytest.mark.encoding
    def test_help_omitted_when_empty(self) -> None:
        sample = MetricSample(name="m", timestamp=0.0, value=1.0)
        assert encode_samples([sample]) == "# TYPE m gauge\nm 1.0\n"

    @pytest.mark.encoding
    async def test_encode_current_reads_storage(self) -> None:
        storage = InMemoryMetricsStorage()
        await storage.write(_sample(5.0, instanceId="i-1"))
        result = await encode_current(storage.scrape())
        assert '{instanceId="i-1"} 5.0' in result
