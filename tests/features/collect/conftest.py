"""BDD step definitions for metric collection features."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from aliyun_exporter.adapters.client import MetricClient
from aliyun_exporter.adapters.storage.in_memory import InMemoryMetricsStorage
from aliyun_exporter.core.errors import RetrievalError
from aliyun_exporter.core.models import InstanceClaim, MetricSample, MetricSpec
from aliyun_exporter.core.namespaces import default_catalog
from tests.fakes import FakeMonitoringAPI, datapoints_payload


def run_async(coro: Any) -> Any:
    """Run a coroutine in a new event loop (for sync step helpers)."""
    return asyncio.run(coro)


@dataclass
class CollectScenarioContext:
    """Shared state between steps in a collection scenario."""

    api: FakeMonitoringAPI = field(default_factory=FakeMonitoringAPI)
    sink: InMemoryMetricsStorage = field(default_factory=InMemoryMetricsStorage)
    client: MetricClient | None = None
    name: str = ""
    measure: str = "Average"
    dimensions: list[str] = field(default_factory=list)
    claims: list[InstanceClaim] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)
    written: int = 0

    def spec(self) -> MetricSpec:
        return MetricSpec(
            name=self.name,
            measure=self.measure,
            dimensions=tuple(self.dimensions),
            claims=tuple(self.claims),
        )

    def samples(self) -> list[MetricSample]:
        async def _read() -> list[MetricSample]:
            return [s async for s in self.sink.scrape()]

        return run_async(_read())


@pytest.fixture
def ctx() -> CollectScenarioContext:
    """Fresh scenario context for each test."""
    return CollectScenarioContext()


# === Background Steps ===
@given(parsers.parse('a retrieval client for account "{cloud_id}"'))
def step_client(ctx: CollectScenarioContext, cloud_id: str) -> None:
    ctx.client = MetricClient(cloud_id, ctx.api, default_catalog())


@given("an in-memory sink")
def step_sink(ctx: CollectScenarioContext) -> None:
    ctx.sink = InMemoryMetricsStorage()


# === Metric Steps ===
@given(
    parsers.parse(
        'the metric "{name}" measured by "{measure}" with dimension "{dimension}"'
    )
)
def step_metric(
    ctx: CollectScenarioContext, name: str, measure: str, dimension: str
) -> None:
    ctx.name = name
    ctx.measure = measure
    ctx.dimensions = [dimension]


@given("a metric without a name")
def step_unnamed_metric(ctx: CollectScenarioContext) -> None:
    ctx.name = ""


@given(parsers.parse('a claim on "{instance}" for app "{app}" and team "{team}"'))
def step_claim(ctx: CollectScenarioContext, instance: str, app: str, team: str) -> None:
    ctx.claims.append(InstanceClaim(instances=(instance,), app=app, team=team))


# === API Steps ===
@given(parsers.parse('the API returns a datapoint for "{instance}" with Average {value:g}'))
def step_datapoint(ctx: CollectScenarioContext, instance: str, value: float) -> None:
    ctx.records.append({"instanceId": instance, "Average": value, "timestamp": 1000})
    ctx.api.payloads[ctx.name] = datapoints_payload(*ctx.records)


@given("the API fails with a transport error")
def step_api_fails(ctx: CollectScenarioContext) -> None:
    ctx.api.payloads[ctx.name] = RetrievalError("connection reset by peer")


# === Collection Steps ===
@when(parsers.parse('the metric is collected from "{namespace}"'))
def when_collected(ctx: CollectScenarioContext, namespace: str) -> None:
    assert ctx.client is not None
    ctx.written = run_async(ctx.client.collect(namespace, ctx.spec(), ctx.sink))


# === Assertion Steps ===
@then(
    parsers.re(r"(?P<count>\d+) samples? (?:is|are) written"),
    converters={"count": int},
)
def then_samples_written(ctx: CollectScenarioContext, count: int) -> None:
    assert ctx.written == count
    assert len(ctx.samples()) == count


@then(parsers.parse("sample {index:d} has value {value:g}"))
def then_sample_value(ctx: CollectScenarioContext, index: int, value: float) -> None:
    assert ctx.samples()[index - 1].value == value


@then(parsers.parse('sample {index:d} has labels "{labels}"'))
def then_sample_labels(ctx: CollectScenarioContext, index: int, labels: str) -> None:
    expected = [tuple(pair.split("=", 1)) for pair in labels.split(",")]
    assert list(ctx.samples()[index - 1].labels.items()) == expected


@then(parsers.parse("exactly {count:d} error is logged"))
def then_errors_logged(caplog: pytest.LogCaptureFixture, count: int) -> None:
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == count


@then("the API was not called")
def then_api_not_called(ctx: CollectScenarioContext) -> None:
    assert ctx.api.calls == []
