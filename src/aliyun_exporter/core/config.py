"""Exporter configuration.

Two layers:

- ``ExporterConfig``: the domain document (credentials per account, metric
  definitions per namespace) as fetched from the config store. Fetching is
  done elsewhere; this module validates the parsed mapping and applies
  defaults.
- ``ExporterSettings``: process tunables read from the environment.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aliyun_exporter.core.errors import ConfigError
from aliyun_exporter.core.models import (
    DEFAULT_ENDPOINT_TEMPLATE,
    DEFAULT_MEASURE,
    DEFAULT_PERIOD,
    DEFAULT_REGION,
    Credential,
    InstanceClaim,
    MetricSpec,
)


class _Document(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, coerce_numbers_to_str=True, extra="ignore"
    )


class _CredentialDoc(_Document):
    access_key: str = Field(alias="accessKey")
    access_key_secret: str = Field(alias="accessKeySecret")
    region: str = ""


class _ClaimDoc(_Document):
    instance: list[str] = Field(default_factory=list)
    app: str = ""
    team: str = ""


class _SpecDoc(_Document):
    claim: list[_ClaimDoc] = Field(default_factory=list)


class _MetricDoc(_Document):
    name: str = ""
    alias: str = ""
    desc: str = ""
    period: str = ""
    measure: str = ""
    dimensions: list[str] = Field(default_factory=list)
    spec: _SpecDoc | None = None


class _ConfigDoc(_Document):
    credentials: dict[str, _CredentialDoc] = Field(default_factory=dict)
    metrics: dict[str, list[_MetricDoc]] = Field(default_factory=dict)


def _metric_spec(doc: _MetricDoc) -> MetricSpec:
    claims = ()
    if doc.spec is not None:
        claims = tuple(
            InstanceClaim(instances=tuple(c.instance), app=c.app, team=c.team)
            for c in doc.spec.claim
        )
    return MetricSpec(
        name=doc.name,
        period=doc.period or DEFAULT_PERIOD,
        measure=doc.measure or DEFAULT_MEASURE,
        dimensions=tuple(doc.dimensions),
        claims=claims,
        alias=doc.alias,
        description=doc.desc,
    )


@dataclass(frozen=True)
class ExporterConfig:
    """Parsed, defaulted exporter configuration.

    Attributes:
        credentials: Account id to access key pair.
        metrics: Namespace to the metrics collected from it.
    """

    credentials: dict[str, Credential] = field(default_factory=dict)
    metrics: dict[str, list[MetricSpec]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExporterConfig":
        """Validate a parsed config document and apply defaults.

        Missing regions default to cn-hangzhou, periods to "60" and
        measures to "Average". Metrics without a name are kept; they are
        reported when collected.

        Raises:
            ConfigError: If the document does not have the expected shape.
        """
        if not isinstance(data, Mapping):
            raise ConfigError("config document must be a mapping")
        try:
            doc = _ConfigDoc.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigError(f"invalid exporter config: {exc}") from exc

        credentials = {
            cloud_id: Credential(
                access_key=c.access_key,
                access_key_secret=c.access_key_secret,
                region=c.region or DEFAULT_REGION,
            )
            for cloud_id, c in doc.credentials.items()
        }
        metrics = {
            namespace: [_metric_spec(m) for m in specs]
            for namespace, specs in doc.metrics.items()
        }
        return cls(credentials=credentials, metrics=metrics)


class ExporterSettings(BaseSettings):
    """Process tunables, read from ``ALIYUN_EXPORTER_*`` environment variables."""

    rate_limit: float = Field(10.0, gt=0, description="API requests per second")
    read_timeout: float = Field(50.0, gt=0, description="Read timeout in seconds")
    exporter_namespace: str = "cloudmonitor"
    endpoint_template: str = DEFAULT_ENDPOINT_TEMPLATE
    log_level: str = Field("INFO", description="Level of the aliyun_exporter logger")

    model_config = SettingsConfigDict(env_prefix="ALIYUN_EXPORTER_", env_file=".env")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    def configure_logging(self) -> None:
        """Apply ``log_level`` to the package logger."""
        logging.getLogger("aliyun_exporter").setLevel(self.log_level)
