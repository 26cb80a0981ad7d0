"""Exception hierarchy for metric retrieval and discovery.

Per-metric failures (ConfigError, RetrievalError, DecodeError) are reported
and dropped by the retrieval client during a scrape. DiscoveryError is raised
to the caller of the metadata listing operation.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Configuration is missing or malformed."""


class RetrievalError(ExporterError):
    """A call to the monitoring API failed.

    Attributes:
        namespace: CMS namespace of the failed call, if known.
        metric: Metric name of the failed call, if known.
        code: Error code returned by the API, if any.
    """

    def __init__(
        self,
        message: str,
        namespace: str = "",
        metric: str = "",
        code: str = "",
    ) -> None:
        super().__init__(message)
        self.namespace = namespace
        self.metric = metric
        self.code = code


class DecodeError(ExporterError):
    """An API response payload could not be parsed.

    Attributes:
        body: The raw payload, kept for diagnosis.
    """

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class DiscoveryError(ExporterError):
    """Metadata listing failed for a namespace."""

    def __init__(self, message: str, namespace: str = "") -> None:
        super().__init__(message)
        self.namespace = namespace
