"""Alibaba Cloud Monitor (CMS) API adapter.

Issues RPC-style signed GET requests (signature version 1.0, HMAC-SHA1) with
httpx. Only the two calls the exporter needs are implemented.
"""

import base64
import hashlib
import hmac
import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from aliyun_exporter.core.errors import DecodeError, RetrievalError
from aliyun_exporter.core.models import DEFAULT_ENDPOINT_TEMPLATE, Credential

logger = logging.getLogger(__name__)

API_VERSION = "2019-01-01"
DEFAULT_READ_TIMEOUT = 50.0
CONNECT_TIMEOUT = 10.0


def _percent_encode(value: str) -> str:
    return quote(value, safe="~")


def _meta_page(data: dict[str, Any]) -> tuple[list[Any], int]:
    """Extract the resource batch and total count of one listing page.

    Raises:
        DecodeError: If the page does not have the documented shape.
    """
    container = data.get("Resources") or {}
    if not isinstance(container, dict):
        raise DecodeError("Resources is not an object", body=str(data))
    batch = container.get("Resource") or []
    if not isinstance(batch, list):
        raise DecodeError("Resources.Resource is not an array", body=str(data))
    total = data.get("TotalCount") or 0
    if isinstance(total, bool):
        raise DecodeError("TotalCount is not an integer", body=str(data))
    try:
        return batch, int(total)
    except (TypeError, ValueError) as exc:
        raise DecodeError("TotalCount is not an integer", body=str(data)) from exc


def sign_parameters(
    params: Mapping[str, str], secret: str, method: str = "GET"
) -> str:
    """Compute the RPC signature for a set of query parameters.

    Args:
        params: Every query parameter except Signature itself.
        secret: AccessKey secret.
        method: HTTP method of the request.

    Returns:
        Base64-encoded HMAC-SHA1 signature.
    """
    canonical = "&".join(
        f"{_percent_encode(k)}={_percent_encode(v)}" for k, v in sorted(params.items())
    )
    string_to_sign = f"{method}&{_percent_encode('/')}&{_percent_encode(canonical)}"
    digest = hmac.new(
        f"{secret}&".encode(), string_to_sign.encode(), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode()


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _nonce() -> str:
    return str(uuid.uuid4())


class CMSApi:
    """Async client for the Cloud Monitor API of one account.

    Implements MonitoringAPIPort. The underlying httpx client (and the
    transport passed in, usually a RateLimitedTransport) is owned by this
    object and may be shared by any number of concurrent calls.

    Args:
        credential: Access key pair and region.
        transport: httpx transport to send requests through.
        endpoint_template: Endpoint URL with a ``{region}`` placeholder.
        read_timeout: Read timeout per request, in seconds.
        timestamp: Signing timestamp source, injectable for tests.
        nonce: Signing nonce source, injectable for tests.
    """

    def __init__(
        self,
        credential: Credential,
        transport: httpx.AsyncBaseTransport | None = None,
        endpoint_template: str = DEFAULT_ENDPOINT_TEMPLATE,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        timestamp: Callable[[], str] = _utc_timestamp,
        nonce: Callable[[], str] = _nonce,
    ) -> None:
        self._credential = credential
        self.endpoint = endpoint_template.format(region=credential.region)
        self._timestamp = timestamp
        self._nonce = nonce
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(CONNECT_TIMEOUT, read=read_timeout),
        )

    def _signed_params(self, action: str, params: Mapping[str, str]) -> dict[str, str]:
        query = {
            "Action": action,
            "Version": API_VERSION,
            "Format": "JSON",
            "RegionId": self._credential.region,
            "AccessKeyId": self._credential.access_key,
            "SignatureMethod": "HMAC-SHA1",
            "SignatureVersion": "1.0",
            "SignatureNonce": self._nonce(),
            "Timestamp": self._timestamp(),
            **params,
        }
        query["Signature"] = sign_parameters(query, self._credential.access_key_secret)
        return query

    async def _call(
        self,
        action: str,
        params: Mapping[str, str],
        namespace: str = "",
        metric: str = "",
    ) -> dict[str, Any]:
        """Send one signed request and return the decoded JSON body.

        Raises:
            RetrievalError: On network failure, timeout, HTTP error status or
                an unsuccessful API result.
            DecodeError: If the body is not a JSON object.
        """
        query = self._signed_params(action, params)
        try:
            response = await self._client.get(self.endpoint, params=query)
        except httpx.TimeoutException as exc:
            raise RetrievalError(
                f"{action} timed out: {exc}", namespace=namespace, metric=metric
            ) from exc
        except httpx.HTTPError as exc:
            raise RetrievalError(
                f"{action} failed: {exc}", namespace=namespace, metric=metric
            ) from exc

        body = response.text
        try:
            data = response.json()
        except ValueError as exc:
            if response.is_error:
                raise RetrievalError(
                    f"{action} returned HTTP {response.status_code}",
                    namespace=namespace,
                    metric=metric,
                ) from exc
            raise DecodeError(f"{action} returned a non-JSON body", body=body) from exc
        if not isinstance(data, dict):
            raise DecodeError(f"{action} returned a non-object body", body=body)

        code = str(data.get("Code", ""))
        if response.is_error or data.get("Success") is False:
            message = data.get("Message") or f"HTTP {response.status_code}"
            raise RetrievalError(
                f"{action} failed: {code} {message}".strip(),
                namespace=namespace,
                metric=metric,
                code=code,
            )
        return data

    async def describe_metric_last(
        self, namespace: str, metric_name: str, period: str
    ) -> str:
        """Return the serialized datapoints of the latest bucket per series."""
        data = await self._call(
            "DescribeMetricLast",
            {"Namespace": namespace, "MetricName": metric_name, "Period": period},
            namespace=namespace,
            metric=metric_name,
        )
        datapoints = data.get("Datapoints")
        if datapoints is None:
            return ""
        if not isinstance(datapoints, str):
            raise DecodeError(
                "DescribeMetricLast Datapoints is not a string", body=str(data)
            )
        return datapoints

    async def describe_metric_meta_list(
        self, namespace: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        """Return every metric resource record of a namespace.

        Pages through the listing ``page_size`` records at a time.
        """
        resources: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._call(
                "DescribeMetricMetaList",
                {
                    "Namespace": namespace,
                    "PageSize": str(page_size),
                    "PageNumber": str(page),
                },
                namespace=namespace,
            )
            logger.debug(
                "metric meta list page",
                extra={"namespace": namespace, "page": page, "content": str(data)},
            )
            batch, total = _meta_page(data)
            resources.extend(r for r in batch if isinstance(r, dict))
            if len(batch) < page_size or (total and len(resources) >= total):
                return resources
            page += 1

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CMSApi":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
