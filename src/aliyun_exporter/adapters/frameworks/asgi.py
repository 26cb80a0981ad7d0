"""ASGI adapter exposing the exporter to a Prometheus scraper.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne).
"""

import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from aliyun_exporter.adapters.exporter import Exporter
from aliyun_exporter.core.encoding.prometheus import CONTENT_TYPE

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
    """
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _handle_endpoint(
    send: Send,
    endpoint_func: Callable[[], Coroutine[Any, Any, str]],
    content_type: str,
    log_message: str,
) -> None:
    """Execute an endpoint function with error handling and send response.

    Args:
        send: ASGI send callable for writing response.
        endpoint_func: Async function that returns response body.
        content_type: Content-Type header for success response.
        log_message: Message to log on error.
    """
    try:
        body = await endpoint_func()
        await _send_response(send, 200, content_type, body)
    except Exception:
        logger.exception(log_message)
        error_body = json.dumps({"error": "Internal Server Error"})
        await _send_response(send, 500, "application/json", error_body)


def create_asgi_app(exporter: Exporter) -> ASGIApp:
    """Create an ASGI app with /metrics and /namespaces endpoints.

    ``/metrics`` runs a fresh collection on every request and returns it in
    the Prometheus text format. ``/namespaces`` lists the supported
    namespaces as JSON.

    Args:
        exporter: Exporter to scrape on each request.

    Returns:
        ASGI application callable.
    """

    async def namespaces() -> str:
        return json.dumps(exporter.catalog.all_namespaces())

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]

        if path == "/metrics":
            await _handle_endpoint(
                send,
                exporter.scrape,
                CONTENT_TYPE,
                "Error scraping metrics endpoint",
            )
        elif path == "/namespaces":
            await _handle_endpoint(
                send,
                namespaces,
                "application/json",
                "Error encoding namespaces endpoint",
            )
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
