import json
import logging

import httpx

from chatrelay.config import settings
from chatrelay.models.errors import UpstreamError
from chatrelay.providers.base import NativeRequest
from chatrelay.reliability.timeouts import TimeoutConfig

logger = logging.getLogger("chatrelay.gateway")


def create_client(timeout: TimeoutConfig) -> httpx.AsyncClient:
    """One client per inbound request; closed by whoever opened it."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout.total_timeout,
            connect=timeout.connect_timeout,
        ),
    )


def build_httpx_request(client: httpx.AsyncClient, native: NativeRequest) -> httpx.Request:
    content = None
    if native.body is not None:
        content = json.dumps(native.body).encode("utf-8")
        if settings.CHATRELAY_LOG_PAYLOADS:
            logger.info("native body: %s", content.decode("utf-8"))

    return client.build_request(
        native.method,
        native.url,
        headers=native.headers,
        content=content,
    )


async def raise_for_upstream(response: httpx.Response) -> None:
    """Reads the body of a failed reply and raises it for verbatim forwarding."""
    if response.is_success:
        return

    body = await response.aread()
    logger.warning("upstream returned HTTP %d", response.status_code)
    raise UpstreamError(
        response.status_code,
        body,
        response.headers.get("content-type"),
    )
