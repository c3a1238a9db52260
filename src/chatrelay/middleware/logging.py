import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from chatrelay.config import settings

logger = logging.getLogger("chatrelay.request")
logging.basicConfig(
    level=settings.CHATRELAY_LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)s | %(message)s",
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One line per request: id, method, status, path, provider, elapsed.

    For event streams the elapsed time covers the upstream call up to the
    committed headers; the relay logs the full duration when it closes.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        streaming = response.headers.get("content-type", "").startswith("text/event-stream")
        logger.info(
            "%s %s %d %s provider=%s %s%.2fms",
            getattr(request.state, "request_id", "-"),
            request.method,
            response.status_code,
            request.url.path,
            getattr(request.state, "provider_variant", "-"),
            "headers after " if streaming else "",
            elapsed_ms,
        )
        return response
