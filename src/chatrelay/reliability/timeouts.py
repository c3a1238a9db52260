import time
from dataclasses import dataclass

from chatrelay.config import settings


@dataclass
class TimeoutConfig:
    connect_timeout: float
    total_timeout: float


CHAT_TIMEOUT = TimeoutConfig(
    connect_timeout=settings.CHATRELAY_CONNECT_TIMEOUT_SECONDS,
    total_timeout=settings.CHATRELAY_CHAT_TIMEOUT_SECONDS,
)

STREAM_TIMEOUT = TimeoutConfig(
    connect_timeout=settings.CHATRELAY_CONNECT_TIMEOUT_SECONDS,
    total_timeout=settings.CHATRELAY_STREAM_TIMEOUT_SECONDS,
)


class Deadline:
    """Monotonic cut-off shared by every await of one request."""

    def __init__(self, budget_seconds: float) -> None:
        self._expires_at = time.monotonic() + budget_seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())
