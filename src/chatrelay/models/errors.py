from typing import Optional


class GatewayError(Exception):
    """Base for failures that map to a client-facing HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(GatewayError):
    status_code = 400


class AuthorizationError(GatewayError):
    status_code = 403


class UpstreamError(GatewayError):
    """Non-2xx upstream reply. The body is forwarded untouched."""

    def __init__(self, status_code: int, body: bytes, content_type: Optional[str] = None) -> None:
        super().__init__(f"Upstream HTTP {status_code}", status_code)
        self.body = body
        self.content_type = content_type or "application/json"


class UpstreamTimeoutError(GatewayError):
    status_code = 504


class InternalError(GatewayError):
    status_code = 500
