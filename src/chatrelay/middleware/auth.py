from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from typing import Any, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from chatrelay.config import settings
from chatrelay.models.errors import AuthorizationError
from chatrelay.responses import error_response

logger = logging.getLogger("chatrelay.auth")

_BEARER = re.compile(r"^Bearer\s+", re.IGNORECASE)


def bearer_token(header_value: str) -> str:
    return _BEARER.sub("", header_value or "", count=1).strip()


def _decode_claims(token: str) -> dict | None:
    segments = token.split(".")
    if len(segments) != 3:
        return None

    payload = segments[1].replace("-", "+").replace("_", "/")
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.b64decode(payload, validate=True))
    except (binascii.Error, ValueError, RecursionError):
        return None

    return claims if isinstance(claims, dict) else None


def _contains(roles: Iterable[Any], role: str) -> bool:
    return any(r == role for r in roles)


def has_required_role(token: str, role: str, claim_names: Iterable[str] | None = None) -> bool:
    """
    Reads the role claim out of an unverified JWT payload.

    Signature and expiry are checked by the perimeter in front of this
    service; this is a secondary gate. Never raises.
    """
    claims = _decode_claims(token)
    if claims is None:
        return False

    roles: Any = ""
    for name in claim_names if claim_names is not None else settings.role_claims:
        if claims.get(name):
            roles = claims[name]
            break

    if isinstance(roles, list):
        return _contains(roles, role)

    if isinstance(roles, str):
        try:
            parsed = json.loads(roles)
        except (ValueError, RecursionError):
            parsed = None
        if isinstance(parsed, list):
            return _contains(parsed, role)
        return _contains((r.strip() for r in roles.split(",")), role)

    return False


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not request.url.path.startswith("/api/"):
            return await call_next(request)

        role = settings.CHATRELAY_REQUIRED_ROLE
        token = bearer_token(request.headers.get("authorization") or "")

        if not token or not has_required_role(token, role):
            logger.info("%s denied: missing %s role", getattr(request.state, "request_id", "-"), role)
            return error_response(AuthorizationError(f"Forbidden: missing {role} role"))

        return await call_next(request)
