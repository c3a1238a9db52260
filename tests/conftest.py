from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from chatrelay import upstream
from chatrelay.main import app
from chatrelay.reliability.timeouts import TimeoutConfig


def make_token(claims: Dict[str, Any]) -> str:
    """Unsigned JWT carrying `claims`; the guard never checks signatures."""

    def _segment(obj: Dict[str, Any]) -> str:
        raw = json.dumps(obj).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    return f"{_segment({'alg': 'none', 'typ': 'JWT'})}.{_segment(claims)}.signature"


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token({'roles': ['chatUser']})}"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


class UpstreamRecorder:
    """Routes every upstream call to `handler` and remembers the requests."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], Any] | None = None

    def _dispatch(self, request: httpx.Request):
        self.requests.append(request)
        if self.handler is None:
            raise AssertionError(f"unexpected upstream call to {request.url}")
        return self.handler(request)

    def create_client(self, timeout: TimeoutConfig) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._dispatch))

    @property
    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream_mock(monkeypatch) -> UpstreamRecorder:
    recorder = UpstreamRecorder()
    monkeypatch.setattr(upstream, "create_client", recorder.create_client)
    return recorder


def sse_stream(*chunks: str):
    """Async body yielding `chunks` one by one, as a live upstream would."""

    async def _body():
        for chunk in chunks:
            yield chunk.encode("utf-8")

    return _body()
