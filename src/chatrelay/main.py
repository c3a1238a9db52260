from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from chatrelay import upstream
from chatrelay.config import settings
from chatrelay.middleware.auth import AuthMiddleware
from chatrelay.middleware.logging import LoggingMiddleware
from chatrelay.middleware.request_id import RequestIDMiddleware
from chatrelay.models.errors import (
    GatewayError,
    InternalError,
    InvalidRequestError,
    UpstreamError,
    UpstreamTimeoutError,
)
from chatrelay.models.openai_compat import ChatRequest
from chatrelay.providers.base import ChatProvider, NativeRequest
from chatrelay.providers.factory import detect_variant, get_chat_provider
from chatrelay.reliability.timeouts import CHAT_TIMEOUT, STREAM_TIMEOUT, Deadline
from chatrelay.responses import CORS_HEADERS, error_response
from chatrelay.streaming.relay import StreamRelay

logger = logging.getLogger("chatrelay.gateway")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


app = FastAPI()

app.add_middleware(AuthMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CHATRELAY_CORS_ORIGIN],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        message = "Invalid JSON body"
    elif any(
        tuple(err.get("loc", ())) == ("body",) or {"endpoint", "apiKey"} & set(err.get("loc", ()))
        for err in errors
    ):
        message = "Missing endpoint or apiKey"
    else:
        message = "Invalid request body"
    return error_response(InvalidRequestError(message))


@app.exception_handler(UpstreamError)
async def _upstream_error(request: Request, exc: UpstreamError):
    return Response(
        content=exc.body,
        status_code=exc.status_code,
        media_type=exc.content_type,
        headers=CORS_HEADERS,
    )


@app.exception_handler(GatewayError)
async def _gateway_error(request: Request, exc: GatewayError):
    return error_response(exc)


@app.exception_handler(Exception)
async def _internal_error(request: Request, exc: Exception):
    logger.exception("%s unhandled error", getattr(request.state, "request_id", "-"))
    return error_response(InternalError("Internal server error"))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.options("/api/{path:path}")
async def preflight(path: str):
    return Response(status_code=200, headers=CORS_HEADERS)


async def _fetch_json(native: NativeRequest):
    async with upstream.create_client(CHAT_TIMEOUT) as client:
        response = await client.send(upstream.build_httpx_request(client, native))
        await upstream.raise_for_upstream(response)
        return response.json()


async def _with_budget(coro):
    try:
        return await asyncio.wait_for(coro, timeout=CHAT_TIMEOUT.total_timeout)
    except asyncio.TimeoutError:
        raise UpstreamTimeoutError("Upstream request timed out")


def _resolve_provider(request: Request, body: ChatRequest) -> ChatProvider:
    variant = detect_variant(body.endpoint)
    request.state.provider_variant = variant.value
    return get_chat_provider(variant)


async def fetch_models(provider: ChatProvider, body: ChatRequest) -> dict:
    logger.info("models list via %s", provider.variant.value)

    native = provider.build_models_request(body.endpoint, body.apiKey)
    payload = await _with_budget(_fetch_json(native))
    return provider.normalize_models(payload)


async def complete_chat(provider: ChatProvider, body: ChatRequest) -> dict:
    logger.info("chat completion via %s model=%s", provider.variant.value, body.model)

    request = body.model_copy(update={"stream": False})
    native = provider.build_chat_request(body.endpoint, body.apiKey, request)
    payload = await _with_budget(_fetch_json(native))
    return provider.normalize_completion(payload)


@app.post("/api/models")
async def models(request: Request, body: ChatRequest):
    provider = _resolve_provider(request, body)
    return JSONResponse(content=await fetch_models(provider, body), headers=CORS_HEADERS)


@app.post("/api/chat")
async def chat(request: Request, body: ChatRequest):
    provider = _resolve_provider(request, body)
    if body.action == "fetchModels":
        result = await fetch_models(provider, body)
    else:
        result = await complete_chat(provider, body)
    return JSONResponse(content=result, headers=CORS_HEADERS)


@app.post("/api/chat/stream")
async def chat_stream(request: Request, body: ChatRequest):
    request_id = getattr(request.state, "request_id", "-")
    provider = _resolve_provider(request, body)
    logger.info("%s stream via %s model=%s", request_id, provider.variant.value, body.model)

    native = provider.build_chat_request(
        body.endpoint,
        body.apiKey,
        body.model_copy(update={"stream": True}),
    )

    deadline = Deadline(STREAM_TIMEOUT.total_timeout)
    client = upstream.create_client(STREAM_TIMEOUT)
    try:
        response = await asyncio.wait_for(
            client.send(upstream.build_httpx_request(client, native), stream=True),
            timeout=deadline.remaining(),
        )
    except asyncio.TimeoutError:
        await client.aclose()
        raise UpstreamTimeoutError("Upstream request timed out")
    except BaseException:
        await client.aclose()
        raise

    try:
        await upstream.raise_for_upstream(response)
    except BaseException:
        await response.aclose()
        await client.aclose()
        raise

    relay = StreamRelay(provider, response, client, deadline, request_id=request_id)
    return StreamingResponse(
        relay,
        media_type="text/event-stream",
        headers={**SSE_HEADERS, **CORS_HEADERS},
        background=BackgroundTask(relay.aclose),
    )


def run() -> None:
    import uvicorn

    uvicorn.run("chatrelay.main:app", host="0.0.0.0", port=8000)
