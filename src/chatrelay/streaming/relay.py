from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, List, Optional, Tuple

import httpx

from chatrelay.providers.base import ChatProvider
from chatrelay.reliability.timeouts import Deadline
from chatrelay.streaming.sse import DONE, extract_data, frame, split_lines

logger = logging.getLogger("chatrelay.stream")

DONE_LINE = f"data: {DONE}"
INTERRUPTED = '{"error":{"message":"Upstream stream interrupted"}}'


def transcode_chunk(
    provider: ChatProvider, buffer: str, chunk: str
) -> Tuple[List[str], str]:
    """
    Feeds one decoded chunk through the line buffer.

    Returns the canonical lines produced by every complete `data:` line, in
    order, and the new buffer holding the unterminated remainder.
    """
    lines, buffer = split_lines(buffer, chunk)
    out = []
    for line in lines:
        data = extract_data(line)
        if data is None:
            continue
        normalized = provider.normalize_stream_line(data)
        if normalized:
            out.append(normalized)
    return out, buffer


class StreamRelay:
    """
    Relays one upstream SSE response to the client.

    Owns the upstream response and client. Both are closed when iteration
    ends, fails, times out or is cancelled by a disconnect; the client is
    closed even if closing the response fails.
    """

    def __init__(
        self,
        provider: ChatProvider,
        response: httpx.Response,
        client: httpx.AsyncClient,
        deadline: Deadline,
        request_id: str = "-",
    ) -> None:
        self.provider = provider
        self.response = response
        self.client = client
        self.deadline = deadline
        self.request_id = request_id
        self._closed = False
        self._started = time.perf_counter()

    async def _next(self, chunks: AsyncIterator) -> Optional[object]:
        try:
            return await asyncio.wait_for(chunks.__anext__(), timeout=self.deadline.remaining())
        except StopAsyncIteration:
            return None

    async def _passthrough(self) -> AsyncIterator[bytes]:
        chunks = self.response.aiter_bytes()
        while True:
            chunk = await self._next(chunks)
            if chunk is None:
                return
            yield chunk

    async def _transcoded(self) -> AsyncIterator[bytes]:
        chunks = self.response.aiter_text()
        buffer = ""
        while True:
            chunk = await self._next(chunks)
            if chunk is None:
                break
            lines, buffer = transcode_chunk(self.provider, buffer, chunk)
            for line in lines:
                yield frame(line)
                if line == DONE_LINE:
                    return

        # A trailing line is complete once the upstream has finished
        if buffer:
            lines, _ = transcode_chunk(self.provider, buffer, "\n")
            for line in lines:
                yield frame(line)
                if line == DONE_LINE:
                    return

        yield frame(DONE_LINE)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        events = self._passthrough() if self.provider.passthrough_stream else self._transcoded()
        try:
            async for event in events:
                yield event
        except asyncio.TimeoutError:
            logger.warning("%s stream exceeded its execution budget", self.request_id)
            yield frame(f"data: {INTERRUPTED}")
        except httpx.HTTPError as e:
            logger.warning("%s upstream stream failed: %r", self.request_id, e)
            yield frame(f"data: {INTERRUPTED}")
        except Exception:
            logger.exception("%s stream relay failed", self.request_id)
            yield frame(f"data: {INTERRUPTED}")
        finally:
            await events.aclose()
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        try:
            await self.response.aclose()
        finally:
            await self.client.aclose()
        self._closed = True
        logger.info(
            "%s stream closed after %.2fms",
            self.request_id,
            (time.perf_counter() - self._started) * 1000,
        )
