"""Helpers for building upstream stream bodies in tests."""

import json
from collections.abc import AsyncIterator, Iterable
from typing import Any

import httpx


async def _chunks(parts: list[bytes]) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


def stream_response(parts: Iterable[bytes], status_code: int = 200) -> httpx.Response:
    """Streaming response whose body arrives in exactly the given chunks."""
    return httpx.Response(status_code, content=_chunks(list(parts)))


def sse_lines(*payloads: str) -> bytes:
    """``data:`` lines for each payload, each followed by a blank line."""
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode()


def split_every(body: bytes, size: int) -> list[bytes]:
    """Cut ``body`` into fixed-size chunks, ignoring line boundaries."""
    return [body[i : i + size] for i in range(0, len(body), size)]


async def collect(stream: AsyncIterator[bytes]) -> bytes:
    return b"".join([chunk async for chunk in stream])


def event_types(body: bytes) -> list[str]:
    """``event:`` names of a canonical SSE body, in order."""
    return [
        line[len("event: ") :]
        for line in body.decode().split("\n")
        if line.startswith("event: ")
    ]


def event_payloads(body: bytes) -> list[dict[str, Any]]:
    """Decoded ``data:`` payloads of a canonical SSE body, in order."""
    return [
        json.loads(line[len("data: ") :])
        for line in body.decode().split("\n")
        if line.startswith("data: ")
    ]
