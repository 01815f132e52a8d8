"""Bridges between ``Content`` and the S3 client's request/response bodies.

Both directions are pure protocol translation: bytes are only buffered as
far as a request body needs them (one part, or one small payload).
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any

from botocore.exceptions import BotoCoreError

from asto.content import Content
from asto.errors import StorageIOError

# Streaming chunk size for response bodies: 64 KB
_CHUNK_SIZE = 64 * 1024


class ContentBody:
    """Request body view of a ``Content``.

    Forwards the declared length and re-exposes the content's chunks either
    as one payload (single upload) or as fixed-size parts (multipart).
    """

    def __init__(self, content: Content) -> None:
        self._content = content

    @property
    def content_length(self) -> int | None:
        return self._content.size

    async def read(self) -> bytes:
        """Drain the content into a single payload."""
        data = await self._content.read()
        self._check_length(len(data))
        return data

    async def parts(self, part_size: int) -> AsyncIterator[bytes]:
        """Yield the content re-chunked into ``part_size`` byte buffers.

        Every buffer except the last is exactly ``part_size`` bytes long.
        Empty content yields nothing.
        """
        if part_size <= 0:
            raise ValueError(f"part_size must be positive, got {part_size}")
        buffer = bytearray()
        total = 0
        async for chunk in self._content:
            total += len(chunk)
            buffer += chunk
            while len(buffer) >= part_size:
                yield bytes(buffer[:part_size])
                del buffer[:part_size]
        self._check_length(total)
        if buffer:
            yield bytes(buffer)

    def _check_length(self, actual: int) -> None:
        expected = self._content.size
        if expected is not None and actual != expected:
            raise StorageIOError(
                f"Content declared {expected} bytes but produced {actual}"
            )


def response_content(response: Mapping[str, Any], chunk_size: int = _CHUNK_SIZE) -> Content:
    """Wrap a ``get_object`` response as a ``Content``.

    The ``ContentLength`` response metadata becomes the content size; the
    body stream becomes its byte source and is closed once drained.
    """
    length = response.get("ContentLength")
    return Content(_body_chunks(response["Body"], chunk_size), size=length)


async def _body_chunks(body: Any, chunk_size: int) -> AsyncIterator[bytes]:
    async with body as stream:
        while True:
            try:
                chunk = await stream.read(chunk_size)
            except (BotoCoreError, OSError) as exc:
                raise StorageIOError(f"Failed to read response body: {exc}") from exc
            if not chunk:
                break
            yield chunk
