"""Streamed byte values with an optional declared length."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable

from asto.errors import ContentConsumedError


async def _single(data: bytes) -> AsyncIterator[bytes]:
    if data:
        yield data


async def _from_iterable(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        if chunk:
            yield bytes(chunk)


class Content:
    """A single-consumption, ordered stream of byte chunks.

    ``size`` is the total length in bytes when known ahead of transfer and
    ``None`` otherwise. Iterating drains the underlying source; a second
    iteration raises ``ContentConsumedError``.

    Attributes:
        size: Declared total length, or None if unknown.
    """

    def __init__(self, source: AsyncIterable[bytes], size: int | None = None) -> None:
        """Wrap an async byte source.

        Args:
            source: Async iterable producing byte chunks.
            size: Declared total length, or None if unknown.
        """
        if size is not None and size < 0:
            raise ValueError(f"Content size must be non-negative, got {size}")
        self._source = source
        self.size = size
        self._consumed = False

    @classmethod
    def from_bytes(cls, data: bytes) -> Content:
        """Create a content of known length from an in-memory payload."""
        return cls(_single(bytes(data)), size=len(data))

    @classmethod
    def from_chunks(cls, chunks: Iterable[bytes], size: int | None = None) -> Content:
        """Create a content from a synchronous iterable of chunks."""
        return cls(_from_iterable(chunks), size=size)

    @classmethod
    def empty(cls) -> Content:
        return cls.from_bytes(b"")

    @property
    def consumed(self) -> bool:
        return self._consumed

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise ContentConsumedError()
        self._consumed = True
        return self._source.__aiter__()

    async def read(self) -> bytes:
        """Drain the content and return all of its bytes."""
        chunks = []
        async for chunk in self:
            chunks.append(chunk)
        return b"".join(chunks)

    def __repr__(self) -> str:
        return f"Content(size={self.size!r}, consumed={self._consumed})"
