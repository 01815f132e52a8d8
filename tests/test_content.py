"""Unit tests for streamed content values."""

import pytest

from asto.content import Content
from asto.errors import ContentConsumedError


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


class TestContent:
    """Tests for Content construction and consumption."""

    async def test_from_bytes_has_size(self):
        content = Content.from_bytes(b"hello")
        assert content.size == 5
        assert await content.read() == b"hello"

    async def test_unknown_size(self):
        content = Content(_chunks(b"ab", b"cd"))
        assert content.size is None
        assert await content.read() == b"abcd"

    async def test_iterates_chunks_in_order(self):
        content = Content(_chunks(b"1", b"2", b"3"), size=3)
        assert [chunk async for chunk in content] == [b"1", b"2", b"3"]

    async def test_empty(self):
        content = Content.empty()
        assert content.size == 0
        assert await content.read() == b""

    async def test_from_chunks(self):
        content = Content.from_chunks([b"a", b"", b"b"], size=2)
        assert await content.read() == b"ab"

    async def test_second_consumption_raises(self):
        content = Content.from_bytes(b"once")
        assert not content.consumed
        await content.read()
        assert content.consumed
        with pytest.raises(ContentConsumedError):
            await content.read()

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            Content(_chunks(), size=-1)
