"""Tests for newline-delimited framing."""

import asyncio

import pytest

from src.mcp_transport.framing import frame, iter_messages, read_message


def _reader(data: bytes, limit: int = 2 ** 16) -> asyncio.StreamReader:
    reader = asyncio.StreamReader(limit=limit)
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestReadMessage:
    """Tests for read_message."""

    @pytest.mark.asyncio
    async def test_skips_blank_lines_and_strips(self):
        reader = _reader(b"\n  \r\n  {\"a\":1}  \r\n")
        assert await read_message(reader) == '{"a":1}'
        assert await read_message(reader) is None

    @pytest.mark.asyncio
    async def test_final_line_without_newline(self):
        reader = _reader(b'{"a":1}')
        assert await read_message(reader) == '{"a":1}'

    @pytest.mark.asyncio
    async def test_oversized_line_raises(self):
        reader = _reader(b"x" * 64 + b"\n", limit=16)
        with pytest.raises(ValueError):
            await read_message(reader)

    @pytest.mark.asyncio
    async def test_iter_messages_yields_each_line(self):
        reader = _reader(b'{"a":1}\n\n{"b":2}\n')
        messages = [message async for message in iter_messages(reader)]
        assert messages == ['{"a":1}', '{"b":2}']


class TestFrame:
    """Tests for frame."""

    def test_appends_single_newline(self):
        assert frame('{"a":1}') == b'{"a":1}\n'

    def test_replaces_trailing_whitespace(self):
        assert frame(b'{"a":1}\r\n\n') == b'{"a":1}\n'
