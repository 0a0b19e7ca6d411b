"""Newline-delimited JSON-RPC framing over asyncio streams."""

import asyncio
from collections.abc import AsyncIterator


async def read_message(reader: asyncio.StreamReader) -> str | None:
    """Read the next non-blank line.

    Args:
        reader: Stream to read from.

    Returns:
        The line with surrounding whitespace removed, or None at end of stream.

    Raises:
        ValueError: If a line exceeds the reader's limit.
        ConnectionError: If the underlying transport fails.
    """
    while True:
        line = await reader.readline()
        if not line:
            return None
        message = line.decode("utf-8", errors="replace").strip()
        if message:
            return message


async def iter_messages(reader: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield one message per newline-terminated line until end of stream."""
    while True:
        message = await read_message(reader)
        if message is None:
            return
        yield message


def frame(message: str | bytes) -> bytes:
    """Encode a message as exactly one newline-terminated line."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return message.strip() + b"\n"
