"""Progress narration for long-running deployments.

The deployer pushes human-readable stage names onto an unbounded queue
while a separately scheduled consumer drains and displays them. The
producer never waits for the consumer; closing the reporter lets the
consumer task finish.

Usage:
    reporter = ProgressReporter()
    consumer = asyncio.create_task(consume_progress(reporter, print))
    try:
        await deployer.deploy(..., progress=reporter)
    finally:
        reporter.close()
        await consumer
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

from loguru import logger

_CLOSED = object()


class ProgressReporter:
    """Single-producer, single-consumer stream of progress messages."""

    def __init__(self) -> None:
        # maxsize=0: unbounded, put_nowait never raises QueueFull
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def report(self, message: str) -> None:
        """Publish a progress message without blocking."""
        if self._closed:
            logger.debug(f"Progress reporter closed, dropping: {message}")
            return
        self._queue.put_nowait(message)

    def close(self) -> None:
        """Mark the end of the stream. Safe to call more than once."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield str(item)


async def consume_progress(
    reporter: ProgressReporter,
    on_message: Callable[[str], None] | None = None,
) -> list[str]:
    """Drain a reporter until it is closed.

    Args:
        reporter: Reporter to drain
        on_message: Optional callback invoked for each message

    Returns:
        All messages received, in order
    """
    messages: list[str] = []
    async for message in reporter:
        logger.info(message)
        messages.append(message)
        if on_message:
            on_message(message)
    return messages
