# src/tasklist/core/events.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")

_CLOSED = object()


class EventChannel(Generic[E]):
    """
    One-shot event delivery.

    - unbounded, order preserving
    - events sent while nobody listens are queued, not dropped
    - each event is handed to exactly one consumer, exactly once
    - only one consumer may be attached at a time

    Must be used from the event loop thread.
    """

    def __init__(self, name: str = "events") -> None:
        self._name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._consumer_attached = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, event: E) -> None:
        if self._closed:
            logger.debug("Channel %s closed; dropping event %r", self._name, event)
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Release the channel. A waiting consumer finishes; queued events are discarded."""
        if self._closed:
            return
        self._closed = True
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        if dropped:
            logger.debug("Channel %s closed with %d undelivered events", self._name, dropped)
        self._queue.put_nowait(_CLOSED)

    async def receive(self) -> E:
        """
        Wait for the next event. Raises EOFError once the channel is closed.

        For consumers that pull one event at a time; refused while an
        `async for` consumer owns the channel.
        """
        if self._consumer_attached:
            raise RuntimeError(f"event channel {self._name} already has a consumer")
        return await self._next()

    async def _next(self) -> E:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the sentinel for anyone else still waiting.
            self._queue.put_nowait(_CLOSED)
            raise EOFError(f"event channel {self._name} is closed")
        return item  # type: ignore[return-value]

    async def __aiter__(self) -> AsyncIterator[E]:
        if self._consumer_attached:
            raise RuntimeError(f"event channel {self._name} already has a consumer")
        self._consumer_attached = True
        try:
            while True:
                try:
                    yield await self._next()
                except EOFError:
                    return
        finally:
            self._consumer_attached = False
