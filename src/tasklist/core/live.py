# src/tasklist/core/live.py

from __future__ import annotations

"""
Push-based observable values.

LiveValue holds a current value and pushes every *distinct* new value to its
subscribers. Subscribers get the current value immediately on subscribe (unless
replay=False) and are detached by closing the returned Subscription.

Listeners run synchronously in the thread that called set(); async consumers
are expected to hop onto their own loop (see TaskFeed).
"""

import itertools
import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
A = TypeVar("A")
B = TypeVar("B")
R = TypeVar("R")

Listener = Callable[[T], None]


class Subscription:
    """Handle returned by LiveValue.subscribe(); close() is idempotent."""

    def __init__(self, on_close: Callable[[], None]) -> None:
        self._on_close: Callable[[], None] | None = on_close

    @property
    def closed(self) -> bool:
        return self._on_close is None

    def close(self) -> None:
        cb, self._on_close = self._on_close, None
        if cb is not None:
            cb()


class LiveValue(Generic[T]):
    def __init__(self, initial: T, *, name: str = "") -> None:
        self._value = initial
        self._name = name or type(self).__name__
        self._listeners: dict[int, Listener[T]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> bool:
        """
        Publish a new value.

        Returns False (and notifies nobody) when value equals the current one.
        """
        return self.update(lambda _old: value)

    def update(self, fn: Callable[[T], T]) -> bool:
        """Atomically derive the next value from the current one and publish it."""
        with self._lock:
            value = fn(self._value)
            if value == self._value:
                return False
            self._value = value
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("LiveValue listener failed name=%s", self._name)
        return True

    def subscribe(self, listener: Listener[T], *, replay: bool = True) -> Subscription:
        with self._lock:
            key = next(self._ids)
            self._listeners[key] = listener
            current = self._value

        if replay:
            listener(current)

        def _remove() -> None:
            with self._lock:
                self._listeners.pop(key, None)

        return Subscription(_remove)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def __repr__(self) -> str:
        return f"LiveValue({self._name}={self._value!r})"


class CombinedValue(LiveValue[R]):
    """
    Latest-value combination of two LiveValues.

    Recomputes on every change of either source; equal results are dropped by
    LiveValue.set, so an unchanged combination never reaches subscribers.
    """

    def __init__(
        self,
        first: LiveValue[A],
        second: LiveValue[B],
        combine: Callable[[A, B], R],
        *,
        name: str = "",
    ) -> None:
        super().__init__(combine(first.value, second.value), name=name)
        self._first = first
        self._second = second
        self._combine = combine
        self._sources = [
            first.subscribe(self._recompute, replay=False),
            second.subscribe(self._recompute, replay=False),
        ]

    def _recompute(self, _changed: object) -> None:
        self.set(self._combine(self._first.value, self._second.value))

    def detach(self) -> None:
        """Stop following the sources."""
        for sub in self._sources:
            sub.close()
        self._sources.clear()


def combine_latest(
    first: LiveValue[A],
    second: LiveValue[B],
    combine: Callable[[A, B], R],
    *,
    name: str = "",
) -> CombinedValue[R]:
    return CombinedValue(first, second, combine, name=name)
