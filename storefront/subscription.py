"""Explicit push-subscription primitive used by the stores."""

from __future__ import annotations

import logging
from itertools import count
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Unsubscribe = Callable[[], None]
ErrorListener = Callable[[Exception], None]

logger = logging.getLogger(__name__)


class Broadcaster(Generic[T]):
    """Deliver full-state values (or errors) to registered listeners."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._listeners: dict[int, tuple[Callable[[T], None], ErrorListener | None]] = {}
        self._ids = count(1)

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, on_value: Callable[[T], None], on_error: ErrorListener | None = None) -> Unsubscribe:
        token = next(self._ids)
        self._listeners[token] = (on_value, on_error)

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def publish(self, value: T) -> None:
        for on_value, _ in list(self._listeners.values()):
            try:
                on_value(value)
            except Exception:
                logger.exception("listener failed channel=%s", self.name)

    def publish_error(self, exc: Exception) -> None:
        for _, on_error in list(self._listeners.values()):
            if on_error is None:
                continue
            try:
                on_error(exc)
            except Exception:
                logger.exception("error listener failed channel=%s", self.name)
