"""Synchronous listener registry for store snapshots."""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

Listener = Callable[[T], None]

_logger = logging.getLogger(__name__)


class Listeners(Generic[T]):
    """Holds subscribers and delivers each new snapshot to all of them."""

    def __init__(self) -> None:
        self._listeners: list[Listener[T]] = []

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        """Deliver ``snapshot``; a failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.exception("Store listener failed")

    def __len__(self) -> int:
        return len(self._listeners)
