from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObservableStore(Generic[T]):
    """Holds a value and notifies subscribers on every change.

    Constructed and injected by whoever owns the state instead of living as a
    module-level listener set.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        for fn in list(self._listeners):
            try:
                fn(value)
            except Exception:
                logger.exception("Session listener %r failed", fn)

    def subscribe(self, fn: Callable[[T], None]) -> Callable[[], None]:
        self._listeners.append(fn)

        def unsubscribe() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return unsubscribe
