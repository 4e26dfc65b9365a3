"""Observable state container.

Constructed once by the application and passed by reference to everything that
needs to share the state, instead of hiding it in module-level variables.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

S = TypeVar("S")


class Store(Generic[S]):
    """Holds one state value and notifies subscribers whenever it is replaced."""

    def __init__(self, initial: S) -> None:
        self._state = initial
        self._listeners: list[Callable[[S], None]] = []

    @property
    def state(self) -> S:
        return self._state

    def set(self, state: S) -> None:
        self._state = state
        self.notify()

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)
