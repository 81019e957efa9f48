"""
Snapshot store: holds one immutable state object and replaces it whole.
"""
from dataclasses import replace
from typing import Any, Callable, Generic, TypeVar

S = TypeVar("S")

Listener = Callable[[Any], None]


class SnapshotStore(Generic[S]):
    """
    Base for stores whose state is a frozen dataclass.

    Each commit builds a new snapshot with dataclasses.replace and swaps it in
    with a single assignment, then calls subscribers with the new snapshot.
    """

    def __init__(self, initial: S):
        self._state = initial
        self._listeners: list[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes) -> S:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state
