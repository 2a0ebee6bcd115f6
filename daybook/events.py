"""
Change notifications.

The store publishes a ChangeEvent after every committed mutation.
Subscribers re-read through the store and the pure query functions;
the event only says that something changed and where.
"""

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A committed mutation on one slot."""
    slot: str
    action: str             # add, update, delete, replace
    ids: tuple[str, ...] = ()


Listener = Callable[[ChangeEvent], None]


class ChangeFeed:
    """
    Fire-and-forget fan-out of change events.

    Listener errors are logged and never reach the writer: a mutation
    that has been persisted stays committed regardless of what its
    observers do.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Change listener failed on %s/%s: %s",
                               event.slot, event.action, e)

    def __len__(self) -> int:
        return len(self._listeners)
