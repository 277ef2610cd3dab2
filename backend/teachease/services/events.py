"""
In-process change notification for record collections.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Set

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def _name(collection) -> str:
    return getattr(collection, "value", collection)


class ChangeNotifier:
    """Per-collection listener registry owned by a single record store.

    Listeners are called synchronously with no payload; they are expected to
    re-read the collection they care about.
    """

    def __init__(self):
        self._listeners: Dict[str, Set[Listener]] = defaultdict(set)

    def subscribe(self, collection: str, callback: Listener) -> Callable[[], None]:
        """Register callback for collection and return its unsubscribe function."""
        self._listeners[_name(collection)].add(callback)

        def unsubscribe():
            self._listeners[_name(collection)].discard(callback)

        return unsubscribe

    def notify(self, collection: str):
        """Call every listener of collection; a failing listener never stops the rest."""
        for callback in list(self._listeners.get(_name(collection), ())):
            try:
                callback()
            except Exception as e:
                logger.error(f"Listener for '{collection}' raised: {e}")

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(_name(collection), ()))
