"""
In-process event bus for engagement domain events.

Services publish after a successful write; subscribers (auto-favorite,
engagement score cache, presentation layers) register per event name.
A failing subscriber is logged and does not affect the publisher or other
subscribers.
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

# Event names
VIEW_RECORDED = "view.recorded"
PROGRESS_UPDATED = "progress.updated"
PROGRESS_COMPLETED = "progress.completed"
PROGRESS_RESET = "progress.reset"
FAVORITE_ADDED = "favorite.added"
FAVORITE_REMOVED = "favorite.removed"
FAVORITES_CLEARED = "favorites.cleared"
HISTORY_CLEARED = "history.cleared"
INTERACTION_RECORDED = "interaction.recorded"

Handler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register handler for event; returns a callable that unsubscribes it."""
        self._handlers[event].append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return _unsubscribe

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        """Call every handler for event in subscription order."""
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("[events] handler for %s failed", event)
