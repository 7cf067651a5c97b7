from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple

from budgetcore.logging_config import get_logger

__all__ = [
    'Event', 'EventBus', 'Handler',
    'BUDGET_CREATED', 'BUDGET_UPDATED', 'BUDGET_DELETED',
    'TRANSACTION_CREATED', 'TRANSACTION_DELETED', 'SNAPSHOT_CHANGED',
]

logger = get_logger(__name__)

BUDGET_CREATED = "BUDGET_CREATED"
BUDGET_UPDATED = "BUDGET_UPDATED"
BUDGET_DELETED = "BUDGET_DELETED"
TRANSACTION_CREATED = "TRANSACTION_CREATED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
SNAPSHOT_CHANGED = "SNAPSHOT_CHANGED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event], Any]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[Any]:
        """Call every handler subscribed to `name` in subscription order.

        Handler exceptions propagate to the publisher.
        """
        handlers = list(self._subscribers.get(name, []))
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("Publishing %s to %d handler(s)", name, len(handlers))
        return [handler(event) for handler in handlers]
