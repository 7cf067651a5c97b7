import threading
from collections import deque
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from budgetcore import analytics, ledger
from budgetcore.domain import Budget, Snapshot, Transaction
from budgetcore.events import (
    BUDGET_CREATED,
    BUDGET_DELETED,
    BUDGET_UPDATED,
    SNAPSHOT_CHANGED,
    TRANSACTION_CREATED,
    TRANSACTION_DELETED,
    EventBus,
)
from budgetcore.logging_config import get_logger

logger = get_logger(__name__)


class BudgetTracker:
    """Single owner of the current snapshot.

    Mutations are serialized through a lock, each one replaces the snapshot
    with the value returned by the ledger, and the replaced value is kept in a
    bounded history for `undo`. Subscribers on the bus hear about every change
    (the app persists on SNAPSHOT_CHANGED).
    """

    def __init__(self, snapshot: Snapshot = Snapshot(), *, bus: Optional[EventBus] = None, history_size: int = 50):
        self._snapshot = snapshot
        self._history: deque = deque(maxlen=history_size)
        self._lock = threading.Lock()
        self.bus = bus or EventBus()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def _commit(self, operation: Callable[[Snapshot], Tuple[Any, Snapshot]]) -> Tuple[Any, Snapshot]:
        with self._lock:
            record, new_snapshot = operation(self._snapshot)
            self._history.append(self._snapshot)
            self._snapshot = new_snapshot
        return record, new_snapshot

    def _announce(self, name: str, payload: dict, snapshot: Snapshot) -> None:
        self.bus.publish(name, payload)
        self.bus.publish(SNAPSHOT_CHANGED, {"cause": name, "snapshot": snapshot})

    def create_budget(self, name: str, monthly_limit, color: Optional[str] = None, **kwargs) -> Budget:
        if color is not None:
            kwargs["color"] = color
        budget, snap = self._commit(
            lambda s: ledger.create_budget(s, name, monthly_limit, **kwargs)
        )
        self._announce(BUDGET_CREATED, {"budget": budget}, snap)
        return budget

    def update_budget(self, budget_id: str, **fields) -> Budget:
        budget, snap = self._commit(
            lambda s: ledger.update_budget(s, budget_id, **fields)
        )
        self._announce(BUDGET_UPDATED, {"budget": budget}, snap)
        return budget

    def delete_budget(self, budget_id: str) -> None:
        _, snap = self._commit(lambda s: (None, ledger.delete_budget(s, budget_id)))
        self._announce(BUDGET_DELETED, {"budget_id": budget_id}, snap)

    def create_transaction(self, type: str, amount, category: str, budget_id: Optional[str] = None, **kwargs) -> Transaction:
        transaction, snap = self._commit(
            lambda s: ledger.create_transaction(s, type, amount, category, budget_id, **kwargs)
        )
        self._announce(TRANSACTION_CREATED, {"transaction": transaction}, snap)
        return transaction

    def delete_transaction(self, transaction_id: str) -> None:
        _, snap = self._commit(
            lambda s: (None, ledger.delete_transaction(s, transaction_id))
        )
        self._announce(TRANSACTION_DELETED, {"transaction_id": transaction_id}, snap)

    def undo(self) -> bool:
        with self._lock:
            if not self._history:
                return False
            self._snapshot = self._history.pop()
            snap = self._snapshot
        logger.info("Undo restored previous snapshot")
        self.bus.publish(SNAPSHOT_CHANGED, {"cause": "UNDO", "snapshot": snap})
        return True


Section = Tuple[str, Callable[[Snapshot], Any]]

DEFAULT_SECTIONS: Tuple[Section, ...] = (
    ("totals", lambda s: analytics.totals(s.transactions)),
    ("categories", lambda s: analytics.category_shares(s.transactions)),
    ("months", lambda s: analytics.by_month(s.transactions)),
    ("budgets", lambda s: analytics.budget_performance(s.budgets)),
)


def _run_sections(sections: Sequence[Section], snapshot: Snapshot) -> Dict[str, Any]:
    report = {"steps": [], "result": {}}
    for name, section in sections:
        try:
            out = section(snapshot)
        except Exception as e:
            logger.exception("Report section %s failed", name)
            out = {"error": f"{type(e).__name__}: {e}"}
        report["steps"].append({"section": name, "output": out})
        report["result"][name] = out
    return report


@lru_cache(maxsize=32)
def _cached_result(sections: Tuple[Section, ...], snapshot: Snapshot) -> Dict[str, Any]:
    return _run_sections(sections, snapshot)["result"]


class ReportService:
    """Facade that runs named analytics sections over a snapshot."""

    def __init__(self, sections: Sequence[Section] = DEFAULT_SECTIONS):
        self.sections = tuple(sections)

    def report(self, snapshot: Snapshot) -> Dict[str, Any]:
        """Return every section's output plus the per-step trace."""
        return _run_sections(self.sections, snapshot)

    def dashboard(self, snapshot: Snapshot) -> Dict[str, Any]:
        """Memoized per (sections, snapshot); treat the result as read-only."""
        return _cached_result(self.sections, snapshot)
