import threading

import pytest

from budgetcore.analytics import Totals
from budgetcore.domain import Snapshot
from budgetcore.errors import NotFound, ValidationError
from budgetcore.events import (
    BUDGET_CREATED,
    SNAPSHOT_CHANGED,
    TRANSACTION_CREATED,
    EventBus,
)
from budgetcore.ledger import invariant_violations
from budgetcore.services import DEFAULT_SECTIONS, BudgetTracker, ReportService


def test_tracker_applies_mutations():
    tracker = BudgetTracker()
    budget = tracker.create_budget("Groceries", 30000)
    tracker.create_transaction("expense", 2500, "Food", budget.id, notes="Weekly", payment_method="card")

    snap = tracker.snapshot
    assert snap.budgets[0].spent == 2500
    assert snap.transactions[0].notes == "Weekly"
    assert snap.transactions[0].payment_method == "card"


def test_tracker_update_and_delete():
    tracker = BudgetTracker()
    budget = tracker.create_budget("Groceries", 30000, "#3b82f6")
    assert budget.color == "#3b82f6"

    updated = tracker.update_budget(budget.id, name="Food")
    assert updated.name == "Food"

    tx = tracker.create_transaction("expense", 10, "Food", budget.id)
    tracker.delete_transaction(tx.id)
    tracker.delete_budget(budget.id)
    assert tracker.snapshot == Snapshot()


def test_tracker_failure_keeps_state_and_history():
    tracker = BudgetTracker()
    tracker.create_budget("Groceries", 100)
    before = tracker.snapshot

    with pytest.raises(ValidationError):
        tracker.create_transaction("expense", -1, "Food")
    with pytest.raises(NotFound):
        tracker.delete_budget("missing")

    assert tracker.snapshot is before
    assert tracker.undo() is True
    assert tracker.undo() is False


def test_tracker_undo_restores_previous_snapshot():
    tracker = BudgetTracker()
    budget = tracker.create_budget("Groceries", 100)
    tracker.create_transaction("expense", 40, "Food", budget.id)

    assert tracker.undo() is True
    assert tracker.snapshot.transactions == ()
    assert tracker.snapshot.budgets[0].spent == 0


def test_tracker_history_is_bounded():
    tracker = BudgetTracker(history_size=2)
    for i in range(5):
        tracker.create_budget(f"B{i}", 10)

    assert tracker.undo() and tracker.undo()
    assert not tracker.can_undo
    assert len(tracker.snapshot.budgets) == 3


def test_tracker_publishes_events():
    bus = EventBus()
    seen = []
    bus.subscribe(BUDGET_CREATED, lambda e: seen.append((e.name, e.payload["budget"].name)))
    bus.subscribe(TRANSACTION_CREATED, lambda e: seen.append((e.name, e.payload["transaction"].amount)))
    bus.subscribe(SNAPSHOT_CHANGED, lambda e: seen.append((e.name, e.payload["cause"])))

    tracker = BudgetTracker(bus=bus)
    tracker.create_budget("Groceries", 100)
    tracker.create_transaction("income", 50, "Salary")
    tracker.undo()

    assert seen == [
        (BUDGET_CREATED, "Groceries"),
        (SNAPSHOT_CHANGED, BUDGET_CREATED),
        (TRANSACTION_CREATED, 50),
        (SNAPSHOT_CHANGED, TRANSACTION_CREATED),
        (SNAPSHOT_CHANGED, "UNDO"),
    ]


def test_tracker_serializes_concurrent_writers():
    tracker = BudgetTracker(history_size=1000)
    budget = tracker.create_budget("Shared", 100000)

    def spend():
        for _ in range(50):
            tracker.create_transaction("expense", 3, "Food", budget.id)

    threads = [threading.Thread(target=spend) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snap = tracker.snapshot
    assert len(snap.transactions) == 200
    assert snap.budgets[0].spent == 600
    assert invariant_violations(snap) == ()


def test_report_service_default_sections():
    tracker = BudgetTracker()
    budget = tracker.create_budget("Groceries", 1000)
    tracker.create_transaction("expense", 250, "Food", budget.id)
    tracker.create_transaction("income", 1000, "Salary")

    rpt = ReportService().report(tracker.snapshot)
    assert [s["section"] for s in rpt["steps"]] == [name for name, _ in DEFAULT_SECTIONS]
    assert rpt["result"]["totals"] == Totals(1000, 250, 750)
    assert rpt["result"]["categories"][0].percentage == 100.0
    assert rpt["result"]["budgets"][0].utilization.percentage == 25.0


def test_report_service_records_failing_section():
    def boom(snapshot):
        raise RuntimeError("oops")

    svc = ReportService(sections=[("boom", boom), ("count", lambda s: len(s.transactions))])
    rpt = svc.report(Snapshot())
    assert "oops" in rpt["result"]["boom"]["error"]
    assert rpt["result"]["count"] == 0


def test_dashboard_is_memoized_per_snapshot():
    calls = {"n": 0}

    def counting(snapshot):
        calls["n"] += 1
        return len(snapshot.budgets)

    svc = ReportService(sections=[("budgets", counting)])
    snap = Snapshot()
    assert svc.dashboard(snap) == {"budgets": 0}
    assert svc.dashboard(Snapshot()) == {"budgets": 0}
    assert calls["n"] == 1
