import asyncio
from typing import Dict, Iterable, List

from budgetcore import analytics
from budgetcore.domain import Budget, Snapshot, Transaction
from budgetcore.filters import by_month


async def expenses_by_month(trans: Iterable[Transaction], months: List[str]) -> Dict[str, int]:
    """Compute total expenses per month concurrently for the given months.

    months: list of YYYY-MM strings (e.g., '2025-11')
    Returns mapping month -> total expense magnitude; months with no
    expenses map to 0.
    """
    trans = tuple(trans)

    async def month_total(month: str) -> tuple[str, int]:
        in_month = filter(by_month(month), trans)
        total = analytics.totals(in_month).expenses
        await asyncio.sleep(0)  # cooperate
        return month, total

    results = await asyncio.gather(*(month_total(m) for m in months))
    return dict(results)


async def utilization_report(budgets: Iterable[Budget]) -> Dict[str, analytics.Utilization]:
    """Utilization per budget id, one task per budget."""
    async def one(b: Budget) -> tuple[str, analytics.Utilization]:
        await asyncio.sleep(0)
        return b.id, analytics.budget_utilization(b)

    results = await asyncio.gather(*(one(b) for b in budgets))
    return dict(results)


async def snapshot_report(snapshot: Snapshot) -> Dict[str, object]:
    """Totals, monthly expenses and utilization for a snapshot, gathered together.

    Safe to run alongside ledger mutations: the snapshot never changes.
    """
    months = [key for key, _ in analytics.by_month(snapshot.transactions)]

    async def totals() -> analytics.Totals:
        await asyncio.sleep(0)
        return analytics.totals(snapshot.transactions)

    total, monthly, utilization = await asyncio.gather(
        totals(),
        expenses_by_month(snapshot.transactions, months),
        utilization_report(snapshot.budgets),
    )
    return {"totals": total, "monthly_expenses": monthly, "utilization": utilization}
