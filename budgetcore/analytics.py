"""Read-only aggregations over ledger snapshots.

Nothing here mutates its input or keeps state between calls.
"""

from typing import Iterable, List, NamedTuple, Tuple

from budgetcore.domain import INCOME, Amount, Budget, Snapshot, Transaction
from budgetcore.functional import safe_budget


class Totals(NamedTuple):
    income: Amount
    expenses: Amount
    net: Amount


class MonthTotals(NamedTuple):
    income: Amount
    expenses: Amount


class CategoryShare(NamedTuple):
    category: str
    amount: Amount
    percentage: float


class Utilization(NamedTuple):
    percentage: float     # not clamped; may exceed 100
    is_over_budget: bool


class BudgetPerformance(NamedTuple):
    budget: Budget
    utilization: Utilization
    remaining: Amount     # negative once over budget


def totals(trans: Iterable[Transaction]) -> Totals:
    income = 0
    expenses = 0
    for t in trans:
        if t.type == INCOME:
            income += t.amount
        elif t.is_expense:
            expenses += t.magnitude
    return Totals(income=income, expenses=expenses, net=income - expenses)


def by_category(trans: Iterable[Transaction]) -> dict[str, Amount]:
    """Expense magnitude per raw category label, largest first.

    Ties keep the order in which categories were first seen.
    """
    grouped: dict[str, Amount] = {}
    for t in trans:
        if t.is_expense:
            grouped[t.category] = grouped.get(t.category, 0) + t.magnitude
    # sorted() is stable, so equal totals stay in first-seen order
    return dict(sorted(grouped.items(), key=lambda item: item[1], reverse=True))


def share(amount: Amount, total: Amount) -> float:
    if total == 0:
        return 0.0
    return amount / total * 100


def category_shares(trans: Iterable[Transaction]) -> List[CategoryShare]:
    grouped = by_category(trans)
    grand_total = sum(grouped.values())
    return [
        CategoryShare(category, amount, share(amount, grand_total))
        for category, amount in grouped.items()
    ]


def by_month(trans: Iterable[Transaction]) -> List[Tuple[str, MonthTotals]]:
    """Income/expense per calendar month (`YYYY-MM`), oldest month first.

    Returns the full series; trimming to recent months is up to the caller.
    """
    months: dict[str, list] = {}
    for t in trans:
        bucket = months.setdefault(t.month, [0, 0])
        if t.type == INCOME:
            bucket[0] += t.amount
        else:
            bucket[1] += t.magnitude

    return [(key, MonthTotals(*months[key])) for key in sorted(months)]


def budget_utilization(budget: Budget) -> Utilization:
    return Utilization(
        percentage=share(budget.spent, budget.monthly_limit),
        is_over_budget=budget.spent > budget.monthly_limit,
    )


def utilization_for(snapshot: Snapshot, budget_id: str) -> Utilization:
    """Utilization of a budget by id; raises NotFound for unknown/deleted ids."""
    return safe_budget(snapshot.budgets, budget_id).map(budget_utilization).unwrap()


def budget_performance(budgets: Iterable[Budget]) -> List[BudgetPerformance]:
    return [
        BudgetPerformance(
            budget=b,
            utilization=budget_utilization(b),
            remaining=b.monthly_limit - b.spent,
        )
        for b in budgets
    ]
