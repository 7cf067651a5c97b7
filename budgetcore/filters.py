from typing import Callable, Optional

from budgetcore.domain import Transaction

Predicate = Callable[[Transaction], bool]


def by_category(category: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == category

    return _filter


def by_type(type: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.type == type

    return _filter


def by_budget(budget_id: Optional[str]) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.budget_id == budget_id

    return _filter


def by_date_range(start: str, end: str) -> Predicate:
    # ISO dates compare correctly as strings; both ends inclusive
    def _filter(t: Transaction) -> bool:
        return start <= t.date <= end

    return _filter


def by_month(month_key: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.month == month_key

    return _filter
