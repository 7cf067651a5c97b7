from itertools import islice
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple, TypeVar

from budgetcore.domain import Budget, Transaction
from budgetcore.filters import by_category

T = TypeVar("T")

ALL_CATEGORIES = "all"
NO_BUDGET_LABEL = "No budget"


def iter_transactions(
    trans: Iterable[Transaction], pred: Callable[[Transaction], bool]
) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t


def filter_by_category(
    trans: Iterable[Transaction], category: Optional[str]
) -> Iterator[Transaction]:
    if category is None or category == ALL_CATEGORIES:
        return iter(trans)
    return iter_transactions(trans, by_category(category))


def recent_transactions(trans: Sequence[Transaction], limit: int = 10) -> Tuple[Transaction, ...]:
    """Newest first, where newest means most recently appended."""
    return tuple(islice(reversed(trans), max(0, limit)))


def distinct_categories(trans: Iterable[Transaction]) -> Tuple[str, ...]:
    seen: dict[str, None] = {}
    for t in trans:
        seen.setdefault(t.category, None)
    return tuple(seen)


def budget_label(t: Transaction, budgets: Iterable[Budget]) -> str:
    """Name of the linked budget; absent and dangling references read as no budget."""
    if t.budget_id is None:
        return NO_BUDGET_LABEL
    names = {b.id: b.name for b in budgets}
    return names.get(t.budget_id, NO_BUDGET_LABEL)


def budget_choices(budgets: Iterable[Budget]) -> dict[str, str]:
    """Selector labels keyed by budget id; repeated names get the id appended."""
    budgets = tuple(budgets)
    counts: dict[str, int] = {}
    for b in budgets:
        counts[b.name] = counts.get(b.name, 0) + 1
    return {
        b.id: b.name if counts[b.name] == 1 else f"{b.name} ({b.id[:8]})"
        for b in budgets
    }


def recent_months(series: Sequence[Tuple[str, T]], limit: int = 6) -> list[Tuple[str, T]]:
    """Most recent months first, capped; takes a `by_month` series."""
    return list(islice(reversed(series), max(0, limit)))
