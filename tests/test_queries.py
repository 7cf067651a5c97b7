from itertools import islice

from budgetcore.analytics import by_month
from budgetcore.domain import Budget, Transaction
from budgetcore.filters import by_budget, by_category, by_date_range, by_month as in_month, by_type
from budgetcore.queries import (
    budget_choices,
    budget_label,
    distinct_categories,
    filter_by_category,
    iter_transactions,
    recent_months,
    recent_transactions,
)


def make_sample():
    budgets = (Budget("b1", "Groceries", 30000, "#10b981", 5700, "2025-11-01"),)
    trans = (
        Transaction("t1", "b1", -2500, "expense", "Food", "2025-11-03"),
        Transaction("t2", None, 85000, "income", "Salary", "2025-11-01"),
        Transaction("t3", "gone", -4500, "expense", "Entertainment", "2025-10-02"),
        Transaction("t4", "b1", -3200, "expense", "Food", "2025-09-01"),
    )
    return budgets, trans


def test_predicates():
    _, trans = make_sample()
    assert [t.id for t in filter(by_category("Food"), trans)] == ["t1", "t4"]
    assert [t.id for t in filter(by_type("income"), trans)] == ["t2"]
    assert [t.id for t in filter(by_budget(None), trans)] == ["t2"]
    assert [t.id for t in filter(by_date_range("2025-10-01", "2025-11-01"), trans)] == ["t2", "t3"]
    assert [t.id for t in filter(in_month("2025-11"), trans)] == ["t1", "t2"]


def test_iter_transactions_is_lazy():
    _, trans = make_sample()
    calls = {"n": 0}

    def pred(t):
        calls["n"] += 1
        return t.is_expense

    first = list(islice(iter_transactions(trans, pred), 1))
    assert [t.id for t in first] == ["t1"]
    assert calls["n"] == 1


def test_filter_by_category_all():
    _, trans = make_sample()
    assert tuple(filter_by_category(trans, "all")) == trans
    assert tuple(filter_by_category(trans, None)) == trans
    assert [t.id for t in filter_by_category(trans, "Salary")] == ["t2"]
    assert list(filter_by_category(trans, "salary")) == []


def test_recent_transactions_newest_first():
    _, trans = make_sample()
    assert [t.id for t in recent_transactions(trans, 2)] == ["t4", "t3"]
    assert len(recent_transactions(trans)) == 4
    assert recent_transactions(trans, 0) == ()


def test_distinct_categories_first_seen():
    _, trans = make_sample()
    assert distinct_categories(trans) == ("Food", "Salary", "Entertainment")


def test_budget_label_handles_missing_and_dangling():
    budgets, trans = make_sample()
    assert budget_label(trans[0], budgets) == "Groceries"
    assert budget_label(trans[1], budgets) == "No budget"
    assert budget_label(trans[2], budgets) == "No budget"


def test_budget_choices_keyed_by_id_with_repeated_names():
    budgets = (
        Budget("a1b2c3d4e5", "Food", 100, "#fff", 0, "2025-11-01"),
        Budget("f6g7h8i9j0", "Food", 200, "#fff", 0, "2025-11-01"),
        Budget("r1", "Rent", 300, "#fff", 0, "2025-11-01"),
    )
    choices = budget_choices(budgets)

    assert list(choices) == ["a1b2c3d4e5", "f6g7h8i9j0", "r1"]
    assert choices["a1b2c3d4e5"] == "Food (a1b2c3d4)"
    assert choices["f6g7h8i9j0"] == "Food (f6g7h8i9)"
    assert choices["r1"] == "Rent"


def test_recent_months_caps_and_reverses():
    _, trans = make_sample()
    series = by_month(trans)
    assert [key for key, _ in recent_months(series, 2)] == ["2025-11", "2025-10"]
    assert len(recent_months(series)) == 3
    # the engine's full series is untouched
    assert [key for key, _ in series] == ["2025-09", "2025-10", "2025-11"]
