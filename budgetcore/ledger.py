"""Ledger mutations over immutable snapshots.

Every operation takes the current `Snapshot` and returns a new one; the
input is never modified. A budget's `spent` only changes here, together with
the transaction insert/delete that causes it, so a returned snapshot always
satisfies: spent == sum of |amount| over linked expense transactions.
"""

from dataclasses import replace
from datetime import date
from typing import Optional, Tuple
from uuid import uuid4

from budgetcore.domain import (
    DEFAULT_COLOR,
    DEFAULT_PAYMENT_METHOD,
    EXPENSE,
    INCOME,
    Amount,
    Budget,
    Snapshot,
    Transaction,
)
from budgetcore.errors import LedgerError, ValidationError
from budgetcore.functional import (
    Either,
    check_budget,
    safe_budget,
    safe_transaction,
    validate_budget_fields,
    validate_transaction_input,
)
from budgetcore.logging_config import get_logger

logger = get_logger(__name__)

MUTABLE_BUDGET_FIELDS = ("name", "monthly_limit", "color")


def _unwrap(result: Either, operation: str):
    try:
        return result.unwrap()
    except LedgerError as exc:
        logger.warning("%s rejected: %s", operation, exc)
        raise


def _today(today: Optional[date]) -> str:
    return (today or date.today()).isoformat()


def _fresh_id(existing_ids: set, new_id: Optional[str], field: str) -> str:
    if new_id is None:
        return uuid4().hex
    if new_id in existing_ids:
        raise ValidationError(f"{field} {new_id} already exists", field)
    return new_id


def _adjust_spent(
    budgets: Tuple[Budget, ...], budget_id: Optional[str], delta: Amount
) -> Tuple[Budget, ...]:
    return tuple(
        replace(b, spent=max(0, b.spent + delta)) if b.id == budget_id else b
        for b in budgets
    )


def create_budget(
    snapshot: Snapshot,
    name: str,
    monthly_limit: Amount,
    color: str = DEFAULT_COLOR,
    *,
    today: Optional[date] = None,
    new_id: Optional[str] = None,
) -> Tuple[Budget, Snapshot]:
    _unwrap(
        validate_budget_fields({"name": name, "monthly_limit": monthly_limit}),
        "create_budget",
    )
    # ids still referenced by transactions stay reserved
    taken = {b.id for b in snapshot.budgets} | {t.budget_id for t in snapshot.transactions if t.budget_id}
    budget_id = _fresh_id(taken, new_id, "budget id")

    budget = Budget(
        id=budget_id,
        name=name,
        monthly_limit=monthly_limit,
        color=color,
        spent=0,
        start_date=_today(today),
    )
    logger.info("Budget created", extra={"budget_id": budget.id, "budget_name": name})
    return budget, replace(snapshot, budgets=snapshot.budgets + (budget,))


def update_budget(snapshot: Snapshot, budget_id: str, **fields) -> Tuple[Budget, Snapshot]:
    """Apply name / monthly_limit / color changes.

    Any other key, `spent` included, is dropped rather than applied.
    """
    current = _unwrap(safe_budget(snapshot.budgets, budget_id), "update_budget")
    changes = {k: v for k, v in fields.items() if k in MUTABLE_BUDGET_FIELDS}
    ignored = sorted(set(fields) - set(changes))
    if ignored:
        logger.debug("update_budget ignoring fields %s", ignored)
    _unwrap(validate_budget_fields(changes), "update_budget")

    updated = replace(current, **changes)
    budgets = tuple(updated if b.id == budget_id else b for b in snapshot.budgets)
    logger.info("Budget updated", extra={"budget_id": budget_id, "fields": sorted(changes)})
    return updated, replace(snapshot, budgets=budgets)


def delete_budget(snapshot: Snapshot, budget_id: str) -> Snapshot:
    # linked transactions are kept; their budget_id becomes a dangling reference
    _unwrap(safe_budget(snapshot.budgets, budget_id), "delete_budget")
    logger.info("Budget deleted", extra={"budget_id": budget_id})
    return replace(
        snapshot,
        budgets=tuple(b for b in snapshot.budgets if b.id != budget_id),
    )


def create_transaction(
    snapshot: Snapshot,
    type: str,
    amount: Amount,
    category: str,
    budget_id: Optional[str] = None,
    notes: Optional[str] = "",
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    *,
    today: Optional[date] = None,
    new_id: Optional[str] = None,
) -> Tuple[Transaction, Snapshot]:
    _unwrap(
        validate_transaction_input(type, amount, category, payment_method),
        "create_transaction",
    )
    transaction_id = _fresh_id(
        {t.id for t in snapshot.transactions}, new_id, "transaction id"
    )
    if type == INCOME or not budget_id:
        budget_id = None

    transaction = Transaction(
        id=transaction_id,
        budget_id=budget_id,
        amount=amount if type == INCOME else -amount,
        type=type,
        category=category,
        date=_today(today),
        notes=notes or "",
        payment_method=payment_method,
    )

    budgets = snapshot.budgets
    if type == EXPENSE and budget_id is not None:
        if safe_budget(budgets, budget_id).is_right():
            budgets = _adjust_spent(budgets, budget_id, amount)
        else:
            logger.info(
                "Expense references unknown budget; recorded without budget update",
                extra={"transaction_id": transaction_id, "budget_id": budget_id},
            )

    logger.info(
        "Transaction created",
        extra={"transaction_id": transaction_id, "type": type, "budget_id": budget_id},
    )
    return transaction, Snapshot(
        budgets=budgets,
        transactions=snapshot.transactions + (transaction,),
    )


def delete_transaction(snapshot: Snapshot, transaction_id: str) -> Snapshot:
    transaction = _unwrap(
        safe_transaction(snapshot.transactions, transaction_id), "delete_transaction"
    )

    budgets = snapshot.budgets
    if transaction.is_expense and transaction.budget_id is not None:
        # floored at zero inside _adjust_spent
        budgets = _adjust_spent(budgets, transaction.budget_id, -transaction.magnitude)

    logger.info("Transaction deleted", extra={"transaction_id": transaction_id})
    return Snapshot(
        budgets=budgets,
        transactions=tuple(t for t in snapshot.transactions if t.id != transaction_id),
    )


def recompute_spent(trans: Tuple[Transaction, ...], budget_id: str) -> Amount:
    return sum(
        t.magnitude for t in trans if t.is_expense and t.budget_id == budget_id
    )


def invariant_violations(snapshot: Snapshot) -> Tuple[dict, ...]:
    """Budgets whose stored `spent` disagrees with their transactions."""
    results = (check_budget(b, snapshot.transactions) for b in snapshot.budgets)
    return tuple(r.get_error() for r in results if r.is_left())
