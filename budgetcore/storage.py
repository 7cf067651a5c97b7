"""JSON persistence for whole snapshots.

The document keeps the field names of the original browser store
(`monthlyLimit`, `budgetId`, ...). Entities have a closed schema: an unknown
field inside a budget or transaction is rejected, while unknown top-level
keys (such as a stored `user` block) are ignored.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from budgetcore.domain import (
    DEFAULT_COLOR,
    DEFAULT_PAYMENT_METHOD,
    INCOME,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
    Budget,
    Snapshot,
    Transaction,
)
from budgetcore.errors import ValidationError
from budgetcore.functional import (
    validate_amount,
    validate_choice,
    validate_limit,
    validate_non_negative,
    validate_text,
)
from budgetcore.ledger import invariant_violations
from budgetcore.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

BUDGET_KEYS = {
    "id": "id",
    "name": "name",
    "monthlyLimit": "monthly_limit",
    "color": "color",
    "spent": "spent",
    "startDate": "start_date",
}
TRANSACTION_KEYS = {
    "id": "id",
    "budgetId": "budget_id",
    "amount": "amount",
    "type": "type",
    "category": "category",
    "date": "date",
    "notes": "notes",
    "paymentMethod": "payment_method",
}


def _check_keys(raw: Any, allowed: dict, required: set, kind: str) -> None:
    if not isinstance(raw, dict):
        raise ValidationError(f"{kind} record must be an object, got {type(raw).__name__}", kind)
    unknown = sorted(set(raw) - set(allowed))
    if unknown:
        raise ValidationError(f"{kind} {raw.get('id')!r} has unknown fields: {', '.join(unknown)}", unknown[0])
    missing = sorted(required - set(raw))
    if missing:
        raise ValidationError(f"{kind} {raw.get('id')!r} is missing fields: {', '.join(missing)}", missing[0])


def budget_from_dict(raw: dict) -> Budget:
    _check_keys(raw, BUDGET_KEYS, {"id", "name", "monthlyLimit", "spent", "startDate"}, "budget")
    validate_text(raw["id"], "id").unwrap()
    validate_text(raw["name"], "name").unwrap()
    validate_limit(raw["monthlyLimit"]).unwrap()
    spent = validate_non_negative(raw["spent"], "spent").unwrap()
    validate_text(raw["startDate"], "startDate").unwrap()
    return Budget(
        id=raw["id"],
        name=raw["name"],
        monthly_limit=raw["monthlyLimit"],
        color=raw.get("color", DEFAULT_COLOR),
        spent=spent,
        start_date=raw["startDate"],
    )


def transaction_from_dict(raw: dict) -> Transaction:
    _check_keys(raw, TRANSACTION_KEYS, {"id", "amount", "type", "category", "date"}, "transaction")
    validate_text(raw["id"], "id").unwrap()
    type_ = validate_choice(raw["type"], TRANSACTION_TYPES, "type").unwrap()
    amount = raw["amount"]
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError(f"transaction {raw['id']!r}: amount must be a number", "amount")
    validate_amount(abs(amount)).unwrap()
    if (amount > 0) != (type_ == INCOME):
        raise ValidationError(
            f"transaction {raw['id']!r}: amount {amount} does not match type {type_}", "amount"
        )
    validate_text(raw["category"], "category").unwrap()
    validate_text(raw["date"], "date").unwrap()
    payment_method = validate_choice(
        raw.get("paymentMethod", DEFAULT_PAYMENT_METHOD), PAYMENT_METHODS, "paymentMethod"
    ).unwrap()

    # the original form stored "" for "no budget selected"
    budget_id = raw.get("budgetId") or None
    if budget_id is not None and type_ == INCOME:
        raise ValidationError(f"income transaction {raw['id']!r} cannot reference a budget", "budgetId")

    return Transaction(
        id=raw["id"],
        budget_id=budget_id,
        amount=amount,
        type=type_,
        category=raw["category"],
        date=raw["date"],
        notes=raw.get("notes") or "",
        payment_method=payment_method,
    )


def _unique(records: tuple, kind: str) -> tuple:
    seen = set()
    for r in records:
        if r.id in seen:
            raise ValidationError(f"duplicate {kind} id {r.id!r}", "id")
        seen.add(r.id)
    return records


def snapshot_from_dict(data: dict) -> Snapshot:
    if not isinstance(data, dict):
        raise ValidationError("snapshot document must be an object")
    budgets = tuple(budget_from_dict(b) for b in data.get("budgets", []))
    transactions = tuple(transaction_from_dict(t) for t in data.get("transactions", []))
    return Snapshot(
        budgets=_unique(budgets, "budget"),
        transactions=_unique(transactions, "transaction"),
    )


def _to_dict(record, keys: dict) -> dict:
    return {outer: getattr(record, inner) for outer, inner in keys.items()}


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        "budgets": [_to_dict(b, BUDGET_KEYS) for b in snapshot.budgets],
        "transactions": [_to_dict(t, TRANSACTION_KEYS) for t in snapshot.transactions],
    }


def load_seed(path: PathLike) -> Snapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    snapshot = snapshot_from_dict(data)
    for violation in invariant_violations(snapshot):
        logger.warning("%s", violation["message"], extra={"budget_id": violation["budget_id"]})
    return snapshot


def load_snapshot(path: PathLike, seed_path: Optional[PathLike] = None) -> Snapshot:
    """Load the stored dataset; fall back to the seed, then to an empty snapshot."""
    path = Path(path)
    if path.exists():
        logger.info("Loading snapshot", extra={"path": str(path)})
        return load_seed(path)
    if seed_path is not None and Path(seed_path).exists():
        logger.info("No data file, loading seed", extra={"path": str(seed_path)})
        return load_seed(seed_path)
    logger.info("No data file or seed, starting empty", extra={"path": str(path)})
    return Snapshot()


def save_snapshot(snapshot: Snapshot, path: PathLike) -> None:
    """Write the snapshot as JSON, replacing the target atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(snapshot_to_dict(snapshot), f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.debug("Snapshot saved", extra={"path": str(path)})
