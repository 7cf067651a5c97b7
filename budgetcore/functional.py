import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, TypeVar

from budgetcore.domain import (
    EXPENSE,
    PAYMENT_METHODS,
    TRANSACTION_TYPES,
    Budget,
    Transaction,
)
from budgetcore.errors import NotFound, ValidationError

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def unwrap(self) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def unwrap(self) -> T:
        if isinstance(self._error, BaseException):
            raise self._error
        raise ValueError(self._error)

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


# --- lookups


def safe_budget(budgets: Iterable[Budget], budget_id: str) -> Either[NotFound, Budget]:
    for b in budgets:
        if b.id == budget_id:
            return Right(b)
    return Left(NotFound("budget", budget_id))


def safe_transaction(
    trans: Iterable[Transaction], transaction_id: str
) -> Either[NotFound, Transaction]:
    for t in trans:
        if t.id == transaction_id:
            return Right(t)
    return Left(NotFound("transaction", transaction_id))


# --- field validators


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_text(value: Any, field: str) -> Either[ValidationError, str]:
    if not isinstance(value, str) or not value.strip():
        return Left(ValidationError(f"{field} must be a non-empty string", field))
    return Right(value)


def validate_non_negative(value: Any, field: str) -> Either[ValidationError, Any]:
    if not _is_number(value):
        return Left(ValidationError(f"{field} must be a finite number", field))
    if value < 0:
        return Left(ValidationError(f"{field} must be >= 0, got {value}", field))
    return Right(value)


def validate_limit(value: Any) -> Either[ValidationError, Any]:
    return validate_non_negative(value, "monthly_limit")


def validate_amount(value: Any) -> Either[ValidationError, Any]:
    """Amounts are supplied as magnitudes; the ledger applies the sign."""
    if not _is_number(value):
        return Left(ValidationError("amount must be a number", "amount"))
    if value <= 0:
        return Left(ValidationError(f"amount must be > 0, got {value}", "amount"))
    return Right(value)


def validate_choice(value: Any, choices: tuple, field: str) -> Either[ValidationError, str]:
    if value not in choices:
        return Left(ValidationError(
            f"{field} must be one of {', '.join(choices)}, got {value!r}", field
        ))
    return Right(value)


def validate_budget_fields(fields: dict) -> Either[ValidationError, dict]:
    """Validate whichever of name / monthly_limit / color are present."""
    # color is an opaque display tag and passes through unchecked
    checks = {
        "name": lambda v: validate_text(v, "name"),
        "monthly_limit": validate_limit,
    }
    for key, check in checks.items():
        if key in fields:
            result = check(fields[key])
            if result.is_left():
                return result
    return Right(fields)


def validate_transaction_input(
    type: Any, amount: Any, category: Any, payment_method: Any
) -> Either[ValidationError, tuple]:
    return (
        validate_choice(type, TRANSACTION_TYPES, "type")
        .bind(lambda _: validate_amount(amount))
        .bind(lambda _: validate_text(category, "category"))
        .bind(lambda _: validate_choice(payment_method, PAYMENT_METHODS, "payment_method"))
        .map(lambda _: (type, amount, category, payment_method))
    )


def check_budget(b: Budget, trans: Iterable[Transaction]) -> Either[dict, Budget]:
    """Recompute a budget's spend from the transactions and compare with `spent`."""
    expected = sum(
        t.magnitude for t in trans
        if t.type == EXPENSE and t.budget_id == b.id
    )
    if not math.isclose(expected, b.spent, rel_tol=1e-9, abs_tol=1e-9):
        return Left({
            "error": "spent_mismatch",
            "message": f"Budget {b.id} stores spent={b.spent} but transactions sum to {expected}",
            "budget_id": b.id,
            "stored": b.spent,
            "expected": expected,
        })
    return Right(b)
