from dataclasses import dataclass
from typing import Optional, Union

Amount = Union[int, float]

EXPENSE = "expense"
INCOME = "income"
TRANSACTION_TYPES = (EXPENSE, INCOME)

PAYMENT_METHODS = ("cash", "card", "bank")
DEFAULT_PAYMENT_METHOD = "cash"

# palette offered by the budget form; any string is accepted as a color
BUDGET_COLORS = ("#10b981", "#f59e0b", "#8b5cf6", "#ef4444", "#3b82f6", "#ec4899")
DEFAULT_COLOR = BUDGET_COLORS[0]


@dataclass(frozen=True)
class Budget:
    id: str
    name: str
    monthly_limit: Amount
    color: str
    spent: Amount       # materialized sum of linked expense magnitudes
    start_date: str     # "YYYY-MM-DD"


@dataclass(frozen=True)
class Transaction:
    id: str
    budget_id: Optional[str]  # only set on expenses
    amount: Amount            # + for income, - for expense
    type: str                 # "expense" or "income"
    category: str
    date: str                 # "YYYY-MM-DD"
    notes: str = ""
    payment_method: str = DEFAULT_PAYMENT_METHOD

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE

    @property
    def magnitude(self) -> Amount:
        return abs(self.amount)

    @property
    def month(self) -> str:
        return self.date[:7]


# Complete dataset handed between the ledger and its collaborators
@dataclass(frozen=True)
class Snapshot:
    budgets: tuple[Budget, ...] = ()
    transactions: tuple[Transaction, ...] = ()
