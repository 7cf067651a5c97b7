"""Exceptions raised by ledger operations."""

from typing import Optional


class LedgerError(Exception):
    """Base class for every error the ledger reports to its caller."""


class ValidationError(LedgerError):
    """Caller input broke a field constraint (empty name, negative limit, ...)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFound(LedgerError):
    """An update/delete/lookup referenced an id that is not in the snapshot."""

    def __init__(self, kind: str, id: str):
        super().__init__(f"{kind.capitalize()} with ID {id} does not exist")
        self.kind = kind
        self.id = id
