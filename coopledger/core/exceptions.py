"""Error taxonomy for the ledger and period-closing engine."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger errors."""
    pass


class ValidationError(LedgerError):
    """Input or ledger state fails a precondition; raised before any write.

    Trial-balance failures carry the offending totals.
    """

    def __init__(self, message: str, debits: Optional[Decimal] = None, credits: Optional[Decimal] = None):
        super().__init__(message)
        self.debits = debits
        self.credits = credits


class ConflictError(LedgerError):
    """Operation conflicts with current state (closed period, existing distribution)."""
    pass


class NotFoundError(LedgerError):
    """Referenced loan, account, period or distribution does not exist."""
    pass


@dataclass(frozen=True)
class IntegrityAnomaly:
    """A data-integrity problem observed during processing.

    Never raised. Collected into operation results so it stays visible
    without halting period-end processing.
    """
    entity_type: str
    entity_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.entity_type} {self.entity_id}: {self.message}"
