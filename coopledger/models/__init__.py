from coopledger.db.base import Base

# Import all models so metadata.create_all sees every table
from coopledger.models.member import Member
from coopledger.models.ledger import (
    AccountCategory,
    ReferenceType,
    LedgerAccount,
    JournalEntry,
)
from coopledger.models.period import FiscalPeriod, PeriodStatus
from coopledger.models.loan import (
    Loan,
    LoanStatus,
    Payment,
    PaymentType,
    PaymentStatus,
    LoanBalanceSnapshot,
)
from coopledger.models.saving import (
    SavingAccount,
    SavingTransaction,
    SavingTransactionType,
    SavingBalanceSnapshot,
)
from coopledger.models.dividend import (
    DividendDistribution,
    DividendRecipient,
    DistributionStatus,
)

__all__ = [
    "Base",
    "Member",
    "AccountCategory",
    "ReferenceType",
    "LedgerAccount",
    "JournalEntry",
    "FiscalPeriod",
    "PeriodStatus",
    "Loan",
    "LoanStatus",
    "Payment",
    "PaymentType",
    "PaymentStatus",
    "LoanBalanceSnapshot",
    "SavingAccount",
    "SavingTransaction",
    "SavingTransactionType",
    "SavingBalanceSnapshot",
    "DividendDistribution",
    "DividendRecipient",
    "DistributionStatus",
]
