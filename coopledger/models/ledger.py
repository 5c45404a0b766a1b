from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, Enum as SQLEnum, Boolean, Text, Index, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from coopledger.db.base import Base
import enum
from decimal import Decimal


class AccountCategory(str, enum.Enum):
    """Ledger account category."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class ReferenceType(str, enum.Enum):
    """Domain event a journal entry originates from."""
    PAYMENT = "payment"
    RECONCILIATION = "reconciliation"
    DIVIDEND = "dividend"
    INTEREST = "interest"
    MANUAL = "manual"


class LedgerAccount(Base):
    """Chart of accounts."""
    __tablename__ = "ledger_account"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_code = Column(String(20), nullable=False, unique=True, index=True)
    account_name = Column(String(100), nullable=False)
    category = Column(SQLEnum(AccountCategory, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    parent_code = Column(String(20), ForeignKey("ledger_account.account_code"), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    parent_account = relationship("LedgerAccount", remote_side=[account_code], backref="sub_accounts")
    journal_entries = relationship("JournalEntry", back_populates="account")


class JournalEntry(Base):
    """Single-sided journal entry (exactly one of debit/credit is non-zero). Append-only."""
    __tablename__ = "journal_entry"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fiscal_period = Column(String(7), nullable=False, index=True)  # "YYYY-MM"
    account_code = Column(String(20), ForeignKey("ledger_account.account_code"), nullable=False, index=True)
    debit = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    credit = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    transaction_date = Column(Date, nullable=False, index=True)
    reference_type = Column(SQLEnum(ReferenceType, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=ReferenceType.MANUAL)
    reference_id = Column(String(100), nullable=True)
    description = Column(String(255), nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    account = relationship("LedgerAccount", back_populates="journal_entries")

    # Index for prefix/date report queries
    __table_args__ = (
        Index("idx_journal_entry_account_date", "account_code", "transaction_date"),
    )
