from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, Enum as SQLEnum, Boolean, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from coopledger.db.base import Base
import enum
from decimal import Decimal
from datetime import date


class SavingTransactionType(str, enum.Enum):
    """Savings ledger movement type."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEREST_CREDIT = "interest_credit"
    DIVIDEND_PAYOUT = "dividend_payout"
    FEE = "fee"


class SavingAccount(Base):
    """Member savings account."""
    __tablename__ = "saving_account"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_number = Column(String(30), nullable=False, unique=True, index=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    balance = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    available_balance = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    share_capital = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    opening_date = Column(Date, nullable=False, default=date.today)
    last_interest_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_frozen = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="saving_accounts")
    transactions = relationship("SavingTransaction", back_populates="saving_account")
    balance_snapshots = relationship("SavingBalanceSnapshot", back_populates="saving_account")


class SavingTransaction(Base):
    """Movement on a savings account."""
    __tablename__ = "saving_transaction"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    saving_account_id = Column(Uuid(as_uuid=True), ForeignKey("saving_account.id"), nullable=False, index=True)
    transaction_type = Column(SQLEnum(SavingTransactionType, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    balance_after = Column(Numeric(15, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    saving_account = relationship("SavingAccount", back_populates="transactions")


class SavingBalanceSnapshot(Base):
    """Month-end savings balance."""
    __tablename__ = "saving_balance"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    saving_account_id = Column(Uuid(as_uuid=True), ForeignKey("saving_account.id"), nullable=False, index=True)
    balance_date = Column(Date, nullable=False, index=True)
    opening_balance = Column(Numeric(15, 2), nullable=False)
    closing_balance = Column(Numeric(15, 2), nullable=False)
    deposits = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    withdrawals = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_earned = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    fees = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    saving_account = relationship("SavingAccount", back_populates="balance_snapshots")

    # At most one snapshot per (account, date)
    __table_args__ = (
        UniqueConstraint("saving_account_id", "balance_date", name="uq_saving_balance_account_date"),
    )
