from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Integer, Numeric, Enum as SQLEnum, Boolean, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from coopledger.db.base import Base
import enum
from decimal import Decimal


class LoanStatus(str, enum.Enum):
    """Loan status."""
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    DEFAULTED = "defaulted"
    COMPLETED = "completed"
    REJECTED = "rejected"
    WRITTEN_OFF = "written_off"


class PaymentType(str, enum.Enum):
    """Payment type."""
    LOAN_REPAYMENT = "loan_repayment"
    LOAN_CLOSURE = "loan_closure"
    LOAN_INTEREST = "loan_interest"
    LOAN_PENALTY = "loan_penalty"
    SAVINGS_DEPOSIT = "savings_deposit"
    SHARE_CAPITAL = "share_capital"


class PaymentStatus(str, enum.Enum):
    """Payment status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Loan(Base):
    """Member loan. ``outstanding_balance`` is kept live by payment approval."""
    __tablename__ = "loan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_number = Column(String(30), nullable=False, unique=True, index=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    principal_amount = Column(Numeric(15, 2), nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=False)  # annual percentage
    term_months = Column(Integer, nullable=False)
    outstanding_balance = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    paid_principal = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    paid_interest = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    penalty_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))  # unpaid penalty
    accrued_interest = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))  # unpaid interest due
    status = Column(SQLEnum(LoanStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=LoanStatus.PENDING, nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    maturity_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="loans")
    payments = relationship("Payment", back_populates="loan")
    balance_snapshots = relationship("LoanBalanceSnapshot", back_populates="loan", order_by="LoanBalanceSnapshot.balance_date")


class Payment(Base):
    """Member payment; loan payments carry their penalty/interest/principal split."""
    __tablename__ = "payment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_number = Column(String(40), nullable=False, unique=True, index=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id"), nullable=True, index=True)
    payment_type = Column(SQLEnum(PaymentType, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=PaymentStatus.PENDING, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    principal_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    penalty_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    payment_date = Column(Date, nullable=False, index=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="payments")
    loan = relationship("Loan", back_populates="payments")


class LoanBalanceSnapshot(Base):
    """Immutable month-end loan balance. Only ``verified`` changes after creation."""
    __tablename__ = "loan_balance"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id"), nullable=False, index=True)
    balance_date = Column(Date, nullable=False, index=True)
    opening_principal = Column(Numeric(15, 2), nullable=False)
    closing_principal = Column(Numeric(15, 2), nullable=False)
    principal_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    penalty_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_accrued = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    outstanding_balance = Column(Numeric(15, 2), nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    loan = relationship("Loan", back_populates="balance_snapshots")

    # At most one snapshot per (loan, date)
    __table_args__ = (
        UniqueConstraint("loan_id", "balance_date", name="uq_loan_balance_loan_date"),
    )
