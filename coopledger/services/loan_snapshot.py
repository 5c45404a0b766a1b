"""Month-end loan balance snapshots, interest accrual and payment allocation."""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from coopledger.core.exceptions import IntegrityAnomaly, ValidationError
from coopledger.core.money import HUNDRED, ZERO, round_money, to_decimal
from coopledger.models.loan import Loan, LoanBalanceSnapshot, Payment, PaymentStatus, PaymentType

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = Decimal("365")

# Payment types that reduce a loan's balance in a closing window
SNAPSHOT_PAYMENT_TYPES = [PaymentType.LOAN_REPAYMENT, PaymentType.LOAN_CLOSURE]


@dataclass(frozen=True)
class PaymentBreakdown:
    penalty: Decimal
    interest: Decimal
    principal: Decimal

    @property
    def total(self) -> Decimal:
        return self.penalty + self.interest + self.principal


@dataclass
class LoanSnapshotResult:
    snapshot: Optional[LoanBalanceSnapshot]
    anomalies: List[IntegrityAnomaly] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.snapshot is None


def calculate_accrued_interest(outstanding_balance, annual_rate_percent, days: int) -> Decimal:
    """Simple non-compounding accrual on the current outstanding balance.

    ``outstanding * (rate / 100 / 365) * days``, rounded half-up to 2dp.
    Mid-window payments are not day-weighted. Non-positive balances accrue
    nothing.
    """
    outstanding = to_decimal(outstanding_balance)
    if outstanding <= 0 or days <= 0:
        return ZERO
    daily_rate = to_decimal(annual_rate_percent) / HUNDRED / DAYS_IN_YEAR
    return round_money(outstanding * daily_rate * days)


def allocate_payment(amount, penalty_due, interest_due) -> PaymentBreakdown:
    """Split a payment: penalty first, then interest, then principal.

    Each component is capped at what remains of the payment; whatever is left
    after penalty and interest goes to principal.
    """
    remaining = to_decimal(amount)
    if remaining <= 0:
        raise ValidationError(f"Payment amount must be positive, got {remaining}")

    penalty = min(remaining, max(to_decimal(penalty_due), ZERO))
    remaining -= penalty

    interest = min(remaining, max(to_decimal(interest_due), ZERO))
    remaining -= interest

    return PaymentBreakdown(penalty=penalty, interest=interest, principal=remaining)


def window_days(start_date: date, end_date: date) -> int:
    """Inclusive day count of a closing window."""
    return (end_date - start_date).days + 1


def snapshot_exists(db: Session, loan_id, balance_date: date) -> bool:
    return db.query(LoanBalanceSnapshot.id).filter(
        LoanBalanceSnapshot.loan_id == loan_id,
        LoanBalanceSnapshot.balance_date == balance_date
    ).first() is not None


def process_loan_snapshot(
    db: Session,
    loan: Loan,
    start_date: date,
    end_date: date
) -> LoanSnapshotResult:
    """Create the snapshot for ``loan`` at ``end_date`` covering [start_date, end_date].

    Already snapshotted (loan, date) pairs are skipped. A negative resulting
    outstanding balance is logged and reported as an anomaly; the snapshot is
    still persisted.
    """
    if start_date > end_date:
        raise ValidationError(f"Invalid window: {start_date} is after {end_date}")

    if snapshot_exists(db, loan.id, end_date):
        logger.info("Snapshot for loan %s at %s already exists, skipping", loan.loan_number, end_date)
        return LoanSnapshotResult(snapshot=None)

    payments = db.query(Payment).filter(
        Payment.loan_id == loan.id,
        Payment.payment_status == PaymentStatus.COMPLETED,
        Payment.payment_type.in_(SNAPSHOT_PAYMENT_TYPES),
        Payment.payment_date >= start_date,
        Payment.payment_date <= end_date
    ).all()

    principal_paid = sum((to_decimal(p.principal_amount) for p in payments), ZERO)
    interest_paid = sum((to_decimal(p.interest_amount) for p in payments), ZERO)
    penalty_paid = sum((to_decimal(p.penalty_amount) for p in payments), ZERO)

    # Trusts the live balance maintained by payment approval
    closing_principal = to_decimal(loan.outstanding_balance)
    interest_accrued = calculate_accrued_interest(
        closing_principal, loan.interest_rate, window_days(start_date, end_date)
    )
    opening_principal = closing_principal + principal_paid

    snapshot = LoanBalanceSnapshot(
        loan_id=loan.id,
        balance_date=end_date,
        opening_principal=opening_principal,
        closing_principal=closing_principal,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        penalty_paid=penalty_paid,
        interest_accrued=interest_accrued,
        outstanding_balance=closing_principal,
        verified=False
    )
    db.add(snapshot)
    db.flush()

    anomalies = []
    if closing_principal < 0:
        anomaly = IntegrityAnomaly(
            entity_type="Loan",
            entity_id=loan.loan_number,
            message=f"negative outstanding balance {closing_principal} at {end_date}"
        )
        logger.warning("Integrity anomaly: %s", anomaly)
        anomalies.append(anomaly)

    return LoanSnapshotResult(snapshot=snapshot, anomalies=anomalies)
