from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from coopledger.core.audit import AuditRecorder, record_audit
from coopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from coopledger.core.money import ZERO, to_decimal
from coopledger.models.period import FiscalPeriod, PeriodStatus
from coopledger.models.loan import Loan, LoanStatus, LoanBalanceSnapshot
from coopledger.models.saving import SavingAccount
from coopledger.schemas.accounting import CloseMonthSummary, ConfirmPeriodResult
from coopledger.services import loan_snapshot, saving_snapshot
from coopledger.services.ledger import is_period_closed, period_key  # noqa: F401
from coopledger.services.trial_balance import check_trial_balance
from datetime import datetime, date
from typing import List, Optional, Tuple
import calendar
import logging

logger = logging.getLogger(__name__)

# Loans that still carry a balance at month end
SNAPSHOT_LOAN_STATUSES = [LoanStatus.ACTIVE, LoanStatus.DEFAULTED]


def month_window(month: int, year: int) -> Tuple[date, date]:
    """First and last day of the month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def get_period(db: Session, month: int, year: int) -> Optional[FiscalPeriod]:
    return db.query(FiscalPeriod).filter(
        FiscalPeriod.month == month,
        FiscalPeriod.year == year
    ).first()


def list_periods(db: Session) -> List[FiscalPeriod]:
    return db.query(FiscalPeriod).order_by(FiscalPeriod.year.desc(), FiscalPeriod.month.desc()).all()


def close_month(
    db: Session,
    month: int,
    year: int,
    actor: str,
    recorder: Optional[AuditRecorder] = None
) -> CloseMonthSummary:
    """
    Close a fiscal month.

    This function:
    1. Rejects an already CLOSED period (ConflictError)
    2. Gates on the trial balance (ValidationError when out of tolerance)
    3. Snapshots every ACTIVE/DEFAULTED loan not yet snapshotted at month end
    4. Snapshots every active savings account not yet snapshotted at month end
    5. Locks the period as CLOSED and records an audit event

    Must run inside the caller's ``atomic`` scope. Nothing is committed
    here, so any failure (including a single failing loan) leaves no partial
    lock or snapshot behind.
    """
    start_date, end_date = month_window(month, year)
    key = period_key(year, month)

    # Row lock serializes closers of the same period
    period = db.query(FiscalPeriod).filter(
        FiscalPeriod.month == month,
        FiscalPeriod.year == year
    ).with_for_update().first()

    if period and period.status == PeriodStatus.CLOSED:
        raise ConflictError(f"Fiscal period {key} is already closed")

    verdict = check_trial_balance(db, key)
    if not verdict.balanced:
        raise ValidationError(
            f"Trial balance for {key} is out of tolerance: debits={verdict.debits}, credits={verdict.credits}",
            debits=verdict.debits,
            credits=verdict.credits
        )

    if period is None:
        period = FiscalPeriod(month=month, year=year, status=PeriodStatus.OPEN)
        db.add(period)
        try:
            db.flush()
        except IntegrityError:
            # Another closer created the row first
            raise ConflictError(f"Fiscal period {key} is being closed concurrently")

    warnings: List[str] = []
    processed_loans = 0
    total_loan_balance = ZERO

    loans = db.query(Loan).filter(Loan.status.in_(SNAPSHOT_LOAN_STATUSES)).order_by(Loan.loan_number).all()
    for loan in loans:
        total_loan_balance += to_decimal(loan.outstanding_balance)
        if loan_snapshot.snapshot_exists(db, loan.id, end_date):
            continue
        result = loan_snapshot.process_loan_snapshot(db, loan, start_date, end_date)
        if not result.skipped:
            processed_loans += 1
        warnings.extend(str(anomaly) for anomaly in result.anomalies)

    processed_savings = 0
    total_saving_balance = ZERO

    accounts = db.query(SavingAccount).filter(SavingAccount.is_active.is_(True)).order_by(SavingAccount.account_number).all()
    for account in accounts:
        total_saving_balance += to_decimal(account.balance)
        if saving_snapshot.snapshot_exists(db, account.id, end_date):
            continue
        if saving_snapshot.process_saving_snapshot(db, account, end_date) is not None:
            processed_savings += 1

    period.status = PeriodStatus.CLOSED
    period.closed_at = datetime.utcnow()
    period.closed_by = actor
    db.flush()

    logger.info(
        "Closed fiscal period %s by %s: %d loan snapshot(s), %d saving snapshot(s), %d warning(s)",
        key, actor, processed_loans, processed_savings, len(warnings)
    )

    record_audit(
        recorder, warnings, actor, "PERIOD_CLOSE", "FiscalPeriod", key,
        before={"status": PeriodStatus.OPEN.value},
        after={"status": PeriodStatus.CLOSED.value, "processed_loans": processed_loans, "processed_savings": processed_savings}
    )

    return CloseMonthSummary(
        period=key,
        processed_loans=processed_loans,
        processed_savings=processed_savings,
        total_loan_balance=total_loan_balance,
        total_saving_balance=total_saving_balance,
        warnings=warnings
    )


def confirm_period(
    db: Session,
    month: int,
    year: int,
    actor: str,
    recorder: Optional[AuditRecorder] = None
) -> ConfirmPeriodResult:
    """Mark every loan snapshot of a CLOSED period as verified.

    One-way: freezes the month's numbers for dividend calculation.
    """
    _, end_date = month_window(month, year)
    key = period_key(year, month)

    period = get_period(db, month, year)
    if not period:
        raise NotFoundError(f"Fiscal period {key} not found")
    if period.status != PeriodStatus.CLOSED:
        raise ConflictError(f"Fiscal period {key} must be closed before confirmation")

    verified = db.query(LoanBalanceSnapshot).filter(
        LoanBalanceSnapshot.balance_date == end_date,
        LoanBalanceSnapshot.verified.is_(False)
    ).update({LoanBalanceSnapshot.verified: True}, synchronize_session="fetch")

    period.confirmed_at = datetime.utcnow()
    period.confirmed_by = actor
    db.flush()

    logger.info("Confirmed fiscal period %s by %s: %d snapshot(s) verified", key, actor, verified)

    warnings: List[str] = []
    record_audit(
        recorder, warnings, actor, "PERIOD_CONFIRM", "FiscalPeriod", key,
        after={"verified_snapshots": verified}
    )
    return ConfirmPeriodResult(period=key, verified_snapshots=verified, warnings=warnings)


def flag_overdue_loans(db: Session, today: Optional[date] = None) -> List[str]:
    """Mark ACTIVE loans past maturity with a balance as DEFAULTED.

    Returns the loan numbers flagged.
    """
    today = today or date.today()
    overdue = db.query(Loan).filter(
        Loan.status == LoanStatus.ACTIVE,
        Loan.maturity_date.isnot(None),
        Loan.maturity_date < today,
        Loan.outstanding_balance > 0
    ).all()

    flagged = []
    for loan in overdue:
        loan.status = LoanStatus.DEFAULTED
        flagged.append(loan.loan_number)

    if flagged:
        db.flush()
        logger.info("Flagged %d overdue loan(s) as defaulted", len(flagged))
    return flagged
