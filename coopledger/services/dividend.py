from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from coopledger.core.audit import AuditRecorder, record_audit
from coopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from coopledger.core.money import ZERO, percentage_of, to_decimal
from coopledger.models.dividend import DividendDistribution, DividendRecipient, DistributionStatus
from coopledger.models.loan import Payment, PaymentStatus
from coopledger.models.member import Member
from coopledger.schemas.dividend import DistributionDraft, DistributionResult
from coopledger.services.reporting import generate_income_expense_report
from coopledger.services.saving import get_share_capital, post_dividend_payout
from decimal import Decimal
from datetime import datetime, date
from typing import List, Optional, Tuple
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


def calculate_dividend_amounts(
    share_capital,
    interest_paid,
    dividend_rate,
    average_return_rate
) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (dividend, average return, total), each half-up to 2dp.

    dividend = share capital x dividend rate / 100;
    average return = interest paid x average return rate / 100.
    """
    dividend_amount = percentage_of(share_capital, dividend_rate)
    average_return_amount = percentage_of(interest_paid, average_return_rate)
    return dividend_amount, average_return_amount, dividend_amount + average_return_amount


def get_interest_paid(db: Session, member_id: UUID, year: int) -> Decimal:
    """Interest component of the member's completed payments in ``year``."""
    total = db.query(func.sum(Payment.interest_amount)).filter(
        Payment.member_id == member_id,
        Payment.payment_status == PaymentStatus.COMPLETED,
        Payment.payment_date >= date(year, 1, 1),
        Payment.payment_date <= date(year, 12, 31)
    ).scalar()
    return to_decimal(total)


def get_distribution(db: Session, year: int) -> DividendDistribution:
    distribution = db.query(DividendDistribution).filter(DividendDistribution.year == year).first()
    if not distribution:
        raise NotFoundError(f"Dividend calculation for {year} not found")
    return distribution


def get_recipients(db: Session, year: int) -> List[DividendRecipient]:
    distribution = get_distribution(db, year)
    return db.query(DividendRecipient).join(Member).filter(
        DividendRecipient.distribution_id == distribution.id
    ).order_by(Member.member_number).all()


def calculate_dividends(
    db: Session,
    year: int,
    dividend_rate,
    average_return_rate,
    actor: str,
    recorder: Optional[AuditRecorder] = None
) -> DistributionDraft:
    """
    Calculate a year's dividends and save them as a draft (PENDING).

    The year's net profit (income less expense over the calendar year) is
    stored alongside for reference; payouts do not depend on it.

    A recipient row is created for every active member whose total payout is
    positive. Recipients are never recomputed; a second run for the same year
    is rejected.
    """
    dividend_rate = to_decimal(dividend_rate)
    average_return_rate = to_decimal(average_return_rate)
    if dividend_rate < 0 or average_return_rate < 0:
        raise ValidationError("Dividend and average return rates must not be negative")

    if db.query(DividendDistribution.id).filter(DividendDistribution.year == year).first():
        raise ConflictError(f"Dividends for year {year} already calculated")

    distribution = DividendDistribution(
        year=year,
        dividend_rate=dividend_rate,
        average_return_rate=average_return_rate,
        status=DistributionStatus.PENDING,
        calculated_at=datetime.utcnow(),
        calculated_by=actor,
        total_profit=generate_income_expense_report(db, date(year, 1, 1), date(year, 12, 31)).net_profit,
        total_dividend_amount=ZERO,
        total_average_return_amount=ZERO
    )
    db.add(distribution)
    try:
        db.flush()
    except IntegrityError:
        raise ConflictError(f"Dividends for year {year} already calculated")

    members = db.query(Member).filter(Member.is_active.is_(True)).order_by(Member.member_number).all()

    # Pure math first, writes after
    computed = []
    for member in members:
        share_capital = get_share_capital(db, member.id)
        interest_paid = get_interest_paid(db, member.id, year)
        dividend_amount, average_return_amount, total = calculate_dividend_amounts(
            share_capital, interest_paid, dividend_rate, average_return_rate
        )
        if total > 0:
            computed.append((member, share_capital, interest_paid, dividend_amount, average_return_amount, total))

    total_dividend = ZERO
    total_average_return = ZERO
    for member, share_capital, interest_paid, dividend_amount, average_return_amount, total in computed:
        db.add(DividendRecipient(
            distribution_id=distribution.id,
            member_id=member.id,
            share_capital_snapshot=share_capital,
            interest_paid_snapshot=interest_paid,
            dividend_amount=dividend_amount,
            average_return_amount=average_return_amount,
            total_amount=total
        ))
        total_dividend += dividend_amount
        total_average_return += average_return_amount

    distribution.total_dividend_amount = total_dividend
    distribution.total_average_return_amount = total_average_return
    db.flush()

    logger.info(
        "Calculated dividends for %s: %d recipient(s), dividend=%s average_return=%s",
        year, len(computed), total_dividend, total_average_return
    )

    warnings: List[str] = []
    record_audit(
        recorder, warnings, actor, "DIVIDEND_CALCULATE", "DividendDistribution", year,
        after={"recipients": len(computed), "total_dividend": total_dividend, "total_average_return": total_average_return}
    )

    return DistributionDraft(
        year=year,
        status=distribution.status.value,
        dividend_rate=dividend_rate,
        average_return_rate=average_return_rate,
        total_profit=distribution.total_profit,
        total_dividend_amount=total_dividend,
        total_average_return_amount=total_average_return,
        recipient_count=len(computed),
        calculated_at=distribution.calculated_at,
        warnings=warnings
    )


def distribute_dividends(
    db: Session,
    year: int,
    actor: str,
    recorder: Optional[AuditRecorder] = None
) -> DistributionResult:
    """Pay a calculated distribution into members' savings and mark it APPROVED.

    Not reversible.
    """
    distribution = db.query(DividendDistribution).filter(
        DividendDistribution.year == year
    ).with_for_update().first()
    if not distribution:
        raise NotFoundError(f"Dividend calculation for {year} not found")

    if distribution.status == DistributionStatus.APPROVED:
        raise ConflictError(f"Dividends for {year} already distributed")

    now = datetime.utcnow()
    paid_recipients = 0
    total_paid = ZERO

    recipients = db.query(DividendRecipient).filter(
        DividendRecipient.distribution_id == distribution.id
    ).all()
    for recipient in recipients:
        amount = to_decimal(recipient.total_amount)
        if amount <= 0:
            continue
        post_dividend_payout(db, recipient.member_id, amount, year, actor)
        recipient.paid_at = now
        paid_recipients += 1
        total_paid += amount

    distribution.status = DistributionStatus.APPROVED
    distribution.distributed_at = now
    distribution.distributed_by = actor
    db.flush()

    logger.info("Distributed dividends for %s: %d payout(s) totalling %s", year, paid_recipients, total_paid)

    warnings: List[str] = []
    record_audit(
        recorder, warnings, actor, "DIVIDEND_DISTRIBUTE", "DividendDistribution", year,
        before={"status": DistributionStatus.PENDING.value},
        after={"status": DistributionStatus.APPROVED.value, "total_paid": total_paid}
    )

    return DistributionResult(
        year=year,
        status=distribution.status.value,
        paid_recipients=paid_recipients,
        total_paid=total_paid,
        distributed_at=now,
        warnings=warnings
    )
