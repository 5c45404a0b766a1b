from sqlalchemy.orm import Session
from coopledger.core.config import settings
from coopledger.core.exceptions import NotFoundError, ValidationError
from coopledger.core.audit import AuditRecorder, record_audit
from coopledger.core.money import ZERO, round_money, to_decimal
from coopledger.models.ledger import ReferenceType
from coopledger.models.saving import SavingAccount, SavingTransaction, SavingTransactionType
from coopledger.services.ledger import post_balanced_entries
from coopledger.schemas.saving import InterestCreditSummary
from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from typing import List, Optional
from uuid import UUID
import calendar
import logging

logger = logging.getLogger(__name__)

DAYS_IN_YEAR_PERCENT = Decimal("36500")
DAILY_PLACES = Decimal("0.00000001")


def get_primary_account(db: Session, member_id: UUID, for_update: bool = False) -> Optional[SavingAccount]:
    """First active savings account of a member."""
    query = db.query(SavingAccount).filter(
        SavingAccount.member_id == member_id,
        SavingAccount.is_active.is_(True)
    ).order_by(SavingAccount.account_number)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_share_capital(db: Session, member_id: UUID) -> Decimal:
    """Share capital held on the member's primary savings account."""
    account = get_primary_account(db, member_id)
    if not account or account.share_capital is None:
        return ZERO
    return to_decimal(account.share_capital)


def post_dividend_payout(
    db: Session,
    member_id: UUID,
    amount,
    year: int,
    actor: str,
    payout_date: date = None
) -> SavingTransaction:
    """
    Credit a dividend payout to the member's savings account.

    The account row is locked for the update so concurrent payouts to the
    same account serialize; payouts to different accounts do not contend.
    Posts: debit dividend expense, credit member savings.
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError(f"Dividend payout must be positive, got {amount}")

    account = get_primary_account(db, member_id, for_update=True)
    if not account:
        raise NotFoundError(f"No active savings account for member {member_id}")

    payout_date = payout_date or date.today()
    account.balance = to_decimal(account.balance) + amount
    account.available_balance = to_decimal(account.available_balance) + amount

    transaction = SavingTransaction(
        saving_account_id=account.id,
        transaction_type=SavingTransactionType.DIVIDEND_PAYOUT,
        amount=amount,
        balance_after=account.balance,
        transaction_date=payout_date,
        description=f"Dividend payout {year}",
        created_by=actor
    )
    db.add(transaction)

    post_balanced_entries(
        db,
        lines=[
            {"account_code": settings.DIVIDEND_EXPENSE_ACCOUNT_CODE, "debit": amount},
            {"account_code": settings.MEMBER_SAVINGS_ACCOUNT_CODE, "credit": amount},
        ],
        transaction_date=payout_date,
        reference_type=ReferenceType.DIVIDEND,
        reference_id=f"DIV-{year}-{account.account_number}",
        description=f"Dividend payout {year} to {account.account_number}",
        created_by=actor
    )

    logger.info("Dividend payout %s credited to %s for %s", amount, account.account_number, year)
    return transaction


def one_month_before(day: date) -> date:
    """Same day of the previous month, clamped to that month's last day."""
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def calculate_daily_interest(balance, annual_rate_percent) -> Decimal:
    """One day of simple interest on a 365-day year, kept at 8dp."""
    balance = to_decimal(balance)
    rate = to_decimal(annual_rate_percent)
    if balance <= 0 or rate <= 0:
        return Decimal("0")
    return (balance * rate / DAYS_IN_YEAR_PERCENT).quantize(DAILY_PLACES, rounding=ROUND_HALF_UP)


def calculate_saving_interest(account: SavingAccount, as_of: date) -> Decimal:
    """
    Interest earned since the last credit (or the opening date) up to ``as_of``.

    ``as_of`` itself is excluded; a window of zero or negative days earns
    nothing.
    """
    start = account.last_interest_date or account.opening_date
    if start is None:
        return ZERO
    days = (as_of - start).days
    if days <= 0:
        return ZERO
    return round_money(calculate_daily_interest(account.balance, account.interest_rate) * days)


def credit_saving_interest(
    db: Session,
    as_of: date = None,
    actor: str = "SYSTEM",
    recorder: Optional[AuditRecorder] = None
) -> InterestCreditSummary:
    """
    Credit accrued interest to every active savings account due for it.

    An account is due when it has never been credited or its last credit is
    more than a month before ``as_of``. Each credit updates the balances,
    writes an INTEREST_CREDIT transaction and posts: debit savings interest
    expense, credit member savings. Frozen accounts still earn interest.
    """
    as_of = as_of or date.today()
    cutoff = one_month_before(as_of)

    accounts = db.query(SavingAccount).filter(
        SavingAccount.is_active.is_(True),
        (SavingAccount.last_interest_date.is_(None)) | (SavingAccount.last_interest_date < cutoff)
    ).order_by(SavingAccount.account_number).with_for_update().all()

    warnings: List[str] = []
    credited = 0
    total = ZERO
    for account in accounts:
        interest = calculate_saving_interest(account, as_of)
        if interest <= 0:
            continue

        account.balance = to_decimal(account.balance) + interest
        account.available_balance = to_decimal(account.available_balance) + interest
        account.last_interest_date = as_of

        db.add(SavingTransaction(
            saving_account_id=account.id,
            transaction_type=SavingTransactionType.INTEREST_CREDIT,
            amount=interest,
            balance_after=account.balance,
            transaction_date=as_of,
            description="Monthly interest credit",
            created_by=actor
        ))

        post_balanced_entries(
            db,
            lines=[
                {"account_code": settings.SAVINGS_INTEREST_EXPENSE_ACCOUNT_CODE, "debit": interest},
                {"account_code": settings.MEMBER_SAVINGS_ACCOUNT_CODE, "credit": interest},
            ],
            transaction_date=as_of,
            reference_type=ReferenceType.INTEREST,
            reference_id=f"INT-{account.account_number}-{as_of.isoformat()}",
            description=f"Savings interest to {account.account_number}",
            created_by=actor
        )

        credited += 1
        total += interest
        logger.debug("Credited interest %s to %s", interest, account.account_number)

    db.flush()
    logger.info("Savings interest as of %s: %d account(s), total %s", as_of, credited, total)

    record_audit(
        recorder, warnings, actor, "SAVING_INTEREST_CREDIT", "SavingAccount", as_of.isoformat(),
        after={"accounts_credited": credited, "total_interest": total}
    )

    return InterestCreditSummary(as_of=as_of, accounts_credited=credited, total_interest=total, warnings=warnings)
