from sqlalchemy.orm import Session
from sqlalchemy import func
from coopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from coopledger.core.money import ZERO, to_decimal
from coopledger.models.ledger import LedgerAccount, JournalEntry, AccountCategory, ReferenceType
from coopledger.models.period import FiscalPeriod, PeriodStatus
from decimal import Decimal
from typing import List, Dict, Tuple, Optional
from datetime import date
import logging

logger = logging.getLogger(__name__)


def period_key(year: int, month: int) -> str:
    """Fiscal period key, e.g. ``2025-10``."""
    return f"{year:04d}-{month:02d}"


def period_key_for(day: date) -> str:
    return period_key(day.year, day.month)


def is_period_closed(db: Session, month: int, year: int) -> bool:
    return db.query(FiscalPeriod.id).filter(
        FiscalPeriod.month == month,
        FiscalPeriod.year == year,
        FiscalPeriod.status == PeriodStatus.CLOSED
    ).first() is not None


def create_account(
    db: Session,
    account_code: str,
    account_name: str,
    category: AccountCategory,
    parent_code: str = None,
    description: str = None
) -> LedgerAccount:
    """Add an account to the chart of accounts."""
    existing = db.query(LedgerAccount).filter(LedgerAccount.account_code == account_code).first()
    if existing:
        raise ConflictError(f"Account {account_code} already exists")

    if parent_code and not db.query(LedgerAccount).filter(LedgerAccount.account_code == parent_code).first():
        raise NotFoundError(f"Parent account {parent_code} not found")

    account = LedgerAccount(
        account_code=account_code,
        account_name=account_name,
        category=category,
        parent_code=parent_code,
        description=description
    )
    db.add(account)
    db.flush()
    return account


def get_account(db: Session, account_code: str) -> LedgerAccount:
    account = db.query(LedgerAccount).filter(LedgerAccount.account_code == account_code).first()
    if not account:
        raise NotFoundError(f"Account {account_code} not found")
    return account


def delete_account(db: Session, account_code: str) -> None:
    """Delete an account. Accounts referenced by journal entries are immutable."""
    account = get_account(db, account_code)

    in_use = db.query(JournalEntry.id).filter(JournalEntry.account_code == account_code).first()
    if in_use:
        raise ConflictError(f"Account {account_code} has journal entries and cannot be deleted")

    db.delete(account)
    db.flush()


def post_entry(
    db: Session,
    account_code: str,
    debit=ZERO,
    credit=ZERO,
    transaction_date: date = None,
    reference_type: ReferenceType = ReferenceType.MANUAL,
    reference_id: str = None,
    description: str = None,
    created_by: str = None,
    fiscal_period: str = None
) -> JournalEntry:
    """Append a single-sided journal entry.

    Exactly one of ``debit``/``credit`` must be positive. The fiscal period
    defaults to the transaction date's ``YYYY-MM``; a CLOSED period rejects
    the posting with ConflictError.
    """
    debit = to_decimal(debit)
    credit = to_decimal(credit)

    if debit < 0 or credit < 0:
        raise ValidationError(f"Journal amounts must not be negative: debit={debit}, credit={credit}")
    if (debit > 0) == (credit > 0):
        raise ValidationError(f"Exactly one of debit/credit must be positive: debit={debit}, credit={credit}")

    get_account(db, account_code)

    transaction_date = transaction_date or date.today()
    fiscal_period = fiscal_period or period_key_for(transaction_date)
    year, month = (int(part) for part in fiscal_period.split("-"))
    if is_period_closed(db, month, year):
        raise ConflictError(f"Fiscal period {fiscal_period} is closed; no further postings allowed")

    entry = JournalEntry(
        fiscal_period=fiscal_period,
        account_code=account_code,
        debit=debit,
        credit=credit,
        transaction_date=transaction_date,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_by=created_by
    )
    db.add(entry)
    return entry


def post_balanced_entries(
    db: Session,
    lines: List[Dict],
    transaction_date: date = None,
    reference_type: ReferenceType = ReferenceType.MANUAL,
    reference_id: str = None,
    description: str = None,
    created_by: str = None
) -> List[JournalEntry]:
    """
    Post a group of entries whose debits equal their credits.

    Args:
        lines: List of dicts with keys: account_code, debit, credit, description
    """
    total_debits = sum((to_decimal(line.get("debit", 0)) for line in lines), ZERO)
    total_credits = sum((to_decimal(line.get("credit", 0)) for line in lines), ZERO)

    if total_debits != total_credits:
        logger.error("Journal entry imbalance detected:")
        logger.error("  Description: %s", description)
        logger.error("  Total Debits: %s, Total Credits: %s", total_debits, total_credits)
        for i, line in enumerate(lines):
            logger.error(
                "  Line %d: Account=%s, Debit=%s, Credit=%s",
                i + 1, line.get("account_code"), line.get("debit", 0), line.get("credit", 0)
            )
        raise ValidationError(
            f"Journal entry is not balanced: debits={total_debits}, credits={total_credits}. "
            f"Difference: {total_debits - total_credits}",
            debits=total_debits,
            credits=total_credits
        )

    entries = []
    for line in lines:
        # Zero lines (e.g. no penalty component) are dropped
        if to_decimal(line.get("debit", 0)) == 0 and to_decimal(line.get("credit", 0)) == 0:
            continue
        entries.append(post_entry(
            db,
            account_code=line["account_code"],
            debit=line.get("debit", ZERO),
            credit=line.get("credit", ZERO),
            transaction_date=transaction_date,
            reference_type=reference_type,
            reference_id=reference_id,
            description=line.get("description") or description,
            created_by=created_by
        ))
    db.flush()
    return entries


def sum_by_period(db: Session, fiscal_period: str) -> Tuple[Decimal, Decimal]:
    """Total (debits, credits) of all entries tagged with ``fiscal_period``."""
    result = db.query(
        func.sum(JournalEntry.debit).label("total_debits"),
        func.sum(JournalEntry.credit).label("total_credits")
    ).filter(
        JournalEntry.fiscal_period == fiscal_period
    ).first()

    return to_decimal(result.total_debits), to_decimal(result.total_credits)


def sum_by_account_prefix(
    db: Session,
    prefix: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[Dict]:
    """Per-account debit/credit totals for accounts whose code starts with ``prefix``.

    Returns rows ordered by account code with keys: account_code,
    account_name, debits, credits.
    """
    query = db.query(
        JournalEntry.account_code,
        LedgerAccount.account_name,
        func.sum(JournalEntry.debit).label("total_debits"),
        func.sum(JournalEntry.credit).label("total_credits")
    ).join(
        LedgerAccount, LedgerAccount.account_code == JournalEntry.account_code
    ).filter(
        JournalEntry.account_code.like(f"{prefix}%")
    )

    if start_date:
        query = query.filter(JournalEntry.transaction_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.transaction_date <= end_date)

    rows = query.group_by(
        JournalEntry.account_code, LedgerAccount.account_name
    ).order_by(JournalEntry.account_code).all()

    return [
        {
            "account_code": row.account_code,
            "account_name": row.account_name,
            "debits": to_decimal(row.total_debits),
            "credits": to_decimal(row.total_credits),
        }
        for row in rows
    ]
