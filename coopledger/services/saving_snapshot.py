import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from coopledger.core.money import ZERO, to_decimal
from coopledger.models.saving import SavingAccount, SavingBalanceSnapshot

logger = logging.getLogger(__name__)


def snapshot_exists(db: Session, saving_account_id, balance_date: date) -> bool:
    return db.query(SavingBalanceSnapshot.id).filter(
        SavingBalanceSnapshot.saving_account_id == saving_account_id,
        SavingBalanceSnapshot.balance_date == balance_date
    ).first() is not None


def process_saving_snapshot(
    db: Session,
    account: SavingAccount,
    balance_date: date
) -> Optional[SavingBalanceSnapshot]:
    """Snapshot the live balance of ``account`` at ``balance_date``.

    Opening and closing both take the current balance and period deltas are
    zero. Returns None when a snapshot for that date already exists.
    """
    if snapshot_exists(db, account.id, balance_date):
        logger.info("Snapshot for saving account %s at %s already exists, skipping", account.account_number, balance_date)
        return None

    balance = to_decimal(account.balance)
    snapshot = SavingBalanceSnapshot(
        saving_account_id=account.id,
        balance_date=balance_date,
        opening_balance=balance,
        closing_balance=balance,
        deposits=ZERO,
        withdrawals=ZERO,
        interest_earned=ZERO,
        fees=ZERO
    )
    db.add(snapshot)
    db.flush()
    return snapshot
