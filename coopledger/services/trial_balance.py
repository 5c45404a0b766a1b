"""Trial balance check used as the month-close gate and as a report."""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from coopledger.core.config import settings
from coopledger.core.money import to_decimal
from coopledger.schemas.accounting import TrialBalance
from coopledger.services.ledger import sum_by_period

logger = logging.getLogger(__name__)


def check_trial_balance(
    db: Session,
    fiscal_period: str,
    tolerance: Optional[Decimal] = None
) -> TrialBalance:
    """Sum debits and credits for ``fiscal_period``.

    Balanced when ``|debits - credits|`` is within the rounding tolerance
    (``settings.TRIAL_BALANCE_TOLERANCE``, 0.05 by default).
    """
    tolerance = to_decimal(settings.TRIAL_BALANCE_TOLERANCE if tolerance is None else tolerance)
    total_debits, total_credits = sum_by_period(db, fiscal_period)
    variance = total_debits - total_credits
    balanced = abs(variance) <= tolerance

    if not balanced:
        logger.warning(
            "Trial balance mismatch for %s: debits=%s credits=%s variance=%s",
            fiscal_period, total_debits, total_credits, variance
        )

    return TrialBalance(
        period=fiscal_period,
        debits=total_debits,
        credits=total_credits,
        variance=variance,
        balanced=balanced
    )


def get_trial_balance(db: Session, fiscal_period: str) -> TrialBalance:
    return check_trial_balance(db, fiscal_period)
