from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from coopledger.db.base import get_db, atomic
from coopledger.core.audit import AuditRecorder
from coopledger.core.dependencies import Actor, get_audit_recorder, require_finance, require_viewer
from coopledger.core.exceptions import LedgerError
from coopledger.api.errors import to_http_exception
from coopledger.schemas.accounting import (
    CloseMonthRequest, CloseMonthSummary, ConfirmPeriodRequest, ConfirmPeriodResult,
    FiscalPeriodResponse, TrialBalance
)
from coopledger.services import period as period_service
from coopledger.services.trial_balance import get_trial_balance
from typing import List
import logging
import re

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/accounting", tags=["accounting"])

PERIOD_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@router.post("/close-month", response_model=CloseMonthSummary)
def close_month(
    request: CloseMonthRequest,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Close a fiscal month: trial-balance gate, snapshots, lock."""
    try:
        with atomic(db):
            return period_service.close_month(db, request.month, request.year, actor.name, recorder)
    except LedgerError as e:
        logger.warning("Close of %02d/%s rejected: %s", request.month, request.year, e)
        raise to_http_exception(e)


@router.post("/confirm-period", response_model=ConfirmPeriodResult)
def confirm_period(
    request: ConfirmPeriodRequest,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Mark a closed month's loan snapshots as verified."""
    try:
        with atomic(db):
            return period_service.confirm_period(db, request.month, request.year, actor.name, recorder)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/trial-balance/{period_key}", response_model=TrialBalance)
def trial_balance(
    period_key: str,
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    if not PERIOD_KEY_PATTERN.match(period_key):
        raise HTTPException(status_code=400, detail="Invalid period key format. Use YYYY-MM")
    return get_trial_balance(db, period_key)


@router.get("/periods", response_model=List[FiscalPeriodResponse])
def list_periods(
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    return period_service.list_periods(db)
