from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from coopledger.db.base import get_db, atomic
from coopledger.core.audit import AuditRecorder
from coopledger.core.dependencies import Actor, get_audit_recorder, require_finance, require_viewer
from coopledger.core.exceptions import LedgerError
from coopledger.api.errors import to_http_exception
from coopledger.schemas.dividend import (
    DividendCalculationRequest, DividendRecipientResponse, DistributionDraft, DistributionResult
)
from coopledger.services import dividend as dividend_service
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dividends", tags=["dividends"])


@router.post("/calculate", response_model=DistributionDraft)
def calculate_dividends(
    request: DividendCalculationRequest,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Calculate a year's dividends as a draft; nothing is paid yet."""
    try:
        with atomic(db):
            return dividend_service.calculate_dividends(
                db, request.year, request.dividend_rate, request.average_return_rate, actor.name, recorder
            )
    except LedgerError as e:
        raise to_http_exception(e)


@router.post("/{year}/distribute", response_model=DistributionResult)
def distribute_dividends(
    year: int,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Pay a calculated distribution into members' savings accounts."""
    try:
        with atomic(db):
            return dividend_service.distribute_dividends(db, year, actor.name, recorder)
    except LedgerError as e:
        logger.warning("Dividend distribution for %s rejected: %s", year, e)
        raise to_http_exception(e)


@router.get("/{year}")
def get_distribution(
    year: int,
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    try:
        distribution = dividend_service.get_distribution(db, year)
    except LedgerError as e:
        raise to_http_exception(e)

    return {
        "year": distribution.year,
        "status": distribution.status.value,
        "dividend_rate": str(distribution.dividend_rate),
        "average_return_rate": str(distribution.average_return_rate),
        "total_profit": str(distribution.total_profit),
        "total_dividend_amount": str(distribution.total_dividend_amount),
        "total_average_return_amount": str(distribution.total_average_return_amount),
        "calculated_at": distribution.calculated_at.isoformat() if distribution.calculated_at else None,
        "calculated_by": distribution.calculated_by,
        "distributed_at": distribution.distributed_at.isoformat() if distribution.distributed_at else None,
        "distributed_by": distribution.distributed_by,
    }


@router.get("/{year}/recipients", response_model=List[DividendRecipientResponse])
def get_recipients(
    year: int,
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    try:
        return dividend_service.get_recipients(db, year)
    except LedgerError as e:
        raise to_http_exception(e)
