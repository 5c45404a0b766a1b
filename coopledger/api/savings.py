from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from coopledger.db.base import get_db, atomic
from coopledger.core.audit import AuditRecorder
from coopledger.core.dependencies import Actor, get_audit_recorder, require_finance
from coopledger.core.exceptions import LedgerError
from coopledger.api.errors import to_http_exception
from coopledger.schemas.saving import InterestCreditRequest, InterestCreditSummary
from coopledger.services.saving import credit_saving_interest

router = APIRouter(prefix="/api/savings", tags=["savings"])


@router.post("/credit-interest", response_model=InterestCreditSummary)
def credit_interest(
    request: InterestCreditRequest,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Credit accrued interest to savings accounts due for a monthly credit."""
    try:
        with atomic(db):
            return credit_saving_interest(db, request.as_of, actor.name, recorder)
    except LedgerError as e:
        raise to_http_exception(e)
