from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from coopledger.db.base import get_db, atomic
from coopledger.core.audit import AuditRecorder
from coopledger.core.dependencies import Actor, get_audit_recorder, require_finance
from coopledger.core.exceptions import LedgerError
from coopledger.api.errors import to_http_exception
from coopledger.schemas.payment import PaymentApprovalResult
from coopledger.services.payment import approve_loan_payment
from uuid import UUID

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/{payment_id}/approve", response_model=PaymentApprovalResult)
def approve_payment(
    payment_id: UUID,
    actor: Actor = Depends(require_finance),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    db: Session = Depends(get_db)
):
    """Approve a pending loan payment and apply it to the loan balance."""
    try:
        with atomic(db):
            return approve_loan_payment(db, payment_id, actor.name, recorder)
    except LedgerError as e:
        raise to_http_exception(e)
