"""Loan payment approval: the collaborator that keeps loan balances live."""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from coopledger.core.audit import AuditRecorder, record_audit
from coopledger.core.config import settings
from coopledger.core.exceptions import ConflictError, IntegrityAnomaly, NotFoundError, ValidationError
from coopledger.core.money import ZERO, to_decimal
from coopledger.models.ledger import ReferenceType
from coopledger.models.loan import Loan, LoanStatus, Payment, PaymentStatus, PaymentType
from coopledger.schemas.payment import PaymentApprovalResult
from coopledger.services.ledger import is_period_closed, post_balanced_entries, period_key_for
from coopledger.services.loan_snapshot import allocate_payment

logger = logging.getLogger(__name__)

LOAN_PAYMENT_TYPES = [PaymentType.LOAN_REPAYMENT, PaymentType.LOAN_CLOSURE]
PAYABLE_LOAN_STATUSES = [LoanStatus.ACTIVE, LoanStatus.DEFAULTED]


def approve_loan_payment(
    db: Session,
    payment_id: UUID,
    actor: str,
    recorder: Optional[AuditRecorder] = None
) -> PaymentApprovalResult:
    """
    Approve a pending loan payment and apply it to the loan.

    The amount is split penalty -> interest -> principal against the loan's
    unpaid penalty and accrued interest. The loan's paid and outstanding
    fields are updated in place and balanced journal entries are posted.
    """
    payment = db.query(Payment).filter(Payment.id == payment_id).with_for_update().first()
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found")

    if payment.payment_status != PaymentStatus.PENDING:
        raise ConflictError(f"Payment {payment.payment_number} is not pending approval")

    if payment.payment_type not in LOAN_PAYMENT_TYPES:
        raise ValidationError(f"Payment {payment.payment_number} is not a loan repayment")

    if payment.loan_id is None:
        raise NotFoundError(f"Payment {payment.payment_number} has no loan reference")

    loan = db.query(Loan).filter(Loan.id == payment.loan_id).with_for_update().first()
    if not loan:
        raise NotFoundError(f"Loan {payment.loan_id} not found")

    if loan.status not in PAYABLE_LOAN_STATUSES:
        raise ConflictError(
            f"Loan {loan.loan_number} is {loan.status.value}; payments apply only to active or defaulted loans"
        )

    if is_period_closed(db, payment.payment_date.month, payment.payment_date.year):
        raise ConflictError(
            f"Cannot approve payment dated {payment.payment_date}: fiscal period {period_key_for(payment.payment_date)} is closed"
        )

    breakdown = allocate_payment(payment.amount, loan.penalty_amount, loan.accrued_interest)

    payment.penalty_amount = breakdown.penalty
    payment.interest_amount = breakdown.interest
    payment.principal_amount = breakdown.principal

    loan.penalty_amount = to_decimal(loan.penalty_amount) - breakdown.penalty
    loan.accrued_interest = to_decimal(loan.accrued_interest) - breakdown.interest
    loan.paid_interest = to_decimal(loan.paid_interest) + breakdown.interest
    loan.paid_principal = to_decimal(loan.paid_principal) + breakdown.principal
    loan.outstanding_balance = to_decimal(loan.outstanding_balance) - breakdown.principal

    warnings: List[str] = []
    if loan.outstanding_balance <= ZERO:
        loan.status = LoanStatus.COMPLETED
        if loan.outstanding_balance < ZERO:
            anomaly = IntegrityAnomaly(
                entity_type="Loan",
                entity_id=loan.loan_number,
                message=f"overpaid, outstanding balance {loan.outstanding_balance}"
            )
            logger.warning("Integrity anomaly: %s", anomaly)
            warnings.append(str(anomaly))

    payment.payment_status = PaymentStatus.COMPLETED
    payment.approved_by = actor
    payment.approved_at = datetime.utcnow()

    post_balanced_entries(
        db,
        lines=[
            {"account_code": settings.CASH_ACCOUNT_CODE, "debit": breakdown.total},
            {"account_code": settings.PENALTY_INCOME_ACCOUNT_CODE, "credit": breakdown.penalty},
            {"account_code": settings.INTEREST_INCOME_ACCOUNT_CODE, "credit": breakdown.interest},
            {"account_code": settings.LOANS_RECEIVABLE_ACCOUNT_CODE, "credit": breakdown.principal},
        ],
        transaction_date=payment.payment_date,
        reference_type=ReferenceType.PAYMENT,
        reference_id=payment.payment_number,
        description=f"Loan payment {payment.payment_number} for {loan.loan_number}",
        created_by=actor
    )

    logger.info(
        "Approved payment %s for loan %s: penalty=%s interest=%s principal=%s",
        payment.payment_number, loan.loan_number, breakdown.penalty, breakdown.interest, breakdown.principal
    )

    record_audit(
        recorder, warnings, actor, "PAYMENT_APPROVE", "Payment", payment.payment_number,
        before={"status": PaymentStatus.PENDING.value},
        after={"status": PaymentStatus.COMPLETED.value, "principal": breakdown.principal, "interest": breakdown.interest, "penalty": breakdown.penalty}
    )

    return PaymentApprovalResult(
        payment_number=payment.payment_number,
        loan_number=loan.loan_number,
        penalty_paid=breakdown.penalty,
        interest_paid=breakdown.interest,
        principal_paid=breakdown.principal,
        outstanding_balance=loan.outstanding_balance,
        loan_status=loan.status.value,
        warnings=warnings
    )
