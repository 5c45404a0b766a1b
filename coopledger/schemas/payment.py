from pydantic import BaseModel, Field
from typing import List
from decimal import Decimal


class PaymentApprovalResult(BaseModel):
    """Outcome of approving a loan payment."""
    payment_number: str
    loan_number: str
    penalty_paid: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    outstanding_balance: Decimal
    loan_status: str
    warnings: List[str] = Field(default_factory=list)
