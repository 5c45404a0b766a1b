from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import date


class InterestCreditRequest(BaseModel):
    """Credit savings interest accrued up to ``as_of`` (defaults to today)."""
    as_of: Optional[date] = Field(None, description="Interest is accrued up to, not including, this date")


class InterestCreditSummary(BaseModel):
    """Outcome of a savings interest run."""
    as_of: date
    accounts_credited: int
    total_interest: Decimal
    warnings: List[str] = Field(default_factory=list)
