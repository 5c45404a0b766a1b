from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID


class DividendCalculationRequest(BaseModel):
    """Schema for calculating a year's dividends."""
    year: int = Field(..., ge=1900, le=9999, description="Dividend year")
    dividend_rate: Decimal = Field(..., ge=0, description="Share-capital dividend rate, percent")
    average_return_rate: Decimal = Field(..., ge=0, description="Interest cash-back rate, percent")


class DividendRecipientResponse(BaseModel):
    """Schema for dividend recipient response."""
    member_id: UUID
    share_capital_snapshot: Decimal
    interest_paid_snapshot: Decimal
    dividend_amount: Decimal
    average_return_amount: Decimal
    total_amount: Decimal
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DistributionDraft(BaseModel):
    """Calculated (not yet paid) distribution."""
    year: int
    status: str
    dividend_rate: Decimal
    average_return_rate: Decimal
    total_profit: Decimal
    total_dividend_amount: Decimal
    total_average_return_amount: Decimal
    recipient_count: int
    calculated_at: Optional[datetime]
    warnings: List[str] = Field(default_factory=list)


class DistributionResult(BaseModel):
    """Outcome of paying out a distribution."""
    year: int
    status: str
    paid_recipients: int
    total_paid: Decimal
    distributed_at: Optional[datetime]
    warnings: List[str] = Field(default_factory=list)
