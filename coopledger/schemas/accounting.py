from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from coopledger.models.period import PeriodStatus


class TrialBalance(BaseModel):
    """Debit/credit totals for one fiscal period."""
    period: str
    debits: Decimal
    credits: Decimal
    variance: Decimal
    balanced: bool


class CloseMonthRequest(BaseModel):
    """Schema for closing a fiscal month."""
    month: int = Field(..., ge=1, le=12, description="Month number (1-12)")
    year: int = Field(..., ge=1900, le=9999, description="Four-digit year")


class ConfirmPeriodRequest(BaseModel):
    """Schema for confirming (verifying) a closed fiscal month."""
    month: int = Field(..., ge=1, le=12, description="Month number (1-12)")
    year: int = Field(..., ge=1900, le=9999, description="Four-digit year")


class CloseMonthSummary(BaseModel):
    """Result of a month close."""
    period: str
    processed_loans: int
    processed_savings: int
    total_loan_balance: Decimal
    total_saving_balance: Decimal
    warnings: List[str] = Field(default_factory=list, description="Integrity anomalies and audit failures")


class ConfirmPeriodResult(BaseModel):
    """Result of a period confirmation."""
    period: str
    verified_snapshots: int
    warnings: List[str] = Field(default_factory=list)


class FiscalPeriodResponse(BaseModel):
    """Schema for fiscal period response."""
    month: int
    year: int
    status: PeriodStatus
    closed_at: Optional[datetime]
    closed_by: Optional[str]
    confirmed_at: Optional[datetime]
    confirmed_by: Optional[str]

    class Config:
        from_attributes = True


class ReportItem(BaseModel):
    """Named amount on a report."""
    name: str
    amount: Decimal
    account_code: Optional[str] = None


class IncomeExpenseReport(BaseModel):
    """Income and expense for a date range."""
    period: str
    income_items: List[ReportItem]
    expense_items: List[ReportItem]
    total_income: Decimal
    total_expense: Decimal
    net_profit: Decimal


class BalanceSheet(BaseModel):
    """Balance sheet as of a date. Retained earnings is the residual plug."""
    as_of_date: date
    assets: List[ReportItem]
    liabilities: List[ReportItem]
    equity: List[ReportItem]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    retained_earnings: Decimal


class MonthlyReport(BaseModel):
    """High-level monthly summary."""
    month: str
    total_income: Decimal
    total_expense: Decimal
    net_income: Decimal
    new_loans_count: int
    closed_loans_count: int


class OverdueLoan(BaseModel):
    """Loan past maturity with a balance still owed."""
    loan_number: str
    member_name: str
    outstanding_balance: Decimal
    maturity_date: date
    last_payment_date: Optional[date] = None
    days_overdue: int


class StatementItem(BaseModel):
    """One line of a member statement."""
    entry_date: date
    description: str
    entry_type: str
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")
    balance: Optional[Decimal] = None


class MemberStatement(BaseModel):
    """Savings movements and loan payments of a member over a date range."""
    member_name: str
    member_number: str
    start_date: date
    end_date: date
    items: List[StatementItem]
    total_debits: Decimal
    total_credits: Decimal
    ending_balance: Decimal
