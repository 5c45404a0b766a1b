from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from coopledger.db.base import get_db
from coopledger.core.dependencies import Actor, require_viewer
from coopledger.core.exceptions import LedgerError
from coopledger.api.errors import to_http_exception
from coopledger.schemas.accounting import BalanceSheet, IncomeExpenseReport, MemberStatement, MonthlyReport, OverdueLoan
from coopledger.services import reporting
from datetime import date
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/balance-sheet", response_model=BalanceSheet)
def balance_sheet(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    return reporting.generate_balance_sheet(db, as_of or date.today())


@router.get("/income-expense", response_model=IncomeExpenseReport)
def income_expense(
    start_date: date = Query(...),
    end_date: date = Query(...),
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    """Income and expense totals between two dates, inclusive."""
    try:
        return reporting.generate_income_expense_report(db, start_date, end_date)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/monthly/{year}/{month}", response_model=MonthlyReport)
def monthly_report(
    year: int,
    month: int,
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    try:
        return reporting.generate_monthly_report(db, month, year)
    except LedgerError as e:
        raise to_http_exception(e)


@router.get("/overdue-loans", response_model=List[OverdueLoan])
def overdue_loans(
    today: Optional[date] = Query(None, description="Defaults to today"),
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    return reporting.get_overdue_loans(db, today)


@router.get("/member-statement/{member_id}", response_model=MemberStatement)
def member_statement(
    member_id: UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    actor: Actor = Depends(require_viewer),
    db: Session = Depends(get_db)
):
    """Savings movements and completed payments of one member between two dates."""
    try:
        return reporting.generate_member_statement(db, member_id, start_date, end_date)
    except LedgerError as e:
        raise to_http_exception(e)
