"""Read-only reports.

Financial statements are computed from journal entries by account-code
prefix. Prefix convention: ``1`` asset, ``2`` liability, ``3`` equity, ``4`` income,
``5`` expense.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from coopledger.core.exceptions import NotFoundError, ValidationError
from coopledger.core.money import ZERO, to_decimal
from coopledger.models.loan import Loan, LoanStatus, Payment, PaymentStatus
from coopledger.models.member import Member
from coopledger.models.saving import SavingAccount, SavingTransaction, SavingTransactionType
from coopledger.schemas.accounting import (
    BalanceSheet, IncomeExpenseReport, MemberStatement, MonthlyReport, OverdueLoan, ReportItem, StatementItem,
    TrialBalance,
)
from coopledger.services import trial_balance
from coopledger.services.ledger import period_key, sum_by_account_prefix
from coopledger.services.period import month_window

logger = logging.getLogger(__name__)

ASSET_PREFIX = "1"
LIABILITY_PREFIX = "2"
EQUITY_PREFIX = "3"
INCOME_PREFIX = "4"
EXPENSE_PREFIX = "5"

CREDIT_TRANSACTION_TYPES = [
    SavingTransactionType.DEPOSIT,
    SavingTransactionType.INTEREST_CREDIT,
    SavingTransactionType.DIVIDEND_PAYOUT,
]


def _debit_normal(rows) -> List[ReportItem]:
    return [
        ReportItem(name=row["account_name"], account_code=row["account_code"], amount=row["debits"] - row["credits"])
        for row in rows
    ]


def _credit_normal(rows) -> List[ReportItem]:
    return [
        ReportItem(name=row["account_name"], account_code=row["account_code"], amount=row["credits"] - row["debits"])
        for row in rows
    ]


def _total(items: List[ReportItem]) -> Decimal:
    return sum((item.amount for item in items), ZERO)


def get_trial_balance(db: Session, fiscal_period: str) -> TrialBalance:
    return trial_balance.get_trial_balance(db, fiscal_period)


def generate_income_expense_report(db: Session, start_date: date, end_date: date) -> IncomeExpenseReport:
    """Income (4x, credit-normal) and expense (5x, debit-normal) for a date range."""
    if start_date > end_date:
        raise ValidationError(f"Invalid date range: {start_date} is after {end_date}")

    income_items = _credit_normal(sum_by_account_prefix(db, INCOME_PREFIX, start_date, end_date))
    expense_items = _debit_normal(sum_by_account_prefix(db, EXPENSE_PREFIX, start_date, end_date))

    total_income = _total(income_items)
    total_expense = _total(expense_items)

    return IncomeExpenseReport(
        period=f"{start_date} to {end_date}",
        income_items=income_items,
        expense_items=expense_items,
        total_income=total_income,
        total_expense=total_expense,
        net_profit=total_income - total_expense
    )


def generate_balance_sheet(db: Session, as_of_date: date) -> BalanceSheet:
    """
    Balance sheet from all entries up to ``as_of_date``.

    Retained earnings is a residual plug (assets - liabilities - other
    equity), not an integration of past income statements, so posting errors
    land in it silently.
    """
    assets = _debit_normal(sum_by_account_prefix(db, ASSET_PREFIX, end_date=as_of_date))
    liabilities = _credit_normal(sum_by_account_prefix(db, LIABILITY_PREFIX, end_date=as_of_date))
    equity = _credit_normal(sum_by_account_prefix(db, EQUITY_PREFIX, end_date=as_of_date))

    total_assets = _total(assets)
    total_liabilities = _total(liabilities)
    equity_before_retained = _total(equity)

    retained_earnings = total_assets - total_liabilities - equity_before_retained
    equity.append(ReportItem(name="Retained Earnings", amount=retained_earnings))

    return BalanceSheet(
        as_of_date=as_of_date,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=equity_before_retained + retained_earnings,
        retained_earnings=retained_earnings
    )


def generate_monthly_report(db: Session, month: int, year: int) -> MonthlyReport:
    """Monthly income/expense summary plus loan counts."""
    start_date, end_date = month_window(month, year)
    key = period_key(year, month)

    report = generate_income_expense_report(db, start_date, end_date)

    new_loans = db.query(Loan).filter(Loan.start_date >= start_date, Loan.start_date <= end_date).count()
    closed_loans = db.query(Loan).filter(Loan.maturity_date >= start_date, Loan.maturity_date <= end_date).count()

    return MonthlyReport(
        month=key,
        total_income=report.total_income,
        total_expense=report.total_expense,
        net_income=report.net_profit,
        new_loans_count=new_loans,
        closed_loans_count=closed_loans
    )


def get_overdue_loans(db: Session, today: Optional[date] = None) -> List[OverdueLoan]:
    """Active or defaulted loans past maturity that still carry a balance, oldest first."""
    today = today or date.today()

    last_payment = db.query(
        Payment.loan_id.label("loan_id"),
        func.max(Payment.payment_date).label("last_payment_date")
    ).filter(
        Payment.payment_status == PaymentStatus.COMPLETED
    ).group_by(Payment.loan_id).subquery()

    rows = db.query(Loan, Member.name, last_payment.c.last_payment_date).join(
        Member, Member.id == Loan.member_id
    ).outerjoin(
        last_payment, last_payment.c.loan_id == Loan.id
    ).filter(
        Loan.status.in_([LoanStatus.ACTIVE, LoanStatus.DEFAULTED]),
        Loan.maturity_date < today,
        Loan.outstanding_balance > 0
    ).order_by(Loan.maturity_date, Loan.loan_number).all()

    overdue = [
        OverdueLoan(
            loan_number=loan.loan_number,
            member_name=member_name,
            outstanding_balance=loan.outstanding_balance,
            maturity_date=loan.maturity_date,
            last_payment_date=last_payment_date,
            days_overdue=(today - loan.maturity_date).days
        )
        for loan, member_name, last_payment_date in rows
    ]
    logger.info("%d overdue loan(s) as of %s", len(overdue), today)
    return overdue


def generate_member_statement(db: Session, member_id: UUID, start_date: date, end_date: date) -> MemberStatement:
    """
    Statement of a member's savings movements and completed payments.

    Deposits, interest credits and dividend payouts are credits; other
    savings movements and loan payments are debits. Savings lines carry the
    running account balance, payment lines carry none.
    """
    if start_date > end_date:
        raise ValidationError(f"Invalid date range: {start_date} is after {end_date}")

    member = db.query(Member).filter(Member.id == member_id).first()
    if not member:
        raise NotFoundError(f"Member {member_id} not found")

    items: List[StatementItem] = []

    transactions = db.query(SavingTransaction).join(
        SavingAccount, SavingAccount.id == SavingTransaction.saving_account_id
    ).filter(
        SavingAccount.member_id == member_id,
        SavingTransaction.transaction_date >= start_date,
        SavingTransaction.transaction_date <= end_date
    ).order_by(SavingTransaction.transaction_date, SavingTransaction.created_at).all()

    for transaction in transactions:
        amount = to_decimal(transaction.amount)
        is_credit = transaction.transaction_type in CREDIT_TRANSACTION_TYPES
        items.append(StatementItem(
            entry_date=transaction.transaction_date,
            description=transaction.description or transaction.transaction_type.value,
            entry_type=transaction.transaction_type.value,
            debit=ZERO if is_credit else amount,
            credit=amount if is_credit else ZERO,
            balance=transaction.balance_after
        ))

    payments = db.query(Payment).filter(
        Payment.member_id == member_id,
        Payment.payment_status == PaymentStatus.COMPLETED,
        Payment.payment_date >= start_date,
        Payment.payment_date <= end_date
    ).order_by(Payment.payment_date).all()

    for payment in payments:
        items.append(StatementItem(
            entry_date=payment.payment_date,
            description=f"Payment: {payment.payment_type.value}",
            entry_type=payment.payment_type.value,
            debit=to_decimal(payment.amount)
        ))

    # stable: savings lines precede payments on the same day
    items.sort(key=lambda item: item.entry_date)

    total_debits = sum((item.debit for item in items), ZERO)
    total_credits = sum((item.credit for item in items), ZERO)

    return MemberStatement(
        member_name=member.name,
        member_number=member.member_number,
        start_date=start_date,
        end_date=end_date,
        items=items,
        total_debits=total_debits,
        total_credits=total_credits,
        ending_balance=total_credits - total_debits
    )
