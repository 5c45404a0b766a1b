from datetime import date
from decimal import Decimal

import pytest

from coopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from coopledger.db.base import atomic
from coopledger.models import (
    FiscalPeriod, LoanBalanceSnapshot, LoanStatus, PeriodStatus, SavingBalanceSnapshot,
)
from coopledger.services import loan_snapshot, ledger, period


def test_month_window():
    assert period.month_window(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValidationError):
        period.month_window(13, 2024)


def test_close_month_snapshots_and_locks(db, make_loan, make_saving_account, recorder):
    make_loan(outstanding="20000.00")
    make_loan(outstanding="5000.00", status=LoanStatus.DEFAULTED)
    make_loan(outstanding="900.00", status=LoanStatus.COMPLETED)
    make_saving_account(balance="300.00")
    make_saving_account(balance="50.00", is_active=False)

    summary = period.close_month(db, 4, 2025, "treasurer1", recorder)

    assert summary.period == "2025-04"
    assert summary.processed_loans == 2
    assert summary.processed_savings == 1
    assert summary.total_loan_balance == Decimal("25000.00")
    assert summary.total_saving_balance == Decimal("300.00")
    assert summary.warnings == []

    closed = period.get_period(db, 4, 2025)
    assert closed.status == PeriodStatus.CLOSED
    assert closed.closed_by == "treasurer1"
    assert closed.closed_at is not None

    snapshots = db.query(LoanBalanceSnapshot).all()
    assert {s.balance_date for s in snapshots} == {date(2025, 4, 30)}
    saving = db.query(SavingBalanceSnapshot).one()
    assert saving.opening_balance == saving.closing_balance == Decimal("300.00")


def test_close_month_twice_is_conflict_without_new_snapshots(db, make_loan):
    make_loan()
    period.close_month(db, 4, 2025, "treasurer1")

    with pytest.raises(ConflictError):
        period.close_month(db, 4, 2025, "treasurer1")

    assert db.query(LoanBalanceSnapshot).count() == 1


def test_close_month_skips_existing_snapshots(db, make_loan):
    first = make_loan()
    make_loan()
    loan_snapshot.process_loan_snapshot(db, first, date(2025, 4, 1), date(2025, 4, 30))

    summary = period.close_month(db, 4, 2025, "treasurer1")

    assert summary.processed_loans == 1
    assert summary.total_loan_balance == Decimal("40000.00")
    assert db.query(LoanBalanceSnapshot).count() == 2


def test_unbalanced_trial_balance_blocks_close(db, make_loan):
    make_loan()
    ledger.post_entry(db, "1010", debit=Decimal("100.00"), transaction_date=date(2025, 4, 3))
    ledger.post_entry(db, "4100", credit=Decimal("90.00"), transaction_date=date(2025, 4, 3))
    db.flush()

    with pytest.raises(ValidationError) as exc_info:
        period.close_month(db, 4, 2025, "treasurer1")

    assert exc_info.value.debits == Decimal("100.00")
    assert exc_info.value.credits == Decimal("90.00")
    assert period.get_period(db, 4, 2025) is None
    assert db.query(LoanBalanceSnapshot).count() == 0


def test_failing_loan_rolls_back_whole_close(db, make_loan, monkeypatch):
    make_loan()
    make_loan()
    db.commit()

    calls = {"n": 0}
    original = loan_snapshot.process_loan_snapshot

    def flaky(session, loan, start_date, end_date):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("storage failure")
        return original(session, loan, start_date, end_date)

    monkeypatch.setattr(loan_snapshot, "process_loan_snapshot", flaky)

    with pytest.raises(RuntimeError):
        with atomic(db):
            period.close_month(db, 4, 2025, "treasurer1")

    assert db.query(LoanBalanceSnapshot).count() == 0
    assert db.query(FiscalPeriod).count() == 0


def test_negative_loan_balance_reported_as_warning(db, make_loan):
    loan = make_loan(outstanding="-10.00")

    summary = period.close_month(db, 4, 2025, "treasurer1")

    assert summary.processed_loans == 1
    assert len(summary.warnings) == 1
    assert loan.loan_number in summary.warnings[0]


def test_audit_failure_does_not_undo_close(db, make_loan, failing_recorder):
    make_loan()

    summary = period.close_month(db, 4, 2025, "treasurer1", failing_recorder)

    assert period.is_period_closed(db, 4, 2025)
    assert any("Audit recording failed" in w for w in summary.warnings)


def test_audit_line_written(db, make_loan, recorder):
    make_loan()
    period.close_month(db, 4, 2025, "treasurer1", recorder)

    lines = []
    for log_file in recorder.logs_dir.glob("audit_*.log"):
        lines.extend(log_file.read_text(encoding="utf-8").splitlines())
    assert len(lines) == 1
    assert "PERIOD_CLOSE" in lines[0]
    assert "2025-04" in lines[0]


def test_confirm_requires_closed_period(db, make_loan):
    with pytest.raises(NotFoundError):
        period.confirm_period(db, 4, 2025, "treasurer1")

    db.add(FiscalPeriod(month=4, year=2025, status=PeriodStatus.OPEN))
    db.flush()
    with pytest.raises(ConflictError):
        period.confirm_period(db, 4, 2025, "treasurer1")


def test_confirm_verifies_month_end_snapshots(db, make_loan):
    make_loan()
    make_loan()
    period.close_month(db, 4, 2025, "treasurer1")

    result = period.confirm_period(db, 4, 2025, "chair")

    assert result.verified_snapshots == 2
    assert all(s.verified for s in db.query(LoanBalanceSnapshot).all())
    confirmed = period.get_period(db, 4, 2025)
    assert confirmed.confirmed_by == "chair"

    again = period.confirm_period(db, 4, 2025, "chair")
    assert again.verified_snapshots == 0


def test_list_periods_newest_first(db):
    period.close_month(db, 3, 2025, "treasurer1")
    period.close_month(db, 4, 2025, "treasurer1")

    keys = [p.period_key for p in period.list_periods(db)]
    assert keys == ["2025-04", "2025-03"]


def test_flag_overdue_loans(db, make_loan):
    overdue = make_loan(maturity_date=date(2025, 3, 31))
    make_loan(maturity_date=date(2025, 12, 31))
    make_loan(outstanding="0.00", maturity_date=date(2025, 3, 31))

    flagged = period.flag_overdue_loans(db, today=date(2025, 4, 15))

    assert flagged == [overdue.loan_number]
    assert overdue.status == LoanStatus.DEFAULTED
