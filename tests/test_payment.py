import uuid
from datetime import date
from decimal import Decimal

import pytest

from coopledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from coopledger.models import JournalEntry, LoanStatus, PaymentStatus, PaymentType
from coopledger.services import period
from coopledger.services.ledger import sum_by_period
from coopledger.services.payment import approve_loan_payment


def test_approval_allocates_and_updates_loan(db, make_loan, make_payment, recorder):
    loan = make_loan(outstanding="1000.00", accrued_interest="300.00", penalty="50.00")
    payment = make_payment(loan, "500.00", date(2025, 4, 10))

    result = approve_loan_payment(db, payment.id, "treasurer1", recorder)

    assert result.penalty_paid == Decimal("50.00")
    assert result.interest_paid == Decimal("300.00")
    assert result.principal_paid == Decimal("150.00")
    assert result.outstanding_balance == Decimal("850.00")
    assert result.loan_status == LoanStatus.ACTIVE.value

    assert payment.payment_status == PaymentStatus.COMPLETED
    assert payment.approved_by == "treasurer1"
    assert loan.penalty_amount == Decimal("0.00")
    assert loan.accrued_interest == Decimal("0.00")
    assert loan.paid_interest == Decimal("300.00")
    assert loan.paid_principal == Decimal("150.00")


def test_approval_posts_balanced_journal(db, make_loan, make_payment):
    loan = make_loan(outstanding="1000.00", accrued_interest="20.00")
    payment = make_payment(loan, "120.00", date(2025, 4, 10))

    approve_loan_payment(db, payment.id, "treasurer1")

    entries = db.query(JournalEntry).filter(JournalEntry.reference_id == payment.payment_number).all()
    by_account = {e.account_code: (e.debit, e.credit) for e in entries}
    assert by_account["1010"] == (Decimal("120.00"), Decimal("0.00"))
    assert by_account["4100"] == (Decimal("0.00"), Decimal("20.00"))
    assert by_account["1200"] == (Decimal("0.00"), Decimal("100.00"))
    assert "4200" not in by_account
    assert sum_by_period(db, "2025-04") == (Decimal("120.00"), Decimal("120.00"))


def test_full_repayment_completes_loan(db, make_loan, make_payment):
    loan = make_loan(outstanding="200.00")
    payment = make_payment(loan, "200.00", date(2025, 4, 10), payment_type=PaymentType.LOAN_CLOSURE)

    result = approve_loan_payment(db, payment.id, "treasurer1")

    assert result.loan_status == LoanStatus.COMPLETED.value
    assert result.warnings == []


def test_overpayment_flags_anomaly(db, make_loan, make_payment):
    loan = make_loan(outstanding="100.00")
    payment = make_payment(loan, "150.00", date(2025, 4, 10))

    result = approve_loan_payment(db, payment.id, "treasurer1")

    assert result.outstanding_balance == Decimal("-50.00")
    assert result.loan_status == LoanStatus.COMPLETED.value
    assert any(loan.loan_number in w for w in result.warnings)


def test_approval_rejected_in_closed_period(db, make_loan, make_payment):
    loan = make_loan()
    period.close_month(db, 4, 2025, "treasurer1")
    payment = make_payment(loan, "100.00", date(2025, 4, 20))

    with pytest.raises(ConflictError):
        approve_loan_payment(db, payment.id, "treasurer1")

    assert payment.payment_status == PaymentStatus.PENDING


def test_approval_guards(db, make_loan, make_payment):
    loan = make_loan()

    with pytest.raises(NotFoundError):
        approve_loan_payment(db, uuid.uuid4(), "treasurer1")

    done = make_payment(loan, "100.00", date(2025, 4, 20), status=PaymentStatus.COMPLETED)
    with pytest.raises(ConflictError):
        approve_loan_payment(db, done.id, "treasurer1")

    deposit = make_payment(loan, "100.00", date(2025, 4, 20), payment_type=PaymentType.SAVINGS_DEPOSIT)
    with pytest.raises(ValidationError):
        approve_loan_payment(db, deposit.id, "treasurer1")


@pytest.mark.parametrize("status", [LoanStatus.COMPLETED, LoanStatus.PENDING])
def test_approval_rejected_for_loan_not_in_repayment(db, make_loan, make_payment, status):
    loan = make_loan(outstanding="0.00", status=status)
    payment = make_payment(loan, "500.00", date(2025, 4, 10))

    with pytest.raises(ConflictError):
        approve_loan_payment(db, payment.id, "treasurer1")

    assert loan.outstanding_balance == Decimal("0.00")
    assert payment.payment_status == PaymentStatus.PENDING
    assert db.query(JournalEntry).count() == 0


def test_defaulted_loan_accepts_payment(db, make_loan, make_payment):
    loan = make_loan(outstanding="1000.00", status=LoanStatus.DEFAULTED)
    payment = make_payment(loan, "200.00", date(2025, 4, 10))

    result = approve_loan_payment(db, payment.id, "treasurer1")

    assert result.principal_paid == Decimal("200.00")
    assert result.outstanding_balance == Decimal("800.00")
