from datetime import date
from decimal import Decimal

import pytest

from coopledger.core.exceptions import ConflictError
from coopledger.models import JournalEntry, SavingTransaction, SavingTransactionType
from coopledger.services import period
from coopledger.services.saving import (
    calculate_daily_interest, calculate_saving_interest, credit_saving_interest, one_month_before,
)
from coopledger.services.trial_balance import check_trial_balance

FINANCE = {"X-Actor": "treasurer1", "X-Actor-Roles": "Treasurer"}


def test_daily_interest():
    assert calculate_daily_interest(Decimal("36500"), Decimal("1")) == Decimal("1.00000000")
    assert calculate_daily_interest(Decimal("1000"), Decimal("5")) == Decimal("0.13698630")
    assert calculate_daily_interest(Decimal("0"), Decimal("5")) == Decimal("0")
    assert calculate_daily_interest(Decimal("1000"), Decimal("0")) == Decimal("0")


def test_one_month_before_clamps_to_month_end():
    assert one_month_before(date(2025, 3, 31)) == date(2025, 2, 28)
    assert one_month_before(date(2025, 1, 15)) == date(2024, 12, 15)


def test_interest_window_excludes_as_of(make_saving_account):
    account = make_saving_account(balance="36500.00", rate="1", opening_date=date(2025, 1, 1))

    assert calculate_saving_interest(account, date(2025, 2, 1)) == Decimal("31.00")
    assert calculate_saving_interest(account, date(2025, 1, 1)) == Decimal("0.00")

    account.last_interest_date = date(2025, 1, 20)
    assert calculate_saving_interest(account, date(2025, 2, 1)) == Decimal("12.00")


def test_credit_interest_posts_and_records(db, make_saving_account, recorder):
    account = make_saving_account(balance="36500.00", rate="1", opening_date=date(2025, 1, 1))

    summary = credit_saving_interest(db, date(2025, 2, 1), "treasurer1", recorder)

    assert summary.accounts_credited == 1
    assert summary.total_interest == Decimal("31.00")
    assert summary.warnings == []
    assert account.balance == Decimal("36531.00")
    assert account.available_balance == Decimal("36531.00")
    assert account.last_interest_date == date(2025, 2, 1)

    transaction = db.query(SavingTransaction).one()
    assert transaction.transaction_type == SavingTransactionType.INTEREST_CREDIT
    assert transaction.amount == Decimal("31.00")
    assert transaction.balance_after == Decimal("36531.00")

    entries = db.query(JournalEntry).filter(JournalEntry.reference_id == f"INT-{account.account_number}-2025-02-01").all()
    by_account = {e.account_code: (e.debit, e.credit) for e in entries}
    assert by_account["5200"] == (Decimal("31.00"), Decimal("0.00"))
    assert by_account["2100"] == (Decimal("0.00"), Decimal("31.00"))
    assert check_trial_balance(db, "2025-02").balanced

    assert list(recorder.logs_dir.glob("audit_*.log"))


def test_credit_interest_selects_due_accounts(db, make_saving_account):
    recent = make_saving_account(balance="36500.00", rate="1", last_interest_date=date(2025, 1, 15))
    overdue = make_saving_account(balance="36500.00", rate="1", last_interest_date=date(2024, 12, 1))
    inactive = make_saving_account(balance="36500.00", rate="1", is_active=False)
    frozen = make_saving_account(balance="36500.00", rate="1", is_frozen=True, last_interest_date=date(2024, 12, 31))
    make_saving_account(balance="0.00", rate="1")

    summary = credit_saving_interest(db, date(2025, 2, 1))

    assert summary.accounts_credited == 2
    assert summary.total_interest == Decimal("94.00")
    assert overdue.balance == Decimal("36562.00")
    assert frozen.balance == Decimal("36532.00")
    assert recent.balance == Decimal("36500.00")
    assert recent.last_interest_date == date(2025, 1, 15)
    assert inactive.balance == Decimal("36500.00")


def test_credit_interest_twice_in_a_month_is_noop(db, make_saving_account):
    make_saving_account(balance="36500.00", rate="1")
    credit_saving_interest(db, date(2025, 2, 1))

    summary = credit_saving_interest(db, date(2025, 2, 15))

    assert summary.accounts_credited == 0
    assert summary.total_interest == Decimal("0.00")
    assert db.query(SavingTransaction).count() == 1


def test_credit_interest_into_closed_period_rejected(db, make_saving_account):
    account = make_saving_account(balance="36500.00", rate="1")
    period.close_month(db, 4, 2025, "treasurer1")

    with pytest.raises(ConflictError):
        credit_saving_interest(db, date(2025, 4, 30))

    db.rollback()
    assert db.query(SavingTransaction).count() == 0


def test_credit_interest_endpoint(client, make_saving_account):
    make_saving_account(balance="36500.00", rate="1", opening_date=date(2025, 1, 1))

    response = client.post("/api/savings/credit-interest", json={"as_of": "2025-02-01"}, headers=FINANCE)

    assert response.status_code == 200
    body = response.json()
    assert body["accounts_credited"] == 1
    assert Decimal(body["total_interest"]) == Decimal("31.00")

    viewer = client.post(
        "/api/savings/credit-interest",
        json={"as_of": "2025-02-01"},
        headers={"X-Actor": "chair", "X-Actor-Roles": "Chairman"},
    )
    assert viewer.status_code == 403
