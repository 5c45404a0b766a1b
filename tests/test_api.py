from datetime import date
from decimal import Decimal

from coopledger.services import ledger

FINANCE = {"X-Actor": "treasurer1", "X-Actor-Roles": "Treasurer"}
VIEWER = {"X-Actor": "chair", "X-Actor-Roles": "Chairman"}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["version"] == "1.0.0"


def test_missing_actor_is_unauthorized(client):
    response = client.post("/api/accounting/close-month", json={"month": 4, "year": 2025})
    assert response.status_code == 401


def test_wrong_role_is_forbidden(client):
    response = client.post("/api/accounting/close-month", json={"month": 4, "year": 2025}, headers=VIEWER)
    assert response.status_code == 403


def test_close_month_and_list_periods(client, make_loan, recorder):
    make_loan()

    response = client.post("/api/accounting/close-month", json={"month": 4, "year": 2025}, headers=FINANCE)
    assert response.status_code == 200
    body = response.json()
    assert body["period"] == "2025-04"
    assert body["processed_loans"] == 1
    assert Decimal(body["total_loan_balance"]) == Decimal("20000.00")

    again = client.post("/api/accounting/close-month", json={"month": 4, "year": 2025}, headers=FINANCE)
    assert again.status_code == 409

    periods = client.get("/api/accounting/periods", headers=VIEWER).json()
    assert periods[0]["status"] == "closed"
    assert periods[0]["closed_by"] == "treasurer1"

    assert list(recorder.logs_dir.glob("audit_*.log"))


def test_close_month_rejects_invalid_month(client):
    response = client.post("/api/accounting/close-month", json={"month": 13, "year": 2025}, headers=FINANCE)
    assert response.status_code == 422


def test_unbalanced_close_returns_totals(client, db):
    ledger.post_entry(db, "1010", debit=Decimal("100.00"), transaction_date=date(2025, 4, 3))
    db.commit()

    response = client.post("/api/accounting/close-month", json={"month": 4, "year": 2025}, headers=FINANCE)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert Decimal(detail["debits"]) == Decimal("100.00")
    assert Decimal(detail["credits"]) == Decimal("0")


def test_confirm_before_close_is_not_found(client):
    response = client.post("/api/accounting/confirm-period", json={"month": 4, "year": 2025}, headers=FINANCE)
    assert response.status_code == 404


def test_trial_balance_endpoint(client):
    response = client.get("/api/accounting/trial-balance/2025-04", headers=VIEWER)
    assert response.status_code == 200
    assert response.json()["balanced"] is True

    bad = client.get("/api/accounting/trial-balance/2025-4", headers=VIEWER)
    assert bad.status_code == 400


def test_dividend_flow(client, make_member, make_saving_account):
    member = make_member()
    make_saving_account(member=member, balance="0.00", share_capital="1000.00")

    draft = client.post(
        "/api/dividends/calculate",
        json={"year": 2025, "dividend_rate": "5", "average_return_rate": "10"},
        headers=FINANCE,
    )
    assert draft.status_code == 200
    assert draft.json()["recipient_count"] == 1
    assert Decimal(draft.json()["total_profit"]) == Decimal("0")

    duplicate = client.post(
        "/api/dividends/calculate",
        json={"year": 2025, "dividend_rate": "5", "average_return_rate": "10"},
        headers=FINANCE,
    )
    assert duplicate.status_code == 409

    paid = client.post("/api/dividends/2025/distribute", headers=FINANCE)
    assert paid.status_code == 200
    assert Decimal(paid.json()["total_paid"]) == Decimal("50.00")

    summary = client.get("/api/dividends/2025", headers=VIEWER).json()
    assert summary["status"] == "approved"
    assert Decimal(summary["total_profit"]) == Decimal("0")

    recipients = client.get("/api/dividends/2025/recipients", headers=VIEWER).json()
    assert len(recipients) == 1
    assert recipients[0]["paid_at"] is not None


def test_unknown_distribution_is_not_found(client):
    assert client.get("/api/dividends/2030", headers=VIEWER).status_code == 404
    assert client.post("/api/dividends/2030/distribute", headers=FINANCE).status_code == 404


def test_payment_approval_endpoint(client, make_loan, make_payment):
    loan = make_loan(outstanding="1000.00", accrued_interest="10.00")
    payment = make_payment(loan, "110.00", date(2025, 4, 10))

    response = client.post(f"/api/payments/{payment.id}/approve", headers=FINANCE)

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["interest_paid"]) == Decimal("10.00")
    assert Decimal(body["principal_paid"]) == Decimal("100.00")

    again = client.post(f"/api/payments/{payment.id}/approve", headers=FINANCE)
    assert again.status_code == 409


def test_reports_endpoints(client):
    sheet = client.get("/api/reports/balance-sheet", params={"as_of": "2025-03-31"}, headers=VIEWER)
    assert sheet.status_code == 200
    assert sheet.json()["equity"][-1]["name"] == "Retained Earnings"

    inverted = client.get(
        "/api/reports/income-expense",
        params={"start_date": "2025-04-01", "end_date": "2025-03-01"},
        headers=VIEWER,
    )
    assert inverted.status_code == 400

    monthly = client.get("/api/reports/monthly/2025/3", headers=VIEWER)
    assert monthly.status_code == 200
    assert monthly.json()["month"] == "2025-03"


def test_overdue_loans_endpoint(client, make_loan):
    loan = make_loan(outstanding="1500.00", maturity_date=date(2025, 3, 1))

    response = client.get("/api/reports/overdue-loans", params={"today": "2025-04-30"}, headers=VIEWER)

    assert response.status_code == 200
    rows = response.json()
    assert [row["loan_number"] for row in rows] == [loan.loan_number]
    assert rows[0]["days_overdue"] == 60


def test_member_statement_endpoint(client, make_member):
    member = make_member()
    params = {"start_date": "2025-04-01", "end_date": "2025-04-30"}

    response = client.get(f"/api/reports/member-statement/{member.id}", params=params, headers=VIEWER)
    assert response.status_code == 200
    assert response.json()["items"] == []
    assert Decimal(response.json()["ending_balance"]) == Decimal("0")

    missing = client.get(
        "/api/reports/member-statement/00000000-0000-0000-0000-000000000000", params=params, headers=VIEWER
    )
    assert missing.status_code == 404
