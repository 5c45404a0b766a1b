import uuid
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coopledger.core.audit import AuditRecorder
from coopledger.core.dependencies import get_audit_recorder
from coopledger.db.base import Base, get_db
from coopledger.main import app
from coopledger.models import (
    Loan, LoanStatus, Member, Payment, PaymentStatus, PaymentType, SavingAccount,
)
from coopledger.services.chart import seed_default_accounts


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_default_accounts(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def recorder(tmp_path):
    return AuditRecorder(logs_dir=tmp_path / "audit")


class FailingRecorder(AuditRecorder):
    def record(self, *args, **kwargs):
        raise OSError("audit sink unavailable")


@pytest.fixture
def failing_recorder():
    return FailingRecorder()


@pytest.fixture
def client(db, recorder):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_recorder] = lambda: recorder
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_member(db):
    counter = {"n": 0}

    def _make(name=None, is_active=True):
        counter["n"] += 1
        member = Member(
            member_number=f"M{counter['n']:04d}",
            name=name or f"Member {counter['n']}",
            is_active=is_active,
        )
        db.add(member)
        db.flush()
        return member

    return _make


@pytest.fixture
def make_loan(db, make_member):
    counter = {"n": 0}

    def _make(member=None, outstanding="20000.00", rate="12", status=LoanStatus.ACTIVE,
              start_date=date(2025, 1, 1), maturity_date=date(2026, 1, 1),
              accrued_interest="0.00", penalty="0.00"):
        counter["n"] += 1
        member = member or make_member()
        loan = Loan(
            loan_number=f"LN{counter['n']:04d}",
            member_id=member.id,
            principal_amount=Decimal(outstanding),
            interest_rate=Decimal(rate),
            term_months=12,
            outstanding_balance=Decimal(outstanding),
            accrued_interest=Decimal(accrued_interest),
            penalty_amount=Decimal(penalty),
            status=status,
            start_date=start_date,
            maturity_date=maturity_date,
        )
        db.add(loan)
        db.flush()
        return loan

    return _make


@pytest.fixture
def make_saving_account(db, make_member):
    counter = {"n": 0}

    def _make(member=None, balance="0.00", share_capital="0.00", is_active=True, is_frozen=False,
              rate="0.00", opening_date=date(2025, 1, 1), last_interest_date=None):
        counter["n"] += 1
        member = member or make_member()
        account = SavingAccount(
            account_number=f"SA{counter['n']:04d}",
            member_id=member.id,
            balance=Decimal(balance),
            available_balance=Decimal(balance),
            share_capital=Decimal(share_capital),
            interest_rate=Decimal(rate),
            opening_date=opening_date,
            last_interest_date=last_interest_date,
            is_active=is_active,
            is_frozen=is_frozen,
        )
        db.add(account)
        db.flush()
        return account

    return _make


@pytest.fixture
def make_payment(db):
    def _make(loan, amount, payment_date, status=PaymentStatus.PENDING,
              payment_type=PaymentType.LOAN_REPAYMENT, principal="0.00", interest="0.00", penalty="0.00"):
        payment = Payment(
            payment_number=f"PAY-{uuid.uuid4().hex[:10]}",
            member_id=loan.member_id,
            loan_id=loan.id,
            payment_type=payment_type,
            payment_status=status,
            amount=Decimal(amount),
            principal_amount=Decimal(principal),
            interest_amount=Decimal(interest),
            penalty_amount=Decimal(penalty),
            payment_date=payment_date,
        )
        db.add(payment)
        db.flush()
        return payment

    return _make
