from sqlalchemy import Column, String, DateTime, Numeric, Boolean, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from coopledger.db.base import Base
from decimal import Decimal


class Member(Base):
    """Cooperative member (owner of loans and savings accounts)."""
    __tablename__ = "member"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_number = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    share_capital = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    loans = relationship("Loan", back_populates="member")
    payments = relationship("Payment", back_populates="member")
    saving_accounts = relationship("SavingAccount", back_populates="member")
