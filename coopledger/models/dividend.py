from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Numeric, Enum as SQLEnum, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from coopledger.db.base import Base
import enum
from decimal import Decimal


class DistributionStatus(str, enum.Enum):
    """Dividend distribution status. PENDING is the draft; APPROVED means paid out."""
    PENDING = "pending"
    APPROVED = "approved"


class DividendDistribution(Base):
    """Yearly dividend run."""
    __tablename__ = "dividend_distribution"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    year = Column(Integer, nullable=False, unique=True, index=True)
    dividend_rate = Column(Numeric(7, 4), nullable=False)
    average_return_rate = Column(Numeric(7, 4), nullable=False)
    status = Column(SQLEnum(DistributionStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=DistributionStatus.PENDING, nullable=False)
    total_profit = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_dividend_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_average_return_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    calculated_at = Column(DateTime, nullable=True)
    calculated_by = Column(String(100), nullable=True)
    distributed_at = Column(DateTime, nullable=True)
    distributed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    recipients = relationship("DividendRecipient", back_populates="distribution", cascade="all, delete-orphan")


class DividendRecipient(Base):
    """Per-member payout computed once at calculation time."""
    __tablename__ = "dividend_recipient"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    distribution_id = Column(Uuid(as_uuid=True), ForeignKey("dividend_distribution.id"), nullable=False, index=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    share_capital_snapshot = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    interest_paid_snapshot = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    dividend_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    average_return_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    distribution = relationship("DividendDistribution", back_populates="recipients")
    member = relationship("Member")

    __table_args__ = (
        UniqueConstraint("distribution_id", "member_id", name="uq_dividend_recipient_member"),
    )
