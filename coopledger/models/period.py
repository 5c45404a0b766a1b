from sqlalchemy import Column, String, DateTime, Integer, Enum as SQLEnum, UniqueConstraint, Uuid, text
import uuid
from coopledger.db.base import Base
import enum


class PeriodStatus(str, enum.Enum):
    """Fiscal period status. OPEN -> CLOSED only."""
    OPEN = "open"
    CLOSED = "closed"


class FiscalPeriod(Base):
    """Monthly accounting window, created lazily on first close."""
    __tablename__ = "fiscal_period"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(SQLEnum(PeriodStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=PeriodStatus.OPEN, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    closed_by = Column(String(100), nullable=True)
    confirmed_at = Column(DateTime, nullable=True)  # set when snapshots are verified
    confirmed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # One record per (month, year)
    __table_args__ = (
        UniqueConstraint("month", "year", name="uq_fiscal_period_month_year"),
    )

    @property
    def period_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
