from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Boolean, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class CommissionBasis(str, enum.Enum):
    REVENUE = "revenue"
    PROFIT = "profit"


class CommissionSettings(Base):
    """Global commission configuration. A single row (id=1)."""
    __tablename__ = "commission_settings"

    id = Column(Integer, primary_key=True, index=True)
    enabled = Column(Boolean, default=True, nullable=False)
    default_rate = Column(Numeric(5, 2), nullable=True)  # percent, e.g. 5.00
    calculation_basis = Column(String, nullable=True)  # revenue or profit

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class StaffCommissionOverride(Base):
    """Current per-staff rate. One row per staff member."""
    __tablename__ = "staff_commission_overrides"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)

    commission_rate = Column(Numeric(5, 2), nullable=False)  # percent, 0-100
    commission_basis = Column(String, default=CommissionBasis.REVENUE.value, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    staff = relationship("User", back_populates="commission_override")


class StaffCommissionRateHistory(Base):
    """Time-sliced staff rate. effective_to is NULL on the open segment."""
    __tablename__ = "staff_commission_rate_history"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    commission_rate = Column(Numeric(5, 2), nullable=False)
    commission_basis = Column(String, nullable=False)

    # Half-open interval [effective_from, effective_to)
    effective_from = Column(DateTime(timezone=True), nullable=False, index=True)
    effective_to = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CommissionPayment(Base):
    """Recorded commission payout for a staff member and period."""
    __tablename__ = "commission_payments"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Period the payment settles (matched exactly against report periods)
    period_start = Column(Date, nullable=False, index=True)
    period_end = Column(Date, nullable=False, index=True)

    # Figures as shown when the payment was made
    sales_count = Column(Integer, default=0, nullable=False)
    revenue_total = Column(Numeric(12, 2), default=0, nullable=False)
    profit_total = Column(Numeric(12, 2), default=0, nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)
    commission_basis = Column(String, nullable=False)

    commission_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String, default="bank_transfer", nullable=False)
    notes = Column(Text, nullable=True)

    paid_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    staff = relationship("User", back_populates="commission_payments", foreign_keys=[staff_id])
