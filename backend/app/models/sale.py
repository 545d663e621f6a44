from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class SaleStatus(str, enum.Enum):
    COMPLETED = "completed"
    VOIDED = "voided"


class Sale(Base):
    """Completed sale. Owned by the POS; read-only to commission reporting."""
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)

    # Staff relationship
    staff_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    staff_member_name = Column(String, nullable=True)  # name captured at the till

    sold_at = Column(DateTime(timezone=True), nullable=True, index=True)
    status = Column(String, default=SaleStatus.COMPLETED.value, nullable=False)

    # Per-sale flat commission override (single-sale view only)
    commission_override = Column(Numeric(10, 2), nullable=True)
    commission_override_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    staff = relationship("User", back_populates="sales")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")


class SaleItem(Base):
    """One sold line on a sale."""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)

    product_name = Column(String, nullable=True)
    quantity = Column(Integer, default=1)
    is_trade_in = Column(Boolean, default=False)  # part-exchange lines carry no commission

    # Line financials
    line_revenue = Column(Numeric(12, 2), nullable=False, default=0)
    line_gross_profit = Column(Numeric(12, 2), nullable=False, default=0)

    sale = relationship("Sale", back_populates="items")
