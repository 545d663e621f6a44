from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from app.models.commission import CommissionBasis


class CommissionPaymentCreate(BaseModel):
    staff_id: str
    period_start: date
    period_end: date
    commission_amount: Decimal = Field(..., gt=0)
    commission_rate: Decimal = Field(..., ge=0, le=100)
    commission_basis: CommissionBasis = CommissionBasis.REVENUE
    sales_count: int = Field(default=0, ge=0)
    revenue_total: Decimal = Decimal("0")
    profit_total: Decimal = Decimal("0")
    payment_method: str = "bank_transfer"
    notes: Optional[str] = None


class CommissionPaymentInDB(BaseModel):
    id: int
    staff_id: str
    period_start: date
    period_end: date
    commission_amount: Decimal
    commission_rate: Decimal
    commission_basis: CommissionBasis
    sales_count: int = 0
    revenue_total: Decimal = Decimal("0")
    profit_total: Decimal = Decimal("0")
    payment_method: str
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkPayRequest(BaseModel):
    staff_ids: Optional[List[str]] = None  # None pays everyone with an outstanding balance
    payment_method: str = "bank_transfer"
    notes: Optional[str] = None


class BulkPayResult(BaseModel):
    month: str
    paid_count: int
    total_paid: Decimal
    payments: List[CommissionPaymentInDB]
