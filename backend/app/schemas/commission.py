from pydantic import BaseModel, Field, field_validator
from typing import Optional, Tuple, List, Union
from datetime import date, datetime
from decimal import Decimal
import enum
from app.models.commission import CommissionBasis


class RateSource(str, enum.Enum):
    HISTORY = "history"
    OVERRIDE = "override"
    DEFAULT = "default"


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class PeriodKind(str, enum.Enum):
    MONTH = "month"
    RANGE = "range"


# ── Snapshot inputs ──────────────────────────────────────────────────


class SaleLineItem(BaseModel):
    sale_id: int
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None
    sold_at: Optional[Union[datetime, str]] = None  # unparsable values are skipped, not rejected
    line_revenue: Decimal = Decimal("0")
    line_gross_profit: Decimal = Decimal("0")
    is_trade_in: bool = False

    @field_validator("line_revenue", "line_gross_profit", mode="before")
    @classmethod
    def _missing_amount_is_zero(cls, v):
        return Decimal("0") if v is None else v

    class Config:
        frozen = True
        from_attributes = True


class StaffCommissionOverride(BaseModel):
    staff_id: str
    commission_rate: Decimal
    commission_basis: CommissionBasis
    notes: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


class RateHistorySegment(BaseModel):
    staff_id: str
    commission_rate: Decimal
    commission_basis: CommissionBasis
    effective_from: datetime
    effective_to: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


class SaleCommissionOverride(BaseModel):
    sale_id: int
    commission_override: Optional[Decimal] = None
    commission_override_reason: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


class GlobalCommissionSettings(BaseModel):
    enabled: bool = True
    default_rate: Optional[Decimal] = None
    calculation_basis: Optional[CommissionBasis] = None

    class Config:
        frozen = True
        from_attributes = True


class CommissionPaymentRecord(BaseModel):
    staff_id: str
    period_start: date
    period_end: date
    commission_amount: Decimal

    class Config:
        frozen = True
        from_attributes = True


class CommissionSnapshot(BaseModel):
    """Everything one report computation reads. Never mutated by the engine."""
    sale_lines: Tuple[SaleLineItem, ...] = ()
    staff_overrides: Tuple[StaffCommissionOverride, ...] = ()
    rate_history: Tuple[RateHistorySegment, ...] = ()
    sale_overrides: Tuple[SaleCommissionOverride, ...] = ()
    payments: Tuple[CommissionPaymentRecord, ...] = ()
    settings: GlobalCommissionSettings

    class Config:
        frozen = True


# ── Engine outputs ───────────────────────────────────────────────────


class ResolvedRate(BaseModel):
    rate: Decimal
    basis: CommissionBasis
    source: RateSource

    class Config:
        frozen = True


class CommissionPeriod(BaseModel):
    kind: PeriodKind = PeriodKind.MONTH
    month: Optional[str] = None  # "2026-01" for monthly periods
    label: str  # "January 2026"
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    class Config:
        frozen = True


class StaffPeriodCommission(BaseModel):
    staff_id: str
    staff_name: str
    sales_count: int = 0
    revenue: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    margin_percent: Decimal = Decimal("0")
    commission_owed: Decimal = Decimal("0")
    commission_paid: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")
    status: PaymentStatus = PaymentStatus.UNPAID
    effective_rate: Decimal
    effective_basis: CommissionBasis
    rate_source: RateSource
    has_custom_rate: bool = False

    class Config:
        frozen = True


class PeriodTotals(BaseModel):
    sales_count: int = 0
    revenue: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    margin_percent: Decimal = Decimal("0")
    owed: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")

    class Config:
        frozen = True


class MonthlyCommission(BaseModel):
    period: CommissionPeriod
    staff_data: List[StaffPeriodCommission] = Field(default_factory=list)
    totals: PeriodTotals = Field(default_factory=PeriodTotals)

    class Config:
        frozen = True


class CommissionReport(BaseModel):
    periods: List[MonthlyCommission] = Field(default_factory=list)
    grand_totals: PeriodTotals = Field(default_factory=PeriodTotals)
    commission_enabled: bool
    default_rate: Decimal
    default_basis: CommissionBasis

    class Config:
        frozen = True


class SaleCommissionDetail(BaseModel):
    sale_id: int
    staff_id: str
    staff_name: str
    revenue: Decimal
    profit: Decimal
    calculated_commission: Decimal
    commission_override: Optional[Decimal] = None
    commission_override_reason: Optional[str] = None
    effective_commission: Decimal
    effective_rate: Decimal
    effective_basis: CommissionBasis


# ── API payloads ─────────────────────────────────────────────────────


class CommissionSettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    default_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    calculation_basis: Optional[CommissionBasis] = None


class StaffOverrideUpsert(BaseModel):
    commission_rate: Decimal = Field(..., ge=0, le=100)
    commission_basis: CommissionBasis = CommissionBasis.REVENUE
    notes: Optional[str] = None


class StaffOverrideInDB(BaseModel):
    id: int
    staff_id: str
    commission_rate: Decimal
    commission_basis: CommissionBasis
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RateSegmentCreate(BaseModel):
    staff_id: str
    commission_rate: Decimal = Field(..., ge=0, le=100)
    commission_basis: CommissionBasis = CommissionBasis.REVENUE
    effective_from: Optional[datetime] = None
    notes: Optional[str] = None


class RateHistoryInDB(BaseModel):
    id: int
    staff_id: str
    commission_rate: Decimal
    commission_basis: CommissionBasis
    effective_from: datetime
    effective_to: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SaleOverrideUpdate(BaseModel):
    commission_override: Optional[Decimal] = Field(None, ge=0)
    commission_override_reason: Optional[str] = None
