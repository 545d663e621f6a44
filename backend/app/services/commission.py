from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from datetime import datetime, tzinfo
import logging

from app.models.commission import CommissionBasis
from app.schemas.commission import (
    CommissionPeriod, CommissionReport, CommissionSnapshot, MonthlyCommission,
    RateSource, ResolvedRate, SaleCommissionDetail, SaleLineItem,
    StaffPeriodCommission,
)
from app.services.periods import parse_timestamp, period_for, reference_timezone
from app.services.rate_resolver import RateResolver
from app.services.reconciliation import PaymentReconciler
from app.services.totals import ZERO, grand_totals, money, period_totals, safe_percentage

logger = logging.getLogger(__name__)

UNKNOWN_STAFF_ID = "unknown"
UNKNOWN_STAFF_NAME = "Unknown"
HUNDRED = Decimal("100")


def commission_for(amount_revenue: Decimal, amount_profit: Decimal, rate: ResolvedRate) -> Decimal:
    base = amount_profit if rate.basis == CommissionBasis.PROFIT else amount_revenue
    return base * rate.rate / HUNDRED


class _StaffBucket:
    """Running totals for one staff member within one period."""

    def __init__(self, staff_id: str, staff_name: str):
        self.staff_id = staff_id
        self.staff_name = staff_name
        self.sale_ids = set()
        self.revenue = ZERO
        self.profit = ZERO
        self.commission = ZERO
        self.latest_sale_at: Optional[datetime] = None


class CommissionCalculationService:
    """
    Commission aggregation:
    1. Trade-in lines and lines without a usable sale timestamp are skipped
    2. Lines are grouped by (period, staff); sales are counted by distinct sale id
    3. Each line is charged at the rate in effect on its own sale date, so a
       rate change in the middle of a month splits that month correctly
    4. The row shows the rate in effect at the staff member's latest sale in the period
    5. When commission is disabled the owed amount is zero whatever the rate
    """

    def __init__(self, resolver: RateResolver, enabled: bool = True, tzinfo: Optional[tzinfo] = None):
        self.resolver = resolver
        self.enabled = enabled
        self.tzinfo = tzinfo or resolver.tzinfo

    @classmethod
    def from_snapshot(cls, snapshot: CommissionSnapshot, tzinfo: Optional[tzinfo] = None):
        zone = tzinfo or reference_timezone()
        return cls(RateResolver.from_snapshot(snapshot, zone), snapshot.settings.enabled, zone)

    def aggregate(
        self,
        lines: Sequence[SaleLineItem],
        periods: Sequence[CommissionPeriod],
        staff_id: Optional[str] = None,
    ) -> List[List[StaffPeriodCommission]]:
        """Owed commission per staff for each period (same order as `periods`)."""
        buckets: List[Dict[str, _StaffBucket]] = [{} for _ in periods]
        skipped = 0

        for line in lines:
            if line.is_trade_in:
                continue

            sold_at = parse_timestamp(line.sold_at, self.tzinfo)
            if sold_at is None:
                skipped += 1
                continue

            line_staff_id = line.staff_id or UNKNOWN_STAFF_ID
            if staff_id and line_staff_id != staff_id:
                continue

            index = period_for(sold_at, periods, self.tzinfo)
            if index is None:
                continue

            bucket = buckets[index].get(line_staff_id)
            if bucket is None:
                bucket = _StaffBucket(line_staff_id, line.staff_name or UNKNOWN_STAFF_NAME)
                buckets[index][line_staff_id] = bucket

            rate = self.resolver.resolve(line_staff_id, sold_at)
            bucket.sale_ids.add(line.sale_id)
            bucket.revenue += line.line_revenue
            bucket.profit += line.line_gross_profit
            bucket.commission += commission_for(line.line_revenue, line.line_gross_profit, rate)
            if bucket.latest_sale_at is None or sold_at > bucket.latest_sale_at:
                bucket.latest_sale_at = sold_at

        if skipped:
            logger.warning(f"Skipped {skipped} sale line(s) with missing or unparsable sold_at")

        return [self._rows(period_buckets) for period_buckets in buckets]

    def _rows(self, period_buckets: Dict[str, _StaffBucket]) -> List[StaffPeriodCommission]:
        rows = []
        for bucket in period_buckets.values():
            shown = self.resolver.resolve(bucket.staff_id, bucket.latest_sale_at)
            owed = money(bucket.commission) if self.enabled else money(ZERO)
            rows.append(StaffPeriodCommission(
                staff_id=bucket.staff_id,
                staff_name=bucket.staff_name,
                sales_count=len(bucket.sale_ids),
                revenue=money(bucket.revenue),
                profit=money(bucket.profit),
                margin_percent=safe_percentage(bucket.profit, bucket.revenue),
                commission_owed=owed,
                outstanding=owed,
                effective_rate=shown.rate,
                effective_basis=shown.basis,
                rate_source=shown.source,
                has_custom_rate=shown.source != RateSource.DEFAULT,
            ))
        rows.sort(key=lambda r: (-r.commission_owed, r.staff_name, r.staff_id))
        return rows


def build_commission_report(
    snapshot: CommissionSnapshot,
    periods: Sequence[CommissionPeriod],
    staff_id: Optional[str] = None,
    tzinfo: Optional[tzinfo] = None,
) -> CommissionReport:
    """Aggregate, reconcile and total a snapshot over the given periods.

    Pure: the same snapshot and periods always give the same report.
    """
    service = CommissionCalculationService.from_snapshot(snapshot, tzinfo)
    reconciler = PaymentReconciler(snapshot.payments)

    per_period = service.aggregate(snapshot.sale_lines, periods, staff_id=staff_id)

    months = []
    for period, rows in zip(periods, per_period):
        reconciled = reconciler.reconcile(rows, period)
        months.append(MonthlyCommission(
            period=period,
            staff_data=reconciled,
            totals=period_totals(reconciled),
        ))

    default = service.resolver.default
    return CommissionReport(
        periods=months,
        grand_totals=grand_totals(m.totals for m in months),
        commission_enabled=snapshot.settings.enabled,
        default_rate=default.rate,
        default_basis=default.basis,
    )


def sale_commission_detail(
    sale_id: int,
    snapshot: CommissionSnapshot,
    tzinfo: Optional[tzinfo] = None,
) -> Optional[SaleCommissionDetail]:
    """Calculated commission for a single sale alongside its flat override.

    The override only changes the amount shown for this sale; monthly
    aggregates are computed from rates alone.
    """
    lines = [l for l in snapshot.sale_lines if l.sale_id == sale_id and not l.is_trade_in]
    if not lines:
        return None

    service = CommissionCalculationService.from_snapshot(snapshot, tzinfo)
    staff_id = lines[0].staff_id or UNKNOWN_STAFF_ID
    staff_name = lines[0].staff_name or UNKNOWN_STAFF_NAME

    revenue = profit = calculated = ZERO
    shown = service.resolver.default
    for line in lines:
        sold_at = parse_timestamp(line.sold_at, service.tzinfo)
        rate = service.resolver.resolve(staff_id, sold_at)
        shown = rate
        revenue += line.line_revenue
        profit += line.line_gross_profit
        calculated += commission_for(line.line_revenue, line.line_gross_profit, rate)

    calculated = money(calculated) if service.enabled else money(ZERO)

    override = next((o for o in snapshot.sale_overrides if o.sale_id == sale_id), None)
    override_amount = override.commission_override if override else None
    if override_amount is not None and service.enabled:
        effective = money(override_amount)
    else:
        effective = calculated

    return SaleCommissionDetail(
        sale_id=sale_id,
        staff_id=staff_id,
        staff_name=staff_name,
        revenue=money(revenue),
        profit=money(profit),
        calculated_commission=calculated,
        commission_override=money(override_amount) if override_amount is not None else None,
        commission_override_reason=override.commission_override_reason if override else None,
        effective_commission=effective,
        effective_rate=shown.rate,
        effective_basis=shown.basis,
    )
