"""Period and grand totals for commission reports."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from app.schemas.commission import PeriodTotals, StaffPeriodCommission

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value) -> Decimal:
    """Round a currency amount to pence."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def safe_percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, or 0 where that would be NaN/Infinity."""
    if not denominator or not denominator.is_finite() or not numerator.is_finite():
        return ZERO
    return money(numerator / denominator * 100)


def period_totals(rows: Iterable[StaffPeriodCommission]) -> PeriodTotals:
    sales_count = 0
    revenue = profit = owed = paid = outstanding = ZERO
    for row in rows:
        sales_count += row.sales_count
        revenue += row.revenue
        profit += row.profit
        owed += row.commission_owed
        paid += row.commission_paid
        outstanding += row.outstanding

    return PeriodTotals(
        sales_count=sales_count,
        revenue=revenue,
        profit=profit,
        margin_percent=safe_percentage(profit, revenue),
        owed=owed,
        paid=paid,
        outstanding=outstanding,
    )


def grand_totals(totals: Iterable[PeriodTotals]) -> PeriodTotals:
    sales_count = 0
    revenue = profit = owed = paid = outstanding = ZERO
    for t in totals:
        sales_count += t.sales_count
        revenue += t.revenue
        profit += t.profit
        owed += t.owed
        paid += t.paid
        outstanding += t.outstanding

    return PeriodTotals(
        sales_count=sales_count,
        revenue=revenue,
        profit=profit,
        margin_percent=safe_percentage(profit, revenue),
        owed=owed,
        paid=paid,
        outstanding=outstanding,
    )
