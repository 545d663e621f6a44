"""Small builders for commission snapshots used across the test modules."""
from datetime import date, datetime, timezone
from decimal import Decimal

from dateutil import tz

from app.schemas.commission import (
    CommissionPaymentRecord, CommissionSnapshot, GlobalCommissionSettings,
    RateHistorySegment, SaleCommissionOverride, SaleLineItem,
    StaffCommissionOverride,
)

LONDON = tz.gettz("Europe/London")


def line(sale_id=1, staff_id="alice", revenue="0", profit="0", sold_at=datetime(2026, 3, 10, 12, 0), **kwargs):
    defaults = {
        "sale_id": sale_id,
        "staff_id": staff_id,
        "staff_name": staff_id.title() if staff_id else None,
        "sold_at": sold_at,
        "line_revenue": Decimal(revenue),
        "line_gross_profit": Decimal(profit),
        "is_trade_in": False,
    }
    defaults.update(kwargs)
    return SaleLineItem(**defaults)


def global_settings(rate="5", basis="revenue", enabled=True):
    return GlobalCommissionSettings(
        enabled=enabled,
        default_rate=Decimal(rate) if rate is not None else None,
        calculation_basis=basis,
    )


def override(staff_id="alice", rate="7", basis="revenue"):
    return StaffCommissionOverride(staff_id=staff_id, commission_rate=Decimal(rate), commission_basis=basis)


def segment(staff_id="alice", rate="10", basis="profit", start=datetime(2026, 1, 1), end=None):
    return RateHistorySegment(
        staff_id=staff_id,
        commission_rate=Decimal(rate),
        commission_basis=basis,
        effective_from=start,
        effective_to=end,
    )


def payment(staff_id="alice", amount="0", start=date(2026, 3, 1), end=date(2026, 3, 31)):
    return CommissionPaymentRecord(
        staff_id=staff_id,
        period_start=start,
        period_end=end,
        commission_amount=Decimal(amount),
    )


def sale_override(sale_id=1, amount="0", reason=None):
    return SaleCommissionOverride(
        sale_id=sale_id,
        commission_override=Decimal(amount) if amount is not None else None,
        commission_override_reason=reason,
    )


def snapshot(lines=(), overrides=(), history=(), payments=(), sale_overrides=(), settings=None):
    return CommissionSnapshot(
        sale_lines=tuple(lines),
        staff_overrides=tuple(overrides),
        rate_history=tuple(history),
        payments=tuple(payments),
        sale_overrides=tuple(sale_overrides),
        settings=settings or global_settings(),
    )


# ── Database rows ────────────────────────────────────────────────────


def add_staff(db, full_name="Alice Able", email=None):
    from app.models.user import User

    user = User(email=email or f"{full_name.split()[0].lower()}@shop.local", full_name=full_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_sale(db, staff=None, sold_at=datetime(2026, 3, 10, 12, tzinfo=timezone.utc),
             revenue="1000", profit="400", trade_in=None, status="completed"):
    """One sale with a single sold line, plus an optional trade-in line."""
    from app.models.sale import Sale, SaleItem

    sale = Sale(
        staff_id=staff.id if staff else None,
        staff_member_name=staff.full_name if staff else None,
        sold_at=sold_at,
        status=status,
    )
    sale.items.append(SaleItem(product_name="Item", line_revenue=Decimal(revenue), line_gross_profit=Decimal(profit)))
    if trade_in is not None:
        sale.items.append(SaleItem(
            product_name="Trade-in",
            is_trade_in=True,
            line_revenue=-Decimal(trade_in),
            line_gross_profit=Decimal("0"),
        ))
    db.add(sale)
    db.commit()
    db.refresh(sale)
    return sale
