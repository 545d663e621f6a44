"""Load the commission engine's input snapshot from the database."""
import hashlib
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.commission import (
    CommissionPayment, CommissionSettings, StaffCommissionOverride as OverrideModel,
    StaffCommissionRateHistory,
)
from app.models.sale import Sale, SaleItem, SaleStatus
from app.models.user import User
from app.schemas.commission import (
    CommissionPaymentRecord, CommissionSnapshot, GlobalCommissionSettings,
    RateHistorySegment, SaleCommissionOverride, SaleLineItem,
    StaffCommissionOverride,
)

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to UTC before writing; SQLite drops the offset and hands back naive values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_global_settings(db: Session) -> GlobalCommissionSettings:
    row = db.query(CommissionSettings).order_by(CommissionSettings.id).first()
    if row is None:
        logger.warning("No commission_settings row; using configured defaults")
        return GlobalCommissionSettings(
            enabled=settings.DEFAULT_COMMISSION_ENABLED,
            default_rate=settings.DEFAULT_COMMISSION_RATE,
            calculation_basis=settings.DEFAULT_COMMISSION_BASIS,
        )
    return GlobalCommissionSettings(
        enabled=bool(row.enabled),
        default_rate=row.default_rate,
        calculation_basis=row.calculation_basis,
    )


def load_snapshot(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    staff_id: Optional[str] = None,
) -> CommissionSnapshot:
    """Read sales, rates and payments into an immutable snapshot.

    The date filter only narrows the query (with a day of slack each side for
    time zone differences); period assignment happens in the engine.
    Sales with no sold_at are still loaded so the engine can skip them.
    """
    query = (
        db.query(SaleItem, Sale, User.full_name)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .outerjoin(User, Sale.staff_id == User.id)
        .filter(Sale.status == SaleStatus.COMPLETED.value)
    )
    if date_from:
        query = query.filter(
            (Sale.sold_at == None) |
            (Sale.sold_at >= datetime.combine(date_from - timedelta(days=1), time.min))
        )
    if date_to:
        query = query.filter(
            (Sale.sold_at == None) |
            (Sale.sold_at < datetime.combine(date_to + timedelta(days=2), time.min))
        )
    if staff_id:
        query = query.filter(Sale.staff_id == staff_id)

    sale_lines = []
    sale_overrides = {}
    for item, sale, full_name in query.order_by(Sale.id, SaleItem.id).all():
        sale_lines.append(SaleLineItem(
            sale_id=sale.id,
            staff_id=sale.staff_id,
            staff_name=sale.staff_member_name or full_name,
            sold_at=as_utc(sale.sold_at),
            line_revenue=item.line_revenue,
            line_gross_profit=item.line_gross_profit,
            is_trade_in=bool(item.is_trade_in),
        ))
        if sale.commission_override is not None and sale.id not in sale_overrides:
            sale_overrides[sale.id] = SaleCommissionOverride(
                sale_id=sale.id,
                commission_override=sale.commission_override,
                commission_override_reason=sale.commission_override_reason,
            )

    overrides = [
        StaffCommissionOverride.model_validate(o)
        for o in db.query(OverrideModel).order_by(OverrideModel.id).all()
    ]

    history = [
        RateHistorySegment(
            staff_id=h.staff_id,
            commission_rate=h.commission_rate,
            commission_basis=h.commission_basis,
            effective_from=as_utc(h.effective_from),
            effective_to=as_utc(h.effective_to),
            notes=h.notes,
        )
        for h in db.query(StaffCommissionRateHistory).order_by(
            StaffCommissionRateHistory.effective_from, StaffCommissionRateHistory.id
        ).all()
    ]

    payments_query = db.query(CommissionPayment)
    if staff_id:
        payments_query = payments_query.filter(CommissionPayment.staff_id == staff_id)
    payments = [
        CommissionPaymentRecord.model_validate(p)
        for p in payments_query.order_by(CommissionPayment.id).all()
    ]

    return CommissionSnapshot(
        sale_lines=tuple(sale_lines),
        staff_overrides=tuple(overrides),
        rate_history=tuple(history),
        sale_overrides=tuple(sale_overrides.values()),
        payments=tuple(payments),
        settings=load_global_settings(db),
    )


def snapshot_key(snapshot: CommissionSnapshot) -> str:
    """Stable content hash of a snapshot, for callers that cache reports."""
    return hashlib.sha256(snapshot.model_dump_json().encode("utf-8")).hexdigest()
