"""Commission rate write path: settings, staff overrides, rate history, sale overrides.

Rate history segments for a staff member never overlap and at most one is
open (effective_to NULL). Opening a new segment closes the current open one
at the new segment's effective_from.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.commission import (
    CommissionBasis, CommissionSettings, StaffCommissionOverride,
    StaffCommissionRateHistory,
)
from app.models.sale import Sale
from app.services.snapshot import as_utc

logger = logging.getLogger(__name__)


def _check_rate(rate: Decimal) -> Decimal:
    rate = Decimal(rate)
    if rate < 0 or rate > 100:
        raise ValueError("Commission rate must be between 0 and 100")
    return rate


def _check_basis(basis) -> str:
    try:
        return CommissionBasis(basis).value
    except ValueError:
        raise ValueError(f"Unknown commission basis {basis!r}")


class CommissionRateService:
    def __init__(self, db: Session):
        self.db = db

    # ── Global settings ──────────────────────────────────────────────

    def get_or_create_settings(self) -> CommissionSettings:
        row = self.db.query(CommissionSettings).order_by(CommissionSettings.id).first()
        if row:
            return row
        row = CommissionSettings(
            enabled=settings.DEFAULT_COMMISSION_ENABLED,
            default_rate=settings.DEFAULT_COMMISSION_RATE,
            calculation_basis=_check_basis(settings.DEFAULT_COMMISSION_BASIS),
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Seeded commission settings: {row.default_rate}% of {row.calculation_basis}")
        return row

    def update_settings(
        self,
        enabled: Optional[bool] = None,
        default_rate: Optional[Decimal] = None,
        calculation_basis: Optional[str] = None,
    ) -> CommissionSettings:
        row = self.get_or_create_settings()
        if enabled is not None:
            row.enabled = enabled
        if default_rate is not None:
            row.default_rate = _check_rate(default_rate)
        if calculation_basis is not None:
            row.calculation_basis = _check_basis(calculation_basis)
        self.db.commit()
        self.db.refresh(row)
        logger.info(
            f"Commission settings updated: enabled={row.enabled}, "
            f"rate={row.default_rate}, basis={row.calculation_basis}"
        )
        return row

    # ── Rate history ─────────────────────────────────────────────────

    def list_rate_history(self, staff_id: Optional[str] = None) -> List[StaffCommissionRateHistory]:
        query = self.db.query(StaffCommissionRateHistory)
        if staff_id:
            query = query.filter(StaffCommissionRateHistory.staff_id == staff_id)
        return query.order_by(
            StaffCommissionRateHistory.effective_from.desc(),
            StaffCommissionRateHistory.id.desc(),
        ).all()

    def _open_segment(
        self,
        staff_id: str,
        rate: Decimal,
        basis: str,
        effective_from: datetime,
        notes: Optional[str],
    ) -> StaffCommissionRateHistory:
        """Close the open segment(s) and add the new one. Caller commits."""
        latest = (
            self.db.query(StaffCommissionRateHistory)
            .filter(StaffCommissionRateHistory.staff_id == staff_id)
            .order_by(StaffCommissionRateHistory.effective_from.desc())
            .first()
        )
        if latest and effective_from < as_utc(latest.effective_from):
            raise ValueError(
                "effective_from is earlier than the staff member's latest rate change; "
                "back-dating would overlap existing history"
            )

        open_rows = (
            self.db.query(StaffCommissionRateHistory)
            .filter(
                StaffCommissionRateHistory.staff_id == staff_id,
                StaffCommissionRateHistory.effective_to == None,
            )
            .all()
        )
        for row in open_rows:
            row.effective_to = effective_from

        segment = StaffCommissionRateHistory(
            staff_id=staff_id,
            commission_rate=rate,
            commission_basis=basis,
            effective_from=effective_from,
            effective_to=None,
            notes=notes,
        )
        self.db.add(segment)
        return segment

    def open_rate_segment(
        self,
        staff_id: str,
        commission_rate: Decimal,
        commission_basis: str = CommissionBasis.REVENUE.value,
        effective_from: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> StaffCommissionRateHistory:
        rate = _check_rate(commission_rate)
        basis = _check_basis(commission_basis)
        starts = as_utc(effective_from) or datetime.now(timezone.utc)

        try:
            segment = self._open_segment(staff_id, rate, basis, starts, notes)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(segment)
        logger.info(f"Opened rate segment for staff {staff_id}: {rate}% of {basis} from {starts.isoformat()}")
        return segment

    # ── Staff overrides ──────────────────────────────────────────────

    def list_overrides(self) -> List[StaffCommissionOverride]:
        return self.db.query(StaffCommissionOverride).order_by(StaffCommissionOverride.created_at.desc()).all()

    def upsert_staff_override(
        self,
        staff_id: str,
        commission_rate: Decimal,
        commission_basis: str = CommissionBasis.REVENUE.value,
        notes: Optional[str] = None,
    ) -> StaffCommissionOverride:
        """Set a staff member's rate from now on.

        Sales covered by an earlier history segment keep that segment's rate.
        Sales older than any segment fall through to the override itself, so
        the first override for a staff member also applies to their earlier sales.
        """
        rate = _check_rate(commission_rate)
        basis = _check_basis(commission_basis)
        now = datetime.now(timezone.utc)

        try:
            self._open_segment(staff_id, rate, basis, now, notes)

            override = (
                self.db.query(StaffCommissionOverride)
                .filter(StaffCommissionOverride.staff_id == staff_id)
                .first()
            )
            if override:
                override.commission_rate = rate
                override.commission_basis = basis
                override.notes = notes
            else:
                override = StaffCommissionOverride(
                    staff_id=staff_id,
                    commission_rate=rate,
                    commission_basis=basis,
                    notes=notes,
                )
                self.db.add(override)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(override)
        logger.info(f"Commission override for staff {staff_id} set to {rate}% of {basis}")
        return override

    def delete_staff_override(self, staff_id: str) -> bool:
        """Remove the override row and close the open history segment at now.

        Sales after the deletion resolve to the global default; earlier sales
        keep the segments that covered them.
        """
        now = datetime.now(timezone.utc)
        try:
            deleted = (
                self.db.query(StaffCommissionOverride)
                .filter(StaffCommissionOverride.staff_id == staff_id)
                .delete()
            )
            if deleted:
                open_rows = (
                    self.db.query(StaffCommissionRateHistory)
                    .filter(
                        StaffCommissionRateHistory.staff_id == staff_id,
                        StaffCommissionRateHistory.effective_to == None,
                    )
                    .all()
                )
                for row in open_rows:
                    row.effective_to = max(now, as_utc(row.effective_from))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if deleted:
            logger.info(f"Commission override for staff {staff_id} removed; rate reset to global default")
        return bool(deleted)

    # ── Per-sale override ────────────────────────────────────────────

    def set_sale_commission_override(
        self,
        sale_id: int,
        commission_override: Optional[Decimal],
        reason: Optional[str] = None,
    ) -> Sale:
        sale = self.db.query(Sale).filter(Sale.id == sale_id).first()
        if not sale:
            raise LookupError("Sale not found")
        if commission_override is not None and Decimal(commission_override) < 0:
            raise ValueError("Commission override cannot be negative")

        sale.commission_override = commission_override
        sale.commission_override_reason = reason if commission_override is not None else None
        self.db.commit()
        self.db.refresh(sale)
        logger.info(f"Sale {sale_id} commission override set to {commission_override}")
        return sale
