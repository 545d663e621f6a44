"""Commission API: monthly ledger, date-range report, CSV export and rate management."""
import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.schemas.commission import (
    CommissionReport, CommissionSettingsUpdate, GlobalCommissionSettings,
    RateHistoryInDB, RateSegmentCreate, SaleCommissionDetail,
    SaleOverrideUpdate, StaffOverrideInDB, StaffOverrideUpsert,
)
from app.services.commission import build_commission_report, sale_commission_detail
from app.services.commission_export import export_commission_csv
from app.services.periods import build_monthly_periods, custom_period
from app.services.rate_history import CommissionRateService
from app.services.snapshot import load_global_settings, load_snapshot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/commissions", tags=["commissions"])


def _range_report(db: Session, date_from: Optional[date], date_to: Optional[date], staff_id: Optional[str]):
    try:
        period = custom_period(date_from, date_to)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    snapshot = load_snapshot(db, date_from=date_from, date_to=date_to, staff_id=staff_id)
    return build_commission_report(snapshot, [period], staff_id=staff_id)


@router.get("/monthly", response_model=CommissionReport)
def get_monthly_commission(
    months_back: int = Query(settings.DEFAULT_MONTHS_BACK, ge=1, le=120),
    staff_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Owed, paid and outstanding commission per staff member per month, newest first."""
    periods = build_monthly_periods(months_back)
    snapshot = load_snapshot(
        db,
        date_from=periods[-1].period_start,
        date_to=periods[0].period_end,
        staff_id=staff_id,
    )
    return build_commission_report(snapshot, periods, staff_id=staff_id)


@router.get("/report", response_model=CommissionReport)
def get_commission_report(
    date_from: Optional[date] = Query(None, description="First day, YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="Last day (inclusive), YYYY-MM-DD"),
    staff_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Commission for an arbitrary date range (omit both dates for all time)."""
    return _range_report(db, date_from, date_to, staff_id)


@router.get("/export")
def export_commission(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    """Download the date-range report as CSV."""
    report = _range_report(db, date_from, date_to, None)
    rows = report.periods[0].staff_data if report.periods else []
    content = export_commission_csv(rows, date_from, date_to)

    filename = f"staff-commission-{date_from or 'all'}-{date_to or 'time'}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Per-sale detail / override ───────────────────────────────────────


@router.get("/sales/{sale_id}", response_model=SaleCommissionDetail)
def get_sale_commission(sale_id: int, db: Session = Depends(get_db)):
    detail = sale_commission_detail(sale_id, load_snapshot(db))
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
    return detail


@router.put("/sales/{sale_id}/override", response_model=SaleCommissionDetail)
def set_sale_commission_override(
    sale_id: int,
    body: SaleOverrideUpdate,
    db: Session = Depends(get_db),
):
    """Set (or clear, with commission_override=null) a flat commission for one sale."""
    service = CommissionRateService(db)
    try:
        service.set_sale_commission_override(sale_id, body.commission_override, body.commission_override_reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    detail = sale_commission_detail(sale_id, load_snapshot(db))
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale has no commissionable lines")
    return detail


# ── Global settings ──────────────────────────────────────────────────


@router.get("/settings", response_model=GlobalCommissionSettings)
def get_commission_settings(db: Session = Depends(get_db)):
    return load_global_settings(db)


@router.put("/settings", response_model=GlobalCommissionSettings)
def update_commission_settings(body: CommissionSettingsUpdate, db: Session = Depends(get_db)):
    service = CommissionRateService(db)
    try:
        service.update_settings(
            enabled=body.enabled,
            default_rate=body.default_rate,
            calculation_basis=body.calculation_basis.value if body.calculation_basis else None,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return load_global_settings(db)


# ── Staff overrides ──────────────────────────────────────────────────


@router.get("/overrides", response_model=List[StaffOverrideInDB])
def list_staff_overrides(db: Session = Depends(get_db)):
    return CommissionRateService(db).list_overrides()


@router.put("/overrides/{staff_id}", response_model=StaffOverrideInDB)
def upsert_staff_override(staff_id: str, body: StaffOverrideUpsert, db: Session = Depends(get_db)):
    """Change a staff member's rate from now on. Sales under an earlier rate segment keep that rate."""
    service = CommissionRateService(db)
    try:
        return service.upsert_staff_override(
            staff_id, body.commission_rate, body.commission_basis.value, body.notes
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/overrides/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff_override(staff_id: str, db: Session = Depends(get_db)):
    """Remove the override; sales from now on use the global default."""
    if not CommissionRateService(db).delete_staff_override(staff_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No override for this staff member")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Rate history ─────────────────────────────────────────────────────


@router.get("/rate-history", response_model=List[RateHistoryInDB])
def list_rate_history(staff_id: Optional[str] = None, db: Session = Depends(get_db)):
    return CommissionRateService(db).list_rate_history(staff_id)


@router.post("/rate-history", response_model=RateHistoryInDB, status_code=status.HTTP_201_CREATED)
def create_rate_segment(body: RateSegmentCreate, db: Session = Depends(get_db)):
    """Start a new rate segment, closing the staff member's current one at effective_from."""
    service = CommissionRateService(db)
    try:
        return service.open_rate_segment(
            body.staff_id,
            body.commission_rate,
            body.commission_basis.value,
            body.effective_from,
            body.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
