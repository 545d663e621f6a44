"""Payroll API: record commission payments and bulk-pay a month."""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.schemas.payroll import (
    BulkPayRequest, BulkPayResult, CommissionPaymentCreate, CommissionPaymentInDB,
)
from app.services.commission import build_commission_report
from app.services.payroll import CommissionPaymentService
from app.services.periods import month_period
from app.services.snapshot import load_snapshot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payroll", tags=["payroll"])


@router.get("/payments", response_model=List[CommissionPaymentInDB])
def list_payments(
    staff_id: Optional[str] = None,
    period_start: Optional[date] = Query(None),
    period_end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    return CommissionPaymentService(db).list_payments(staff_id, period_start, period_end)


@router.post("/payments", response_model=CommissionPaymentInDB, status_code=201)
def record_payment(body: CommissionPaymentCreate, db: Session = Depends(get_db)):
    """Record a commission payment against a staff member's period."""
    service = CommissionPaymentService(db)
    fields = body.model_dump()
    fields["commission_basis"] = body.commission_basis.value
    try:
        return service.record_payment(**fields)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/bulk-pay/{month}", response_model=BulkPayResult)
def bulk_pay_month(month: str, body: BulkPayRequest = None, db: Session = Depends(get_db)):
    """Pay every outstanding balance for a month ("YYYY-MM") in one go."""
    body = body or BulkPayRequest()
    try:
        period = month_period(month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    snapshot = load_snapshot(db, date_from=period.period_start, date_to=period.period_end)
    report = build_commission_report(snapshot, [period])
    reconciled = report.periods[0]

    service = CommissionPaymentService(db)
    try:
        payments = service.bulk_pay_month(reconciled, body.staff_ids, body.payment_method, body.notes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return BulkPayResult(
        month=period.month,
        paid_count=len(payments),
        total_paid=sum((p.commission_amount for p in payments), Decimal("0")),
        payments=[CommissionPaymentInDB.model_validate(p) for p in payments],
    )
