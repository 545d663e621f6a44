"""Commission payment ledger: record single payments and bulk-pay a month."""
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.commission import CommissionBasis, CommissionPayment
from app.schemas.commission import MonthlyCommission
from app.services.commission import UNKNOWN_STAFF_ID

logger = logging.getLogger(__name__)


class CommissionPaymentService:
    def __init__(self, db: Session):
        self.db = db

    def list_payments(
        self,
        staff_id: Optional[str] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> List[CommissionPayment]:
        query = self.db.query(CommissionPayment)
        if staff_id:
            query = query.filter(CommissionPayment.staff_id == staff_id)
        if period_start:
            query = query.filter(CommissionPayment.period_start >= period_start)
        if period_end:
            query = query.filter(CommissionPayment.period_end <= period_end)
        return query.order_by(CommissionPayment.paid_at.desc(), CommissionPayment.id.desc()).all()

    def _new_payment(
        self,
        staff_id: str,
        period_start: date,
        period_end: date,
        commission_amount: Decimal,
        commission_rate: Decimal,
        commission_basis: str,
        sales_count: int = 0,
        revenue_total: Decimal = Decimal("0"),
        profit_total: Decimal = Decimal("0"),
        payment_method: str = "bank_transfer",
        notes: Optional[str] = None,
    ) -> CommissionPayment:
        if period_end < period_start:
            raise ValueError("period_end must not be before period_start")
        if Decimal(commission_amount) <= 0:
            raise ValueError("Payment amount must be greater than zero")

        payment = CommissionPayment(
            staff_id=staff_id,
            period_start=period_start,
            period_end=period_end,
            sales_count=sales_count,
            revenue_total=revenue_total,
            profit_total=profit_total,
            commission_rate=commission_rate,
            commission_basis=CommissionBasis(commission_basis).value,
            commission_amount=commission_amount,
            payment_method=payment_method,
            notes=notes,
        )
        self.db.add(payment)
        return payment

    def record_payment(self, **fields) -> CommissionPayment:
        try:
            payment = self._new_payment(**fields)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(payment)
        logger.info(
            f"Recorded commission payment {payment.id}: staff={payment.staff_id}, "
            f"{payment.period_start}..{payment.period_end}, amount={payment.commission_amount}"
        )
        return payment

    def bulk_pay_month(
        self,
        month: MonthlyCommission,
        staff_ids: Optional[Iterable[str]] = None,
        payment_method: str = "bank_transfer",
        notes: Optional[str] = None,
    ) -> List[CommissionPayment]:
        """Pay the outstanding balance of every selected staff row in a reconciled month."""
        selected = set(staff_ids) if staff_ids is not None else None
        payments = []
        try:
            for row in month.staff_data:
                if row.outstanding <= 0 or row.staff_id == UNKNOWN_STAFF_ID:
                    continue
                if selected is not None and row.staff_id not in selected:
                    continue
                payments.append(self._new_payment(
                    staff_id=row.staff_id,
                    period_start=month.period.period_start,
                    period_end=month.period.period_end,
                    commission_amount=row.outstanding,
                    commission_rate=row.effective_rate,
                    commission_basis=row.effective_basis.value,
                    sales_count=row.sales_count,
                    revenue_total=row.revenue,
                    profit_total=row.profit,
                    payment_method=payment_method,
                    notes=notes,
                ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Bulk commission payment for {month.period.label} failed: {e}", exc_info=True)
            raise

        total = sum((p.commission_amount for p in payments), Decimal("0"))
        logger.info(f"Bulk paid {len(payments)} staff for {month.period.label} (total {total})")
        return payments
