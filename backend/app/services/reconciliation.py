"""Commission payment reconciliation.

Workflow:
1. Aggregator produces owed commission per (staff, period)
2. Sum recorded payments for the same staff and period
3. Derive outstanding balance and payment status

Monthly periods join payments on exact (staff_id, period_start, period_end);
a payment for 1-15 March is not counted against March. Ad-hoc date-range
reports count every payment whose period lies inside the range.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from app.schemas.commission import (
    CommissionPaymentRecord, CommissionPeriod, PaymentStatus,
    PeriodKind, StaffPeriodCommission,
)
from app.services.totals import ZERO, money

logger = logging.getLogger(__name__)


def payment_status(owed: Decimal, paid: Decimal) -> PaymentStatus:
    if paid >= owed and owed > 0:
        return PaymentStatus.PAID
    if paid > 0 and paid < owed:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def outstanding_amount(owed: Decimal, paid: Decimal) -> Decimal:
    return max(ZERO, owed - paid)


class PaymentReconciler:
    def __init__(self, payments: Iterable[CommissionPaymentRecord]):
        self._payments: List[CommissionPaymentRecord] = list(payments)
        self._exact: Dict[Tuple[str, object, object], Decimal] = defaultdict(lambda: ZERO)
        for p in self._payments:
            self._exact[(p.staff_id, p.period_start, p.period_end)] += p.commission_amount

    def paid_for(self, staff_id: str, period: CommissionPeriod) -> Decimal:
        """Total recorded payments for a staff member against one period."""
        if period.kind == PeriodKind.MONTH:
            return self._exact.get((staff_id, period.period_start, period.period_end), ZERO)

        total = ZERO
        for p in self._payments:
            if p.staff_id != staff_id:
                continue
            if period.period_start and p.period_start < period.period_start:
                continue
            if period.period_end and p.period_end > period.period_end:
                continue
            total += p.commission_amount
        return total

    def reconcile(
        self,
        rows: Iterable[StaffPeriodCommission],
        period: CommissionPeriod,
    ) -> List[StaffPeriodCommission]:
        reconciled = []
        for row in rows:
            paid = money(self.paid_for(row.staff_id, period))
            owed = row.commission_owed
            status = payment_status(owed, paid)
            if paid > owed and owed > 0:
                logger.info(
                    f"Staff {row.staff_id} overpaid for {period.label}: owed={owed}, paid={paid}"
                )
            reconciled.append(row.model_copy(update={
                "commission_paid": paid,
                "outstanding": outstanding_amount(owed, paid),
                "status": status,
            }))
        return reconciled
