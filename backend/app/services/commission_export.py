"""Commission CSV export."""
import csv
import io
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from app.core.config import settings
from app.models.commission import CommissionBasis
from app.schemas.commission import StaffPeriodCommission
from app.services.totals import ZERO, money

COLUMNS = [
    "Staff Member",
    "Sales Count",
    "Revenue",
    "Gross Profit",
    "Commission Rate",
    "Commission Basis",
    "Commission Owed",
]


def _currency(amount: Decimal, symbol: str) -> str:
    return f"{symbol}{money(amount)}"


def _rate(rate: Decimal) -> str:
    text = format(money(rate), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text}%"


def _basis(basis: CommissionBasis) -> str:
    return "Gross Profit" if basis == CommissionBasis.PROFIT else "Revenue"


def period_line(date_from: Optional[date], date_to: Optional[date]) -> str:
    if date_from and date_to:
        return f"Period: {date_from.isoformat()} to {date_to.isoformat()}"
    if date_from:
        return f"Period: from {date_from.isoformat()}"
    if date_to:
        return f"Period: until {date_to.isoformat()}"
    return "Period: All time"


def export_commission_csv(
    rows: Iterable[StaffPeriodCommission],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    currency_symbol: Optional[str] = None,
) -> str:
    """CSV of owed commission per staff member with a trailing TOTAL row."""
    symbol = settings.CURRENCY_SYMBOL if currency_symbol is None else currency_symbol

    buffer = io.StringIO()
    buffer.write(period_line(date_from, date_to) + "\n")
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS, lineterminator="\n")
    writer.writeheader()

    sales_count = 0
    revenue = profit = owed = ZERO
    for row in rows:
        writer.writerow({
            "Staff Member": row.staff_name,
            "Sales Count": row.sales_count,
            "Revenue": _currency(row.revenue, symbol),
            "Gross Profit": _currency(row.profit, symbol),
            "Commission Rate": _rate(row.effective_rate),
            "Commission Basis": _basis(row.effective_basis),
            "Commission Owed": _currency(row.commission_owed, symbol),
        })
        sales_count += row.sales_count
        revenue += row.revenue
        profit += row.profit
        owed += row.commission_owed

    writer.writerow({
        "Staff Member": "TOTAL",
        "Sales Count": sales_count,
        "Revenue": _currency(revenue, symbol),
        "Gross Profit": _currency(profit, symbol),
        "Commission Rate": "",
        "Commission Basis": "",
        "Commission Owed": _currency(owed, symbol),
    })
    return buffer.getvalue()
