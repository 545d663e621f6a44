from datetime import date
from decimal import Decimal

from app.models.commission import CommissionBasis
from app.schemas.commission import RateSource, StaffPeriodCommission
from app.services.commission_export import COLUMNS, export_commission_csv


def _row(staff_name, sales_count, revenue, profit, owed, rate="5", basis=CommissionBasis.REVENUE):
    return StaffPeriodCommission(
        staff_id=staff_name.lower(),
        staff_name=staff_name,
        sales_count=sales_count,
        revenue=Decimal(revenue),
        profit=Decimal(profit),
        commission_owed=Decimal(owed),
        effective_rate=Decimal(rate),
        effective_basis=basis,
        rate_source=RateSource.DEFAULT,
    )


def test_layout_with_period_and_total():
    rows = [
        _row("Alice", 2, "1000", "400", "50"),
        _row("Bob", 1, "250.5", "100", "10.02", rate="10", basis=CommissionBasis.PROFIT),
    ]
    lines = export_commission_csv(rows, date(2026, 3, 1), date(2026, 3, 31), "£").splitlines()

    assert lines[0] == "Period: 2026-03-01 to 2026-03-31"
    assert lines[1] == ",".join(COLUMNS)
    assert lines[2] == "Alice,2,£1000.00,£400.00,5%,Revenue,£50.00"
    assert lines[3] == "Bob,1,£250.50,£100.00,10%,Gross Profit,£10.02"
    assert lines[4] == "TOTAL,3,£1250.50,£500.00,,,£60.02"
    assert len(lines) == 5


def test_all_time_header():
    content = export_commission_csv([], currency_symbol="$")
    lines = content.splitlines()
    assert lines[0] == "Period: All time"
    assert lines[-1] == "TOTAL,0,$0.00,$0.00,,,$0.00"


def test_fractional_rate_and_quoting():
    rows = [_row("Smith, Jo", 1, "100", "50", "7.5", rate="7.50")]
    lines = export_commission_csv(rows, currency_symbol="£").splitlines()
    assert lines[2] == '"Smith, Jo",1,£100.00,£50.00,7.5%,Revenue,£7.50'
