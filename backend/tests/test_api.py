from datetime import datetime, timezone
from decimal import Decimal

from factories import add_sale, add_staff


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestReports:
    def test_monthly(self, client, db):
        staff = add_staff(db)
        add_sale(db, staff, sold_at=datetime.now(timezone.utc), revenue="1000")

        response = client.get("/api/commissions/monthly", params={"months_back": 2})
        assert response.status_code == 200
        body = response.json()
        assert len(body["periods"]) == 2
        assert body["grand_totals"]["sales_count"] == 1
        assert Decimal(body["grand_totals"]["owed"]) == Decimal("50")
        assert body["commission_enabled"] is True

    def test_monthly_rejects_zero_months(self, client):
        assert client.get("/api/commissions/monthly", params={"months_back": 0}).status_code == 422

    def test_date_range_report(self, client, db):
        staff = add_staff(db)
        add_sale(db, staff, revenue="1000")
        add_sale(db, staff, sold_at=datetime(2026, 5, 1, tzinfo=timezone.utc), revenue="1000")

        response = client.get(
            "/api/commissions/report",
            params={"date_from": "2026-03-01", "date_to": "2026-03-31"},
        )
        assert response.status_code == 200
        period = response.json()["periods"][0]
        assert period["period"]["label"] == "2026-03-01 to 2026-03-31"
        row, = period["staff_data"]
        assert row["staff_name"] == "Alice Able"
        assert row["sales_count"] == 1
        assert Decimal(row["commission_owed"]) == Decimal("50")
        assert row["status"] == "unpaid"

    def test_reversed_range(self, client):
        response = client.get(
            "/api/commissions/report",
            params={"date_from": "2026-03-31", "date_to": "2026-03-01"},
        )
        assert response.status_code == 400

    def test_export_csv(self, client, db):
        add_sale(db, add_staff(db), revenue="1000", profit="400")

        response = client.get("/api/commissions/export", params={"date_from": "2026-03-01", "date_to": "2026-03-31"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "staff-commission-2026-03-01-2026-03-31.csv" in response.headers["content-disposition"]

        lines = response.text.splitlines()
        assert lines[0] == "Period: 2026-03-01 to 2026-03-31"
        assert lines[2] == "Alice Able,1,£1000.00,£400.00,5%,Revenue,£50.00"
        assert lines[-1].startswith("TOTAL,1,")


class TestSaleEndpoints:
    def test_detail_and_override(self, client, db):
        sale = add_sale(db, add_staff(db), revenue="1000")

        detail = client.get(f"/api/commissions/sales/{sale.id}").json()
        assert Decimal(detail["calculated_commission"]) == Decimal("50")

        response = client.put(
            f"/api/commissions/sales/{sale.id}/override",
            json={"commission_override": "80", "commission_override_reason": "bonus"},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["effective_commission"]) == Decimal("80")

    def test_unknown_sale(self, client):
        assert client.get("/api/commissions/sales/999").status_code == 404
        response = client.put("/api/commissions/sales/999/override", json={"commission_override": "5"})
        assert response.status_code == 404


class TestRateManagement:
    def test_settings_round_trip(self, client):
        response = client.put("/api/commissions/settings", json={"default_rate": "6", "calculation_basis": "profit"})
        assert response.status_code == 200
        body = client.get("/api/commissions/settings").json()
        assert Decimal(body["default_rate"]) == Decimal("6")
        assert body["calculation_basis"] == "profit"

    def test_settings_rate_out_of_range(self, client):
        assert client.put("/api/commissions/settings", json={"default_rate": "150"}).status_code == 422

    def test_overrides(self, client, db):
        staff = add_staff(db)
        response = client.put(f"/api/commissions/overrides/{staff.id}", json={"commission_rate": "7"})
        assert response.status_code == 200
        assert response.json()["commission_basis"] == "revenue"

        assert len(client.get("/api/commissions/overrides").json()) == 1
        history = client.get("/api/commissions/rate-history", params={"staff_id": staff.id}).json()
        assert len(history) == 1

        assert client.delete(f"/api/commissions/overrides/{staff.id}").status_code == 204
        assert client.delete(f"/api/commissions/overrides/{staff.id}").status_code == 404

    def test_rate_history(self, client, db):
        staff = add_staff(db)
        response = client.post("/api/commissions/rate-history", json={
            "staff_id": staff.id,
            "commission_rate": "10",
            "commission_basis": "profit",
            "effective_from": "2026-03-15T00:00:00Z",
        })
        assert response.status_code == 201
        assert response.json()["effective_to"] is None

        backdated = client.post("/api/commissions/rate-history", json={
            "staff_id": staff.id,
            "commission_rate": "4",
            "effective_from": "2026-01-01T00:00:00Z",
        })
        assert backdated.status_code == 400


class TestPayroll:
    def test_record_and_list(self, client, db):
        staff = add_staff(db)
        response = client.post("/api/payroll/payments", json={
            "staff_id": staff.id,
            "period_start": "2026-03-01",
            "period_end": "2026-03-31",
            "commission_amount": "25",
            "commission_rate": "5",
        })
        assert response.status_code == 201
        assert response.json()["payment_method"] == "bank_transfer"

        payments = client.get("/api/payroll/payments", params={"staff_id": staff.id}).json()
        assert len(payments) == 1
        assert Decimal(payments[0]["commission_amount"]) == Decimal("25")

    def test_zero_payment_rejected(self, client, db):
        staff = add_staff(db)
        response = client.post("/api/payroll/payments", json={
            "staff_id": staff.id,
            "period_start": "2026-03-01",
            "period_end": "2026-03-31",
            "commission_amount": "0",
            "commission_rate": "5",
        })
        assert response.status_code == 422

    def test_reversed_payment_period(self, client, db):
        staff = add_staff(db)
        response = client.post("/api/payroll/payments", json={
            "staff_id": staff.id,
            "period_start": "2026-03-31",
            "period_end": "2026-03-01",
            "commission_amount": "10",
            "commission_rate": "5",
        })
        assert response.status_code == 400

    def test_bulk_pay(self, client, db):
        add_sale(db, add_staff(db, "Alice Able"), revenue="2000")
        add_sale(db, add_staff(db, "Bob Baker"), revenue="1000")

        response = client.post("/api/payroll/bulk-pay/2026-03")
        assert response.status_code == 200
        body = response.json()
        assert body["month"] == "2026-03"
        assert body["paid_count"] == 2
        assert Decimal(body["total_paid"]) == Decimal("150")

        again = client.post("/api/payroll/bulk-pay/2026-03").json()
        assert again["paid_count"] == 0

    def test_bulk_pay_bad_month(self, client):
        assert client.post("/api/payroll/bulk-pay/2026-13").status_code == 400
