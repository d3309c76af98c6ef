from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from backend.app.main import app, get_calendar, get_conn
from fleet_invoicing.calendar import HolidayCalendar
from fleet_invoicing.models import Customer
from fleet_invoicing.repositories import CustomerRepository


@pytest.fixture
def client(conn):
    CustomerRepository(conn).create(
        Customer(
            id=0,
            company_name="Van Dijk Logistiek",
            assigned_license_plates=("12-ABC-3",),
            billing_type="combined",
            mileage_rate_type="fixed",
            hourly_rate=Decimal("40"),
            saturday_surcharge=Decimal("120"),
        )
    )
    conn.commit()
    app.dependency_overrides[get_conn] = lambda: conn
    app.dependency_overrides[get_calendar] = lambda: HolidayCalendar(years=[2025])
    yield TestClient(app)
    app.dependency_overrides.clear()


def payload(**overrides):
    body = {
        "weekly_log": {
            "week_id": "2025-10",
            "user_id": "driver-1",
            "days": [
                {
                    "date": "2025-03-08",
                    "status": "gewerkt",
                    "start_time": {"hour": 8, "minute": 0},
                    "end_time": {"hour": 16, "minute": 0},
                    "break_time": {"hour": 0, "minute": 30},
                    "start_mileage": 1000,
                    "end_mileage": 1200,
                    "toll": "BE+DE",
                    "license_plate": "12-ABC-3",
                },
                {"date": "2025-03-07", "status": "ziek", "license_plate": "12-ABC-3"},
            ],
        }
    }
    body.update(overrides)
    return body


def test_preview_returns_lines_and_totals(client):
    response = client.post("/invoices/preview", json=payload())

    assert response.status_code == 200
    data = response.json()
    assert data["invoice_id"] is None
    assert data["customer_name"] == "Van Dijk Logistiek"
    assert [line["total"] for line in data["lines"]] == ["112.00", "360.00", "0.00", "0.00"]
    assert data["sub_total"] == "472.00"
    assert data["vat_total"] == "99.12"
    assert data["grand_total"] == "571.12"


def test_create_persists_invoice(client, conn):
    response = client.post("/invoices", json=payload(reference="Rit Antwerpen"))

    assert response.status_code == 201
    invoice_id = response.json()["invoice_id"]
    row = conn.execute("SELECT reference, status FROM invoice WHERE id = ?", (invoice_id,)).fetchone()
    assert row["reference"] == "Rit Antwerpen"
    assert row["status"] == "concept"


def test_unknown_plate_is_reported_in_dutch(client):
    body = payload()
    for day in body["weekly_log"]["days"]:
        day["license_plate"] = "00-NOP-0"

    response = client.post("/invoices/preview", json=body)

    assert response.status_code == 404
    assert response.json()["detail"] == "Geen klant gevonden voor kenteken in weekstaat."


def test_invalid_week_id_is_rejected(client):
    body = payload()
    body["weekly_log"]["week_id"] = "week tien"

    response = client.post("/invoices/preview", json=body)

    assert response.status_code == 422


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
