"""
Test degli endpoint HTTP.

L'applicazione è usata senza lifespan (nessuna connessione al
database); get_db è sostituita dalla sessione mock.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from koruku.core.database import get_db
from koruku.main import app

from conftest import (
    MockClient,
    MockInvoice,
    MockProject,
    MockQuotation,
    row_result,
    rows_result,
    scalar_result,
    scalars_result,
)


@pytest.fixture
def client(mock_db):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def money(value):
    return Decimal(str(value))


# ============================================================
# Sistema
# ============================================================


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================
# Prezzi
# ============================================================


class TestPricingApi:
    """Test per /api/v1/pricing."""

    def test_breakdown(self, client):
        response = client.post("/api/v1/pricing/breakdown", json={"total": 2800, "tier": "small"})

        assert response.status_code == 200
        body = response.json()
        assert money(body["labourAmount"]) == Decimal("840")
        assert money(body["infrastructureTotal"]) == Decimal("1960")
        assert money(body["infrastructureItems"]["hosting"]) == Decimal("940.80")

    def test_breakdown_negative_total(self, client):
        response = client.post("/api/v1/pricing/breakdown", json={"total": -1})
        assert response.status_code == 422

    def test_breakdown_invalid_tier(self, client):
        response = client.post("/api/v1/pricing/breakdown", json={"total": 100, "tier": "platinum"})
        assert response.status_code == 422

    def test_line_items(self, client):
        response = client.post("/api/v1/pricing/line-items", json={"total": 1200})

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 6
        assert "unitPrice" in items[0]
        assert sum(money(item["amount"]) for item in items) == Decimal("1200.00")

    def test_totals(self, client):
        response = client.post(
            "/api/v1/pricing/totals",
            json={
                "items": [
                    {"description": "Design", "quantity": 1, "unit_price": 600},
                    {"description": "Pagine", "quantity": 2, "unit_price": 200},
                ],
                "discount_percentage": 10,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert money(body["subtotal"]) == Decimal("1000")
        assert money(body["discountAmount"]) == Decimal("100")
        assert money(body["total"]) == Decimal("900")

    def test_suggest_tier(self, client):
        response = client.get("/api/v1/pricing/suggest-tier", params={"total": "5000"})
        assert response.json()["tier"] == "medium"

    def test_presets_by_category(self, client):
        response = client.get("/api/v1/pricing/presets", params={"category": "mobile apps"})
        assert [preset["key"] for preset in response.json()] == ["mobile_mvp", "mobile_fpa"]

    def test_unknown_preset(self, client):
        """Gli errori di dominio hanno error_code e dettaglio."""
        response = client.get("/api/v1/pricing/presets/unknown/breakdown")

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_ARGUMENT"

    def test_support_end_date(self, client):
        response = client.get(
            "/api/v1/pricing/support-end-date",
            params={"start_date": "2025-01-31", "months": 1},
        )
        assert response.json()["support_end_date"] == "2025-02-28"


# ============================================================
# Preventivi e report
# ============================================================


class TestQuotationApi:

    def test_incomplete_conversion(self, client, mock_db):
        """Conversione trovata a metà: 409 con la parte mancante."""
        quotation = MockQuotation()
        mock_db.execute.side_effect = [
            scalar_result(quotation),
            scalar_result(MockInvoice(quotation_id=quotation.id)),
        ]

        response = client.post(f"/api/v1/quotations/{quotation.id}/convert")

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "INCOMPLETE_CONVERSION"
        assert body["extra"]["missing"] == "quotation_status"

    def test_not_found(self, client, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        response = client.get(f"/api/v1/quotations/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"


class TestReportsApi:

    def test_csv_export(self, client, mock_db):
        mock_db.execute.return_value = rows_result([])

        response = client.get("/api/v1/reports/status-totals/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].startswith(
            'attachment; filename="status-totals-'
        )
        assert response.text.splitlines()[0] == "status,count,amount"

    def test_csv_without_data(self, client, mock_db):
        mock_db.execute.return_value = rows_result([])

        response = client.get("/api/v1/reports/client-revenue/csv")

        assert response.status_code == 422
        assert response.json()["detail"] == "No data to export"


# ============================================================
# Clienti, progetti e incassi
# ============================================================


class TestClientsApi:

    def test_list(self, client, mock_db):
        mock_db.execute.side_effect = [scalars_result([MockClient()]), scalar_result(1)]

        response = client.get("/api/v1/clients/", params={"search": "rossi"})

        assert response.status_code == 200
        body = response.json()
        assert body["totalItems"] == 1
        assert body["totalPages"] == 1
        assert body["items"][0]["email"] == "mario@studiorossi.it"

    def test_duplicate_email(self, client, mock_db):
        mock_db.execute.return_value = scalar_result(uuid.uuid4())

        response = client.post(
            "/api/v1/clients/",
            json={"business": "Studio Rossi", "contact": "Mario Rossi", "email": "MARIO@studiorossi.it"},
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "DUPLICATE_EMAIL"
        assert body["extra"]["email"] == "mario@studiorossi.it"

    def test_delete_client_in_use(self, client, mock_db):
        mock_db.execute.side_effect = [scalar_result(MockClient()), row_result((2, 1, 0))]

        response = client.delete(f"/api/v1/clients/{uuid.uuid4()}")

        assert response.status_code == 409
        assert response.json()["error_code"] == "CLIENT_IN_USE"


class TestProjectsApi:

    def test_expiring_support(self, client, mock_db):
        mock_db.execute.return_value = scalars_result([MockProject(client=MockClient())])

        response = client.get("/api/v1/projects/expiring-support", params={"days": 60})

        assert response.status_code == 200
        body = response.json()
        assert body[0]["supportEndDate"] == "2025-04-30"
        assert body[0]["client"]["business"] == "Studio Rossi"

    def test_create_for_unknown_client(self, client, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        response = client.post(
            "/api/v1/projects/",
            json={"client_id": str(uuid.uuid4()), "name": "Sito", "start_date": "2025-01-31"},
        )

        assert response.status_code == 404


class TestPaymentsApi:

    def test_summary(self, client, mock_db):
        invoice = MockInvoice(due_date=date.today() + timedelta(days=10))
        mock_db.execute.side_effect = [
            scalar_result(invoice),
            row_result((Decimal("450.00"), 1, date(2025, 4, 12))),
        ]

        response = client.get(f"/api/v1/invoices/{invoice.id}/payments/summary")

        assert response.status_code == 200
        body = response.json()
        assert money(body["totalPaid"]) == money("450.00")
        assert money(body["balance"]) == money("750.00")
        assert body["paymentCount"] == 1
        assert body["status"] == "sent"

    def test_overpayment(self, client, mock_db):
        invoice = MockInvoice(due_date=date.today() + timedelta(days=10))
        mock_db.execute.side_effect = [
            scalar_result(invoice),
            row_result((Decimal("1000.00"), 1, date(2025, 4, 12))),
        ]

        response = client.post(
            f"/api/v1/invoices/{invoice.id}/payments",
            json={"amount": "250.00", "payment_date": "2025-04-20"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "OVERPAYMENT"
        assert body["extra"]["balance"] == "200.00"
        mock_db.add.assert_not_called()

    def test_payment_for_unknown_invoice(self, client, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        response = client.get(f"/api/v1/invoices/{uuid.uuid4()}/payments")

        assert response.status_code == 404
