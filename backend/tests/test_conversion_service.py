"""
Test per la conversione preventivo → fattura (calcolo puro).
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from koruku.core.exceptions import InvalidArgumentError
from koruku.schemas.invoice import InvoiceStatus
from koruku.schemas.pricing import LineItem
from koruku.services.conversion_service import (
    FALLBACK_DESCRIPTION,
    convert_to_invoice,
    describe_item,
    to_draft,
)

from conftest import MockQuotation

QUOTATION_ID = uuid.UUID("5b1f3c1e-8f5e-4a4b-9d59-0c8e4f7d2a10")
CLIENT_ID = uuid.UUID("0f6e2d44-3b8a-4a52-9b7c-1d2e3f405162")


def make_quotation(**overrides):
    data = {
        "id": QUOTATION_ID,
        "quotation_number": "QUO-2025-007",
        "client_id": CLIENT_ID,
        "project_id": None,
        "items": [
            {"description": "Website Development", "quantity": 1, "unit_price": "3500"},
            {"description": "Web Hosting (1 year)", "quantity": "2", "unit_price": "750"},
        ],
        "discount_percentage": "0",
        "total": "5000.00",
    }
    data.update(overrides)
    return data


# ============================================================
# Bozza fattura
# ============================================================


class TestConvertToInvoice:
    """Test per convert_to_invoice."""

    def test_invoice_from_quotation(self):
        """Preventivo da 5000 con due righe: fattura con descrizione composta."""
        result = convert_to_invoice(
            make_quotation(),
            "MZK",
            ["MZK-2025-001"],
            today=date(2025, 5, 1),
            payment_terms_days=30,
        )
        invoice = result.invoice

        assert invoice.invoice_number == "MZK-2025-002"
        assert invoice.amount == Decimal("5000.00")
        assert invoice.client_id == CLIENT_ID
        assert invoice.quotation_id == QUOTATION_ID
        assert invoice.date == date(2025, 5, 1)
        assert invoice.due_date == date(2025, 5, 31)
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.description == (
            "Website Development (1x R3500.00)\n"
            "Web Hosting (1 year) (2x R750.00)"
        )
        assert invoice.notes == "Converted from quotation QUO-2025-007"
        assert result.quotation_status == "accepted"
        assert result.quotation_id == QUOTATION_ID

    def test_amount_is_discounted_total(self):
        """L'importo è il totale scontato, non il subtotale delle righe."""
        result = convert_to_invoice(
            make_quotation(total="4500.00", discount_percentage="10"),
            "MZK",
            [],
            today=date(2025, 5, 1),
        )
        assert result.invoice.amount == Decimal("4500.00")

    def test_amount_derived_when_total_missing(self):
        result = convert_to_invoice(
            make_quotation(total=None, discount_percentage="10"),
            "MZK",
            [],
            today=date(2025, 5, 1),
        )
        assert result.invoice.amount == Decimal("4500.00")

    def test_no_items_uses_fallback_description(self):
        result = convert_to_invoice(
            make_quotation(items=[], total="800.00"),
            "MZK",
            [],
            today=date(2025, 5, 1),
        )
        assert result.invoice.description == FALLBACK_DESCRIPTION == "Services as per quotation"

    def test_default_payment_terms(self):
        """Senza giorni indicati si usa il termine configurato (30)."""
        result = convert_to_invoice(make_quotation(), "MZK", [], today=date(2025, 12, 15))

        assert result.invoice.due_date == date(2026, 1, 14)
        assert result.invoice.invoice_number == "MZK-2025-001"

    def test_same_input_same_result(self):
        """Stesso preventivo e stesso snapshot: stessa bozza."""
        args = (make_quotation(), "MZK", ["MZK-2025-003"])
        first = convert_to_invoice(*args, today=date(2025, 5, 1))
        second = convert_to_invoice(*args, today=date(2025, 5, 1))
        assert first == second

    def test_from_orm_object(self):
        """Il preventivo può arrivare come oggetto ORM."""
        quotation = MockQuotation()
        result = convert_to_invoice(quotation, "MZK", [], today=date(2025, 5, 1))

        assert result.invoice.quotation_id == quotation.id
        assert result.invoice.amount == Decimal("5000.00")
        assert "Web Hosting (1 year) (2x R750.00)" in result.invoice.description

    def test_empty_prefix(self):
        with pytest.raises(InvalidArgumentError):
            convert_to_invoice(make_quotation(), "", [], today=date(2025, 5, 1))


class TestDescribeItem:
    """Test per la riga descrittiva della fattura."""

    def test_fractional_quantity(self):
        item = LineItem(description="Consulenza", quantity=Decimal("2.50"), unit_price=Decimal("80"))
        assert describe_item(item) == "Consulenza (2.5x R80.00)"

    def test_large_round_quantity(self):
        item = LineItem(description="Banner", quantity=Decimal("100"), unit_price=Decimal("1.5"))
        assert describe_item(item, currency="€") == "Banner (100x €1.50)"


class TestToDraft:
    """Test per to_draft."""

    def test_draft_is_returned_unchanged(self):
        draft = to_draft(make_quotation())
        assert to_draft(draft) is draft
        assert draft.kind == "quotation"

    def test_orm_items_become_line_items(self):
        draft = to_draft(MockQuotation())
        assert [item.amount for item in draft.items] == [Decimal("3500.00"), Decimal("1500.00")]
