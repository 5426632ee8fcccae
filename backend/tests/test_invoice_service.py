"""
Test per InvoiceService e per le validazioni delle fatture.

Include test per:
- Numerazione automatica e manuale (con numero suggerito)
- Validazione delle date
- Stato derivato "overdue"
- Marcatura inviata / pagata
"""

import asyncio
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from koruku.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
    NumberingConflictError,
)
from koruku.models import Invoice
from koruku.schemas.invoice import InvoiceCreate, InvoiceRead, InvoiceUpdate
from koruku.services.invoice_service import InvoiceService

from conftest import MockInvoice, scalar_result, scalars_result, unique_violation

CLIENT_ID = uuid.UUID("0f6e2d44-3b8a-4a52-9b7c-1d2e3f405162")


def make_invoice_data(**overrides):
    data = {
        "client_id": CLIENT_ID,
        "amount": Decimal("1200.00"),
        "date": date(2025, 4, 1),
        "due_date": date(2025, 5, 1),
        "description": "Website Development",
    }
    data.update(overrides)
    return InvoiceCreate(**data)


def service_returning_added(mock_db):
    service = InvoiceService()
    service.get_by_id = AsyncMock(side_effect=lambda *args, **kwargs: mock_db.add.call_args.args[0])
    return service


def service_for(invoice):
    service = InvoiceService()
    service.get_by_id = AsyncMock(return_value=invoice)
    return service


# ============================================================
# Validazione schema
# ============================================================


class TestInvoiceDates:
    """Test per la validazione delle date in InvoiceCreate."""

    def test_due_date_before_date(self):
        """La scadenza non può precedere la data fattura."""
        with pytest.raises(PydanticValidationError):
            make_invoice_data(due_date=date(2025, 3, 31))

    def test_due_date_same_day(self):
        assert make_invoice_data(due_date=date(2025, 4, 1)).due_date == date(2025, 4, 1)

    def test_due_date_within_one_year(self):
        make_invoice_data(due_date=date(2026, 4, 1))
        with pytest.raises(PydanticValidationError):
            make_invoice_data(due_date=date(2026, 4, 2))

    def test_leap_day(self):
        """29 febbraio: il limite è il 28 febbraio dell'anno successivo."""
        make_invoice_data(date=date(2024, 2, 29), due_date=date(2025, 2, 28))
        with pytest.raises(PydanticValidationError):
            make_invoice_data(date=date(2024, 2, 29), due_date=date(2025, 3, 1))

    def test_invoice_number_is_normalized(self):
        assert make_invoice_data(invoice_number=" mzk-2025-001 ").invoice_number == "MZK-2025-001"

    def test_negative_amount(self):
        with pytest.raises(PydanticValidationError):
            make_invoice_data(amount=Decimal("-1"))

    def test_amount_with_three_decimals(self):
        """L'importo viene salvato al centesimo: niente arrotondamenti impliciti."""
        with pytest.raises(PydanticValidationError):
            make_invoice_data(amount=Decimal("1200.005"))


class TestOverdueStatus:
    """Lo stato overdue è derivato, non memorizzato."""

    def _invoice(self, status, due_date):
        return Invoice(
            invoice_number="MZK-2025-001",
            client_id=CLIENT_ID,
            amount=Decimal("100"),
            date=due_date - timedelta(days=30),
            due_date=due_date,
            status=status,
            description="Hosting annuale",
        )

    def test_past_due_is_overdue(self):
        invoice = self._invoice("sent", date.today() - timedelta(days=1))
        assert invoice.is_overdue
        assert invoice.effective_status == "overdue"

    def test_due_today_is_not_overdue(self):
        invoice = self._invoice("sent", date.today())
        assert not invoice.is_overdue
        assert invoice.effective_status == "sent"

    def test_paid_is_never_overdue(self):
        invoice = self._invoice("paid", date.today() - timedelta(days=60))
        assert not invoice.is_overdue
        assert invoice.effective_status == "paid"

    def test_read_schema_exposes_effective_status(self):
        invoice = self._invoice("draft", date.today() - timedelta(days=5))
        invoice.id = uuid.uuid4()
        invoice.created_at = invoice.updated_at = datetime.now()

        data = InvoiceRead.model_validate(invoice).model_dump(by_alias=True)

        assert data["status"] == "draft"
        assert data["effectiveStatus"] == "overdue"


# ============================================================
# Creazione e numerazione
# ============================================================


class TestCreateInvoice:
    """Test per InvoiceService.create."""

    def test_allocates_number_for_invoice_year(self, mock_db):
        mock_db.execute.return_value = scalars_result(["MZK-2025-001"])
        service = service_returning_added(mock_db)

        invoice = asyncio.run(service.create(mock_db, make_invoice_data()))

        assert invoice.invoice_number == "MZK-2025-002"
        assert invoice.status == "draft"
        assert invoice.amount == Decimal("1200.00")
        mock_db.commit.assert_awaited_once()

    def test_manual_number(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        service = service_returning_added(mock_db)

        invoice = asyncio.run(
            service.create(mock_db, make_invoice_data(invoice_number="MZK-2025-050"))
        )

        assert invoice.invoice_number == "MZK-2025-050"
        mock_db.commit.assert_awaited_once()

    def test_manual_number_already_used(self, mock_db):
        """Numero esistente: errore con il prossimo numero disponibile."""
        mock_db.execute.side_effect = [
            scalar_result(uuid.uuid4()),
            scalars_result(["MZK-2025-001", "MZK-2025-005"]),
        ]
        service = service_returning_added(mock_db)

        with pytest.raises(NumberingConflictError) as exc:
            asyncio.run(service.create(mock_db, make_invoice_data(invoice_number="MZK-2025-005")))

        assert exc.value.extra == {
            "attempted_number": "MZK-2025-005",
            "scope": "MZK-2025",
            "suggested_number": "MZK-2025-006",
        }
        assert "MZK-2025-006" in exc.value.detail
        mock_db.add.assert_not_called()

    def test_manual_number_race(self, mock_db):
        mock_db.execute.side_effect = [
            scalar_result(None),
            scalars_result(["MZK-2025-007"]),
        ]
        mock_db.commit.side_effect = unique_violation("invoice_number")
        service = service_returning_added(mock_db)

        with pytest.raises(NumberingConflictError) as exc:
            asyncio.run(service.create(mock_db, make_invoice_data(invoice_number="MZK-2025-007")))

        assert exc.value.suggested_number == "MZK-2025-008"
        mock_db.rollback.assert_awaited_once()

    def test_manual_number_wrong_prefix(self, mock_db):
        service = service_returning_added(mock_db)

        with pytest.raises(BusinessValidationError):
            asyncio.run(service.create(mock_db, make_invoice_data(invoice_number="INV-1")))
        mock_db.execute.assert_not_awaited()

    def test_suggest_number(self, mock_db):
        mock_db.execute.return_value = scalars_result(["MZK-2025-009"])

        number = asyncio.run(InvoiceService().suggest_number(mock_db, 2025))

        assert number.formatted == "MZK-2025-010"


# ============================================================
# Lettura
# ============================================================


class TestGetInvoice:
    """Test per get_by_id e get_by_invoice_number."""

    def test_not_found(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            asyncio.run(InvoiceService().get_by_id(mock_db, uuid.uuid4()))

    def test_by_number(self, mock_db, mock_invoice):
        mock_db.execute.return_value = scalar_result(mock_invoice)

        result = asyncio.run(InvoiceService().get_by_invoice_number(mock_db, " mzk-2025-001 "))

        assert result is mock_invoice

    def test_by_number_not_found(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            asyncio.run(InvoiceService().get_by_invoice_number(mock_db, "MZK-2025-404"))


# ============================================================
# Modifica e stati
# ============================================================


class TestInvoiceChanges:
    """Test per update, mark_sent, mark_paid e delete."""

    def test_update_description(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        asyncio.run(
            service.update(mock_db, mock_invoice.id, InvoiceUpdate(description="Hosting annuale"))
        )

        assert mock_invoice.description == "Hosting annuale"
        mock_db.commit.assert_awaited_once()

    def test_update_paid_invoice(self, mock_db):
        invoice = MockInvoice(status="paid", paid_date=date(2025, 4, 10))
        service = service_for(invoice)

        with pytest.raises(BusinessValidationError):
            asyncio.run(service.update(mock_db, invoice.id, InvoiceUpdate(notes="x")))

    def test_update_due_date_before_date(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        with pytest.raises(BusinessValidationError):
            asyncio.run(
                service.update(mock_db, mock_invoice.id, InvoiceUpdate(due_date=date(2025, 3, 1)))
            )
        mock_db.commit.assert_not_awaited()

    def test_mark_sent(self, mock_db):
        invoice = MockInvoice(status="draft")
        service = service_for(invoice)

        asyncio.run(service.mark_sent(mock_db, invoice.id))

        assert invoice.status == "sent"

    def test_mark_sent_requires_draft(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        with pytest.raises(BusinessValidationError):
            asyncio.run(service.mark_sent(mock_db, mock_invoice.id))

    def test_mark_paid(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        asyncio.run(service.mark_paid(mock_db, mock_invoice.id, paid_date=date(2025, 4, 20)))

        assert mock_invoice.status == "paid"
        assert mock_invoice.paid_date == date(2025, 4, 20)
        mock_db.commit.assert_awaited_once()

    def test_mark_paid_twice(self, mock_db):
        invoice = MockInvoice(status="paid", paid_date=date(2025, 4, 10))
        service = service_for(invoice)

        with pytest.raises(ConflictError):
            asyncio.run(service.mark_paid(mock_db, invoice.id))

    def test_paid_date_before_invoice_date(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        with pytest.raises(BusinessValidationError):
            asyncio.run(service.mark_paid(mock_db, mock_invoice.id, paid_date=date(2025, 3, 1)))

    def test_delete(self, mock_db, mock_invoice):
        service = service_for(mock_invoice)

        asyncio.run(service.delete(mock_db, mock_invoice.id))

        mock_db.delete.assert_awaited_once_with(mock_invoice)

    def test_delete_paid_invoice(self, mock_db):
        invoice = MockInvoice(status="paid", paid_date=date(2025, 4, 10))
        service = service_for(invoice)

        with pytest.raises(BusinessValidationError):
            asyncio.run(service.delete(mock_db, invoice.id))
        mock_db.delete.assert_not_awaited()
