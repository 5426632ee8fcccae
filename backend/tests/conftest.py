"""
Pytest configuration and fixtures.

I service vengono testati con una AsyncSession mock: nessun
database reale, i risultati delle query sono preparati nei test.
"""

import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


def scalars_result(values):
    """Risultato di `select(colonna)` letto con .scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    return result


def scalar_result(value):
    """Risultato letto con .scalar_one_or_none() / .scalar()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def rows_result(rows):
    """Risultato letto con .all() (tuple di colonne)."""
    result = MagicMock()
    result.all.return_value = list(rows)
    return result


def row_result(row):
    """Risultato di una riga singola letta con .one()."""
    result = MagicMock()
    result.one.return_value = row
    return result


def update_result(rowcount):
    """Risultato di un UPDATE."""
    result = MagicMock()
    result.rowcount = rowcount
    return result


def unique_violation(column):
    """IntegrityError come sollevata da PostgreSQL su un vincolo unique."""
    orig = Exception(
        f'duplicate key value violates unique constraint "{column}_key"\n'
        f"DETAIL:  Key ({column})=(x) already exists."
    )
    return IntegrityError("INSERT ...", {}, orig)


# ============================================================
# Oggetti mock (senza sessione database)
# ============================================================


class MockQuotationItem:
    """Mock di una riga di preventivo salvata."""
    def __init__(self, description, quantity="1", unit_price="0", sort_order=0):
        self.id = uuid.uuid4()
        self.description = description
        self.quantity = Decimal(str(quantity))
        self.unit_price = Decimal(str(unit_price))
        self.amount = (self.quantity * self.unit_price).quantize(Decimal("0.01"))
        self.sort_order = sort_order


class MockQuotation:
    """Mock del modello Quotation."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.quotation_number = kwargs.get('quotation_number', 'QUO-2025-007')
        self.client_id = kwargs.get('client_id', uuid.uuid4())
        self.project_id = kwargs.get('project_id', None)
        self.date = kwargs.get('date', date(2025, 4, 1))
        self.valid_until = kwargs.get('valid_until', date(2025, 5, 1))
        self.status = kwargs.get('status', 'sent')
        self.items = kwargs.get('items', [
            MockQuotationItem("Website Development", "1", "3500.00", 0),
            MockQuotationItem("Web Hosting (1 year)", "2", "750.00", 1),
        ])
        self.subtotal = kwargs.get('subtotal', Decimal("5000.00"))
        self.discount_percentage = kwargs.get('discount_percentage', Decimal("0.00"))
        self.discount_amount = kwargs.get('discount_amount', Decimal("0.00"))
        self.total = kwargs.get('total', Decimal("5000.00"))
        self.notes = kwargs.get('notes', None)
        self.terms = kwargs.get('terms', None)
        self.converted_at = kwargs.get('converted_at', None)


class MockInvoice:
    """Mock del modello Invoice."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.invoice_number = kwargs.get('invoice_number', 'MZK-2025-001')
        self.client_id = kwargs.get('client_id', uuid.uuid4())
        self.project_id = kwargs.get('project_id', None)
        self.quotation_id = kwargs.get('quotation_id', None)
        self.amount = kwargs.get('amount', Decimal("1200.00"))
        self.date = kwargs.get('date', date(2025, 4, 1))
        self.due_date = kwargs.get('due_date', date(2025, 5, 1))
        self.paid_date = kwargs.get('paid_date', None)
        self.status = kwargs.get('status', 'sent')
        self.description = kwargs.get('description', 'Website Development')
        self.notes = kwargs.get('notes', None)

    @property
    def effective_status(self):
        if self.status != "paid" and self.due_date < date.today():
            return "overdue"
        return self.status


class MockClient:
    """Mock del modello Client."""
    def __init__(self, **kwargs):
        now = datetime(2025, 4, 1, 9, 0)
        self.id = kwargs.get('id', uuid.uuid4())
        self.business = kwargs.get('business', 'Studio Rossi')
        self.contact = kwargs.get('contact', 'Mario Rossi')
        self.email = kwargs.get('email', 'mario@studiorossi.it')
        self.phone = kwargs.get('phone', '+390212345678')
        self.address = kwargs.get('address', None)
        self.notes = kwargs.get('notes', None)
        self.active = kwargs.get('active', True)
        self.created_at = kwargs.get('created_at', now)
        self.updated_at = kwargs.get('updated_at', now)


class MockProject:
    """Mock del modello Project."""
    def __init__(self, **kwargs):
        now = datetime(2025, 4, 1, 9, 0)
        self.id = kwargs.get('id', uuid.uuid4())
        self.client_id = kwargs.get('client_id', uuid.uuid4())
        self.client = kwargs.get('client', None)
        self.name = kwargs.get('name', 'Sito vetrina')
        self.status = kwargs.get('status', 'development')
        self.start_date = kwargs.get('start_date', date(2025, 1, 31))
        self.support_months = kwargs.get('support_months', 3)
        self.support_end_date = kwargs.get('support_end_date', date(2025, 4, 30))
        self.description = kwargs.get('description', None)
        self.tech_stack = kwargs.get('tech_stack', ['Django'])
        self.live_url = kwargs.get('live_url', None)
        self.github_url = kwargs.get('github_url', None)
        self.created_at = kwargs.get('created_at', now)
        self.updated_at = kwargs.get('updated_at', now)


class MockPayment:
    """Mock del modello Payment."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.invoice_id = kwargs.get('invoice_id', uuid.uuid4())
        self.amount = kwargs.get('amount', Decimal("400.00"))
        self.payment_date = kwargs.get('payment_date', date(2025, 4, 10))
        self.payment_method = kwargs.get('payment_method', 'bank_transfer')
        self.reference = kwargs.get('reference', None)
        self.notes = kwargs.get('notes', None)
        self.created_at = kwargs.get('created_at', datetime(2025, 4, 10, 12, 0))
        self.notes = kwargs.get('notes', None)


@pytest.fixture
def mock_quotation():
    """Preventivo inviato con due righe e totale 5000."""
    return MockQuotation()


@pytest.fixture
def mock_invoice():
    """Fattura inviata non ancora pagata."""
    return MockInvoice(due_date=date.today() + timedelta(days=10))
