"""
Schemas Pydantic per i Report
Progetto: Koruku (Gestionale Agenzia Web)
"""

import uuid
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ReportName(str, Enum):
    """Report esportabili in CSV."""
    CLIENT_REVENUE = "client-revenue"
    MONTHLY_REVENUE = "monthly-revenue"
    STATUS_TOTALS = "status-totals"


class ClientRevenue(BaseModel):
    """Fatturato aggregato per cliente."""

    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    business: str
    invoice_count: int = Field(..., serialization_alias="invoiceCount")
    total_invoiced: Decimal = Field(..., serialization_alias="totalInvoiced")
    total_paid: Decimal = Field(..., serialization_alias="totalPaid")
    outstanding: Decimal


class MonthlyRevenue(BaseModel):
    """Fatturato di un mese (YYYY-MM)."""

    month: str
    invoice_count: int = Field(..., serialization_alias="invoiceCount")
    invoiced: Decimal
    paid: Decimal


class StatusTotals(BaseModel):
    """Numero e importo delle fatture per stato effettivo."""

    status: str
    count: int
    amount: Decimal
