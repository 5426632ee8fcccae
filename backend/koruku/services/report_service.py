"""
Service per i Report e l'esportazione CSV
Progetto: Koruku (Gestionale Agenzia Web)

Report disponibili:
- Fatturato per cliente (fatturato, incassato, da incassare)
- Fatturato mensile degli ultimi N mesi
- Totali per stato effettivo della fattura
"""

import csv
import io
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.exceptions import BusinessValidationError
from koruku.models import Client, Invoice, Payment
from koruku.schemas.invoice import InvoiceStatus
from koruku.schemas.report import ClientRevenue, MonthlyRevenue, StatusTotals

# Logger per questo modulo
logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

Row = Union[Mapping[str, Any], BaseModel]


# -------------------------------------------------------------------
# Esportazione CSV
# -------------------------------------------------------------------

def _csv_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    return value


def _as_dict(row: Row) -> dict[str, Any]:
    if isinstance(row, BaseModel):
        return row.model_dump(by_alias=True)
    return dict(row)


def to_csv(rows: Iterable[Row]) -> str:
    """
    Converte una lista di record in testo CSV.

    - Intestazione: chiavi del primo record
    - Valori con virgola, doppi apici o a capo racchiusi tra doppi apici
      (doppi apici interni raddoppiati)
    - None → campo vuoto
    - Righe separate da "\\n"

    Raises:
        BusinessValidationError: nessun record da esportare
    """
    records = [_as_dict(row) for row in rows]
    if not records:
        raise BusinessValidationError("No data to export", error_code="NO_DATA_TO_EXPORT")

    headers = list(records[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow([_csv_value(record.get(header)) for header in headers])
    return buffer.getvalue().removesuffix("\n")


def month_keys(months: int, today: Optional[date] = None) -> list[str]:
    """Chiavi YYYY-MM degli ultimi `months` mesi, dal più vecchio al corrente."""
    today = today or date.today()
    keys = []
    for offset in range(months - 1, -1, -1):
        index = today.year * 12 + today.month - 1 - offset
        keys.append(f"{index // 12:04d}-{index % 12 + 1:02d}")
    return keys


# -------------------------------------------------------------------
# Report
# -------------------------------------------------------------------

class ReportService:
    """Aggregazioni di fatturato calcolate sulle fatture registrate."""

    async def client_revenue(self, db: AsyncSession) -> list[ClientRevenue]:
        """
        Fatturato per cliente, ordinato per totale fatturato decrescente.

        Considera solo i clienti con almeno una fattura. L'incassato di
        una fattura pagata è il suo importo, altrimenti la somma degli
        incassi parziali registrati.
        """
        payments = (
            select(Payment.invoice_id, func.sum(Payment.amount).label("total"))
            .group_by(Payment.invoice_id)
            .subquery()
        )
        paid_amount = case(
            (Invoice.status == InvoiceStatus.PAID.value, Invoice.amount),
            else_=func.coalesce(payments.c.total, 0),
        )
        stmt = (
            select(
                Client.id,
                Client.business,
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.amount), 0),
                func.coalesce(func.sum(paid_amount), 0),
            )
            .join(Invoice, Invoice.client_id == Client.id)
            .outerjoin(payments, payments.c.invoice_id == Invoice.id)
            .group_by(Client.id, Client.business)
            .order_by(func.sum(Invoice.amount).desc())
        )
        result = await db.execute(stmt)

        report = []
        for client_id, business, count, invoiced, paid in result.all():
            invoiced = Decimal(invoiced)
            paid = Decimal(paid)
            report.append(
                ClientRevenue(
                    client_id=client_id,
                    business=business,
                    invoice_count=count,
                    total_invoiced=invoiced,
                    total_paid=paid,
                    outstanding=invoiced - paid,
                )
            )
        logger.info("Report fatturato clienti: %d clienti", len(report))
        return report

    async def monthly_revenue(
        self,
        db: AsyncSession,
        months: int = 12,
        today: Optional[date] = None,
    ) -> list[MonthlyRevenue]:
        """
        Fatturato ed incassato per mese di emissione.

        I mesi senza fatture compaiono con importi a zero.
        """
        if months < 1:
            raise BusinessValidationError("Il numero di mesi deve essere almeno 1")

        keys = month_keys(months, today)
        start = date.fromisoformat(f"{keys[0]}-01")

        result = await db.execute(
            select(Invoice.date, Invoice.amount, Invoice.status).where(Invoice.date >= start)
        )

        invoiced: dict[str, Decimal] = defaultdict(lambda: ZERO)
        paid: dict[str, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[str, int] = defaultdict(int)
        for invoice_date, amount, status in result.all():
            key = invoice_date.strftime("%Y-%m")
            invoiced[key] += amount
            counts[key] += 1
            if status == InvoiceStatus.PAID.value:
                paid[key] += amount

        return [
            MonthlyRevenue(
                month=key,
                invoice_count=counts[key],
                invoiced=invoiced[key],
                paid=paid[key],
            )
            for key in keys
        ]

    async def status_totals(
        self,
        db: AsyncSession,
        today: Optional[date] = None,
    ) -> list[StatusTotals]:
        """Numero e importo delle fatture per stato effettivo (overdue derivato)."""
        today = today or date.today()
        result = await db.execute(select(Invoice.status, Invoice.due_date, Invoice.amount))

        counts: dict[str, int] = defaultdict(int)
        amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for status, due_date, amount in result.all():
            if status != InvoiceStatus.PAID.value and due_date < today:
                status = InvoiceStatus.OVERDUE.value
            counts[status] += 1
            amounts[status] += amount

        return [
            StatusTotals(status=status.value, count=counts[status.value], amount=amounts[status.value])
            for status in InvoiceStatus
        ]
