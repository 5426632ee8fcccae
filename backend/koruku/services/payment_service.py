"""
Service Layer per gli Incassi
Progetto: Koruku (Gestionale Agenzia Web)

Gestisce:
- Incassi (anche parziali) registrati su una fattura
- Controllo che la somma degli incassi non superi l'importo fatturato
- Stato della fattura allineato agli incassi:
  saldata → "paid" con data dell'ultimo incasso,
  di nuovo con residuo → "sent"
- Riepilogo incassato / residuo per fattura
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from koruku.models import Invoice, Payment
from koruku.schemas.invoice import InvoiceStatus
from koruku.schemas.payment import InvoicePaymentSummary, PaymentCreate, PaymentUpdate
from koruku.services.invoice_service import InvoiceService

# Logger per questo modulo
logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class PaymentService:
    """Service per gli incassi sulle fatture."""

    def __init__(self, invoices: Optional[InvoiceService] = None) -> None:
        self.invoices = invoices or InvoiceService()

    # -------------------------------------------------------------------
    # Lettura
    # -------------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[Payment]:
        """Tutti gli incassi, dal più recente."""
        conditions = []
        if from_date:
            conditions.append(Payment.payment_date >= from_date)
        if to_date:
            conditions.append(Payment.payment_date <= to_date)

        query = select(Payment).order_by(Payment.payment_date.desc())
        if conditions:
            query = query.where(and_(*conditions))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_for_invoice(self, db: AsyncSession, invoice_id: uuid.UUID) -> list[Payment]:
        """
        Incassi di una fattura, dal più recente.

        Raises:
            NotFoundError: fattura inesistente
        """
        await self.invoices.get_by_id(db, invoice_id)
        result = await db.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.payment_date.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        reload: bool = False,
    ) -> Payment:
        """
        Raises:
            NotFoundError: incasso inesistente
        """
        query = select(Payment).where(Payment.id == payment_id)
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        payment = result.scalar_one_or_none()

        if payment is None:
            raise NotFoundError(f"Incasso {payment_id} non trovato")
        return payment

    async def summary(self, db: AsyncSession, invoice_id: uuid.UUID) -> InvoicePaymentSummary:
        """Incassato, residuo e stato effettivo di una fattura."""
        invoice = await self.invoices.get_by_id(db, invoice_id)
        total_paid, count, last_date = await self._stats(db, invoice_id)
        return InvoicePaymentSummary(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            amount=invoice.amount,
            total_paid=total_paid,
            balance=invoice.amount - total_paid,
            payment_count=count,
            status=invoice.effective_status,
            last_payment_date=last_date,
        )

    # -------------------------------------------------------------------
    # Scrittura
    # -------------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: PaymentCreate,
    ) -> Payment:
        """
        Registra un incasso su una fattura.

        Raises:
            NotFoundError: fattura inesistente
            ConflictError: fattura già segnata come pagata
            BusinessValidationError: data precedente alla fattura o
                importo oltre il residuo (OVERPAYMENT)
        """
        invoice = await self.invoices.get_by_id(db, invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise ConflictError(f"La fattura {invoice.invoice_number} è già pagata")

        payment_date = data.payment_date or date.today()
        _check_date(invoice, payment_date)

        already_paid, _, last_date = await self._stats(db, invoice_id)
        _check_balance(invoice, already_paid, data.amount)

        payment = Payment(
            id=uuid.uuid4(),
            invoice_id=invoice_id,
            amount=data.amount,
            payment_date=payment_date,
            payment_method=data.payment_method.value,
            reference=data.reference,
            notes=data.notes,
        )
        db.add(payment)
        _sync_invoice_status(
            invoice,
            already_paid + data.amount,
            max(filter(None, [last_date, payment_date])),
        )
        await db.commit()

        logger.info(
            "Incasso di %s su fattura %s (residuo %s)",
            data.amount,
            invoice.invoice_number,
            invoice.amount - already_paid - data.amount,
        )
        return await self.get_by_id(db, payment.id, reload=True)

    async def update(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        data: PaymentUpdate,
    ) -> Payment:
        """
        Modifica un incasso e riallinea lo stato della fattura.

        Raises:
            NotFoundError: incasso inesistente
            BusinessValidationError: data precedente alla fattura o
                importo oltre il residuo
        """
        payment = await self.get_by_id(db, payment_id)
        invoice = await self.invoices.get_by_id(db, payment.invoice_id)
        update_data = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in ("reference", "notes")
        }

        amount = update_data.get("amount", payment.amount)
        payment_date = update_data.get("payment_date", payment.payment_date)
        _check_date(invoice, payment_date)

        others, _, last_other = await self._stats(db, invoice.id, exclude_id=payment.id)
        _check_balance(invoice, others, amount)

        for field, value in update_data.items():
            setattr(payment, field, getattr(value, "value", value))

        _sync_invoice_status(
            invoice,
            others + amount,
            max(filter(None, [last_other, payment_date])),
        )
        await db.commit()
        return await self.get_by_id(db, payment_id, reload=True)

    async def delete(self, db: AsyncSession, payment_id: uuid.UUID) -> None:
        """Elimina un incasso; una fattura saldata torna "sent" se resta un residuo."""
        payment = await self.get_by_id(db, payment_id)
        invoice = await self.invoices.get_by_id(db, payment.invoice_id)

        others, _, last_other = await self._stats(db, invoice.id, exclude_id=payment.id)
        await db.delete(payment)
        _sync_invoice_status(invoice, others, last_other)
        await db.commit()
        logger.info(
            "Eliminato incasso di %s su fattura %s", payment.amount, invoice.invoice_number
        )

    async def _stats(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> tuple[Decimal, int, Optional[date]]:
        """Somma, numero e data più recente degli incassi della fattura."""
        query = select(
            func.coalesce(func.sum(Payment.amount), 0),
            func.count(Payment.id),
            func.max(Payment.payment_date),
        ).where(Payment.invoice_id == invoice_id)
        if exclude_id:
            query = query.where(Payment.id != exclude_id)
        result = await db.execute(query)
        total, count, last_date = result.one()
        return Decimal(total).quantize(ZERO), count, last_date


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _check_date(invoice: Invoice, payment_date: date) -> None:
    if payment_date < invoice.date:
        raise BusinessValidationError(
            "La data dell'incasso non può essere precedente alla data fattura"
        )


def _check_balance(invoice: Invoice, already_paid: Decimal, amount: Decimal) -> None:
    balance = invoice.amount - already_paid
    if amount > balance:
        raise BusinessValidationError(
            f"L'incasso di {amount} supera il residuo della fattura "
            f"{invoice.invoice_number} ({balance})",
            error_code="OVERPAYMENT",
            extra={"balance": str(balance), "amount": str(amount)},
        )


def _sync_invoice_status(
    invoice: Invoice,
    total_paid: Decimal,
    last_payment_date: Optional[date],
) -> None:
    if total_paid >= invoice.amount and invoice.amount > 0:
        if invoice.status != InvoiceStatus.PAID.value:
            invoice.status = InvoiceStatus.PAID.value
            invoice.paid_date = last_payment_date
            logger.info("Fattura %s saldata", invoice.invoice_number)
    elif invoice.status == InvoiceStatus.PAID.value:
        invoice.status = InvoiceStatus.SENT.value
        invoice.paid_date = None
        logger.info("Fattura %s di nuovo con residuo", invoice.invoice_number)
