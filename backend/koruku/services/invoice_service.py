"""
Service Layer per la Fatturazione
Progetto: Koruku (Gestionale Agenzia Web)

Gestisce:
- Creazione fatture con numero manuale o allocato (PREFIX-YYYY-NNN)
- Lettura, filtri e paginazione
- Stato derivato "overdue" per le fatture scadute non pagate
- Marcatura inviata / pagata
"""

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.config import settings
from koruku.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
    NumberingConflictError,
)
from koruku.models import Invoice
from koruku.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceStatus,
    InvoiceUpdate,
)
from koruku.schemas.pricing import DocumentNumber
from koruku.services.numbering_service import (
    DocumentKind,
    NumberingService,
    is_unique_violation,
    is_valid_document_number,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Service per la gestione delle fatture.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    """

    def __init__(self, numbering: Optional[NumberingService] = None) -> None:
        self.numbering = numbering or NumberingService()

    async def create(self, db: AsyncSession, data: InvoiceCreate) -> Invoice:
        """
        Crea una fattura.

        Se invoice_number è indicato deve rispettare il formato
        PREFIX-YYYY-NNN ed essere libero; altrimenti viene allocato
        il prossimo numero dell'anno della fattura.

        Args:
            db: Sessione database
            data: Dati della fattura

        Returns:
            Invoice: La fattura creata

        Raises:
            BusinessValidationError: numero manuale in formato non valido
            NumberingConflictError: numero già esistente (con numero suggerito)
        """
        fields = data.model_dump(exclude={"invoice_number", "status"})
        fields["status"] = data.status.value

        if data.invoice_number:
            invoice = await self._create_manual(db, data.invoice_number, fields)
        else:
            async def build(number: DocumentNumber, existing: list[str]) -> Invoice:
                new_invoice = Invoice(id=uuid.uuid4(), invoice_number=number.formatted, **fields)
                db.add(new_invoice)
                return new_invoice

            invoice = await self.numbering.persist_with_number(
                db,
                DocumentKind.INVOICE,
                build,
                year=data.date.year,
            )

        logger.info("Creata fattura %s (importo %s)", invoice.invoice_number, invoice.amount)
        return await self.get_by_id(db, invoice.id, reload=True)

    async def _create_manual(self, db: AsyncSession, number: str, fields: dict) -> Invoice:
        if not is_valid_document_number(number, settings.invoice_prefix):
            raise BusinessValidationError(
                f"Numero fattura non valido: {number} "
                f"(formato atteso {settings.invoice_prefix}-YYYY-NNN)"
            )

        existing = await db.execute(select(Invoice.id).where(Invoice.invoice_number == number))
        if existing.scalar_one_or_none() is not None:
            await self._raise_duplicate(db, number)

        invoice = Invoice(id=uuid.uuid4(), invoice_number=number, **fields)
        db.add(invoice)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e, "invoice_number"):
                await self._raise_duplicate(db, number)
            logger.error(f"Errore di integrità durante la creazione della fattura: {e}")
            raise ConflictError("Errore durante il salvataggio della fattura")
        return invoice

    async def _raise_duplicate(self, db: AsyncSession, number: str) -> None:
        context = await self.numbering.suggest_alternative(db, DocumentKind.INVOICE, number)
        logger.warning(
            "Numero fattura %s già esistente, suggerito %s",
            number,
            context["suggested_number"],
        )
        raise NumberingConflictError(
            f"Il numero fattura {number} esiste già. "
            f"Usare {context['suggested_number']} o inserire un altro numero",
            extra=context,
        )

    async def suggest_number(self, db: AsyncSession, year: Optional[int] = None) -> DocumentNumber:
        """Prossimo numero fattura disponibile (non riservato)."""
        return await self.numbering.next_number(db, DocumentKind.INVOICE, year)

    async def get_all(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        status_filter: Optional[InvoiceStatus] = None,
        overdue_only: bool = False,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> InvoiceList:
        """
        Recupera la lista paginata delle fatture con filtri.

        Lo stato filtrato è quello effettivo: una fattura non pagata
        con scadenza passata risulta "overdue" anche se registrata
        come draft o sent.

        Args:
            db: Sessione database
            client_id: Filtro per cliente
            status_filter: Filtro per stato effettivo
            overdue_only: Se True, restituisce solo fatture scadute
            from_date: Filtro data inizio
            to_date: Filtro data fine
            page: Numero pagina
            per_page: Elementi per pagina

        Returns:
            InvoiceList: Lista paginata delle fatture
        """
        conditions = []
        today = date.today()

        if client_id:
            conditions.append(Invoice.client_id == client_id)
        if from_date:
            conditions.append(Invoice.date >= from_date)
        if to_date:
            conditions.append(Invoice.date <= to_date)

        if overdue_only:
            status_filter = InvoiceStatus.OVERDUE

        if status_filter:
            target = InvoiceStatus(status_filter)
            if target == InvoiceStatus.OVERDUE:
                conditions.append(Invoice.status != InvoiceStatus.PAID.value)
                conditions.append(Invoice.due_date < today)
            elif target == InvoiceStatus.PAID:
                conditions.append(Invoice.status == target.value)
            else:
                conditions.append(Invoice.status == target.value)
                conditions.append(Invoice.due_date >= today)

        stmt = select(Invoice)
        count_stmt = select(func.count(Invoice.id))
        if conditions:
            stmt = stmt.where(and_(*conditions))
            count_stmt = count_stmt.where(and_(*conditions))

        count_result = await db.execute(count_stmt)
        total = count_result.scalar() or 0

        offset = (page - 1) * per_page
        stmt = (
            stmt.order_by(Invoice.date.desc(), Invoice.invoice_number.desc())
            .offset(offset)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        invoices = result.scalars().all()

        total_pages = (total + per_page - 1) // per_page if total > 0 else 1

        return InvoiceList(
            items=list(invoices),
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages,
        )

    async def get_by_id(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        reload: bool = False,
    ) -> Invoice:
        """
        Recupera una fattura per ID.

        Raises:
            NotFoundError: Fattura non trovata
        """
        stmt = select(Invoice).where(Invoice.id == invoice_id)
        if reload:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if not invoice:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        return invoice

    async def get_by_invoice_number(
        self,
        db: AsyncSession,
        invoice_number: str,
    ) -> Invoice:
        """
        Recupera una fattura per numero.

        Args:
            db: Sessione database
            invoice_number: Numero fattura (formato PREFIX-YYYY-NNN)

        Raises:
            NotFoundError: Fattura non trovata
        """
        result = await db.execute(
            select(Invoice).where(Invoice.invoice_number == invoice_number.strip().upper())
        )
        invoice = result.scalar_one_or_none()

        if not invoice:
            raise NotFoundError(f"Fattura {invoice_number} non trovata")

        return invoice

    async def update(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: InvoiceUpdate,
    ) -> Invoice:
        """
        Aggiorna una fattura.

        Permette solo: due_date, description, notes, project_id.
        Numero, importo e data di emissione non sono modificabili.

        Raises:
            NotFoundError: Fattura non trovata
            BusinessValidationError: fattura pagata o scadenza non valida
        """
        invoice = await self.get_by_id(db, invoice_id)

        if invoice.status == InvoiceStatus.PAID.value:
            raise BusinessValidationError(
                f"La fattura {invoice.invoice_number} è pagata e non può essere modificata"
            )

        update_data = data.model_dump(exclude_unset=True)
        due_date = update_data.get("due_date")
        if due_date is not None and due_date < invoice.date:
            raise BusinessValidationError(
                "La data di scadenza non può essere precedente alla data fattura"
            )

        for field, value in update_data.items():
            if field in ("due_date", "description") and value is None:
                continue
            setattr(invoice, field, value)

        await db.commit()
        return await self.get_by_id(db, invoice_id, reload=True)

    async def mark_sent(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Segna una fattura in bozza come inviata.

        Raises:
            BusinessValidationError: fattura non in bozza
        """
        invoice = await self.get_by_id(db, invoice_id)

        if invoice.status != InvoiceStatus.DRAFT.value:
            raise BusinessValidationError(
                f"Solo le fatture in bozza possono essere inviate "
                f"(stato attuale: {invoice.status})"
            )

        invoice.status = InvoiceStatus.SENT.value
        await db.commit()
        logger.info("Fattura %s inviata", invoice.invoice_number)
        return await self.get_by_id(db, invoice_id, reload=True)

    async def mark_paid(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        paid_date: Optional[date] = None,
    ) -> Invoice:
        """
        Registra l'incasso di una fattura.

        Args:
            paid_date: Data di incasso (default: oggi)

        Raises:
            ConflictError: fattura già pagata
            BusinessValidationError: data di incasso precedente alla fattura
        """
        invoice = await self.get_by_id(db, invoice_id)

        if invoice.status == InvoiceStatus.PAID.value:
            raise ConflictError(f"La fattura {invoice.invoice_number} è già pagata")

        paid_on = paid_date or date.today()
        if paid_on < invoice.date:
            raise BusinessValidationError(
                "La data di incasso non può essere precedente alla data fattura"
            )

        invoice.status = InvoiceStatus.PAID.value
        invoice.paid_date = paid_on
        await db.commit()
        logger.info("Fattura %s pagata il %s", invoice.invoice_number, paid_on)
        return await self.get_by_id(db, invoice_id, reload=True)

    async def delete(self, db: AsyncSession, invoice_id: uuid.UUID) -> None:
        """
        Elimina una fattura.

        Le fatture pagate non sono eliminabili. Il numero non viene
        riutilizzato: la numerazione riparte dal massimo esistente.
        Se la fattura proveniva da un preventivo, il preventivo resta
        marcato come convertito (conversione da completare).

        Raises:
            BusinessValidationError: fattura pagata
        """
        invoice = await self.get_by_id(db, invoice_id)

        if invoice.status == InvoiceStatus.PAID.value:
            raise BusinessValidationError(
                "Impossibile eliminare una fattura già pagata"
            )

        if invoice.quotation_id:
            logger.warning(
                "Eliminata la fattura %s generata dal preventivo %s",
                invoice.invoice_number,
                invoice.quotation_id,
            )

        await db.delete(invoice)
        await db.commit()
