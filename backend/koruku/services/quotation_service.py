"""
Service Layer per i Preventivi
Progetto: Koruku (Gestionale Agenzia Web)

Gestisce:
- CRUD preventivi con righe e totali sempre ricalcolati
- Creazione dalle sei righe standard di un budget
- Transizioni di stato
- Conversione in fattura (fattura + stato preventivo in un'unica transazione)
- Completamento di conversioni rimaste a metà
"""

import datetime
import logging
import uuid
from datetime import date, timedelta
from typing import Optional, Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.config import settings
from koruku.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    IncompleteConversionError,
    NotFoundError,
    NumberingConflictError,
)
from koruku.models import Invoice, Quotation, QuotationItem
from koruku.schemas.invoice import InvoiceDraft
from koruku.schemas.pricing import DocumentNumber, DocumentTotals, LineItem
from koruku.schemas.quotation import (
    QuotationCreate,
    QuotationFromBudget,
    QuotationList,
    QuotationStatus,
    QuotationUpdate,
)
from koruku.services.conversion_service import convert_to_invoice, to_draft
from koruku.services.numbering_service import (
    DocumentKind,
    NumberingService,
    is_unique_violation,
    is_valid_document_number,
)
from koruku.services.pricing_service import generate_line_items, suggest_tier
from koruku.services.totals_service import build_line_item, compute_totals, round_item

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Transizioni di stato ammesse (lo stato "accepted" da conversione passa da convert_to_invoice)
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    QuotationStatus.DRAFT.value: {"sent", "accepted", "rejected", "expired"},
    QuotationStatus.SENT.value: {"accepted", "rejected", "expired", "draft"},
    QuotationStatus.ACCEPTED.value: {"sent"},
    QuotationStatus.REJECTED.value: {"draft"},
    QuotationStatus.EXPIRED.value: {"draft"},
}

NOT_CONVERTIBLE = {QuotationStatus.REJECTED.value, QuotationStatus.EXPIRED.value}


class QuotationService:
    """
    Service per la gestione dei preventivi.

    Implementa:
    - Numerazione automatica con nuovo tentativo su collisione
    - Righe validate come LineItem (importo = quantità × prezzo)
    - Conversione in fattura atomica e rilevamento delle conversioni parziali
    """

    def __init__(self, numbering: Optional[NumberingService] = None) -> None:
        self.numbering = numbering or NumberingService()

    # -------------------------------------------------------------------
    # Lettura
    # -------------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        status_filter: Optional[QuotationStatus] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> QuotationList:
        """
        Recupera la lista paginata dei preventivi.

        Args:
            db: Sessione database
            client_id: Filtro per cliente
            status_filter: Filtro per stato
            page: Numero pagina
            per_page: Elementi per pagina

        Returns:
            QuotationList: Lista paginata, dal più recente
        """
        conditions = []
        if client_id:
            conditions.append(Quotation.client_id == client_id)
        if status_filter:
            conditions.append(Quotation.status == QuotationStatus(status_filter).value)

        stmt = select(Quotation)
        count_stmt = select(func.count(Quotation.id))
        if conditions:
            stmt = stmt.where(and_(*conditions))
            count_stmt = count_stmt.where(and_(*conditions))

        count_result = await db.execute(count_stmt)
        total = count_result.scalar() or 0

        offset = (page - 1) * per_page
        stmt = (
            stmt.order_by(Quotation.date.desc(), Quotation.quotation_number.desc())
            .offset(offset)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        quotations = result.scalars().all()

        total_pages = (total + per_page - 1) // per_page if total > 0 else 1

        return QuotationList(
            items=list(quotations),
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages,
        )

    async def get_by_id(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
        reload: bool = False,
    ) -> Quotation:
        """
        Recupera un preventivo per ID (righe incluse).

        Args:
            reload: Se True sovrascrive lo stato già presente in sessione

        Raises:
            NotFoundError: Preventivo non trovato
        """
        stmt = select(Quotation).where(Quotation.id == quotation_id)
        if reload:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        quotation = result.scalar_one_or_none()

        if not quotation:
            raise NotFoundError(f"Preventivo {quotation_id} non trovato")

        return quotation

    async def get_invoice_for(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
    ) -> Optional[Invoice]:
        """Fattura generata dal preventivo, se esiste."""
        result = await db.execute(select(Invoice).where(Invoice.quotation_id == quotation_id))
        return result.scalar_one_or_none()

    # -------------------------------------------------------------------
    # Creazione
    # -------------------------------------------------------------------

    async def create(self, db: AsyncSession, data: QuotationCreate) -> Quotation:
        """
        Crea un preventivo.

        Steps:
        1. Valida le righe e calcola i totali
        2. Usa il numero manuale (se valido e libero) o ne alloca uno
        3. Salva preventivo e righe nella stessa transazione

        Raises:
            InvalidArgumentError: righe o sconto non validi
            BusinessValidationError: numero manuale in formato non valido
            NumberingConflictError: numero già in uso
        """
        items = [round_item(build_line_item(item.model_dump())) for item in data.items]
        totals = compute_totals(items, data.discount_percentage)

        return await self._persist_new(
            db,
            items=items,
            totals=totals,
            client_id=data.client_id,
            project_id=data.project_id,
            issue_date=data.date,
            valid_until=data.valid_until,
            notes=data.notes,
            terms=data.terms,
            manual_number=data.quotation_number,
        )

    async def create_from_budget(
        self,
        db: AsyncSession,
        data: QuotationFromBudget,
    ) -> Quotation:
        """
        Crea un preventivo con le sei righe standard del budget.

        Se la fascia non è indicata viene suggerita in base al totale.
        """
        tier = data.tier or suggest_tier(data.total)
        items = [
            round_item(item)
            for item in generate_line_items(data.total, tier, data.labour_description)
        ]
        totals = compute_totals(items, data.discount_percentage)

        logger.info(
            "Preventivo da budget %s (fascia %s, sconto %s%%)",
            data.total,
            tier.value,
            data.discount_percentage,
        )

        return await self._persist_new(
            db,
            items=items,
            totals=totals,
            client_id=data.client_id,
            project_id=data.project_id,
            issue_date=data.date,
            valid_until=data.valid_until,
            notes=data.notes,
            terms=data.terms,
        )

    async def _persist_new(
        self,
        db: AsyncSession,
        items: Sequence[LineItem],
        totals: DocumentTotals,
        client_id: uuid.UUID,
        project_id: Optional[uuid.UUID],
        issue_date: Optional[date],
        valid_until: Optional[date],
        notes: Optional[str],
        terms: Optional[str],
        manual_number: Optional[str] = None,
    ) -> Quotation:
        issue_date = issue_date or date.today()
        valid_until = valid_until or issue_date + timedelta(days=settings.quotation_validity_days)
        if valid_until <= issue_date:
            raise BusinessValidationError(
                "La validità del preventivo deve essere successiva alla data di emissione"
            )

        def new_quotation(number: str) -> Quotation:
            quotation = Quotation(
                id=uuid.uuid4(),
                quotation_number=number,
                client_id=client_id,
                project_id=project_id,
                date=issue_date,
                valid_until=valid_until,
                status=QuotationStatus.DRAFT.value,
                subtotal=totals.subtotal,
                discount_percentage=totals.discount_percentage,
                discount_amount=totals.discount_amount,
                total=totals.total,
                notes=notes,
                terms=terms,
                items=_to_rows(items),
            )
            db.add(quotation)
            return quotation

        if manual_number:
            quotation = await self._persist_manual(db, manual_number, new_quotation)
        else:
            async def build(number: DocumentNumber, existing: list[str]) -> Quotation:
                return new_quotation(number.formatted)

            quotation = await self.numbering.persist_with_number(
                db,
                DocumentKind.QUOTATION,
                build,
                year=issue_date.year,
            )

        logger.info(
            "Creato preventivo %s (totale %s, %d righe)",
            quotation.quotation_number,
            totals.total,
            len(items),
        )
        return await self.get_by_id(db, quotation.id, reload=True)

    async def _persist_manual(self, db: AsyncSession, number: str, new_quotation) -> Quotation:
        if not is_valid_document_number(number, settings.quotation_prefix):
            raise BusinessValidationError(
                f"Numero preventivo non valido: {number} "
                f"(formato atteso {settings.quotation_prefix}-YYYY-NNN)"
            )

        existing = await db.execute(select(Quotation.id).where(Quotation.quotation_number == number))
        if existing.scalar_one_or_none() is not None:
            await self._raise_duplicate(db, number)

        quotation = new_quotation(number)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e, "quotation_number"):
                await self._raise_duplicate(db, number)
            logger.error(f"Errore di integrità durante la creazione del preventivo: {e}")
            raise ConflictError("Errore durante il salvataggio del preventivo")
        return quotation

    async def _raise_duplicate(self, db: AsyncSession, number: str) -> None:
        context = await self.numbering.suggest_alternative(db, DocumentKind.QUOTATION, number)
        raise NumberingConflictError(
            f"Il numero preventivo {number} esiste già. "
            f"Suggerito: {context['suggested_number']}",
            extra=context,
        )

    # -------------------------------------------------------------------
    # Modifica
    # -------------------------------------------------------------------

    async def update(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
        data: QuotationUpdate,
    ) -> Quotation:
        """
        Aggiorna un preventivo in bozza.

        Se vengono passate le righe, sostituiscono quelle esistenti
        (riordinate per sort_order) e i totali vengono ricalcolati.

        Raises:
            NotFoundError: Preventivo non trovato
            BusinessValidationError: preventivo non in bozza
        """
        quotation = await self.get_by_id(db, quotation_id)

        if quotation.status != QuotationStatus.DRAFT.value:
            raise BusinessValidationError(
                f"Solo i preventivi in bozza possono essere modificati "
                f"(stato attuale: {quotation.status})"
            )

        update_data = data.model_dump(exclude_unset=True)
        new_items = update_data.pop("items", None)

        if new_items is not None:
            items = [round_item(build_line_item(item)) for item in new_items]
            quotation.items = _to_rows(items)
        else:
            items = [build_line_item(row) for row in quotation.items]

        if "valid_until" in update_data and update_data["valid_until"] is not None:
            if update_data["valid_until"] <= quotation.date:
                raise BusinessValidationError(
                    "La validità del preventivo deve essere successiva alla data di emissione"
                )

        for field, value in update_data.items():
            if field == "discount_percentage" and value is None:
                continue
            setattr(quotation, field, value)

        totals = compute_totals(items, quotation.discount_percentage)
        quotation.subtotal = totals.subtotal
        quotation.discount_amount = totals.discount_amount
        quotation.total = totals.total

        await db.commit()
        return await self.get_by_id(db, quotation_id, reload=True)

    async def update_status(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
        new_status: QuotationStatus,
    ) -> Quotation:
        """
        Cambia lo stato di un preventivo.

        Raises:
            BusinessValidationError: transizione non ammessa
            ConflictError: preventivo già convertito
        """
        quotation = await self.get_by_id(db, quotation_id)
        target = QuotationStatus(new_status).value

        if quotation.converted_at is not None:
            raise ConflictError(
                f"Il preventivo {quotation.quotation_number} è già stato convertito in fattura"
            )
        if target == quotation.status:
            return quotation
        if target not in ALLOWED_TRANSITIONS.get(quotation.status, set()):
            raise BusinessValidationError(
                f"Transizione di stato non ammessa: {quotation.status} → {target}"
            )

        quotation.status = target
        await db.commit()

        logger.info("Preventivo %s: stato → %s", quotation.quotation_number, target)
        return await self.get_by_id(db, quotation_id, reload=True)

    async def delete(self, db: AsyncSession, quotation_id: uuid.UUID) -> None:
        """
        Elimina un preventivo.

        Il numero non viene riutilizzato (la numerazione riparte dal
        massimo esistente, non dal conteggio).

        Raises:
            ConflictError: il preventivo ha generato una fattura
        """
        quotation = await self.get_by_id(db, quotation_id)
        if quotation.converted_at is not None or await self.get_invoice_for(db, quotation_id):
            raise ConflictError(
                "Impossibile eliminare un preventivo convertito in fattura"
            )

        await db.delete(quotation)
        await db.commit()
        logger.info("Eliminato preventivo %s", quotation.quotation_number)

    # -------------------------------------------------------------------
    # Conversione in fattura
    # -------------------------------------------------------------------

    async def convert_to_invoice(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
        today: Optional[date] = None,
    ) -> tuple[Invoice, Quotation]:
        """
        Converte un preventivo in fattura.

        Fattura e nuovo stato del preventivo (accepted + converted_at)
        sono salvati nella stessa transazione: o entrambi o nessuno.
        Su collisione del numero fattura si riprova su uno snapshot
        aggiornato.

        Returns:
            tuple: (fattura creata, preventivo aggiornato)

        Raises:
            NotFoundError: Preventivo non trovato
            BusinessValidationError: preventivo rifiutato o scaduto
            ConflictError: preventivo già convertito
            IncompleteConversionError: conversione trovata a metà
            NumberingConflictError: numero fattura non allocabile
        """
        quotation = await self.get_by_id(db, quotation_id)
        invoice = await self.get_invoice_for(db, quotation_id)
        self._check_conversion_state(quotation, invoice)

        if quotation.status in NOT_CONVERTIBLE:
            raise BusinessValidationError(
                f"Il preventivo {quotation.quotation_number} è {quotation.status} "
                "e non può essere convertito"
            )

        # Snapshot prima del ciclo: dopo un rollback l'oggetto ORM è scaduto
        snapshot = to_draft(quotation)
        issue_date = today or date.today()

        async def build(number: DocumentNumber, existing: list[str]) -> Invoice:
            result = convert_to_invoice(
                snapshot,
                number.prefix,
                existing,
                today=issue_date,
                payment_terms_days=settings.payment_terms_days,
            )
            new_invoice = _to_invoice(result.invoice)
            db.add(new_invoice)

            marked = await db.execute(
                update(Quotation)
                .where(Quotation.id == quotation_id, Quotation.converted_at.is_(None))
                .values(status=result.quotation_status, converted_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if marked.rowcount != 1:
                raise ConflictError(
                    f"Il preventivo {snapshot.quotation_number} è già stato convertito"
                )
            return new_invoice

        new_invoice = await self.numbering.persist_with_number(
            db,
            DocumentKind.INVOICE,
            build,
            year=issue_date.year,
            conflict_columns={"quotation_id": "Il preventivo è già stato convertito in fattura"},
        )

        logger.info(
            "Preventivo %s convertito nella fattura %s",
            snapshot.quotation_number,
            new_invoice.invoice_number,
        )
        return new_invoice, await self.get_by_id(db, quotation_id, reload=True)

    async def complete_conversion(
        self,
        db: AsyncSession,
        quotation_id: uuid.UUID,
        today: Optional[date] = None,
    ) -> tuple[Invoice, Quotation]:
        """
        Completa solo la metà mancante di una conversione parziale.

        - Fattura presente, preventivo non marcato: marca il preventivo
        - Preventivo marcato, fattura assente: crea la fattura

        Raises:
            BusinessValidationError: il preventivo non è mai stato convertito
        """
        quotation = await self.get_by_id(db, quotation_id)
        invoice = await self.get_invoice_for(db, quotation_id)

        if invoice is not None and quotation.converted_at is not None:
            return invoice, quotation

        if invoice is None and quotation.converted_at is None:
            raise BusinessValidationError(
                f"Il preventivo {quotation.quotation_number} non ha conversioni da completare"
            )

        if invoice is not None:
            quotation.status = QuotationStatus.ACCEPTED.value
            quotation.converted_at = datetime.datetime.now(datetime.timezone.utc)
            await db.commit()
            logger.warning(
                "Conversione completata: preventivo %s marcato per la fattura %s",
                quotation.quotation_number,
                invoice.invoice_number,
            )
            return invoice, await self.get_by_id(db, quotation_id, reload=True)

        snapshot = to_draft(quotation)
        issue_date = today or date.today()

        async def build(number: DocumentNumber, existing: list[str]) -> Invoice:
            result = convert_to_invoice(snapshot, number.prefix, existing, today=issue_date)
            new_invoice = _to_invoice(result.invoice)
            db.add(new_invoice)
            return new_invoice

        new_invoice = await self.numbering.persist_with_number(
            db,
            DocumentKind.INVOICE,
            build,
            year=issue_date.year,
            conflict_columns={"quotation_id": "Il preventivo è già stato convertito in fattura"},
        )
        logger.warning(
            "Conversione completata: creata la fattura %s per il preventivo %s",
            new_invoice.invoice_number,
            snapshot.quotation_number,
        )
        return new_invoice, await self.get_by_id(db, quotation_id, reload=True)

    def _check_conversion_state(self, quotation: Quotation, invoice: Optional[Invoice]) -> None:
        marked = quotation.converted_at is not None

        if marked and invoice is not None:
            raise ConflictError(
                f"Il preventivo {quotation.quotation_number} è già stato convertito "
                f"nella fattura {invoice.invoice_number}",
                extra={"quotation_id": str(quotation.id), "invoice_id": str(invoice.id)},
            )
        if invoice is not None:
            raise IncompleteConversionError(
                f"La fattura {invoice.invoice_number} esiste ma il preventivo "
                f"{quotation.quotation_number} non risulta convertito",
                extra={
                    "quotation_id": str(quotation.id),
                    "invoice_id": str(invoice.id),
                    "missing": "quotation_status",
                },
            )
        if marked:
            raise IncompleteConversionError(
                f"Il preventivo {quotation.quotation_number} risulta convertito "
                "ma la fattura non esiste",
                extra={
                    "quotation_id": str(quotation.id),
                    "invoice_id": None,
                    "missing": "invoice",
                },
            )


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _to_rows(items: Sequence[LineItem]) -> list[QuotationItem]:
    rows = []
    for index, item in enumerate(items):
        item = round_item(item)
        rows.append(
            QuotationItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                amount=item.amount,
                sort_order=index,
            )
        )
    return rows


def _to_invoice(draft: InvoiceDraft) -> Invoice:
    return Invoice(
        id=uuid.uuid4(),
        invoice_number=draft.invoice_number,
        client_id=draft.client_id,
        project_id=draft.project_id,
        quotation_id=draft.quotation_id,
        amount=draft.amount,
        date=draft.date,
        due_date=draft.due_date,
        status=draft.status.value,
        description=draft.description,
        notes=draft.notes,
    )
