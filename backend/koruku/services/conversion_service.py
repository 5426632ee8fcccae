"""
Conversione Preventivo → Fattura
Progetto: Koruku (Gestionale Agenzia Web)

Calcolo puro della bozza di fattura a partire da un preventivo
accettato. Il salvataggio (fattura + stato del preventivo in
un'unica transazione) è in QuotationService.convert_to_invoice.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from koruku.core.config import settings
from koruku.schemas.invoice import ConversionResult, InvoiceDraft, InvoiceStatus
from koruku.schemas.pricing import LineItem
from koruku.schemas.quotation import QuotationDraft
from koruku.services.numbering_service import allocate_number

# Logger per questo modulo
logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Services as per quotation"


def _format_quantity(quantity: Decimal) -> str:
    # 1.00 → "1", 2.50 → "2.5"
    return f"{quantity.normalize():f}"


def describe_item(item: LineItem, currency: Optional[str] = None) -> str:
    """Riga descrittiva: "{descrizione} ({quantità}x R{prezzo})"."""
    symbol = currency or settings.currency_symbol
    return f"{item.description} ({_format_quantity(item.quantity)}x {symbol}{item.unit_price:.2f})"


def describe_items(items: Iterable[LineItem], currency: Optional[str] = None) -> str:
    """Descrizione fattura: una riga per voce, o il testo generico se vuoto."""
    lines = [describe_item(item, currency) for item in items]
    return "\n".join(lines) if lines else FALLBACK_DESCRIPTION


def to_draft(quotation: Union[QuotationDraft, dict[str, Any], Any]) -> QuotationDraft:
    """Normalizza preventivo ORM, dict o bozza in QuotationDraft."""
    if isinstance(quotation, QuotationDraft):
        return quotation
    if isinstance(quotation, dict):
        return QuotationDraft.model_validate(quotation)
    return QuotationDraft.model_validate(quotation, from_attributes=True)


def convert_to_invoice(
    quotation: Union[QuotationDraft, dict[str, Any], Any],
    invoice_prefix: str,
    existing_invoice_numbers: Iterable[str],
    today: Optional[date] = None,
    payment_terms_days: Optional[int] = None,
) -> ConversionResult:
    """
    Calcola la fattura generata da un preventivo.

    Steps:
    1. Alloca il numero fattura sullo snapshot dei numeri emessi
    2. Compone la descrizione dalle righe del preventivo
    3. Importo = totale scontato del preventivo (non il subtotale)
    4. Data = oggi, scadenza = oggi + giorni di pagamento
    5. Riporta la transizione richiesta del preventivo (accepted)

    Stesso preventivo e stesso snapshot producono sempre la stessa bozza.

    Args:
        quotation: Preventivo (ORM, dict o QuotationDraft)
        invoice_prefix: Prefisso numerazione fatture
        existing_invoice_numbers: Numeri fattura già emessi
        today: Data di emissione (default: oggi)
        payment_terms_days: Giorni di pagamento (default: da settings)

    Returns:
        ConversionResult: Bozza fattura e stato da applicare al preventivo

    Raises:
        InvalidArgumentError: prefisso vuoto
    """
    draft = to_draft(quotation)
    issue_date = today or date.today()
    terms = settings.payment_terms_days if payment_terms_days is None else payment_terms_days

    number = allocate_number(invoice_prefix, issue_date.year, existing_invoice_numbers)
    amount = draft.total if draft.total is not None else draft.totals.total

    invoice = InvoiceDraft(
        invoice_number=number.formatted,
        client_id=draft.client_id,
        project_id=draft.project_id,
        quotation_id=draft.id,
        amount=amount,
        date=issue_date,
        due_date=issue_date + timedelta(days=terms),
        status=InvoiceStatus.DRAFT,
        description=describe_items(draft.items),
        notes=f"Converted from quotation {draft.quotation_number}"
        if draft.quotation_number
        else None,
    )

    logger.debug(
        "Bozza fattura %s calcolata dal preventivo %s (importo %s)",
        invoice.invoice_number,
        draft.quotation_number,
        amount,
    )
    return ConversionResult(invoice=invoice, quotation_id=draft.id)
