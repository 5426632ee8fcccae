"""
Service per il calcolo dei totali documento
Progetto: Koruku (Gestionale Agenzia Web)

Aggrega le righe di un preventivo o di una fattura in
subtotale, sconto e totale, e gestisce la modifica tipizzata
delle righe in bozza.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from koruku.core.exceptions import InvalidArgumentError
from koruku.schemas.pricing import (
    DocumentTotals,
    LineItem,
    LineItemField,
    round_money,
)
from koruku.services.pricing_service import to_money

# Logger per questo modulo
logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def to_discount_percentage(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """
    Normalizza la percentuale di sconto.

    Raises:
        InvalidArgumentError: sconto fuori dall'intervallo [0, 100]
    """
    if value is None:
        return Decimal("0")
    percentage = to_money(value, field="discount_percentage")
    if percentage > HUNDRED:
        raise InvalidArgumentError(
            f"La percentuale di sconto deve essere tra 0 e 100 (ricevuto {percentage})",
            extra={"field": "discount_percentage", "value": str(percentage)},
        )
    return percentage


def compute_totals(
    items: Iterable[LineItem],
    discount_percentage: Union[Decimal, int, float, str, None] = Decimal("0"),
) -> DocumentTotals:
    """
    Calcola i totali di un documento.

    Formula:
        subtotal = somma(item.amount)
        discount_amount = round2(subtotal * discount_percentage / 100)
        total = subtotal - discount_amount

    L'importo delle righe è già coerente con quantity * unit_price
    (LineItem lo deriva), quindi qui non viene ricalcolato.

    Args:
        items: Righe del documento (anche vuote)
        discount_percentage: Sconto percentuale 0-100

    Returns:
        DocumentTotals: Totali del documento

    Raises:
        InvalidArgumentError: sconto fuori intervallo
    """
    percentage = to_discount_percentage(discount_percentage)

    subtotal = round_money(sum((item.amount for item in items), Decimal("0")))
    discount_amount = round_money(subtotal * percentage / HUNDRED)

    return DocumentTotals(
        subtotal=subtotal,
        discount_percentage=percentage,
        discount_amount=discount_amount,
        total=subtotal - discount_amount,
    )


def build_line_item(data: Union[LineItem, dict[str, Any], Any]) -> LineItem:
    """
    Costruisce una LineItem da dict, schema o oggetto ORM.

    Un eventuale `amount` in input viene ignorato: l'importo
    è sempre ricalcolato da quantity e unit_price.

    Raises:
        InvalidArgumentError: descrizione vuota, quantità <= 0 o prezzo negativo
    """
    if isinstance(data, LineItem):
        return data
    try:
        if isinstance(data, dict):
            return LineItem.model_validate(data)
        return LineItem.model_validate(data, from_attributes=True)
    except PydanticValidationError as e:
        raise InvalidArgumentError(
            "Riga documento non valida",
            extra={"errors": _error_messages(e)},
        )


def round_item(item: LineItem) -> LineItem:
    """
    Porta quantità e prezzo al centesimo, come le colonne Numeric(.., 2).

    L'importo viene ricalcolato dai valori arrotondati, quindi la riga
    salvata resta coerente (amount == quantity * unit_price).

    Raises:
        InvalidArgumentError: quantità che arrotondata diventa 0
    """
    quantity = round_money(item.quantity)
    unit_price = round_money(item.unit_price)
    if quantity == item.quantity and unit_price == item.unit_price:
        return item
    return build_line_item(
        {"description": item.description, "quantity": quantity, "unit_price": unit_price}
    )


def apply_item_update(
    items: Sequence[LineItem],
    index: int,
    field: Union[LineItemField, str],
    value: Any,
) -> list[LineItem]:
    """
    Aggiorna un singolo campo di una riga in bozza.

    Restituisce una nuova lista: la riga modificata è rivalidata
    e il suo importo ricalcolato, le altre restano invariate.

    Args:
        items: Righe correnti
        index: Posizione della riga da modificare
        field: Campo da modificare (description, quantity, unit_price)
        value: Nuovo valore

    Raises:
        InvalidArgumentError: indice fuori intervallo, campo sconosciuto
            o valore non valido
    """
    try:
        item_field = LineItemField(field)
    except ValueError:
        raise InvalidArgumentError(f"Campo riga non modificabile: {field!r}")

    if not 0 <= index < len(items):
        raise InvalidArgumentError(
            f"Riga {index} inesistente (righe presenti: {len(items)})"
        )

    try:
        updated = items[index].with_field(item_field, value)
    except PydanticValidationError as e:
        raise InvalidArgumentError(
            f"Valore non valido per {item_field.value}",
            extra={"index": index, "field": item_field.value, "errors": _error_messages(e)},
        )

    result = list(items)
    result[index] = updated
    return result


def _error_messages(error: PydanticValidationError) -> list[str]:
    return [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]
