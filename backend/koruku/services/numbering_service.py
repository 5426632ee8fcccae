"""
Service per la numerazione progressiva dei documenti
Progetto: Koruku (Gestionale Agenzia Web)

Formato: PREFIX-YYYY-NNN (es. MZK-2025-014, QUO-2025-001)

Il prossimo numero è sempre derivato dai numeri già registrati nel
database (unica fonte di verità): nessun contatore in memoria.
La sicurezza rispetto a due creazioni simultanee è data dal vincolo
unique sulla colonna del numero; in caso di collisione l'allocazione
viene ripetuta su uno snapshot aggiornato, per un numero limitato
di tentativi.
"""

import logging
import re
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.config import settings
from koruku.core.exceptions import (
    AppException,
    ConflictError,
    InvalidArgumentError,
    NumberingConflictError,
)
from koruku.models import Invoice, Quotation
from koruku.schemas.pricing import DocumentNumber

# Logger per questo modulo
logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEQUENCE_PATTERN = re.compile(r"[0-9]+")
_NUMBER_PATTERN = re.compile(r"^(?P<prefix>.+)-(?P<year>[0-9]{4})-(?P<sequence>[0-9]{3,})$")

PADDING_LIMIT = 999


class DocumentKind(str, Enum):
    """Tipi di documento numerati."""
    INVOICE = "invoice"
    QUOTATION = "quotation"


# -------------------------------------------------------------------
# Funzioni pure
# -------------------------------------------------------------------

def _validate_scope(prefix: str, year: int) -> str:
    if not isinstance(prefix, str) or not prefix.strip():
        raise InvalidArgumentError("Il prefisso della numerazione è obbligatorio")
    if isinstance(year, bool) or not isinstance(year, int) or not 1000 <= year <= 9999:
        raise InvalidArgumentError(
            f"Anno non valido per la numerazione: {year!r} (atteso YYYY)"
        )
    return prefix.strip()


def parse_sequence(number: str, prefix: str, year: int) -> Optional[int]:
    """
    Estrae il progressivo da un numero dello stesso ambito.

    Returns:
        int | None: progressivo, oppure None se il numero appartiene
        a un altro prefisso/anno o il suffisso non è numerico
    """
    scope = f"{prefix}-{year}-"
    if not isinstance(number, str) or not number.startswith(scope):
        return None
    suffix = number.rsplit("-", 1)[-1]
    if not _SEQUENCE_PATTERN.fullmatch(suffix):
        return None
    return int(suffix)


def allocate_number(
    prefix: str,
    year: int,
    existing_numbers: Iterable[str],
) -> DocumentNumber:
    """
    Calcola il prossimo numero libero per prefisso e anno.

    Prende il massimo progressivo esistente (non il conteggio) e
    aggiunge 1. I numeri di altri ambiti e i suffissi non numerici
    sono ignorati; senza numeri validi si parte da 1.

    Oltre 999 il suffisso cresce a 4+ cifre (es. MZK-2025-1000).

    Args:
        prefix: Prefisso documento (es. "MZK")
        year: Anno a 4 cifre
        existing_numbers: Numeri già emessi (snapshot del database)

    Returns:
        DocumentNumber: Numero allocato

    Raises:
        InvalidArgumentError: prefisso vuoto o anno non valido
    """
    prefix = _validate_scope(prefix, year)

    sequences = (parse_sequence(number, prefix, year) for number in existing_numbers)
    last_sequence = max((s for s in sequences if s is not None), default=0)
    next_sequence = last_sequence + 1

    if next_sequence > PADDING_LIMIT:
        logger.warning(
            "Numerazione %s-%s oltre %d: il progressivo avrà %d cifre",
            prefix,
            year,
            PADDING_LIMIT,
            len(str(next_sequence)),
        )

    return DocumentNumber(prefix=prefix, year=year, sequence=next_sequence)


def parse_document_number(number: str) -> Optional[DocumentNumber]:
    """Interpreta un numero PREFIX-YYYY-NNN; None se il formato non è valido."""
    match = _NUMBER_PATTERN.match(number.strip()) if isinstance(number, str) else None
    if not match:
        return None
    sequence = int(match.group("sequence"))
    if sequence < 1:
        return None
    return DocumentNumber(
        prefix=match.group("prefix"),
        year=int(match.group("year")),
        sequence=sequence,
    )


def is_valid_document_number(number: str, prefix: str) -> bool:
    """True se il numero rispetta il formato PREFIX-YYYY-NNN per il prefisso dato."""
    parsed = parse_document_number(number)
    return parsed is not None and parsed.prefix == prefix


def is_unique_violation(error: IntegrityError, column: str) -> bool:
    """True se l'errore di integrità riguarda il vincolo unique della colonna."""
    message = str(error.orig if error.orig is not None else error)
    return column in message


# -------------------------------------------------------------------
# Service con accesso al database
# -------------------------------------------------------------------

class NumberingService:
    """
    Allocazione dei numeri documento sul database.

    Implementa:
    - Lettura dello snapshot dei numeri emessi per prefisso e anno
    - Allocazione del prossimo numero
    - Salvataggio con numero e nuovo tentativo su collisione
    """

    _columns = {
        DocumentKind.INVOICE: Invoice.invoice_number,
        DocumentKind.QUOTATION: Quotation.quotation_number,
    }

    def prefix_for(self, kind: DocumentKind) -> str:
        """Prefisso configurato per il tipo di documento."""
        if kind == DocumentKind.INVOICE:
            return settings.invoice_prefix
        return settings.quotation_prefix

    def column_name(self, kind: DocumentKind) -> str:
        return self._columns[kind].key

    async def existing_numbers(
        self,
        db: AsyncSession,
        kind: DocumentKind,
        year: int,
        prefix: Optional[str] = None,
    ) -> list[str]:
        """
        Recupera tutti i numeri già emessi nell'ambito prefisso+anno.

        Si leggono tutti i numeri dell'ambito e non solo l'ultimo in
        ordine alfabetico: oltre 999 l'ordinamento testuale non
        coincide più con quello numerico.
        """
        column = self._columns[kind]
        scope = f"{prefix or self.prefix_for(kind)}-{year}-"
        stmt = select(column).where(column.like(f"{scope}%"))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def next_number(
        self,
        db: AsyncSession,
        kind: DocumentKind,
        year: Optional[int] = None,
    ) -> DocumentNumber:
        """
        Calcola il prossimo numero per il tipo di documento.

        Args:
            db: Sessione database
            kind: Fattura o preventivo
            year: Anno della numerazione (default: anno corrente)
        """
        year = year or date.today().year
        prefix = self.prefix_for(kind)
        existing = await self.existing_numbers(db, kind, year, prefix)
        return allocate_number(prefix, year, existing)

    async def persist_with_number(
        self,
        db: AsyncSession,
        kind: DocumentKind,
        build: Callable[[DocumentNumber, list[str]], Awaitable[T]],
        year: Optional[int] = None,
        max_attempts: Optional[int] = None,
        conflict_columns: Optional[dict[str, str]] = None,
    ) -> T:
        """
        Alloca un numero e salva il documento in un'unica transazione.

        Steps (per ogni tentativo):
        1. Legge lo snapshot dei numeri emessi
        2. Alloca il prossimo numero
        3. `await build(numero, snapshot)` aggiunge gli oggetti alla sessione
        4. Commit; su violazione unique del numero esegue rollback e riprova

        Qualunque errore sollevato da `build` annulla il tentativo:
        nessun documento viene salvato senza numero valido.

        Args:
            db: Sessione database
            kind: Fattura o preventivo
            build: Coroutine che aggiunge il documento alla sessione e lo restituisce
            year: Anno della numerazione (default: anno corrente)
            max_attempts: Tentativi massimi (default: settings.numbering_max_attempts)
            conflict_columns: Altri vincoli unique da tradurre in ConflictError
                (colonna → messaggio)

        Returns:
            Il valore restituito da `build` nel tentativo riuscito

        Raises:
            NumberingConflictError: collisione persistente dopo tutti i tentativi
            ConflictError: altra violazione di integrità
        """
        year = year or date.today().year
        attempts = max_attempts or settings.numbering_max_attempts
        prefix = self.prefix_for(kind)
        column = self.column_name(kind)
        attempted: Optional[DocumentNumber] = None

        for attempt in range(1, attempts + 1):
            existing = await self.existing_numbers(db, kind, year, prefix)
            attempted = allocate_number(prefix, year, existing)
            try:
                entity = await build(attempted, existing)
                await db.commit()
            except AppException:
                await db.rollback()
                raise
            except IntegrityError as e:
                await db.rollback()
                if not is_unique_violation(e, column):
                    for other_column, message in (conflict_columns or {}).items():
                        if is_unique_violation(e, other_column):
                            raise ConflictError(message)
                    logger.error(f"Errore di integrità durante il salvataggio ({kind.value}): {e}")
                    raise ConflictError(f"Errore durante il salvataggio del documento ({kind.value})")
                logger.warning(
                    "Numero %s già in uso, nuovo tentativo (%d/%d)",
                    attempted.formatted,
                    attempt,
                    attempts,
                )
                continue
            return entity

        suggested = await self.next_number(db, kind, year)
        raise NumberingConflictError(
            f"Il numero {attempted.formatted} è già in uso. "
            f"Suggerito: {suggested.formatted}",
            extra={
                "attempted_number": attempted.formatted,
                "scope": attempted.scope,
                "suggested_number": suggested.formatted,
                "attempts": attempts,
            },
        )

    async def suggest_alternative(
        self,
        db: AsyncSession,
        kind: DocumentKind,
        number: str,
    ) -> dict[str, Any]:
        """
        Contesto per un numero manuale già esistente: ambito e numero suggerito.
        """
        parsed = parse_document_number(number)
        year = parsed.year if parsed else date.today().year
        suggested = await self.next_number(db, kind, year)
        return {
            "attempted_number": number,
            "scope": suggested.scope,
            "suggested_number": suggested.formatted,
        }
