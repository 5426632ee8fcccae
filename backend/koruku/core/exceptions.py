"""
Eccezioni Custom per l'applicazione.
Progetto: Koruku (Gestionale Agenzia Web)

Ogni eccezione porta status HTTP, error_code ed extra; main.py le
serializza tutte allo stesso modo.

BusinessValidationError copre le regole di dominio (stati, date,
formato dei numeri documento); gli errori di tipo sui payload restano
pydantic.ValidationError e li gestisce FastAPI.
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "InvalidArgumentError",
    "ConflictError",
    "NumberingConflictError",
    "IncompleteConversionError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un'entità cercata non esiste nel database.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Risorsa non trovata",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    NON confondere con pydantic.ValidationError che gestisce
    la validazione dello schema/formato dei dati in input.

    Esempi di utilizzo:
        - "Solo preventivi in bozza possono essere modificati"
        - "Il preventivo rifiutato non può essere convertito"
        - "Nessun dato da esportare"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validazione dati fallita",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


class InvalidArgumentError(BusinessValidationError):
    """
    Input malformato o fuori intervallo per il motore prezzi/numerazione.

    Esempi di utilizzo:
        - totale negativo o non finito
        - sconto fuori dall'intervallo [0, 100]
        - fascia di progetto non prevista

    Sollevata in modo sincrono prima di qualunque calcolo.
    """

    error_code: str = "INVALID_ARGUMENT"

    def __init__(
        self,
        detail: str = "Argomento non valido",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflitto di stato",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class NumberingConflictError(ConflictError):
    """
    Il numero documento allocato collide con uno già registrato.

    Sollevata dopo aver esaurito i tentativi di riallocazione.
    `extra` contiene il contesto per decidere tra nuovo tentativo
    e inserimento manuale:
        - attempted_number: ultimo numero tentato
        - scope: prefisso e anno della numerazione (es. "MZK-2025")
        - suggested_number: numero alternativo suggerito (se disponibile)
    """

    error_code: str = "NUMBERING_CONFLICT"

    def __init__(
        self,
        detail: str = "Numero documento già esistente",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)

    @property
    def suggested_number(self) -> Optional[str]:
        """Numero alternativo suggerito all'utente."""
        return (self.extra or {}).get("suggested_number")


class IncompleteConversionError(AppException):
    """
    Conversione preventivo → fattura applicata solo a metà.

    La fattura esiste ma il preventivo non risulta convertito (o viceversa).
    Distinta da un fallimento pulito: il chiamante deve completare
    solo la metà mancante, non ripetere l'intera conversione.

    `extra` contiene quotation_id, invoice_id e missing
    ("quotation_status" oppure "invoice").
    """

    status_code: int = 409
    error_code: str = "INCOMPLETE_CONVERSION"

    def __init__(
        self,
        detail: str = "Conversione preventivo incompleta",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
