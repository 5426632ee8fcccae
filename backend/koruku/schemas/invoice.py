"""
Schemas Pydantic per la Fatturazione
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Enums: InvoiceStatus
- Schemas per Invoice (create, update, read, lista)
- InvoiceDraft: bozza fattura calcolata dalla conversione di un preventivo
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from koruku.core.exceptions import BusinessValidationError


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceStatus(str, Enum):
    """Stati della fattura."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class InvoiceBase(BaseModel):
    """Schema base per le fatture."""

    client_id: uuid.UUID = Field(
        ...,
        description="UUID del cliente",
        serialization_alias="clientId",
    )
    project_id: Optional[uuid.UUID] = Field(
        None,
        description="UUID del progetto",
        serialization_alias="projectId",
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Importo fattura (al centesimo)",
    )
    date: datetime.date = Field(..., description="Data emissione fattura")
    due_date: datetime.date = Field(
        ...,
        description="Data scadenza pagamento",
        serialization_alias="dueDate",
    )
    description: str = Field(
        ...,
        min_length=5,
        max_length=1000,
        description="Descrizione delle prestazioni",
    )
    notes: Optional[str] = Field(
        None,
        max_length=2000,
        description="Note interne",
    )

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def validate_dates(self) -> "InvoiceBase":
        """Valida che la scadenza sia tra la data fattura e un anno dopo."""
        if self.due_date < self.date:
            raise BusinessValidationError(
                "La data di scadenza non può essere precedente alla data fattura"
            )
        if self.due_date > _one_year_after(self.date):
            raise BusinessValidationError(
                "La data di scadenza deve essere entro un anno dalla data fattura"
            )
        return self


class InvoiceCreate(InvoiceBase):
    """
    Schema per la creazione di una fattura.

    Se invoice_number è omesso viene allocato automaticamente
    (formato PREFIX-YYYY-NNN).
    """

    invoice_number: Optional[str] = Field(
        None,
        max_length=30,
        description="Numero fattura manuale (opzionale)",
    )
    status: InvoiceStatus = Field(default=InvoiceStatus.DRAFT)

    @field_validator("invoice_number")
    @classmethod
    def normalize_invoice_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        return v or None


class InvoiceUpdate(BaseModel):
    """Schema per l'aggiornamento di una fattura (solo campi non contabili)."""

    due_date: Optional[datetime.date] = None
    description: Optional[str] = Field(None, min_length=5, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    project_id: Optional[uuid.UUID] = None


class InvoiceRead(InvoiceBase):
    """Schema per la lettura di una fattura."""

    id: uuid.UUID = Field(..., description="UUID della fattura")
    invoice_number: str = Field(
        ...,
        description="Numero fattura progressivo annuale",
        serialization_alias="invoiceNumber",
    )
    quotation_id: Optional[uuid.UUID] = Field(
        None,
        description="Preventivo di origine",
        serialization_alias="quotationId",
    )
    status: InvoiceStatus = Field(..., description="Stato registrato")
    effective_status: InvoiceStatus = Field(
        ...,
        description="Stato calcolato (overdue se scaduta e non pagata)",
        serialization_alias="effectiveStatus",
    )
    paid_date: Optional[datetime.date] = Field(None, serialization_alias="paidDate")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")

    @model_validator(mode="after")
    def validate_dates(self) -> "InvoiceRead":
        # I dati già salvati non vengono rivalidati in lettura
        return self


class InvoiceList(BaseModel):
    """Schema per la lista paginata delle fatture."""

    items: list[InvoiceRead] = Field(default_factory=list)
    total: int = Field(..., serialization_alias="totalItems")
    page: int = Field(..., serialization_alias="currentPage")
    per_page: int = Field(..., serialization_alias="itemsPerPage")
    total_pages: int = Field(..., serialization_alias="totalPages")

    model_config = ConfigDict(from_attributes=True)


class MarkPaidRequest(BaseModel):
    """Data di incasso (default: oggi)."""

    paid_date: Optional[datetime.date] = None


class NextNumberResponse(BaseModel):
    """Prossimo numero disponibile per un tipo di documento."""

    number: str
    prefix: str
    year: int
    sequence: int


# -------------------------------------------------------------------
# Bozza da conversione preventivo
# -------------------------------------------------------------------

class InvoiceDraft(BaseModel):
    """
    Bozza di fattura calcolata da un preventivo accettato.

    Non persistita: il salvataggio è responsabilità del service.
    """

    kind: Literal["invoice"] = "invoice"
    invoice_number: str
    client_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    quotation_id: Optional[uuid.UUID] = None
    amount: Decimal
    date: datetime.date
    due_date: datetime.date
    status: InvoiceStatus = InvoiceStatus.DRAFT
    description: str
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ConversionResult(BaseModel):
    """Esito calcolato della conversione: bozza fattura + transizione del preventivo."""

    invoice: InvoiceDraft
    quotation_id: Optional[uuid.UUID] = None
    quotation_status: Literal["accepted"] = "accepted"

    model_config = ConfigDict(frozen=True)


def _one_year_after(day: datetime.date) -> datetime.date:
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        # 29 febbraio → 28 febbraio dell'anno successivo
        return day.replace(year=day.year + 1, day=28)

