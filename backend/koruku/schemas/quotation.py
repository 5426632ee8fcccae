"""
Schemas Pydantic per i Preventivi
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Enums: QuotationStatus
- Schemas per Quotation e QuotationItem (create, update, read, lista)
- QuotationDraft: bozza tipizzata su cui opera il reducer delle righe
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
from koruku.schemas.invoice import InvoiceRead
from koruku.schemas.pricing import DocumentTotals, LineItem, PricingTier


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class QuotationStatus(str, Enum):
    """Stati del preventivo."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


# -------------------------------------------------------------------
# Schemas per QuotationItem
# -------------------------------------------------------------------

class QuotationItemCreate(BaseModel):
    """Riga in input: l'importo viene sempre ricalcolato.

    Quantità e prezzo hanno al massimo due decimali, come le colonne.
    """

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)


class QuotationItemRead(BaseModel):
    """Riga di preventivo salvata."""

    id: uuid.UUID
    description: str
    quantity: Decimal
    unit_price: Decimal = Field(..., serialization_alias="unitPrice")
    amount: Decimal
    sort_order: int = Field(..., serialization_alias="sortOrder")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Schemas per Quotation
# -------------------------------------------------------------------

class QuotationCreate(BaseModel):
    """
    Schema per la creazione di un preventivo.

    Subtotale, sconto e totale sono calcolati dalle righe.
    Se quotation_number è omesso viene allocato automaticamente.
    """

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    project_id: Optional[uuid.UUID] = Field(None, description="UUID del progetto")
    quotation_number: Optional[str] = Field(
        None,
        max_length=30,
        description="Numero preventivo manuale (opzionale)",
    )
    date: Optional[datetime.date] = Field(None, description="Data emissione (default: oggi)")
    valid_until: Optional[datetime.date] = Field(
        None,
        description="Scadenza dell'offerta (default: data + giorni di validità)",
    )
    items: list[QuotationItemCreate] = Field(default_factory=list)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)

    @field_validator("quotation_number")
    @classmethod
    def normalize_quotation_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip().upper() or None

    @model_validator(mode="after")
    def validate_dates(self) -> "QuotationCreate":
        """La scadenza dell'offerta deve seguire la data di emissione."""
        if self.date and self.valid_until and self.valid_until <= self.date:
            raise BusinessValidationError(
                "La validità del preventivo deve essere successiva alla data di emissione"
            )
        return self


class QuotationFromBudget(BaseModel):
    """Creazione di un preventivo dalle sei righe standard di un budget."""

    client_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    total: Decimal = Field(..., ge=0, decimal_places=2, description="Budget totale del progetto")
    tier: Optional[PricingTier] = Field(
        None,
        description="Fascia di progetto (default: suggerita dal budget)",
    )
    labour_description: Optional[str] = Field(None, max_length=500)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    date: Optional[datetime.date] = None
    valid_until: Optional[datetime.date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)


class QuotationUpdate(BaseModel):
    """
    Aggiornamento di un preventivo in bozza.

    Se `items` è presente sostituisce tutte le righe esistenti.
    """

    project_id: Optional[uuid.UUID] = None
    valid_until: Optional[datetime.date] = None
    items: Optional[list[QuotationItemCreate]] = None
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=2000)
    terms: Optional[str] = Field(None, max_length=2000)


class QuotationStatusUpdate(BaseModel):
    """Richiesta di cambio stato."""

    status: QuotationStatus


class QuotationRead(BaseModel):
    """Schema per la lettura di un preventivo."""

    id: uuid.UUID
    quotation_number: str = Field(..., serialization_alias="quotationNumber")
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    project_id: Optional[uuid.UUID] = Field(None, serialization_alias="projectId")
    date: datetime.date
    valid_until: datetime.date = Field(..., serialization_alias="validUntil")
    status: QuotationStatus
    items: list[QuotationItemRead] = Field(default_factory=list)
    subtotal: Decimal
    discount_percentage: Decimal = Field(..., serialization_alias="discountPercentage")
    discount_amount: Decimal = Field(..., serialization_alias="discountAmount")
    total: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    converted_at: Optional[datetime.datetime] = Field(None, serialization_alias="convertedAt")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)


class QuotationList(BaseModel):
    """Schema per la lista paginata dei preventivi."""

    items: list[QuotationRead] = Field(default_factory=list)
    total: int = Field(..., serialization_alias="totalItems")
    page: int = Field(..., serialization_alias="currentPage")
    per_page: int = Field(..., serialization_alias="itemsPerPage")
    total_pages: int = Field(..., serialization_alias="totalPages")


# -------------------------------------------------------------------
# Bozza tipizzata e conversione
# -------------------------------------------------------------------

class QuotationDraft(BaseModel):
    """
    Bozza di preventivo in memoria.

    Le righe si modificano solo tramite `apply_item_update`,
    che restituisce una nuova lista di LineItem rivalidate.
    """

    kind: Literal["quotation"] = "quotation"
    id: Optional[uuid.UUID] = None
    quotation_number: Optional[str] = None
    client_id: uuid.UUID
    project_id: Optional[uuid.UUID] = None
    items: list[LineItem] = Field(default_factory=list)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    total: Optional[Decimal] = Field(
        None,
        description="Totale salvato; se assente è derivato dalle righe",
    )

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @property
    def totals(self) -> DocumentTotals:
        """Totali derivati dalle righe correnti."""
        from koruku.services.totals_service import compute_totals

        return compute_totals(self.items, self.discount_percentage)


class ConversionResponse(BaseModel):
    """Esito della conversione salvata."""

    invoice: InvoiceRead
    quotation: QuotationRead
