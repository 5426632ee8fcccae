"""
Schemas Pydantic per il motore prezzi
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Enums: PricingTier, LineItemField
- PricingBreakdown: ripartizione manodopera / infrastruttura
- LineItem: riga documento con importo sempre coerente
- DocumentTotals: subtotale, sconto e totale
- DocumentNumber: numero documento PREFIX-YYYY-NNN
- Request/response per gli endpoint /pricing
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Arrotonda al centesimo (ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class PricingTier(str, Enum):
    """Fascia di progetto: determina la quota di manodopera."""
    SMALL = "small"        # 1-5 pagine, portfolio semplice
    MEDIUM = "medium"      # 5-10 pagine, sito aziendale
    LARGE = "large"        # 10+ pagine, e-commerce
    CUSTOM = "custom"      # sistemi su misura


class LineItemField(str, Enum):
    """Campi modificabili di una riga documento."""
    DESCRIPTION = "description"
    QUANTITY = "quantity"
    UNIT_PRICE = "unit_price"


# -------------------------------------------------------------------
# Breakdown
# -------------------------------------------------------------------

class InfrastructureItems(BaseModel):
    """Quote dell'infrastruttura annuale (non arrotondate)."""

    hosting: Decimal = Field(..., description="Web hosting (48%)")
    ssl: Decimal = Field(..., description="SSL e sicurezza (22%)")
    cdn: Decimal = Field(..., description="CDN (14%)")
    backups: Decimal = Field(..., description="Backup automatici (6%)")
    monitoring: Decimal = Field(..., description="Monitoraggio e manutenzione (10%)")

    model_config = ConfigDict(frozen=True)

    @property
    def total(self) -> Decimal:
        return self.hosting + self.ssl + self.cdn + self.backups + self.monitoring


class PricingBreakdown(BaseModel):
    """
    Ripartizione di un budget di progetto.

    Invarianti:
        labour_amount + infrastructure_total == total
        infrastructure_items.total == infrastructure_total
    """

    total: Decimal
    tier: PricingTier
    labour_amount: Decimal = Field(..., serialization_alias="labourAmount")
    labour_percentage: Decimal = Field(..., serialization_alias="labourPercentage")
    labour_description: str = Field(..., serialization_alias="labourDescription")
    infrastructure_total: Decimal = Field(..., serialization_alias="infrastructureTotal")
    infrastructure_percentage: Decimal = Field(
        ..., serialization_alias="infrastructurePercentage"
    )
    infrastructure_items: InfrastructureItems = Field(
        ..., serialization_alias="infrastructureItems"
    )

    model_config = ConfigDict(frozen=True)


# -------------------------------------------------------------------
# LineItem
# -------------------------------------------------------------------

class LineItem(BaseModel):
    """
    Riga di un preventivo o di una fattura.

    `amount` non è un campo memorizzato: è derivato da quantity e
    unit_price a ogni lettura, quindi non può mai divergere.
    Le modifiche passano da `with_field` (o dal reducer in
    totals_service) che rivalida l'intera riga.
    """

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal = Field(..., ge=0, serialization_alias="unitPrice")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("La descrizione è obbligatoria")
        return v

    @computed_field
    @property
    def amount(self) -> Decimal:
        """Importo riga: quantity * unit_price, arrotondato al centesimo."""
        return round_money(self.quantity * self.unit_price)

    def with_field(self, field: LineItemField, value) -> "LineItem":
        """Restituisce una nuova riga con il campo aggiornato e rivalidato."""
        data = self.model_dump(include={"description", "quantity", "unit_price"})
        data[field.value] = value
        return LineItem.model_validate(data)


# -------------------------------------------------------------------
# Totali
# -------------------------------------------------------------------

class DocumentTotals(BaseModel):
    """Totali di un documento derivati dalle righe."""

    subtotal: Decimal
    discount_percentage: Decimal = Field(..., serialization_alias="discountPercentage")
    discount_amount: Decimal = Field(..., serialization_alias="discountAmount")
    total: Decimal

    model_config = ConfigDict(frozen=True)


# -------------------------------------------------------------------
# Numerazione
# -------------------------------------------------------------------

class DocumentNumber(BaseModel):
    """Numero documento nel formato PREFIX-YYYY-NNN."""

    prefix: str
    year: int
    sequence: int = Field(..., ge=1)

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def formatted(self) -> str:
        """Sequenza con zero-padding a 3 cifre (4+ cifre oltre 999)."""
        return f"{self.prefix}-{self.year}-{self.sequence:03d}"

    @property
    def scope(self) -> str:
        """Ambito della numerazione (prefisso + anno)."""
        return f"{self.prefix}-{self.year}"

    def __str__(self) -> str:
        return self.formatted


# -------------------------------------------------------------------
# Request / Response API
# -------------------------------------------------------------------

class BreakdownRequest(BaseModel):
    """Richiesta di ripartizione di un budget."""

    total: Decimal = Field(..., ge=0, description="Budget totale del progetto")
    tier: PricingTier = Field(default=PricingTier.SMALL, description="Fascia di progetto")


class LineItemsRequest(BreakdownRequest):
    """Richiesta di generazione righe standard."""

    labour_description: Optional[str] = Field(
        None,
        max_length=500,
        description="Descrizione personalizzata della riga manodopera",
    )


class TotalsRequest(BaseModel):
    """Richiesta di calcolo totali."""

    items: list[LineItem] = Field(default_factory=list)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class TierSuggestion(BaseModel):
    """Fascia suggerita per un budget."""

    total: Decimal
    tier: PricingTier


class PricingPreset(BaseModel):
    """Listino preimpostato per tipologie di progetto comuni."""

    key: str
    name: str
    total: Decimal
    tier: PricingTier
    category: str
    description: str

    model_config = ConfigDict(frozen=True)
