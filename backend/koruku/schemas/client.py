"""
Schemas Pydantic per l'entità Client
Progetto: Koruku (Gestionale Agenzia Web)
"""

import datetime
import re
import uuid
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
)


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Toglie spazi, trattini e parentesi; mantiene il + iniziale."""
    if phone is None:
        return None
    cleaned = re.sub(r"[\s\-()./]", "", phone)
    if cleaned and not re.fullmatch(r"\+?\d{6,15}", cleaned):
        raise ValueError("Numero di telefono non valido")
    return cleaned


class ClientBase(BaseModel):
    """Campi comuni dell'anagrafica cliente."""

    business: str = Field(..., min_length=1, max_length=255, description="Ragione sociale")
    contact: str = Field(..., min_length=1, max_length=255, description="Nome del referente")
    email: EmailStr = Field(..., description="Indirizzo email")
    phone: str = Field(default="", max_length=50, description="Numero di telefono")
    address: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    active: bool = Field(default=True, description="False se il cliente è archiviato")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("business", "contact")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Campo obbligatorio")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    _normalize_phone = field_validator("phone", mode="before")(normalize_phone)


class ClientCreate(ClientBase):
    """Schema per la creazione di un cliente."""


class ClientUpdate(BaseModel):
    """Aggiornamento parziale: solo i campi inviati vengono modificati."""

    business: Optional[str] = Field(None, min_length=1, max_length=255)
    contact: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    _normalize_phone = field_validator("phone", mode="before")(normalize_phone)


class ClientRead(ClientBase):
    """Schema per la lettura di un cliente."""

    id: uuid.UUID
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")


class ClientDetail(ClientRead):
    """Cliente con il numero di progetti e fatture collegati."""

    project_count: int = Field(0, serialization_alias="projectCount")
    invoice_count: int = Field(0, serialization_alias="invoiceCount")


class ClientList(BaseModel):
    """Schema per la lista paginata dei clienti."""

    items: list[ClientRead] = Field(default_factory=list)
    total: int = Field(..., ge=0, serialization_alias="totalItems")
    page: int = Field(..., ge=1, serialization_alias="currentPage")
    per_page: int = Field(..., ge=1, serialization_alias="itemsPerPage")

    model_config = ConfigDict(from_attributes=True)

    @computed_field(alias="totalPages")
    @property
    def total_pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page if self.total else 1
