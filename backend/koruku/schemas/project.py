"""
Schemas Pydantic per l'entità Project
Progetto: Koruku (Gestionale Agenzia Web)

La data di fine supporto non è mai in input: è calcolata da
start_date + support_months (vedi calculate_support_end_date).
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectStatus(str, Enum):
    """Fasi del progetto."""
    PLANNING = "planning"
    DEVELOPMENT = "development"
    HONEY_PERIOD = "honey-period"  # supporto post lancio
    RETAINER = "retainer"
    COMPLETED = "completed"


class ProjectBase(BaseModel):
    """Campi comuni del progetto."""

    name: str = Field(..., min_length=1, max_length=255)
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING)
    start_date: datetime.date = Field(..., serialization_alias="startDate")
    support_months: Optional[int] = Field(
        None,
        ge=0,
        le=120,
        serialization_alias="supportMonths",
        description="Mesi di supporto inclusi (default da configurazione)",
    )
    description: Optional[str] = Field(None, max_length=5000)
    tech_stack: list[str] = Field(default_factory=list, serialization_alias="techStack")
    live_url: Optional[str] = Field(None, max_length=500, serialization_alias="liveUrl")
    github_url: Optional[str] = Field(None, max_length=500, serialization_alias="githubUrl")

    model_config = ConfigDict(from_attributes=True)

    @field_validator("tech_stack")
    @classmethod
    def clean_tech_stack(cls, v: list[str]) -> list[str]:
        """Toglie voci vuote e duplicati mantenendo l'ordine."""
        seen: list[str] = []
        for tech in (t.strip() for t in v):
            if tech and tech not in seen:
                seen.append(tech)
        return seen


class ProjectCreate(ProjectBase):
    client_id: uuid.UUID = Field(..., description="UUID del cliente")


class ProjectUpdate(BaseModel):
    """Aggiornamento parziale; cambiando inizio o mesi si ricalcola la fine supporto."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_id: Optional[uuid.UUID] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[datetime.date] = None
    support_months: Optional[int] = Field(None, ge=0, le=120)
    description: Optional[str] = Field(None, max_length=5000)
    tech_stack: Optional[list[str]] = None
    live_url: Optional[str] = Field(None, max_length=500)
    github_url: Optional[str] = Field(None, max_length=500)


class ProjectClient(BaseModel):
    """Dati essenziali del cliente mostrati con il progetto."""

    id: uuid.UUID
    business: str
    contact: str
    email: str
    active: bool

    model_config = ConfigDict(from_attributes=True)


class ProjectRead(ProjectBase):
    id: uuid.UUID
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    support_months: int = Field(..., serialization_alias="supportMonths")
    support_end_date: datetime.date = Field(..., serialization_alias="supportEndDate")
    client: Optional[ProjectClient] = None
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")
    updated_at: datetime.datetime = Field(..., serialization_alias="updatedAt")


class ProjectList(BaseModel):
    """Schema per la lista dei progetti (ordinati per data di inizio decrescente)."""

    items: list[ProjectRead] = Field(default_factory=list)
    total: int = Field(..., ge=0, serialization_alias="totalItems")
