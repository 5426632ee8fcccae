"""
Modello SQLAlchemy per l'entità Project
Progetto: Koruku (Gestionale Agenzia Web)

Rappresenta un progetto (sito web, e-commerce, app) realizzato per un cliente.
"""


from __future__ import annotations
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from koruku.models import Base
from koruku.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from koruku.models.client import Client


class Project(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i progetti.

    Attributes:
        id: UUID primary key, generato automaticamente
        name: Nome del progetto
        client_id: UUID del cliente
        status: planning, development, honey-period, retainer, completed
        start_date: Data di inizio
        support_months: Mesi di supporto inclusi
        support_end_date: Fine del supporto (start_date + support_months)
        description: Descrizione libera
        live_url: URL del sito in produzione
        github_url: Repository del codice
        tech_stack: Tecnologie usate
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="planning",
        doc="Stato del progetto",
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    support_months: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=6,
        doc="Mesi di supporto inclusi",
    )

    support_end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Data fine supporto",
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    live_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    tech_stack: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Tecnologie usate (es. React, Supabase)",
    )

    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="projects",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_projects_client_id", "client_id"),
        CheckConstraint(
            "status IN ('planning', 'development', 'honey-period', 'retainer', 'completed')",
            name="ck_projects_status",
        ),
        CheckConstraint("support_months >= 0", name="ck_projects_support_months_positive"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
