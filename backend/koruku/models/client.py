"""
Modello SQLAlchemy per l'entità Client
Progetto: Koruku (Gestionale Agenzia Web)

Rappresenta l'anagrafica dei clienti dell'agenzia.
"""


from __future__ import annotations
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from koruku.models import Base
from koruku.models.mixins import TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from koruku.models.invoice import Invoice
    from koruku.models.project import Project
    from koruku.models.quotation import Quotation


class Client(Base, UUIDMixin, TimestampMixin):
    """
    Modello per l'anagrafica clienti.

    Attributes:
        id: UUID primary key, generato automaticamente
        business: Ragione sociale (obbligatoria)
        contact: Nome del referente
        email: Indirizzo email
        phone: Numero di telefono
        address: Indirizzo completo
        notes: Note aggiuntive
        active: False se il cliente è archiviato

    Relationships:
        projects: Progetti del cliente
        quotations: Preventivi emessi al cliente
        invoices: Fatture emesse al cliente
    """

    __tablename__ = "clients"

    business: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Ragione sociale",
    )

    contact: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Nome del referente",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        doc="Indirizzo email (univoco)",
    )

    phone: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="",
        doc="Numero di telefono",
    )

    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Flag cliente attivo",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    projects: Mapped[List["Project"]] = relationship(
        "Project",
        back_populates="client",
        passive_deletes=True,
        doc="Progetti del cliente",
    )

    quotations: Mapped[List["Quotation"]] = relationship(
        "Quotation",
        back_populates="client",
        passive_deletes=True,
        doc="Preventivi del cliente",
    )

    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="client",
        passive_deletes=True,
        doc="Fatture del cliente",
    )

    __table_args__ = (
        Index("ix_clients_business", "business"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, business={self.business})>"
