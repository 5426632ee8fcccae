"""
Modello SQLAlchemy per la Fatturazione
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Invoice: Fattura (manuale o generata da un preventivo accettato)
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from koruku.models import Base
from koruku.models.mixins import TimestampMixin, UUIDMixin, money_column

if TYPE_CHECKING:
    from koruku.models.client import Client
    from koruku.models.project import Project
    from koruku.models.quotation import Quotation


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per le fatture.

    Attributes:
        id: UUID primary key, generato automaticamente
        invoice_number: Numero progressivo annuale (formato: MZK-YYYY-NNN), univoco
        client_id: UUID del cliente
        project_id: UUID del progetto (opzionale)
        quotation_id: UUID del preventivo di origine (univoco, opzionale)
        amount: Importo fattura (per le conversioni: totale scontato del preventivo)
        date: Data emissione fattura
        due_date: Data scadenza pagamento
        paid_date: Data di incasso (solo se pagata)
        status: draft, sent, paid, overdue
        description: Descrizione delle prestazioni
        notes: Note interne

    Relationships:
        client: Cliente associato
        project: Progetto associato
        quotation: Preventivo di origine
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    invoice_number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        doc="Numero fattura progressivo annuale (formato: PREFIX-YYYY-NNN)",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )

    quotation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("quotations.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        doc="Preventivo da cui è stata generata la fattura",
    )

    # ------------------------------------------------------------
    # Colonne Importi e Date
    # ------------------------------------------------------------
    amount: Mapped[Decimal] = money_column(doc="Importo fattura")

    date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data emissione fattura",
    )

    due_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data scadenza pagamento",
    )

    paid_date: Mapped[datetime.date | None] = mapped_column(
        Date,
        nullable=True,
        doc="Data di incasso",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="invoices",
        lazy="selectin",
    )

    project: Mapped["Project | None"] = relationship("Project", lazy="selectin")
    quotation: Mapped["Quotation | None"] = relationship("Quotation")

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def is_overdue(self) -> bool:
        """True se la fattura non è pagata e la scadenza è passata."""
        if self.status == "paid":
            return False
        return self.due_date < datetime.date.today()

    @property
    def effective_status(self) -> str:
        """Stato da mostrare: 'overdue' prevale su draft/sent se scaduta."""
        if self.is_overdue:
            return "overdue"
        return self.status

    __table_args__ = (
        Index("ix_invoices_client_id", "client_id"),
        Index("ix_invoices_date", "date"),
        Index("ix_invoices_due_date", "due_date"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'overdue')",
            name="ck_invoices_status",
        ),
        CheckConstraint("amount >= 0", name="ck_invoices_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, amount={self.amount})>"
