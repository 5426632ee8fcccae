"""
Modelli SQLAlchemy per i Preventivi
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Quotation: Preventivo principale
- QuotationItem: Righe del preventivo (manodopera e infrastruttura)
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
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


class Quotation(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i preventivi.

    Attributes:
        id: UUID primary key, generato automaticamente
        quotation_number: Numero progressivo (formato: QUO-YYYY-NNN), univoco
        client_id: UUID del cliente
        project_id: UUID del progetto (opzionale)
        date: Data emissione
        valid_until: Data di scadenza dell'offerta
        status: draft, sent, accepted, rejected, expired
        subtotal: Somma degli importi delle righe
        discount_percentage: Sconto percentuale (0-100)
        discount_amount: Importo sconto (arrotondato al centesimo)
        total: subtotal - discount_amount
        notes: Note per il cliente
        terms: Condizioni dell'offerta
        converted_at: Data/ora di conversione in fattura (None se mai convertito)

    Relationships:
        client: Cliente destinatario
        project: Progetto associato
        items: Righe del preventivo, ordinate per sort_order
    """

    __tablename__ = "quotations"

    quotation_number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        doc="Numero preventivo (formato: PREFIX-YYYY-NNN)",
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

    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        doc="Stato del preventivo",
    )

    # ------------------------------------------------------------
    # Colonne Importi
    # ------------------------------------------------------------
    subtotal: Mapped[Decimal] = money_column(default=Decimal("0.00"))

    discount_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    discount_amount: Mapped[Decimal] = money_column(default=Decimal("0.00"))

    total: Mapped[Decimal] = money_column(
        doc="Totale scontato (subtotal - discount_amount)",
        default=Decimal("0.00"),
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    converted_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora conversione in fattura",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="quotations",
        lazy="selectin",
    )

    project: Mapped["Project | None"] = relationship("Project", lazy="selectin")

    items: Mapped[List["QuotationItem"]] = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.sort_order",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_quotations_client_id", "client_id"),
        Index("ix_quotations_date", "date"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'accepted', 'rejected', 'expired')",
            name="ck_quotations_status",
        ),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_quotations_discount_percentage",
        ),
        CheckConstraint("subtotal >= 0", name="ck_quotations_subtotal_positive"),
    )

    def __repr__(self) -> str:
        return f"<Quotation(id={self.id}, number={self.quotation_number}, total={self.total})>"


class QuotationItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga di un preventivo.

    L'importo è sempre quantity * unit_price, ricalcolato dal service
    a ogni salvataggio.
    """

    __tablename__ = "quotation_items"

    quotation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("1"),
    )

    unit_price: Mapped[Decimal] = money_column()
    amount: Mapped[Decimal] = money_column(doc="quantity x unit_price")

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Posizione della riga nel documento",
    )

    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="items")

    __table_args__ = (
        Index("ix_quotation_items_quotation_order", "quotation_id", "sort_order"),
        CheckConstraint("quantity > 0", name="ck_quotation_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quotation_items_unit_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<QuotationItem(id={self.id}, description={self.description[:30]}...)>"
