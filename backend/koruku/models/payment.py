"""
Modello SQLAlchemy per gli Incassi
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Payment: incasso (anche parziale) registrato su una fattura
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from koruku.models import Base
from koruku.models.mixins import TimestampMixin, UUIDMixin, money_column

if TYPE_CHECKING:
    from koruku.models.invoice import Invoice


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Incasso su una fattura.

    Più incassi parziali possono saldare la stessa fattura; la somma
    non supera mai l'importo fatturato (controllo nel service).
    Eliminando la fattura vengono eliminati anche i suoi incassi.

    Attributes:
        invoice_id: UUID della fattura
        amount: Importo incassato (> 0)
        payment_date: Data dell'incasso
        payment_method: bank_transfer, eft, cash, card, paypal, stripe, other
        reference: Riferimento del pagamento (CRO, id transazione)
        notes: Note interne
    """

    __tablename__ = "payments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[Decimal] = money_column(doc="Importo incassato")

    payment_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="bank_transfer",
    )

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", lazy="selectin")

    __table_args__ = (
        Index("ix_payments_invoice_id", "invoice_id"),
        Index("ix_payments_payment_date", "payment_date"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "payment_method IN ('bank_transfer', 'eft', 'cash', 'card', 'paypal', 'stripe', 'other')",
            name="ck_payments_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount})>"
