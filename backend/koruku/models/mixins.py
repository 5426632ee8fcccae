"""
Mixin e colonne condivise dai modelli
Progetto: Koruku (Gestionale Agenzia Web)

- UUIDMixin / TimestampMixin per tutte le tabelle
- money_column per gli importi di preventivi e fatture
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func

# Importi in valuta: 10 cifre intere, 2 decimali
MONEY = Numeric(12, 2)


def money_column(doc: Optional[str] = None, default: Optional[Decimal] = None) -> Mapped[Decimal]:
    """Colonna importo obbligatoria, arrotondata al centesimo dal service."""
    return mapped_column(MONEY, nullable=False, default=default, doc=doc)


class UUIDMixin:
    """ID UUID generato lato applicazione (i service lo impostano prima del commit)."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class TimestampMixin:
    """
    created_at / updated_at gestiti automaticamente.

    created_at viene dal database; updated_at è aggiornato
    dal listener before_flush qui sotto.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


@event.listens_for(Session, "before_flush")
def touch_updated_at(session: Session, flush_context, instances) -> None:
    """Imposta updated_at sui record nuovi e su quelli realmente modificati."""
    now = datetime.datetime.now(datetime.timezone.utc)

    changed = [
        obj for obj in session.dirty
        if session.is_modified(obj, include_collections=False)
    ]
    for obj in [*session.new, *changed]:
        if isinstance(obj, TimestampMixin):
            obj.updated_at = now
