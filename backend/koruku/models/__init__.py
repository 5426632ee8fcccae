"""
Modelli Database SQLAlchemy
Progetto: Koruku (Gestionale Agenzia Web)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Client: Anagrafica clienti
- Project: Progetti (siti web, app) associati ai clienti
- Quotation: Preventivi
- QuotationItem: Righe preventivo
- Invoice: Fatture
- Payment: Incassi sulle fatture
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from koruku.models.client import Client
from koruku.models.project import Project
from koruku.models.quotation import Quotation, QuotationItem
from koruku.models.invoice import Invoice
from koruku.models.payment import Payment

__all__ = [
    "Base",
    "Client",
    "Project",
    "Quotation",
    "QuotationItem",
    "Invoice",
    "Payment",
]
