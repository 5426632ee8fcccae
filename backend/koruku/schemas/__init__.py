"""
Schemas Pydantic per il progetto Koruku

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from koruku.schemas import LineItem, QuotationRead, etc.

from koruku.schemas.pricing import (
    BreakdownRequest,
    DocumentNumber,
    DocumentTotals,
    InfrastructureItems,
    LineItem,
    LineItemField,
    LineItemsRequest,
    PricingBreakdown,
    PricingPreset,
    PricingTier,
    TierSuggestion,
    TotalsRequest,
)
from koruku.schemas.invoice import (
    ConversionResult,
    InvoiceCreate,
    InvoiceDraft,
    InvoiceList,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    MarkPaidRequest,
    NextNumberResponse,
)
from koruku.schemas.quotation import (
    ConversionResponse,
    QuotationCreate,
    QuotationDraft,
    QuotationFromBudget,
    QuotationItemCreate,
    QuotationItemRead,
    QuotationList,
    QuotationRead,
    QuotationStatus,
    QuotationStatusUpdate,
    QuotationUpdate,
)
from koruku.schemas.report import (
    ClientRevenue,
    MonthlyRevenue,
    ReportName,
    StatusTotals,
)
from koruku.schemas.client import (
    ClientCreate,
    ClientDetail,
    ClientList,
    ClientRead,
    ClientUpdate,
)
from koruku.schemas.project import (
    ProjectCreate,
    ProjectList,
    ProjectRead,
    ProjectStatus,
    ProjectUpdate,
)
from koruku.schemas.payment import (
    InvoicePaymentSummary,
    PaymentCreate,
    PaymentMethod,
    PaymentRead,
    PaymentUpdate,
)

__all__ = [
    # Pricing
    "BreakdownRequest",
    "DocumentNumber",
    "DocumentTotals",
    "InfrastructureItems",
    "LineItem",
    "LineItemField",
    "LineItemsRequest",
    "PricingBreakdown",
    "PricingPreset",
    "PricingTier",
    "TierSuggestion",
    "TotalsRequest",
    # Invoice
    "ConversionResult",
    "InvoiceCreate",
    "InvoiceDraft",
    "InvoiceList",
    "InvoiceRead",
    "InvoiceStatus",
    "InvoiceUpdate",
    "MarkPaidRequest",
    "NextNumberResponse",
    # Quotation
    "ConversionResponse",
    "QuotationCreate",
    "QuotationDraft",
    "QuotationFromBudget",
    "QuotationItemCreate",
    "QuotationItemRead",
    "QuotationList",
    "QuotationRead",
    "QuotationStatus",
    "QuotationStatusUpdate",
    "QuotationUpdate",
    # Report
    "ClientRevenue",
    "MonthlyRevenue",
    "ReportName",
    "StatusTotals",
    # Client
    "ClientCreate",
    "ClientDetail",
    "ClientList",
    "ClientRead",
    "ClientUpdate",
    # Project
    "ProjectCreate",
    "ProjectList",
    "ProjectRead",
    "ProjectStatus",
    "ProjectUpdate",
    # Payment
    "InvoicePaymentSummary",
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    "PaymentUpdate",
]
