"""
API v1 Routes
Progetto: Koruku (Gestionale Agenzia Web)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from koruku.api.v1 import clients, invoices, payments, pricing, projects, quotations, reports

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(pricing.router)
api_v1_router.include_router(clients.router)
api_v1_router.include_router(projects.router)
api_v1_router.include_router(quotations.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(payments.router)
api_v1_router.include_router(reports.router)

# Esportazione
__all__ = ["api_v1_router"]
