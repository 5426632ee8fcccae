"""
Router FastAPI per il motore prezzi
Progetto: Koruku (Gestionale Agenzia Web)

Endpoint di solo calcolo: nessun accesso al database.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, status

from koruku.schemas.pricing import (
    BreakdownRequest,
    DocumentTotals,
    LineItem,
    LineItemsRequest,
    PricingBreakdown,
    PricingPreset,
    TierSuggestion,
    TotalsRequest,
)
from koruku.services import pricing_service
from koruku.services.totals_service import compute_totals

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/pricing",
    tags=["Prezzi"],
)


@router.post(
    "/breakdown",
    name="ripartizione_budget",
    summary="Ripartizione budget",
    description="Ripartisce un budget tra manodopera e infrastruttura annuale.",
    response_model=PricingBreakdown,
    status_code=status.HTTP_200_OK,
)
async def calculate_breakdown(data: BreakdownRequest) -> PricingBreakdown:
    return pricing_service.calculate_breakdown(data.total, data.tier)


@router.post(
    "/line-items",
    name="righe_standard",
    summary="Righe standard da budget",
    description="Genera le sei righe standard (manodopera + infrastruttura) di un preventivo.",
    response_model=list[LineItem],
    status_code=status.HTTP_200_OK,
)
async def generate_line_items(data: LineItemsRequest) -> list[LineItem]:
    """
    Ordine fisso: manodopera, hosting, SSL, CDN, backup, monitoraggio.
    La somma degli importi coincide con il budget arrotondato al centesimo.
    """
    return pricing_service.generate_line_items(data.total, data.tier, data.labour_description)


@router.post(
    "/totals",
    name="totali_documento",
    summary="Totali documento",
    description="Calcola subtotale, sconto e totale di una lista di righe.",
    response_model=DocumentTotals,
    status_code=status.HTTP_200_OK,
)
async def calculate_totals(data: TotalsRequest) -> DocumentTotals:
    return compute_totals(data.items, data.discount_percentage)


@router.get(
    "/suggest-tier",
    name="fascia_suggerita",
    summary="Fascia suggerita",
    description="Suggerisce la fascia di progetto in base al budget.",
    response_model=TierSuggestion,
    status_code=status.HTTP_200_OK,
)
async def suggest_tier(
    total: Decimal = Query(..., ge=0, description="Budget totale del progetto"),
) -> TierSuggestion:
    return TierSuggestion(total=total, tier=pricing_service.suggest_tier(total))


@router.get(
    "/presets",
    name="listini",
    summary="Listini preimpostati",
    description="Elenca i listini per le tipologie di progetto più comuni.",
    response_model=list[PricingPreset],
    status_code=status.HTTP_200_OK,
)
async def list_presets(
    category: Optional[str] = Query(None, description="Filtro per categoria"),
) -> list[PricingPreset]:
    presets = pricing_service.PRICING_PRESETS
    if category:
        presets = tuple(p for p in presets if p.category.lower() == category.lower())
    return list(presets)


@router.get(
    "/presets/{key}/breakdown",
    name="ripartizione_listino",
    summary="Ripartizione di un listino",
    response_model=PricingBreakdown,
    status_code=status.HTTP_200_OK,
)
async def preset_breakdown(key: str) -> PricingBreakdown:
    preset = pricing_service.get_preset(key)
    return pricing_service.calculate_breakdown(preset.total, preset.tier)


@router.get(
    "/support-end-date",
    name="fine_supporto",
    summary="Fine periodo di supporto",
    description="Calcola la data di fine del supporto incluso nel progetto.",
    status_code=status.HTTP_200_OK,
)
async def support_end_date(
    start_date: date = Query(..., description="Data di avvio del progetto"),
    months: Optional[int] = Query(None, ge=0, le=120, description="Mesi di supporto"),
) -> dict[str, date]:
    return {
        "start_date": start_date,
        "support_end_date": pricing_service.calculate_support_end_date(start_date, months),
    }
