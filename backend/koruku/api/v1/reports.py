"""
Router FastAPI per i Report
Progetto: Koruku (Gestionale Agenzia Web)
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.report import ClientRevenue, MonthlyRevenue, ReportName, StatusTotals
from koruku.services.report_service import ReportService, to_csv

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Istanza del service
report_service = ReportService()

# Router con prefix e tag
router = APIRouter(
    prefix="/reports",
    tags=["Report"],
)


@router.get(
    "/client-revenue",
    name="report_fatturato_clienti",
    summary="Fatturato per cliente",
    response_model=list[ClientRevenue],
    status_code=status.HTTP_200_OK,
)
async def get_client_revenue(db: AsyncSession = Depends(get_db)) -> list[ClientRevenue]:
    return await report_service.client_revenue(db=db)


@router.get(
    "/monthly-revenue",
    name="report_fatturato_mensile",
    summary="Fatturato mensile",
    response_model=list[MonthlyRevenue],
    status_code=status.HTTP_200_OK,
)
async def get_monthly_revenue(
    months: int = Query(12, ge=1, le=36, description="Numero di mesi"),
    db: AsyncSession = Depends(get_db),
) -> list[MonthlyRevenue]:
    return await report_service.monthly_revenue(db=db, months=months)


@router.get(
    "/status-totals",
    name="report_totali_stato",
    summary="Totali per stato",
    response_model=list[StatusTotals],
    status_code=status.HTTP_200_OK,
)
async def get_status_totals(db: AsyncSession = Depends(get_db)) -> list[StatusTotals]:
    return await report_service.status_totals(db=db)


@router.get(
    "/{report}/csv",
    name="report_csv",
    summary="Esporta report in CSV",
    description="Scarica un report come file CSV (UTF-8).",
    status_code=status.HTTP_200_OK,
)
async def export_report_csv(
    report: ReportName = Path(..., description="Nome del report"),
    months: int = Query(12, ge=1, le=36, description="Mesi (solo monthly-revenue)"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Esporta un report in CSV.

    Un report senza righe risponde 422 con "No data to export".
    """
    if report == ReportName.CLIENT_REVENUE:
        rows = await report_service.client_revenue(db=db)
    elif report == ReportName.MONTHLY_REVENUE:
        rows = await report_service.monthly_revenue(db=db, months=months)
    else:
        rows = await report_service.status_totals(db=db)

    filename = f"{report.value}-{date.today().isoformat()}"
    logger.info("Esportazione CSV %s (%d righe)", filename, len(rows))
    return Response(
        content=to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )
