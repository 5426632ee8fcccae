"""
Router FastAPI per i Preventivi
Progetto: Koruku (Gestionale Agenzia Web)

Definisce gli endpoint API per la gestione dei preventivi,
incluse la creazione da budget e la conversione in fattura.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.invoice import InvoiceRead
from koruku.schemas.quotation import (
    ConversionResponse,
    QuotationCreate,
    QuotationFromBudget,
    QuotationList,
    QuotationRead,
    QuotationStatus,
    QuotationStatusUpdate,
    QuotationUpdate,
)
from koruku.services.quotation_service import QuotationService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Istanza del service
quotation_service = QuotationService()

# Router con prefix e tag
router = APIRouter(
    prefix="/quotations",
    tags=["Preventivi"],
)


# -------------------------------------------------------------------
# Endpoints CRUD
# -------------------------------------------------------------------

@router.get(
    "/",
    name="preventivi_lista",
    summary="Lista preventivi",
    description="Recupera la lista paginata dei preventivi con eventuali filtri.",
    response_model=QuotationList,
    status_code=status.HTTP_200_OK,
)
async def get_quotations(
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    status_filter: Optional[QuotationStatus] = Query(
        None,
        alias="status",
        description="Filtro per stato",
    ),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(10, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> QuotationList:
    return await quotation_service.get_all(
        db=db,
        client_id=client_id,
        status_filter=status_filter,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/",
    name="crea_preventivo",
    summary="Crea preventivo",
    description="Crea un preventivo; il numero è allocato se non indicato.",
    response_model=QuotationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quotation(
    data: QuotationCreate,
    db: AsyncSession = Depends(get_db),
) -> QuotationRead:
    """
    Crea un preventivo con righe e totali ricalcolati.

    Se il numero indicato è già in uso risponde 409 con
    `error_code = NUMBERING_CONFLICT` e il numero suggerito in `extra`.
    """
    return await quotation_service.create(db=db, data=data)


@router.post(
    "/from-budget",
    name="crea_preventivo_da_budget",
    summary="Crea preventivo da budget",
    description="Crea un preventivo con le sei righe standard calcolate dal budget.",
    response_model=QuotationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quotation_from_budget(
    data: QuotationFromBudget,
    db: AsyncSession = Depends(get_db),
) -> QuotationRead:
    return await quotation_service.create_from_budget(db=db, data=data)


@router.get(
    "/{quotation_id}",
    name="preventivo_dettaglio",
    summary="Dettaglio preventivo",
    response_model=QuotationRead,
    status_code=status.HTTP_200_OK,
)
async def get_quotation(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    db: AsyncSession = Depends(get_db),
) -> QuotationRead:
    return await quotation_service.get_by_id(db=db, quotation_id=quotation_id)


@router.put(
    "/{quotation_id}",
    name="aggiorna_preventivo",
    summary="Aggiorna preventivo",
    description="Aggiorna un preventivo in bozza (righe sostituite e totali ricalcolati).",
    response_model=QuotationRead,
    status_code=status.HTTP_200_OK,
)
async def update_quotation(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    data: QuotationUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> QuotationRead:
    return await quotation_service.update(db=db, quotation_id=quotation_id, data=data)


@router.delete(
    "/{quotation_id}",
    name="elimina_preventivo",
    summary="Elimina preventivo",
    description="Elimina un preventivo non ancora convertito in fattura.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_quotation(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await quotation_service.delete(db=db, quotation_id=quotation_id)


# -------------------------------------------------------------------
# Stato e conversione
# -------------------------------------------------------------------

@router.post(
    "/{quotation_id}/status",
    name="stato_preventivo",
    summary="Cambia stato preventivo",
    response_model=QuotationRead,
    status_code=status.HTTP_200_OK,
)
async def update_quotation_status(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    data: QuotationStatusUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> QuotationRead:
    return await quotation_service.update_status(
        db=db,
        quotation_id=quotation_id,
        new_status=data.status,
    )


@router.post(
    "/{quotation_id}/convert",
    name="converti_preventivo",
    summary="Converti in fattura",
    description="Genera la fattura dal preventivo e lo marca come accettato.",
    response_model=ConversionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def convert_quotation(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    db: AsyncSession = Depends(get_db),
) -> ConversionResponse:
    """
    Conversione preventivo → fattura.

    Fattura e stato del preventivo sono salvati insieme.
    Errori possibili:
    - 409 CONFLICT_STATE: preventivo già convertito
    - 409 INCOMPLETE_CONVERSION: conversione trovata a metà
      (usare /complete-conversion)
    - 409 NUMBERING_CONFLICT: numero fattura non allocabile
    """
    invoice, quotation = await quotation_service.convert_to_invoice(
        db=db,
        quotation_id=quotation_id,
    )
    return ConversionResponse(
        invoice=InvoiceRead.model_validate(invoice),
        quotation=QuotationRead.model_validate(quotation),
    )


@router.post(
    "/{quotation_id}/complete-conversion",
    name="completa_conversione",
    summary="Completa conversione",
    description="Completa solo la metà mancante di una conversione parziale.",
    response_model=ConversionResponse,
    status_code=status.HTTP_200_OK,
)
async def complete_conversion(
    quotation_id: uuid.UUID = Path(..., description="UUID del preventivo"),
    db: AsyncSession = Depends(get_db),
) -> ConversionResponse:
    invoice, quotation = await quotation_service.complete_conversion(
        db=db,
        quotation_id=quotation_id,
    )
    return ConversionResponse(
        invoice=InvoiceRead.model_validate(invoice),
        quotation=QuotationRead.model_validate(quotation),
    )
