"""
Router FastAPI per la Fatturazione
Progetto: Koruku (Gestionale Agenzia Web)

Definisce gli endpoint API per la gestione delle fatture.
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    MarkPaidRequest,
    NextNumberResponse,
)
from koruku.services.invoice_service import InvoiceService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Istanza del service
invoice_service = InvoiceService()

# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Fatturazione"],
)


@router.get(
    "/",
    name="fatture_lista",
    summary="Lista fatture",
    description="Recupera la lista paginata delle fatture con eventuali filtri.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    status_filter: Optional[InvoiceStatus] = Query(
        None,
        alias="status",
        description="Filtro per stato effettivo (draft, sent, paid, overdue)",
    ),
    overdue_only: bool = Query(False, description="Se True, solo fatture scadute"),
    from_date: Optional[date] = Query(None, description="Data inizio periodo (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Data fine periodo (YYYY-MM-DD)"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(10, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    return await invoice_service.get_all(
        db=db,
        client_id=client_id,
        status_filter=status_filter,
        overdue_only=overdue_only,
        from_date=from_date,
        to_date=to_date,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/",
    name="crea_fattura",
    summary="Crea fattura",
    description="Crea una fattura; il numero è allocato se non indicato.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """
    Crea una fattura.

    Un numero manuale già esistente restituisce 409 NUMBERING_CONFLICT
    con `extra.suggested_number`.
    """
    return await invoice_service.create(db=db, data=data)


@router.get(
    "/next-number",
    name="prossimo_numero_fattura",
    summary="Prossimo numero fattura",
    description="Suggerisce il prossimo numero fattura libero (non lo riserva).",
    response_model=NextNumberResponse,
    status_code=status.HTTP_200_OK,
)
async def get_next_invoice_number(
    year: Optional[int] = Query(None, ge=1000, le=9999, description="Anno (default: corrente)"),
    db: AsyncSession = Depends(get_db),
) -> NextNumberResponse:
    number = await invoice_service.suggest_number(db=db, year=year)
    return NextNumberResponse(
        number=number.formatted,
        prefix=number.prefix,
        year=number.year,
        sequence=number.sequence,
    )


@router.get(
    "/number/{invoice_number}",
    name="fattura_per_numero",
    summary="Fattura per numero",
    description="Recupera una fattura cercandola per numero.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice_by_number(
    invoice_number: str = Path(..., description="Numero fattura (formato: PREFIX-YYYY-NNN)"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await invoice_service.get_by_invoice_number(db=db, invoice_number=invoice_number)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await invoice_service.get_by_id(db=db, invoice_id=invoice_id)


@router.put(
    "/{invoice_id}",
    name="aggiorna_fattura",
    summary="Aggiorna fattura",
    description="Aggiorna i dati modificabili di una fattura.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def update_invoice(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    data: InvoiceUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """
    Campi modificabili: due_date, description, notes, project_id.

    NOTA: numero e importo non sono modificabili dopo la creazione.
    """
    return await invoice_service.update(db=db, invoice_id=invoice_id, data=data)


@router.post(
    "/{invoice_id}/mark-sent",
    name="fattura_inviata",
    summary="Segna come inviata",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def mark_invoice_sent(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await invoice_service.mark_sent(db=db, invoice_id=invoice_id)


@router.post(
    "/{invoice_id}/mark-paid",
    name="fattura_pagata",
    summary="Segna come pagata",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def mark_invoice_paid(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    data: Optional[MarkPaidRequest] = None,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    return await invoice_service.mark_paid(
        db=db,
        invoice_id=invoice_id,
        paid_date=data.paid_date if data else None,
    )


@router.delete(
    "/{invoice_id}",
    name="elimina_fattura",
    summary="Elimina fattura",
    description="Elimina una fattura non pagata.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await invoice_service.delete(db=db, invoice_id=invoice_id)
