"""
Router FastAPI per l'entità Client
Progetto: Koruku (Gestionale Agenzia Web)

Definisce gli endpoint API per la gestione dei clienti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.client import (
    ClientCreate,
    ClientDetail,
    ClientList,
    ClientRead,
    ClientUpdate,
)
from koruku.services.client_service import ClientService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/clients",
    tags=["Clienti"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """Dependency per ottenere un'istanza del ClientService."""
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="clienti_lista",
    summary="Lista clienti",
    description="Recupera la lista paginata dei clienti con eventuale filtro di ricerca.",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(10, ge=1, le=100, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su ragione sociale, referente, email"),
    active_only: bool = Query(False, description="Escludi i clienti archiviati"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientList:
    clients, total = await service.get_all(
        db=db,
        page=page,
        per_page=per_page,
        search=search,
        active_only=active_only,
    )

    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    description="Recupera un cliente con il numero di progetti e fatture collegati.",
    response_model=ClientDetail,
    status_code=status.HTTP_200_OK,
)
async def get_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientDetail:
    return await service.get_detail(db=db, client_id=client_id)


@router.post(
    "/",
    name="cliente_crea",
    summary="Crea cliente",
    description="Crea un nuovo cliente.",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Crea un nuovo cliente.

    Un'email già registrata restituisce 409 DUPLICATE_EMAIL.
    """
    client = await service.create(db=db, data=client_data)
    return ClientRead.model_validate(client)


@router.put(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    description="Aggiorna i dati di un cliente esistente (active=false per archiviarlo).",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update(db=db, client_id=client_id, data=client_data)
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="cliente_elimina",
    summary="Elimina cliente",
    description="Elimina un cliente senza progetti, preventivi o fatture.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> None:
    """
    Elimina un cliente.

    Un cliente con documenti collegati restituisce 409 CLIENT_IN_USE:
    in quel caso va archiviato con PUT active=false.
    """
    await service.delete(db=db, client_id=client_id)
