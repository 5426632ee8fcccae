"""
Router FastAPI per l'entità Project
Progetto: Koruku (Gestionale Agenzia Web)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.project import (
    ProjectCreate,
    ProjectList,
    ProjectRead,
    ProjectStatus,
    ProjectUpdate,
)
from koruku.services.project_service import ProjectService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["Progetti"],
)


def get_project_service() -> ProjectService:
    """Dependency per ottenere un'istanza del ProjectService."""
    return ProjectService()


@router.get(
    "/",
    name="progetti_lista",
    summary="Lista progetti",
    description="Recupera i progetti filtrati per stato e cliente.",
    response_model=ProjectList,
    status_code=status.HTTP_200_OK,
)
async def get_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status", description="Fase"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> ProjectList:
    projects, total = await service.get_all(db=db, status=status_filter, client_id=client_id)
    return ProjectList(
        items=[ProjectRead.model_validate(p) for p in projects],
        total=total,
    )


@router.get(
    "/expiring-support",
    name="progetti_supporto_in_scadenza",
    summary="Supporto in scadenza",
    description="Progetti non completati il cui supporto scade entro `days` giorni.",
    response_model=list[ProjectRead],
    status_code=status.HTTP_200_OK,
)
async def get_expiring_support(
    days: int = Query(30, ge=1, le=365, description="Finestra in giorni"),
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectRead]:
    projects = await service.expiring_support(db=db, within_days=days)
    return [ProjectRead.model_validate(p) for p in projects]


@router.get(
    "/{project_id}",
    name="progetto_dettaglio",
    summary="Dettaglio progetto",
    response_model=ProjectRead,
    status_code=status.HTTP_200_OK,
)
async def get_project(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = await service.get_by_id(db=db, project_id=project_id)
    return ProjectRead.model_validate(project)


@router.post(
    "/",
    name="progetto_crea",
    summary="Crea progetto",
    description="Crea un progetto; la fine supporto è calcolata da inizio + mesi.",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    project_data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = await service.create(db=db, data=project_data)
    return ProjectRead.model_validate(project)


@router.put(
    "/{project_id}",
    name="progetto_aggiorna",
    summary="Aggiorna progetto",
    response_model=ProjectRead,
    status_code=status.HTTP_200_OK,
)
async def update_project(
    project_id: uuid.UUID,
    project_data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> ProjectRead:
    project = await service.update(db=db, project_id=project_id, data=project_data)
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}",
    name="progetto_elimina",
    summary="Elimina progetto",
    description="Elimina un progetto; preventivi e fatture restano senza progetto.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_project(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: ProjectService = Depends(get_project_service),
) -> None:
    await service.delete(db=db, project_id=project_id)
