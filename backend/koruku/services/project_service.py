"""
Service Layer per l'entità Project
Progetto: Koruku (Gestionale Agenzia Web)

Gestisce:
- CRUD progetti collegati a un cliente esistente
- Fine supporto sempre ricalcolata da inizio + mesi di supporto
- Progetti con supporto in scadenza
"""

import logging
import uuid
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.config import settings
from koruku.core.exceptions import NotFoundError
from koruku.models import Project
from koruku.schemas.project import ProjectCreate, ProjectStatus, ProjectUpdate
from koruku.services.client_service import ClientService
from koruku.services.pricing_service import calculate_support_end_date

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Campi NOT NULL: un null esplicito nell'aggiornamento viene ignorato
_REQUIRED_FIELDS = {"name", "client_id", "status", "start_date", "support_months", "tech_stack"}


class ProjectService:
    """Service per i progetti dei clienti."""

    def __init__(self, clients: Optional[ClientService] = None) -> None:
        self.clients = clients or ClientService()

    async def get_all(
        self,
        db: AsyncSession,
        status: Optional[ProjectStatus] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Project], int]:
        """Progetti filtrati per stato e cliente, dal più recente."""
        conditions = []
        if status:
            conditions.append(Project.status == ProjectStatus(status).value)
        if client_id:
            conditions.append(Project.client_id == client_id)

        query = select(Project).order_by(Project.start_date.desc())
        if conditions:
            query = query.where(and_(*conditions))
        result = await db.execute(query)
        projects = list(result.scalars().all())
        return projects, len(projects)

    async def get_by_id(
        self,
        db: AsyncSession,
        project_id: uuid.UUID,
        reload: bool = False,
    ) -> Project:
        """
        Recupera un progetto per ID.

        Raises:
            NotFoundError: Progetto non trovato
        """
        query = select(Project).where(Project.id == project_id)
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        project = result.scalar_one_or_none()

        if project is None:
            raise NotFoundError(f"Progetto {project_id} non trovato")
        return project

    async def create(self, db: AsyncSession, data: ProjectCreate) -> Project:
        """
        Crea un progetto per un cliente esistente.

        Se support_months non è indicato si usa default_support_months.

        Raises:
            NotFoundError: cliente inesistente
        """
        await self.clients.get_by_id(db, data.client_id)

        months = data.support_months
        if months is None:
            months = settings.default_support_months
        fields = data.model_dump(exclude={"support_months", "status"})
        project = Project(
            id=uuid.uuid4(),
            status=data.status.value,
            support_months=months,
            support_end_date=calculate_support_end_date(data.start_date, months),
            **fields,
        )
        db.add(project)
        await db.commit()

        logger.info(
            "Creato progetto %s (supporto fino al %s)", project.name, project.support_end_date
        )
        return await self.get_by_id(db, project.id, reload=True)

    async def update(
        self,
        db: AsyncSession,
        project_id: uuid.UUID,
        data: ProjectUpdate,
    ) -> Project:
        """
        Aggiorna un progetto.

        Raises:
            NotFoundError: progetto o nuovo cliente inesistente
        """
        project = await self.get_by_id(db, project_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("client_id") and update_data["client_id"] != project.client_id:
            await self.clients.get_by_id(db, update_data["client_id"])

        for field, value in update_data.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            if isinstance(value, ProjectStatus):
                value = value.value
            setattr(project, field, value)

        project.support_end_date = calculate_support_end_date(
            project.start_date, project.support_months
        )
        await db.commit()
        return await self.get_by_id(db, project_id, reload=True)

    async def delete(self, db: AsyncSession, project_id: uuid.UUID) -> None:
        """Elimina un progetto; preventivi e fatture restano senza progetto."""
        project = await self.get_by_id(db, project_id)
        await db.delete(project)
        await db.commit()
        logger.info("Eliminato progetto %s", project.name)

    async def expiring_support(
        self,
        db: AsyncSession,
        within_days: int = 30,
        today: Optional[date] = None,
    ) -> list[Project]:
        """Progetti non completati il cui supporto scade entro `within_days` giorni."""
        today = today or date.today()
        query = (
            select(Project)
            .where(
                Project.status != ProjectStatus.COMPLETED.value,
                Project.support_end_date >= today,
                Project.support_end_date <= today + timedelta(days=within_days),
            )
            .order_by(Project.support_end_date.asc())
        )
        result = await db.execute(query)
        return list(result.scalars().all())

