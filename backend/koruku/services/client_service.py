"""
Service Layer per l'entità Client
Progetto: Koruku (Gestionale Agenzia Web)

Gestisce l'anagrafica clienti:
- Email univoca (controllo prima del salvataggio e sul vincolo unique)
- Archiviazione tramite flag active
- Eliminazione solo per clienti senza progetti, preventivi o fatture
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.exceptions import ConflictError, NotFoundError
from koruku.models import Client, Invoice, Project, Quotation
from koruku.schemas.client import ClientCreate, ClientDetail, ClientRead, ClientUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ClientService:
    """
    Service per la gestione delle operazioni CRUD sui clienti.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
        active_only: bool = False,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti, in ordine di ragione sociale.

        Args:
            db: Sessione database
            page: Numero pagina (default 1)
            per_page: Elementi per pagina (default 10)
            search: Ricerca su ragione sociale, referente ed email
            active_only: Se True, esclude i clienti archiviati

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = []
        if active_only:
            conditions.append(Client.active.is_(True))
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.business.ilike(term),
                    Client.contact.ilike(term),
                    Client.email.ilike(term),
                )
            )

        query = select(Client).order_by(Client.business.asc())
        count_query = select(func.count(Client.id))
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        clients = list(result.scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.info(
            "Recuperati %s clienti su %s totali (pagina %s, solo attivi=%s)",
            len(clients), total, page, active_only,
        )
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        reload: bool = False,
    ) -> Client:
        """
        Recupera un cliente tramite ID.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        query = select(Client).where(Client.id == client_id)
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        client = result.scalar_one_or_none()

        if client is None:
            logger.warning("Cliente non trovato: %s", client_id)
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def get_detail(self, db: AsyncSession, client_id: uuid.UUID) -> ClientDetail:
        """Cliente con il numero di progetti e fatture collegati."""
        client = await self.get_by_id(db, client_id)
        projects, _, invoices = await self._count_references(db, client_id)
        return ClientDetail(
            **ClientRead.model_validate(client).model_dump(),
            project_count=projects,
            invoice_count=invoices,
        )

    async def create(self, db: AsyncSession, data: ClientCreate) -> Client:
        """
        Crea un nuovo cliente.

        Raises:
            ConflictError: email già registrata (DUPLICATE_EMAIL)
        """
        await self._ensure_email_free(db, data.email)

        client = Client(id=uuid.uuid4(), **data.model_dump())
        db.add(client)
        await self._commit(db, data.email)

        logger.info("Creato cliente: %s - %s", client.id, client.business)
        return await self.get_by_id(db, client.id, reload=True)

    async def update(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        data: ClientUpdate,
    ) -> Client:
        """
        Aggiorna un cliente esistente (anche per archiviarlo con active=False).

        Raises:
            NotFoundError: Se il cliente non esiste
            ConflictError: email già registrata per un altro cliente
        """
        client = await self.get_by_id(db, client_id)
        update_data = data.model_dump(exclude_unset=True)

        new_email = update_data.get("email")
        if new_email and new_email != client.email:
            await self._ensure_email_free(db, new_email, exclude_id=client_id)

        for field, value in update_data.items():
            if value is None and field in ("business", "contact", "email", "phone", "active"):
                continue
            setattr(client, field, value)

        await self._commit(db, new_email or client.email)
        if update_data.get("active") is False:
            logger.info("Cliente archiviato: %s - %s", client.id, client.business)
        return await self.get_by_id(db, client_id, reload=True)

    async def delete(self, db: AsyncSession, client_id: uuid.UUID) -> None:
        """
        Elimina un cliente senza documenti collegati.

        Raises:
            NotFoundError: Se il cliente non esiste
            ConflictError: il cliente ha progetti, preventivi o fatture
                (CLIENT_IN_USE): va archiviato invece che eliminato
        """
        client = await self.get_by_id(db, client_id)

        projects, quotations, invoices = await self._count_references(db, client_id)
        if projects or quotations or invoices:
            raise ConflictError(
                "Impossibile eliminare un cliente con progetti, preventivi o fatture: "
                "archiviarlo (active=False)",
                error_code="CLIENT_IN_USE",
                extra={"projects": projects, "quotations": quotations, "invoices": invoices},
            )

        await db.delete(client)
        await db.commit()
        logger.warning("Eliminato cliente: %s - %s", client.id, client.business)

    # ----------------------------------------------------------------
    # Metodi privati di supporto
    # ----------------------------------------------------------------

    async def _ensure_email_free(
        self,
        db: AsyncSession,
        email: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Client.id).where(func.lower(Client.email) == email.lower())
        if exclude_id:
            query = query.where(Client.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            logger.warning("Email cliente già registrata: %s", email)
            raise ConflictError(
                f"L'email {email} è già registrata per un altro cliente",
                error_code="DUPLICATE_EMAIL",
                extra={"email": email},
            )

    async def _commit(self, db: AsyncSession, email: str) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if "email" in str(e.orig).lower():
                raise ConflictError(
                    f"L'email {email} è già registrata per un altro cliente",
                    error_code="DUPLICATE_EMAIL",
                    extra={"email": email},
                )
            logger.error("Errore IntegrityError cliente: %s", e.orig)
            raise ConflictError("Errore durante il salvataggio del cliente")

    async def _count_references(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> tuple[int, int, int]:
        """Numero di progetti, preventivi e fatture del cliente."""
        query = select(
            select(func.count(Project.id)).where(Project.client_id == client_id).scalar_subquery(),
            select(func.count(Quotation.id)).where(Quotation.client_id == client_id).scalar_subquery(),
            select(func.count(Invoice.id)).where(Invoice.client_id == client_id).scalar_subquery(),
        )
        result = await db.execute(query)
        projects, quotations, invoices = result.one()
        return projects or 0, quotations or 0, invoices or 0
