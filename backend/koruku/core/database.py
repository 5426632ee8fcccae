"""
Accesso al database (SQLAlchemy 2.0 async + asyncpg)
Progetto: Koruku (Gestionale Agenzia Web)

Una sessione per richiesta HTTP. Le sessioni non scadono gli oggetti
al commit: i service ricaricano esplicitamente preventivi e fatture
dopo l'allocazione del numero.
"""

import logging
from typing import AsyncGenerator, List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from koruku.core.config import settings

logger = logging.getLogger(__name__)


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency FastAPI: sessione per richiesta, rollback se l'handler fallisce."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verifica all'avvio che il database risponda."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database non raggiungibile")
        raise
    logger.info(
        "Database pronto (numerazione %s / %s)",
        settings.quotation_prefix,
        settings.invoice_prefix,
    )


async def reset_schema() -> List[str]:
    """
    Elimina e ricrea tutte le tabelle.

    Solo per sviluppo: azzera anche la numerazione di preventivi
    e fatture, che riparte da 001 per ogni anno.

    Returns:
        Nomi delle tabelle ricreate
    """
    from koruku.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    tables = sorted(Base.metadata.tables)
    logger.warning("Schema ricreato: %s", ", ".join(tables))
    return tables


async def close_db() -> None:
    """Rilascia il pool di connessioni (shutdown dell'applicazione)."""
    await engine.dispose()
    logger.info("Connessioni database chiuse")
