"""
Applicazione FastAPI di Koruku.

Monta il router /api/v1 (prezzi, preventivi, fatture, report) e
traduce le eccezioni di dominio nel corpo JSON
{"detail", "error_code", "extra"}.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from koruku.api.v1 import api_v1_router
from koruku.core.config import settings
from koruku.core.database import close_db, init_db
from koruku.core.exceptions import AppException

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Avvio %s v%s (%s)", settings.app_name, settings.app_version, settings.app_env)
    await init_db()
    yield
    await close_db()
    logger.info("%s arrestato", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description=f"Gestionale {settings.business_name} - preventivi, fatture e prezzi",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_body(detail: str, error_code: str, extra=None) -> dict:
    return {"detail": detail, "error_code": error_code, "extra": extra}


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Errori di dominio: lo status HTTP viene dalla classe dell'eccezione.

    I conflitti di numerazione e le conversioni incomplete portano in
    extra il numero suggerito o la parte mancante, così il client può
    proporre una correzione senza un'altra richiesta.
    """
    if exc.status_code == 409:
        logger.warning(
            "%s %s: %s %s", request.method, request.url.path, exc.error_code, exc.extra
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, exc.error_code, exc.extra),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Errore non gestito su %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body("Errore interno del server", "INTERNAL_SERVER_ERROR"),
    )


@app.get("/health", summary="Stato dell'applicazione", tags=["System"])
async def health_check() -> dict[str, str]:
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
        "quotation_prefix": settings.quotation_prefix,
        "invoice_prefix": settings.invoice_prefix,
    }


app.include_router(api_v1_router)
