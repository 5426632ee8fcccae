"""
Router FastAPI per gli Incassi
Progetto: Koruku (Gestionale Agenzia Web)

Gli incassi si registrano su una fattura (/invoices/{id}/payments)
e si modificano o eliminano per ID (/payments/{id}).
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from koruku.core.database import get_db
from koruku.schemas.payment import (
    InvoicePaymentSummary,
    PaymentCreate,
    PaymentRead,
    PaymentUpdate,
)
from koruku.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Incassi"])


def get_payment_service() -> PaymentService:
    """Dependency per ottenere un'istanza del PaymentService."""
    return PaymentService()


@router.get(
    "/invoices/{invoice_id}/payments",
    name="incassi_fattura",
    summary="Incassi di una fattura",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def get_invoice_payments(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> list[PaymentRead]:
    payments = await service.list_for_invoice(db=db, invoice_id=invoice_id)
    return [PaymentRead.model_validate(p) for p in payments]


@router.get(
    "/invoices/{invoice_id}/payments/summary",
    name="riepilogo_incassi_fattura",
    summary="Riepilogo incassi",
    description="Importo, incassato, residuo e stato effettivo della fattura.",
    response_model=InvoicePaymentSummary,
    status_code=status.HTTP_200_OK,
)
async def get_invoice_payment_summary(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> InvoicePaymentSummary:
    return await service.summary(db=db, invoice_id=invoice_id)


@router.post(
    "/invoices/{invoice_id}/payments",
    name="registra_incasso",
    summary="Registra incasso",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    invoice_id: uuid.UUID,
    payment_data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """
    Registra un incasso, anche parziale.

    Un importo oltre il residuo restituisce 422 OVERPAYMENT con
    `extra.balance`; quando il residuo arriva a zero la fattura
    passa a "paid".
    """
    payment = await service.create(db=db, invoice_id=invoice_id, data=payment_data)
    return PaymentRead.model_validate(payment)


@router.get(
    "/payments",
    name="incassi_lista",
    summary="Lista incassi",
    description="Tutti gli incassi nel periodo, dal più recente.",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    from_date: Optional[date] = Query(None, description="Data inizio periodo (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Data fine periodo (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> list[PaymentRead]:
    payments = await service.get_all(db=db, from_date=from_date, to_date=to_date)
    return [PaymentRead.model_validate(p) for p in payments]


@router.put(
    "/payments/{payment_id}",
    name="aggiorna_incasso",
    summary="Aggiorna incasso",
    response_model=PaymentRead,
    status_code=status.HTTP_200_OK,
)
async def update_payment(
    payment_id: uuid.UUID,
    payment_data: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.update(db=db, payment_id=payment_id, data=payment_data)
    return PaymentRead.model_validate(payment)


@router.delete(
    "/payments/{payment_id}",
    name="elimina_incasso",
    summary="Elimina incasso",
    description="Elimina un incasso; una fattura saldata torna inviata se resta un residuo.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> None:
    await service.delete(db=db, payment_id=payment_id)
