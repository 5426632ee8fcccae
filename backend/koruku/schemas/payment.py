"""
Schemas Pydantic per gli Incassi
Progetto: Koruku (Gestionale Agenzia Web)

Contiene:
- Enums: PaymentMethod
- Schemas per Payment (create, update, read)
- InvoicePaymentSummary: incassato e residuo di una fattura
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from koruku.schemas.invoice import InvoiceStatus


class PaymentMethod(str, Enum):
    """Metodi di pagamento accettati."""
    BANK_TRANSFER = "bank_transfer"
    EFT = "eft"
    CASH = "cash"
    CARD = "card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    OTHER = "other"


class PaymentCreate(BaseModel):
    """
    Registrazione di un incasso.

    La fattura viene dal percorso (/invoices/{id}/payments).
    """

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Importo incassato")
    payment_date: Optional[datetime.date] = Field(
        None,
        description="Data dell'incasso (default: oggi)",
    )
    payment_method: PaymentMethod = Field(default=PaymentMethod.BANK_TRANSFER)
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    payment_date: Optional[datetime.date] = None
    payment_method: Optional[PaymentMethod] = None
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)


class PaymentRead(BaseModel):
    """Schema per la lettura di un incasso."""

    id: uuid.UUID
    invoice_id: uuid.UUID = Field(..., serialization_alias="invoiceId")
    amount: Decimal
    payment_date: datetime.date = Field(..., serialization_alias="paymentDate")
    payment_method: PaymentMethod = Field(..., serialization_alias="paymentMethod")
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


class InvoicePaymentSummary(BaseModel):
    """
    Situazione incassi di una fattura.

    balance = amount - total_paid (mai negativo: gli incassi
    non possono superare l'importo fatturato).
    """

    invoice_id: uuid.UUID = Field(..., serialization_alias="invoiceId")
    invoice_number: str = Field(..., serialization_alias="invoiceNumber")
    amount: Decimal
    total_paid: Decimal = Field(..., serialization_alias="totalPaid")
    balance: Decimal
    payment_count: int = Field(..., serialization_alias="paymentCount")
    status: InvoiceStatus
    last_payment_date: Optional[datetime.date] = Field(None, serialization_alias="lastPaymentDate")
