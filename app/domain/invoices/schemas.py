"""Invoice domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.dates import to_naive_utc
from ..billing.ledger import INVOICE_STATUSES
from ..clients.schemas import ClientSummary


class GenerateInvoiceRequest(BaseModel):
    """Schema for generating a draft invoice from a client's billable activities"""

    clientId: str
    periodStart: datetime
    periodEnd: datetime

    @field_validator("clientId")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("clientId is required")
        return v.strip()

    @field_validator("periodStart", "periodEnd")
    @classmethod
    def normalize_period(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_period(self):
        if self.periodEnd < self.periodStart:
            raise ValueError("periodEnd must not be before periodStart")
        return self


class MarkPaidRequest(BaseModel):
    """
    Schema for recording a manual payment.

    amount and method are checked by the ledger so that both payment entry
    points reject bad input the same way.
    """

    amount: Optional[float] = None
    method: Optional[str] = None
    reference: Optional[str] = None


class UpdateInvoiceStatusRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in INVOICE_STATUSES:
            raise ValueError("Invalid status value")
        return v


class InvoiceItemResponse(BaseModel):
    id: str
    activityId: Optional[str] = None
    serviceTypeId: Optional[str] = None
    description: str
    quantity: float
    unitPrice: float
    amount: float

    @classmethod
    def from_model(cls, item) -> "InvoiceItemResponse":
        return cls(
            id=item.id,
            activityId=item.activity_id,
            serviceTypeId=item.service_type_id,
            description=item.description,
            quantity=item.quantity,
            unitPrice=item.unit_price,
            amount=item.amount,
        )


class PaymentResponse(BaseModel):
    id: str
    invoiceId: str
    status: str
    amount: float
    method: str
    processor: str
    reference: Optional[str] = None
    paidAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            invoiceId=payment.invoice_id,
            status=payment.status,
            amount=payment.amount,
            method=payment.method,
            processor=payment.processor,
            reference=payment.reference,
            paidAt=payment.paid_at,
            createdAt=payment.created_at,
        )


class InvoiceResponse(BaseModel):
    id: str
    orgId: str
    clientId: str
    client: Optional[ClientSummary] = None
    periodStart: datetime
    periodEnd: datetime
    status: str
    totalAmount: float
    currency: str
    sentAt: Optional[datetime] = None
    paidAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class InvoiceDetailResponse(InvoiceResponse):
    items: list[InvoiceItemResponse]
    payments: list[PaymentResponse]
    totalPaid: float
    # Raw difference; negative when the client overpaid
    balance: float
    paidAmount: float
    balanceRemaining: float
    isOverdue: bool


class MarkPaidResponse(BaseModel):
    invoice: InvoiceDetailResponse
    balanceRemaining: float
