"""Invoice router - FastAPI endpoints for invoices"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user, require_admin
from ...database import get_db
from .schemas import (
    GenerateInvoiceRequest,
    InvoiceDetailResponse,
    InvoiceResponse,
    MarkPaidRequest,
    MarkPaidResponse,
    UpdateInvoiceStatusRequest,
)
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


@router.post("/generate", response_model=InvoiceDetailResponse, status_code=201)
async def generate_invoice(
    data: GenerateInvoiceRequest,
    user: CurrentUser = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Generate a draft invoice from the client's billable activities in the period"""
    invoice = service.generate_invoice(data, user)
    return service.to_detail(invoice)


@router.get("", response_model=list[InvoiceResponse])
async def list_invoices(
    clientId: Optional[str] = None,
    status: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [service.to_response(i) for i in service.get_invoices(user, clientId, status)]


# Static paths must be registered before /{invoice_id}
@router.get("/export/csv")
async def export_invoices_csv(
    clientId: Optional[str] = None,
    status: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Export invoices as CSV with optional filters"""
    return service.export_invoices_csv(user, clientId, status)


@router.get("/overdue", response_model=list[InvoiceResponse])
async def list_overdue_invoices(
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [service.to_response(i) for i in service.get_overdue_invoices(user)]


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.to_detail(service.get_invoice(invoice_id, user))


@router.post("/{invoice_id}/approve", response_model=InvoiceDetailResponse)
async def approve_invoice(
    invoice_id: str,
    user: CurrentUser = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.to_detail(service.approve_invoice(invoice_id, user))


@router.post("/{invoice_id}/mark-paid", response_model=MarkPaidResponse)
async def mark_invoice_paid(
    invoice_id: str,
    data: MarkPaidRequest,
    user: CurrentUser = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Record a manual payment (check, ACH, cash...)"""
    invoice, outcome = service.record_payment(
        invoice_id,
        data.amount,
        data.method,
        reference=data.reference,
        user=user,
    )
    return MarkPaidResponse(invoice=service.to_detail(invoice), balanceRemaining=outcome.balance_remaining)


@router.patch("/{invoice_id}", response_model=InvoiceDetailResponse)
async def update_invoice_status(
    invoice_id: str,
    data: UpdateInvoiceStatusRequest,
    user: CurrentUser = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.to_detail(service.update_status(invoice_id, data.status, user))
