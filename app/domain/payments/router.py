"""Payment router - read-only payment history"""

from typing import Optional

from fastapi import APIRouter, Depends

from ...auth import CurrentUser, get_current_user
from ..invoices.router import get_invoice_service
from ..invoices.schemas import PaymentResponse
from ..invoices.service import InvoiceService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    clientId: Optional[str] = None,
    invoiceId: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Payments on invoices the caller can see, most recent first"""
    return [PaymentResponse.from_model(p) for p in service.get_payments(user, clientId, invoiceId)]
