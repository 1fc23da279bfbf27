"""
Stripe Webhook Handler
Records card payments from completed Checkout sessions against invoices
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import STRIPE_WEBHOOK_SECRET
from ..database import get_db
from ..domain.billing.invoice_builder import round2
from ..domain.invoices.service import InvoiceService
from ..exceptions import DuplicatePaymentError, ValidationError
from ..webhook_security import verify_stripe_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["webhooks"])

CHECKOUT_COMPLETED = "checkout.session.completed"


@router.post("/webhook")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Stripe webhook events

    Events handled:
    - checkout.session.completed with payment_status "paid"

    The Checkout session carries the invoice id in metadata.invoiceId and the
    amount in cents. The session id is stored as the payment reference, so a
    redelivered event is acknowledged without recording the payment twice.
    """
    if STRIPE_WEBHOOK_SECRET:
        body = await verify_stripe_webhook(request, STRIPE_WEBHOOK_SECRET)
    else:
        logger.warning("⚠️ STRIPE_WEBHOOK_SECRET not configured, skipping verification")
        body = await request.body()

    try:
        event = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.error("❌ Invalid JSON payload")
        raise ValidationError("Invalid JSON") from None

    event_type = event.get("type")
    logger.info(f"📥 Received Stripe webhook: {event_type}")

    if event_type != CHECKOUT_COMPLETED:
        logger.info(f"ℹ️ Unhandled event type: {event_type}")
        return {"received": True}

    session = (event.get("data") or {}).get("object") or {}
    if session.get("payment_status") != "paid":
        logger.info(f"ℹ️ Checkout session {session.get('id')} not paid yet, ignoring")
        return {"received": True}

    invoice_id = (session.get("metadata") or {}).get("invoiceId")
    if not invoice_id:
        logger.warning(f"⚠️ Checkout session {session.get('id')} has no invoiceId metadata")
        return {"received": True, "ignored": True}

    amount_total = session.get("amount_total")
    if isinstance(amount_total, bool) or not isinstance(amount_total, (int, float)):
        logger.warning(f"⚠️ Checkout session {session.get('id')} has no amount_total")
        return {"received": True, "ignored": True}

    amount = round2(amount_total / 100)
    method_types = session.get("payment_method_types") or []
    method = method_types[0] if method_types else "card"

    service = InvoiceService(db)
    try:
        invoice, outcome = service.record_payment(
            invoice_id,
            amount,
            method,
            reference=session.get("id"),
            processor="stripe",
            promote_draft=True,
        )
    except DuplicatePaymentError:
        logger.warning(f"⚠️ Duplicate Stripe delivery for session {session.get('id')}, already recorded")
        return {"received": True, "duplicate": True}

    logger.info(f"✅ Stripe payment applied to invoice {invoice.id}: status={outcome.status}")
    return {"received": True}
