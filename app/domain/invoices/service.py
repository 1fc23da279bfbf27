"""Invoice service - generation, approval, payments and reporting"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Callable, Optional

from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...config import DEFAULT_CURRENCY, MARK_PAID_PROMOTES_DRAFT, OVERDUE_AFTER_DAYS
from ...database import transaction
from ...exceptions import DuplicateInvoiceError, DuplicatePaymentError, NotFoundError
from ...models_invoice import Invoice
from ...permissions import ensure_client_access
from ...shared.dates import utcnow
from ..activities.repository import ActivityRepository
from ..billing import ledger
from ..billing.invoice_builder import build_invoice_items, round2
from ..billing.rates import resolve_billing_context
from ..clients.repository import ClientRepository
from ..clients.schemas import ClientSummary
from .repository import InvoiceRepository
from .schemas import (
    GenerateInvoiceRequest,
    InvoiceDetailResponse,
    InvoiceItemResponse,
    InvoiceResponse,
    PaymentResponse,
)

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.repo = InvoiceRepository()
        self.clients = ClientRepository()
        self.activities = ActivityRepository()

    # Serialization
    def to_response(self, invoice: Invoice) -> InvoiceResponse:
        return InvoiceResponse(**self._base_fields(invoice))

    def to_detail(self, invoice: Invoice) -> InvoiceDetailResponse:
        """Invoice with items, payments and the running balance"""
        paid = ledger.total_paid(invoice.payments)
        balance = round2((invoice.total_amount or 0) - paid)
        return InvoiceDetailResponse(
            **self._base_fields(invoice),
            items=[InvoiceItemResponse.from_model(i) for i in invoice.items],
            payments=[PaymentResponse.from_model(p) for p in invoice.payments],
            totalPaid=paid,
            balance=balance,
            paidAmount=paid,
            balanceRemaining=max(0.0, balance),
            isOverdue=ledger.is_overdue(invoice.status, invoice.period_end, self.clock(), OVERDUE_AFTER_DAYS),
        )

    @staticmethod
    def _base_fields(invoice: Invoice) -> dict:
        return {
            "id": invoice.id,
            "orgId": invoice.org_id,
            "clientId": invoice.client_id,
            "client": ClientSummary.from_model(invoice.client) if invoice.client else None,
            "periodStart": invoice.period_start,
            "periodEnd": invoice.period_end,
            "status": invoice.status,
            "totalAmount": invoice.total_amount,
            "currency": invoice.currency,
            "sentAt": invoice.sent_at,
            "paidAt": invoice.paid_at,
            "createdAt": invoice.created_at,
            "updatedAt": invoice.updated_at,
        }

    # Lookups
    def _get_invoice(self, invoice_id: str, org_id: Optional[str]) -> Invoice:
        invoice = self.repo.get_invoice(self.db, invoice_id, org_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def get_invoice(self, invoice_id: str, user: CurrentUser) -> Invoice:
        invoice = self._get_invoice(invoice_id, user.org_id)
        ensure_client_access(user, invoice.client, "You are not allowed to view this invoice.")
        return invoice

    def get_invoices(
        self, user: CurrentUser, client_id: Optional[str] = None, status: Optional[str] = None
    ) -> list[Invoice]:
        return self.repo.get_invoices(self.db, user, client_id, status)

    def get_overdue_invoices(self, user: CurrentUser) -> list[Invoice]:
        cutoff = ledger.overdue_cutoff(self.clock(), OVERDUE_AFTER_DAYS)
        return self.repo.get_overdue_invoices(self.db, user, cutoff)

    # Generation
    def generate_invoice(self, data: GenerateInvoiceRequest, user: CurrentUser) -> Invoice:
        """
        Price the client's billable activities for the period into a draft invoice.

        Activities must start and end inside the period. The invoice and its
        items are written in one transaction, and a second invoice for the same
        client and period is rejected.
        """
        client = self.clients.get_client_by_id(self.db, data.clientId, user.org_id)
        if not client:
            raise NotFoundError("Client not found")

        if self.repo.find_invoice_for_period(self.db, client.id, data.periodStart, data.periodEnd):
            raise DuplicateInvoiceError(
                "An invoice already exists for this client and period",
                details={"clientId": client.id},
            )

        org = self.repo.get_organization(self.db, user.org_id)
        context = resolve_billing_context(client.billing_rules_json, org.billing_rules_json if org else None)

        activities = self.activities.get_billable_activities(
            self.db, user.org_id, client.id, data.periodStart, data.periodEnd
        )
        draft = build_invoice_items(activities, context)

        try:
            with transaction(self.db):
                invoice = self.repo.create_invoice(
                    self.db,
                    draft.items,
                    org_id=user.org_id,
                    client_id=client.id,
                    period_start=data.periodStart,
                    period_end=data.periodEnd,
                    status=ledger.STATUS_DRAFT,
                    total_amount=draft.total_amount,
                    currency=DEFAULT_CURRENCY,
                )
        except IntegrityError as e:
            # Only a concurrent insert for the same period is a duplicate
            if self.repo.find_invoice_for_period(self.db, client.id, data.periodStart, data.periodEnd):
                raise DuplicateInvoiceError(
                    "An invoice already exists for this client and period",
                    details={"clientId": client.id},
                ) from e
            logger.error(f"❌ Integrity error generating invoice for client {client.id}: {e.orig}")
            raise

        logger.info(
            f"🧾 Invoice {invoice.id} generated for client {client.id}: "
            f"{len(draft.items)} items, total {draft.total_amount} {DEFAULT_CURRENCY}"
        )
        return self._get_invoice(invoice.id, user.org_id)

    # Status transitions
    def approve_invoice(self, invoice_id: str, user: CurrentUser) -> Invoice:
        invoice = self._get_invoice(invoice_id, user.org_id)
        status, sent_at = ledger.approve(invoice.status, invoice.sent_at, self.clock())

        if status != invoice.status:
            with transaction(self.db):
                self.repo.update_invoice(self.db, invoice, status=status, sent_at=sent_at)
            logger.info(f"✅ Invoice {invoice_id} approved by {user.user_id}")

        return invoice

    def update_status(self, invoice_id: str, status: str, user: CurrentUser) -> Invoice:
        """External status assignment. No transition rules apply here."""
        invoice = self._get_invoice(invoice_id, user.org_id)
        previous = invoice.status

        with transaction(self.db):
            self.repo.update_invoice(self.db, invoice, status=status)

        logger.info(f"🔄 Invoice {invoice_id} status {previous} -> {status} (set by {user.user_id})")
        return invoice

    # Payments
    def record_payment(
        self,
        invoice_id: str,
        amount,
        method,
        reference: Optional[str] = None,
        user: Optional[CurrentUser] = None,
        processor: str = "manual",
        promote_draft: Optional[bool] = None,
    ) -> tuple[Invoice, ledger.LedgerOutcome]:
        """
        Append a completed payment and settle the invoice.

        Without a user the invoice is looked up across orgs; that is the
        payment gateway path. promote_draft defaults to MARK_PAID_PROMOTES_DRAFT.
        """
        ledger.validate_payment(amount, method)
        if promote_draft is None:
            promote_draft = MARK_PAID_PROMOTES_DRAFT

        invoice = self._get_invoice(invoice_id, user.org_id if user else None)

        reference = reference.strip() if reference else None
        if reference and self.repo.find_payment_by_reference(self.db, invoice.id, reference):
            raise DuplicatePaymentError(
                "Payment reference already recorded for this invoice",
                details={"reference": reference},
            )

        now = self.clock()
        try:
            with transaction(self.db):
                self.repo.create_payment(
                    self.db,
                    org_id=invoice.org_id,
                    invoice_id=invoice.id,
                    status=ledger.PAYMENT_COMPLETED,
                    amount=float(amount),
                    method=method.strip(),
                    processor=processor,
                    reference=reference,
                    paid_at=now,
                )
                payments = self.repo.get_completed_payments(self.db, invoice.id)
                outcome = ledger.settle(
                    invoice.status,
                    invoice.paid_at,
                    invoice.total_amount,
                    payments,
                    now,
                    promote_draft=promote_draft,
                )
                self.repo.update_invoice(self.db, invoice, status=outcome.status, paid_at=outcome.paid_at)
        except IntegrityError as e:
            if reference and self.repo.find_payment_by_reference(self.db, invoice.id, reference):
                raise DuplicatePaymentError(
                    "Payment reference already recorded for this invoice",
                    details={"reference": reference},
                ) from e
            logger.error(f"❌ Integrity error recording payment on invoice {invoice.id}: {e.orig}")
            raise

        logger.info(
            f"💰 Payment of {amount} ({method}, {processor}) recorded on invoice {invoice.id}: "
            f"status={outcome.status}, remaining={outcome.balance_remaining}"
        )
        return invoice, outcome

    def get_payments(
        self, user: CurrentUser, client_id: Optional[str] = None, invoice_id: Optional[str] = None
    ):
        return self.repo.get_payments(self.db, user, client_id, invoice_id)

    # Export
    def export_invoices_csv(
        self, user: CurrentUser, client_id: Optional[str] = None, status: Optional[str] = None
    ) -> StreamingResponse:
        """Export invoices as CSV"""
        invoices = self.get_invoices(user, client_id, status)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "Invoice ID",
                "Client Name",
                "Status",
                "Total Amount",
                "Currency",
                "Period Start",
                "Period End",
            ]
        )
        for invoice in invoices:
            writer.writerow(
                [
                    invoice.id,
                    invoice.client.name if invoice.client else "",
                    invoice.status,
                    f"{invoice.total_amount:.2f}",
                    invoice.currency,
                    invoice.period_start.strftime("%Y-%m-%d"),
                    invoice.period_end.strftime("%Y-%m-%d"),
                ]
            )

        output.seek(0)
        filename = f"elderflow_invoices_{self.clock().strftime('%Y-%m-%d')}.csv"
        logger.info(f"📊 CSV export {filename} ({len(invoices)} invoices) for user {user.user_id}")

        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
