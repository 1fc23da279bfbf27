"""Invoice repository - Database operations for invoices, items and payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ...auth import CurrentUser
from ...models import Client, Organization
from ...models_invoice import Invoice, InvoiceItem, Payment
from ...permissions import scope_to_owned_clients
from ..billing.invoice_builder import LineItem
from ..billing.ledger import PAYMENT_COMPLETED


class InvoiceRepository:
    """Repository for invoice database operations. Writes are flushed, the service commits."""

    @staticmethod
    def get_organization(db: Session, org_id: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == org_id).first()

    @staticmethod
    def get_invoice(db: Session, invoice_id: str, org_id: Optional[str] = None) -> Optional[Invoice]:
        """
        Get an invoice with its client, items and payments.
        Without org_id the lookup is not tenant-scoped (payment gateway callbacks only).
        """
        query = db.query(Invoice).options(
            joinedload(Invoice.client),
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
        )
        query = query.filter(Invoice.id == invoice_id)
        if org_id is not None:
            query = query.filter(Invoice.org_id == org_id)
        return query.first()

    @staticmethod
    def find_invoice_for_period(
        db: Session, client_id: str, period_start: datetime, period_end: datetime
    ) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(
                Invoice.client_id == client_id,
                Invoice.period_start == period_start,
                Invoice.period_end == period_end,
            )
            .first()
        )

    @staticmethod
    def get_invoices(
        db: Session,
        user: CurrentUser,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Invoice]:
        """Invoices visible to the caller, newest period first"""
        query = (
            db.query(Invoice)
            .join(Client, Invoice.client_id == Client.id)
            .options(joinedload(Invoice.client))
            .filter(Invoice.org_id == user.org_id)
        )
        query = scope_to_owned_clients(query, user)

        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        if status:
            query = query.filter(Invoice.status == status)

        return query.order_by(Invoice.period_end.desc()).all()

    @staticmethod
    def get_overdue_invoices(db: Session, user: CurrentUser, cutoff: datetime) -> list[Invoice]:
        """Invoices marked overdue, plus sent invoices whose period ended before the cutoff"""
        query = (
            db.query(Invoice)
            .join(Client, Invoice.client_id == Client.id)
            .options(joinedload(Invoice.client))
            .filter(
                Invoice.org_id == user.org_id,
                or_(
                    Invoice.status == "overdue",
                    and_(Invoice.status == "sent", Invoice.period_end < cutoff),
                ),
            )
        )
        query = scope_to_owned_clients(query, user)
        return query.order_by(Invoice.period_end.asc()).all()

    @staticmethod
    def create_invoice(db: Session, items: list[LineItem], **invoice_data) -> Invoice:
        """Create an invoice and its items in the current transaction"""
        invoice = Invoice(**invoice_data)
        db.add(invoice)
        db.flush()

        for position, item in enumerate(items):
            db.add(
                InvoiceItem(
                    invoice_id=invoice.id,
                    activity_id=item.activity_id,
                    service_type_id=item.service_type_id,
                    position=position,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=item.amount,
                )
            )
        db.flush()
        return invoice

    @staticmethod
    def update_invoice(db: Session, invoice: Invoice, **updates) -> Invoice:
        for key, value in updates.items():
            if hasattr(invoice, key):
                setattr(invoice, key, value)
        db.flush()
        return invoice

    # Payment Methods
    @staticmethod
    def get_completed_payments(db: Session, invoice_id: str) -> list[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.invoice_id == invoice_id, Payment.status == PAYMENT_COMPLETED)
            .all()
        )

    @staticmethod
    def find_payment_by_reference(db: Session, invoice_id: str, reference: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.invoice_id == invoice_id, Payment.reference == reference)
            .first()
        )

    @staticmethod
    def create_payment(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def get_payments(
        db: Session,
        user: CurrentUser,
        client_id: Optional[str] = None,
        invoice_id: Optional[str] = None,
    ) -> list[Payment]:
        """Payments visible to the caller, most recent first"""
        query = (
            db.query(Payment)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .join(Client, Invoice.client_id == Client.id)
            .filter(Payment.org_id == user.org_id)
        )
        query = scope_to_owned_clients(query, user)

        if invoice_id:
            query = query.filter(Payment.invoice_id == invoice_id)
        if client_id:
            query = query.filter(Invoice.client_id == client_id)

        return query.order_by(Payment.paid_at.desc()).all()
