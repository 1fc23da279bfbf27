"""
Invoice, invoice item and payment models for client billing
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class Invoice(Base):
    """One bill for a client over a period. total_amount is fixed when the invoice is generated."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("client_id", "period_start", "period_end", name="uq_invoice_client_period"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)

    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)

    # Status
    status = Column(String(20), default="draft", nullable=False)  # draft, sent, paid, overdue

    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)

    # Dates
    sent_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Audit
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice", order_by="InvoiceItem.position"
    )
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.paid_at")


class InvoiceItem(Base):
    """One priced line, usually derived from a single activity"""

    __tablename__ = "invoice_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=False, index=True)
    # Null for lines not derived from an activity
    activity_id = Column(
        String(36), ForeignKey("activities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    service_type_id = Column(String(36), ForeignKey("service_types.id"), nullable=True)
    position = Column(Integer, default=0, nullable=False)

    description = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="items")


class Payment(Base):
    """Append-only money received against one invoice"""

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("invoice_id", "reference", name="uq_payment_invoice_reference"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=False, index=True)

    status = Column(String(20), default="completed", nullable=False)
    amount = Column(Float, nullable=False)
    method = Column(String(50), nullable=False)  # check, ach, card, cash...
    processor = Column(String(20), default="manual", nullable=False)  # manual, stripe
    # External reference (check number, Stripe checkout session id). Unique per invoice when set.
    reference = Column(String(255), nullable=True, index=True)

    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="payments")
