"""
Payment ledger and invoice status machine.

    draft --approve--> sent --payments cover total--> paid

``overdue`` is only ever assigned from outside (PATCH /invoices/{id});
``is_overdue`` is the reporting rule and never changes stored status.

Everything here is pure: callers pass the current invoice state, the
payments and ``now``, and persist the returned outcome.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from ...exceptions import InvalidPaymentInputError, InvoiceStateError
from .invoice_builder import round2

STATUS_DRAFT = "draft"
STATUS_SENT = "sent"
STATUS_PAID = "paid"
STATUS_OVERDUE = "overdue"
INVOICE_STATUSES = (STATUS_DRAFT, STATUS_SENT, STATUS_PAID, STATUS_OVERDUE)

PAYMENT_COMPLETED = "completed"

DEFAULT_OVERDUE_AFTER_DAYS = 14


@dataclass(frozen=True)
class LedgerOutcome:
    status: str
    paid_at: Optional[datetime]
    total_paid: float
    remaining: float

    @property
    def balance_remaining(self) -> float:
        """What the client still owes. Overpayment reports 0, never a negative balance."""
        return max(0.0, self.remaining)


def validate_payment(amount: Any, method: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount) or amount <= 0:
        raise InvalidPaymentInputError.for_field("amount", "Invalid payment amount")
    if not isinstance(method, str) or not method.strip():
        raise InvalidPaymentInputError.for_field("method", "Payment method required")


def total_paid(payments: Iterable[Any]) -> float:
    """Sum of completed payments"""
    return round2(sum((p.amount or 0) for p in payments if p.status == PAYMENT_COMPLETED))


def settle(
    status: str,
    paid_at: Optional[datetime],
    total_amount: float,
    payments: Iterable[Any],
    now: datetime,
    promote_draft: bool = False,
) -> LedgerOutcome:
    """
    Recompute an invoice's status after a payment has been appended.

    ``payments`` must already include the new payment. ``paid_at`` is only
    stamped the first time the invoice becomes fully paid. With
    ``promote_draft`` a partially paid draft moves to sent.
    """
    paid = total_paid(payments)
    remaining = round2((total_amount or 0) - paid)

    new_status = status
    new_paid_at = paid_at
    if remaining <= 0:
        new_status = STATUS_PAID
        if new_paid_at is None:
            new_paid_at = now
    elif promote_draft and status == STATUS_DRAFT:
        new_status = STATUS_SENT

    return LedgerOutcome(status=new_status, paid_at=new_paid_at, total_paid=paid, remaining=remaining)


def approve(status: str, sent_at: Optional[datetime], now: datetime) -> tuple[str, Optional[datetime]]:
    """Admin approval. Returns the new (status, sent_at)."""
    if status == STATUS_DRAFT:
        return STATUS_SENT, now
    if status == STATUS_SENT:
        return status, sent_at
    raise InvoiceStateError(f"Cannot approve an invoice that is already {status}")


def overdue_cutoff(now: datetime, after_days: int = DEFAULT_OVERDUE_AFTER_DAYS) -> datetime:
    return now - timedelta(days=after_days)


def is_overdue(
    status: str,
    period_end: Optional[datetime],
    now: datetime,
    after_days: int = DEFAULT_OVERDUE_AFTER_DAYS,
) -> bool:
    if status == STATUS_OVERDUE:
        return True
    if status != STATUS_SENT or period_end is None:
        return False
    return period_end < overdue_cutoff(now, after_days)
