"""
Invoice builder - prices a batch of activities into invoice line items.

Pure computation: activities come in as objects exposing ``id``,
``duration``, ``start_time``, ``end_time`` and ``service_type`` (``None`` or
an object with ``id``, ``name``, ``rate_type`` and ``rate_amount``), the
priced lines go out as plain dataclasses. Persisting them is the caller's
job.

Money is rounded to cents per line, and the invoice total is the sum of the
rounded lines. Historical invoices depend on that order, so it must not be
changed to a single rounding of the unrounded sum.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from ...exceptions import NoBillableActivitiesError, NoInvoiceableActivityError
from .rates import BillingContext, adjust_minutes, round_half_up

RATE_TYPE_HOURLY = "hourly"
RATE_TYPE_FLAT = "flat"

GENERIC_DESCRIPTION = "Care Management Services"

_CENT = Decimal("0.01")


def round2(value: float) -> float:
    """Round half away from zero to 2 decimal places"""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass
class LineItem:
    activity_id: Optional[str]
    description: str
    quantity: float
    unit_price: float
    amount: float
    service_type_id: Optional[str] = None


@dataclass
class InvoiceDraft:
    items: list[LineItem] = field(default_factory=list)
    total_amount: float = 0.0


def activity_minutes(activity: Any) -> float:
    """Stored duration when set, otherwise the length of the start/end window in whole minutes"""
    if activity.duration:
        return activity.duration
    if not activity.start_time or not activity.end_time:
        return 0
    seconds = (activity.end_time - activity.start_time).total_seconds()
    return max(0, round_half_up(seconds / 60))


def price_activity(activity: Any, context: BillingContext) -> LineItem:
    """Price one activity against the resolved billing context"""
    service_type = activity.service_type

    if service_type is None:
        minutes = adjust_minutes(activity_minutes(activity), context.min_duration, context.rounding)
        quantity = minutes / 60
        unit_price = context.hourly_rate
        return LineItem(
            activity_id=activity.id,
            description=GENERIC_DESCRIPTION,
            quantity=quantity,
            unit_price=unit_price,
            amount=round2(quantity * unit_price),
        )

    unit_price = service_type.rate_amount or 0

    if service_type.rate_type == RATE_TYPE_FLAT:
        # Flat = one unit at the flat rate, duration does not matter
        quantity = 1
        amount = round2(unit_price)
    else:
        # Hourly, and any unrecognized rate type is billed as hourly.
        # Service types carry no minimum/rounding of their own.
        minutes = adjust_minutes(activity_minutes(activity), context.min_duration, context.rounding)
        quantity = minutes / 60
        amount = round2(quantity * unit_price)

    return LineItem(
        activity_id=activity.id,
        description=service_type.name,
        quantity=quantity,
        unit_price=unit_price,
        amount=amount,
        service_type_id=service_type.id,
    )


def build_invoice_items(activities: Iterable[Any], context: BillingContext) -> InvoiceDraft:
    """
    Price every activity and total the result.

    Raises:
        NoBillableActivitiesError: ``activities`` is empty
        NoInvoiceableActivityError: every line priced at zero or less
    """
    activities = list(activities)
    if not activities:
        raise NoBillableActivitiesError()

    items = []
    for activity in activities:
        item = price_activity(activity, context)
        if item.amount <= 0:
            continue
        items.append(item)

    if not items:
        raise NoInvoiceableActivityError(details={"activityCount": len(activities)})

    total_amount = round2(sum(item.amount for item in items))
    return InvoiceDraft(items=items, total_amount=total_amount)
