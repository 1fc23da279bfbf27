"""Tests for pricing activities into invoice line items."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.domain.billing.invoice_builder import (
    GENERIC_DESCRIPTION,
    activity_minutes,
    build_invoice_items,
    price_activity,
    round2,
)
from app.domain.billing.rates import BillingContext, resolve_billing_context
from app.exceptions import NoBillableActivitiesError, NoInvoiceableActivityError

START = datetime(2024, 3, 4, 9, 0)


def activity(duration=None, service_type=None, minutes=None, activity_id="act-1"):
    """Minimal activity stand-in. ``minutes`` sets the start/end window."""
    end = START + timedelta(minutes=minutes if minutes is not None else (duration or 0))
    return SimpleNamespace(
        id=activity_id,
        duration=duration,
        start_time=START,
        end_time=end,
        service_type=service_type,
    )


def service_type(rate_type, rate_amount, name="Service", type_id="st-1"):
    return SimpleNamespace(id=type_id, name=name, rate_type=rate_type, rate_amount=rate_amount)


NO_RULES = BillingContext(hourly_rate=150, min_duration=0, rounding="none")


class TestRound2:
    @pytest.mark.parametrize(
        "value,expected",
        [(1.005, 1.01), (2.675, 2.68), (131.25, 131.25), (0.125, 0.13), (-1.005, -1.01)],
    )
    def test_half_away_from_zero(self, value, expected):
        assert round2(value) == expected


class TestActivityMinutes:
    def test_uses_stored_duration(self):
        assert activity_minutes(activity(duration=40, minutes=90)) == 40

    def test_falls_back_to_time_range(self):
        assert activity_minutes(activity(duration=None, minutes=25)) == 25

    def test_zero_duration_falls_back_to_time_range(self):
        assert activity_minutes(activity(duration=0, minutes=12)) == 12

    def test_partial_minutes_round_half_up(self):
        record = activity(duration=None, minutes=0)
        record.end_time = START + timedelta(seconds=90)
        assert activity_minutes(record) == 2

    def test_missing_times_give_zero(self):
        record = activity(duration=None)
        record.end_time = None
        assert activity_minutes(record) == 0


class TestPriceActivity:
    def test_client_rate_and_org_rounding(self):
        context = resolve_billing_context({"hourlyRate": 175}, {"hourlyRate": 150, "rounding": "15m"})
        item = price_activity(activity(duration=52), context)

        assert item.quantity == 0.75
        assert item.unit_price == 175
        assert item.amount == 131.25
        assert item.description == GENERIC_DESCRIPTION
        assert item.service_type_id is None

    def test_flat_service_ignores_duration(self):
        item = price_activity(activity(duration=10, service_type=service_type("flat", 50)), NO_RULES)

        assert item.quantity == 1
        assert item.amount == 50.00
        assert item.unit_price == 50
        assert item.service_type_id == "st-1"

    def test_minimum_duration_without_rounding(self):
        context = BillingContext(hourly_rate=100, min_duration=30, rounding="none")
        item = price_activity(activity(duration=12), context)

        assert item.quantity == 0.5
        assert item.amount == 50.00

    def test_hourly_service_uses_its_own_rate_with_context_rounding(self):
        context = BillingContext(hourly_rate=150, min_duration=0, rounding="15m")
        item = price_activity(activity(duration=52, service_type=service_type("hourly", 120, name="Home Visit")), context)

        assert item.quantity == 0.75
        assert item.unit_price == 120
        assert item.amount == 90.00
        assert item.description == "Home Visit"

    def test_unrecognized_rate_type_is_billed_hourly(self):
        item = price_activity(activity(duration=30, service_type=service_type("weekly", 60)), NO_RULES)

        assert item.quantity == 0.5
        assert item.amount == 30.00

    def test_amount_is_rounded_per_item(self):
        # 10 minutes at 100/h = 16.666...
        item = price_activity(activity(duration=10), BillingContext(hourly_rate=100, min_duration=0, rounding="none"))
        assert item.amount == 16.67


class TestBuildInvoiceItems:
    def test_total_is_sum_of_rounded_items(self):
        context = BillingContext(hourly_rate=100, min_duration=0, rounding="none")
        draft = build_invoice_items(
            [activity(duration=10, activity_id="a"), activity(duration=10, activity_id="b")],
            context,
        )

        assert [i.amount for i in draft.items] == [16.67, 16.67]
        # Not round2(33.333...) = 33.33
        assert draft.total_amount == 33.34

    def test_mixed_services(self):
        draft = build_invoice_items(
            [
                activity(duration=10, service_type=service_type("flat", 50), activity_id="a"),
                activity(duration=60, activity_id="b"),
            ],
            NO_RULES,
        )
        assert len(draft.items) == 2
        assert draft.total_amount == 200.00

    def test_empty_input_is_rejected(self):
        with pytest.raises(NoBillableActivitiesError):
            build_invoice_items([], NO_RULES)

    def test_zero_amount_lines_are_dropped(self):
        context = BillingContext(hourly_rate=150, min_duration=0, rounding="15m")
        draft = build_invoice_items(
            [activity(duration=5, activity_id="short"), activity(duration=30, activity_id="long")],
            context,
        )
        assert [i.activity_id for i in draft.items] == ["long"]
        assert draft.total_amount == 75.00

    def test_all_zero_lines_is_an_error(self):
        context = BillingContext(hourly_rate=150, min_duration=0, rounding="15m")
        with pytest.raises(NoInvoiceableActivityError) as exc:
            build_invoice_items([activity(duration=5), activity(duration=0, minutes=0)], context)

        assert exc.value.details == {"activityCount": 2}

    def test_free_flat_service_is_dropped(self):
        with pytest.raises(NoInvoiceableActivityError):
            build_invoice_items([activity(duration=30, service_type=service_type("flat", 0))], NO_RULES)
