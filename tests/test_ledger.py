"""Tests for payment settlement and the invoice status machine."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.domain.billing import ledger
from app.exceptions import InvalidPaymentInputError, InvoiceStateError

NOW = datetime(2024, 4, 10, 12, 0)


def payment(amount, status="completed"):
    return SimpleNamespace(amount=amount, status=status)


class TestValidatePayment:
    @pytest.mark.parametrize("amount", [0, -5, None, "100", True, float("nan"), float("inf")])
    def test_rejects_bad_amounts(self, amount):
        with pytest.raises(InvalidPaymentInputError) as exc:
            ledger.validate_payment(amount, "check")
        assert exc.value.details == [{"path": "amount", "message": "Invalid payment amount"}]

    @pytest.mark.parametrize("method", [None, "", "   ", 42])
    def test_rejects_missing_method(self, method):
        with pytest.raises(InvalidPaymentInputError) as exc:
            ledger.validate_payment(10, method)
        assert exc.value.details == [{"path": "method", "message": "Payment method required"}]

    def test_accepts_valid_payment(self):
        ledger.validate_payment(0.01, "ach")


def test_total_paid_counts_completed_payments_only():
    payments = [payment(120), payment(50, status="refunded"), payment(30.25)]
    assert ledger.total_paid(payments) == 150.25


class TestSettle:
    def test_partial_then_full_then_overpayment(self):
        payments = [payment(120.00)]
        first = ledger.settle("sent", None, 200.00, payments, NOW)
        assert first.status == "sent"
        assert first.paid_at is None
        assert first.balance_remaining == 80.00

        payments.append(payment(80.00))
        second = ledger.settle(first.status, first.paid_at, 200.00, payments, NOW)
        assert second.status == "paid"
        assert second.paid_at == NOW
        assert second.balance_remaining == 0

        later = NOW + timedelta(days=3)
        payments.append(payment(10.00))
        third = ledger.settle(second.status, second.paid_at, 200.00, payments, later)
        assert third.status == "paid"
        assert third.paid_at == NOW
        assert third.remaining == -10.00
        assert third.balance_remaining == 0

    def test_partial_payment_leaves_draft_alone_by_default(self):
        outcome = ledger.settle("draft", None, 200.00, [payment(120.00)], NOW)
        assert outcome.status == "draft"

    def test_partial_payment_promotes_draft_when_asked(self):
        outcome = ledger.settle("draft", None, 200.00, [payment(120.00)], NOW, promote_draft=True)
        assert outcome.status == "sent"
        assert outcome.paid_at is None

    def test_full_payment_on_draft_marks_paid(self):
        outcome = ledger.settle("draft", None, 200.00, [payment(200.00)], NOW)
        assert outcome.status == "paid"
        assert outcome.paid_at == NOW

    def test_overdue_invoice_stays_overdue_until_paid(self):
        partial = ledger.settle("overdue", None, 200.00, [payment(50.00)], NOW, promote_draft=True)
        assert partial.status == "overdue"

        full = ledger.settle("overdue", None, 200.00, [payment(50.00), payment(150.00)], NOW)
        assert full.status == "paid"

    def test_float_noise_does_not_leave_a_cent_owing(self):
        outcome = ledger.settle("sent", None, 0.3, [payment(0.1), payment(0.2)], NOW)
        assert outcome.status == "paid"


class TestApprove:
    def test_draft_becomes_sent(self):
        assert ledger.approve("draft", None, NOW) == ("sent", NOW)

    def test_sent_is_unchanged(self):
        sent_at = NOW - timedelta(days=1)
        assert ledger.approve("sent", sent_at, NOW) == ("sent", sent_at)

    @pytest.mark.parametrize("status", ["paid", "overdue"])
    def test_cannot_approve_settled_or_overdue(self, status):
        with pytest.raises(InvoiceStateError):
            ledger.approve(status, NOW, NOW)


class TestIsOverdue:
    def test_sent_invoice_past_threshold(self):
        assert ledger.is_overdue("sent", NOW - timedelta(days=15), NOW)

    def test_sent_invoice_within_threshold(self):
        assert not ledger.is_overdue("sent", NOW - timedelta(days=13), NOW)

    @pytest.mark.parametrize("status", ["draft", "paid"])
    def test_only_sent_invoices_age(self, status):
        assert not ledger.is_overdue(status, NOW - timedelta(days=60), NOW)

    def test_stored_overdue_status(self):
        assert ledger.is_overdue("overdue", NOW, NOW)

    def test_custom_threshold(self):
        assert ledger.is_overdue("sent", NOW - timedelta(days=8), NOW, after_days=7)
