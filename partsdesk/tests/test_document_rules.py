from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from partsdesk.db.enums import PaymentStatus, QuotationStatus
from partsdesk.errors import InvalidStateError, ValidationError
from partsdesk.models.mixins.timestamp_mixin import utcnow
from partsdesk.services.document_rules import (
    CONVERTIBLE_QUOTATION_STATUSES,
    can_transition,
    check_quotation_totals,
    derive_payment_status,
    ensure_transition,
    line_total,
)


# ======================================================
# 💰 Payment status
# ======================================================

def test_payment_status_pending_when_nothing_paid_and_not_due():
    future = utcnow() + timedelta(days=5)
    assert derive_payment_status(Decimal("100"), Decimal("0"), future) == PaymentStatus.pending


def test_payment_status_partial():
    future = utcnow() + timedelta(days=5)
    assert derive_payment_status(Decimal("100"), Decimal("40"), future) == PaymentStatus.partial


def test_payment_status_paid_even_when_past_due():
    past = utcnow() - timedelta(days=5)
    assert derive_payment_status(Decimal("100"), Decimal("100"), past) == PaymentStatus.paid


def test_payment_status_overdue_beats_partial():
    past = utcnow() - timedelta(days=1)
    assert derive_payment_status(Decimal("100"), Decimal("0"), past) == PaymentStatus.overdue
    assert derive_payment_status(Decimal("100"), Decimal("40"), past) == PaymentStatus.overdue


def test_payment_status_without_due_date_never_overdue():
    assert derive_payment_status(Decimal("100"), Decimal("0"), None) == PaymentStatus.pending


# ======================================================
# 📌 Transitions
# ======================================================

@pytest.mark.parametrize("current,target", [
    (QuotationStatus.draft, QuotationStatus.pending),
    (QuotationStatus.draft, QuotationStatus.cancelled),
    (QuotationStatus.pending, QuotationStatus.confirmed),
    (QuotationStatus.pending, QuotationStatus.expired),
    (QuotationStatus.confirmed, QuotationStatus.invoiced),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (QuotationStatus.draft, QuotationStatus.confirmed),
    (QuotationStatus.confirmed, QuotationStatus.pending),
    (QuotationStatus.invoiced, QuotationStatus.draft),
    (QuotationStatus.cancelled, QuotationStatus.pending),
    (QuotationStatus.expired, QuotationStatus.pending),
    (QuotationStatus.sold, QuotationStatus.invoiced),
])
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStateError):
        ensure_transition(current, target)


def test_same_status_is_not_a_transition():
    with pytest.raises(InvalidStateError):
        ensure_transition(QuotationStatus.draft, QuotationStatus.draft)


def test_convertible_statuses():
    assert CONVERTIBLE_QUOTATION_STATUSES == {
        QuotationStatus.draft,
        QuotationStatus.pending,
        QuotationStatus.confirmed,
    }


# ======================================================
# 🧮 Totals
# ======================================================

def _item(quantity, unit_price, discount, total_price):
    return SimpleNamespace(
        quantity=quantity,
        unit_price=Decimal(unit_price),
        discount=Decimal(discount),
        total_price=Decimal(total_price),
    )


def test_line_total_applies_percent_discount():
    assert line_total(3, Decimal("19.99"), Decimal("10")) == Decimal("53.97")


def test_consistent_totals_pass():
    check_quotation_totals(
        items=[_item(2, "50.00", "0", "100.00"), _item(1, "20.00", "50", "10.00")],
        subtotal=Decimal("110.00"),
        tax_amount=Decimal("11.00"),
        discount_amount=Decimal("5.00"),
        shipping_amount=Decimal("4.00"),
        total_amount=Decimal("120.00"),
    )


def test_wrong_item_total_rejected():
    with pytest.raises(ValidationError, match="items.0.totalPrice"):
        check_quotation_totals(
            items=[_item(2, "50.00", "0", "90.00")],
            subtotal=Decimal("90.00"),
            tax_amount=Decimal("0"),
            discount_amount=Decimal("0"),
            shipping_amount=Decimal("0"),
            total_amount=Decimal("90.00"),
        )


def test_wrong_document_total_rejected():
    with pytest.raises(ValidationError, match="totalAmount"):
        check_quotation_totals(
            items=[_item(2, "50.00", "0", "100.00")],
            subtotal=Decimal("100.00"),
            tax_amount=Decimal("10.00"),
            discount_amount=Decimal("0"),
            shipping_amount=Decimal("0"),
            total_amount=Decimal("100.00"),
        )


def test_rounding_within_one_cent_accepted():
    check_quotation_totals(
        items=[_item(3, "33.33", "0", "100.00")],
        subtotal=Decimal("100.00"),
        tax_amount=Decimal("0"),
        discount_amount=Decimal("0"),
        shipping_amount=Decimal("0"),
        total_amount=Decimal("100.00"),
    )
