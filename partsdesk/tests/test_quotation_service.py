import re
from datetime import timedelta
from decimal import Decimal

import pytest

from partsdesk.db.enums import AuditEntityType, QuotationStatus
from partsdesk.errors import (
    AuthError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from partsdesk.models.invoice import Invoice
from partsdesk.models.mixins.timestamp_mixin import utcnow


# ======================================================
# ✍️ Create
# ======================================================

def test_create_quotation_defaults(db, quotation_service, quotation_payload, actor):
    quotation = quotation_service.create_quotation(request=quotation_payload(), actor=actor)

    assert quotation.status == QuotationStatus.draft
    assert quotation.created_by == actor.id
    assert re.fullmatch(r"QT-\d+", quotation.quotation_number)
    assert len(quotation.items) == 1
    assert quotation.items[0].position == 0
    assert quotation.total_amount == Decimal("110.00")

    remaining = quotation.valid_until - utcnow()
    assert timedelta(days=29) < remaining <= timedelta(days=30)


def test_supplied_quotation_number_kept(quotation_service, quotation_payload, actor):
    quotation = quotation_service.create_quotation(
        request=quotation_payload(quotationNumber="Q-2024-0007"),
        actor=actor,
    )
    assert quotation.quotation_number == "Q-2024-0007"


def test_duplicate_quotation_number_conflicts(db, quotation_service, quotation_payload, actor):
    quotation_service.create_quotation(request=quotation_payload(quotationNumber="Q-1"), actor=actor)
    db.commit()

    with pytest.raises(ConflictError):
        quotation_service.create_quotation(request=quotation_payload(quotationNumber="Q-1"), actor=actor)


def test_generated_numbers_are_unique(quotation_service, quotation_payload, actor):
    first = quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    second = quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    assert first.quotation_number != second.quotation_number


def test_empty_items_rejected(quotation_service, quotation_payload, actor):
    payload = quotation_payload()
    payload["items"] = []

    with pytest.raises(ValidationError):
        quotation_service.create_quotation(request=payload, actor=actor)


def test_unknown_part_rejected(quotation_service, quotation_payload, actor):
    payload = quotation_payload()
    payload["items"][0]["partId"] = "00000000-0000-0000-0000-000000000000"

    with pytest.raises(ValidationError, match="Part not found"):
        quotation_service.create_quotation(request=payload, actor=actor)


def test_inconsistent_totals_rejected(quotation_service, quotation_payload, actor):
    payload = quotation_payload()
    payload["quotation"]["totalAmount"] = "999.00"

    with pytest.raises(ValidationError, match="totalAmount"):
        quotation_service.create_quotation(request=payload, actor=actor)


def test_create_requires_actor(quotation_service, quotation_payload):
    with pytest.raises(AuthError):
        quotation_service.create_quotation(request=quotation_payload(), actor=None)


def test_create_writes_audit_log(db, quotation_service, quotation_payload, actor, audit):
    quotation = quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    db.flush()

    logs = audit.list_for_entity(entity_type=AuditEntityType.Quotation, entity_id=quotation.id)
    assert [log.action.value for log in logs] == ["create"]
    assert logs[0].operator_id == actor.id


# ======================================================
# 🔁 Update
# ======================================================

def test_update_allow_listed_fields(db, quotation_service, quotation, actor):
    updated = quotation_service.update_quotation(
        quotation_id=quotation.id,
        patch={"notes": "Call before delivery", "customerPhone": "555-0100"},
        actor=actor,
    )
    assert updated.notes == "Call before delivery"
    assert updated.customer_phone == "555-0100"
    assert updated.updated_by == actor.id


def test_update_unknown_field_rejected(quotation_service, quotation, actor):
    with pytest.raises(ValidationError):
        quotation_service.update_quotation(
            quotation_id=quotation.id,
            patch={"createdBy": "someone-else"},
            actor=actor,
        )


def test_update_unknown_quotation(quotation_service, actor):
    with pytest.raises(NotFoundError):
        quotation_service.update_quotation(quotation_id="missing", patch={"notes": "x"}, actor=actor)


@pytest.mark.parametrize("status", [QuotationStatus.confirmed, QuotationStatus.invoiced, QuotationStatus.sold])
@pytest.mark.parametrize("patch", [{"notes": "late edit"}, {"bogusField": 1}, {}, {"status": "draft"}])
def test_update_locked_quotation_always_invalid_state(db, quotation_service, quotation, actor, status, patch):
    quotation.status = status
    db.commit()

    with pytest.raises(InvalidStateError):
        quotation_service.update_quotation(quotation_id=quotation.id, patch=patch, actor=actor)


def test_update_status_follows_transition_table(db, quotation_service, quotation, actor):
    quotation_service.update_quotation(quotation_id=quotation.id, patch={"status": "pending"}, actor=actor)
    confirmed = quotation_service.update_quotation(
        quotation_id=quotation.id, patch={"status": "confirmed"}, actor=actor
    )
    assert confirmed.status == QuotationStatus.confirmed
    assert confirmed.confirmed_by == actor.id
    assert confirmed.confirmed_at is not None


def test_update_rejects_illegal_transition(quotation_service, quotation, actor):
    with pytest.raises(InvalidStateError):
        quotation_service.update_quotation(quotation_id=quotation.id, patch={"status": "confirmed"}, actor=actor)


@pytest.mark.parametrize("status", ["invoiced", "sold"])
def test_update_cannot_reach_conversion_statuses(quotation_service, quotation, actor, status):
    with pytest.raises(InvalidStateError):
        quotation_service.update_quotation(quotation_id=quotation.id, patch={"status": status}, actor=actor)


def test_update_amounts_rechecked(quotation_service, quotation, actor):
    with pytest.raises(ValidationError):
        quotation_service.update_quotation(quotation_id=quotation.id, patch={"taxAmount": "20.00"}, actor=actor)

    updated = quotation_service.update_quotation(
        quotation_id=quotation.id,
        patch={"taxAmount": "20.00", "totalAmount": "120.00"},
        actor=actor,
    )
    assert updated.total_amount == Decimal("120.00")


def test_transition_status_cancel(quotation_service, quotation, actor):
    cancelled = quotation_service.transition_status(quotation_id=quotation.id, target="cancelled", actor=actor)
    assert cancelled.status == QuotationStatus.cancelled

    with pytest.raises(InvalidStateError):
        quotation_service.transition_status(quotation_id=quotation.id, target="pending", actor=actor)


# ======================================================
# 🧾 Conversion
# ======================================================

def test_convert_copies_amounts_and_items(db, quotation_service, quotation, actor):
    invoice = quotation_service.convert_to_invoice(quotation_id=quotation.id, actor=actor)
    db.commit()

    assert re.fullmatch(r"INV-\d+", invoice.invoice_number)
    assert invoice.quotation_id == quotation.id
    assert invoice.total_amount == quotation.total_amount
    assert invoice.subtotal == quotation.subtotal
    assert invoice.tax_amount == quotation.tax_amount
    assert invoice.paid_amount == 0
    assert invoice.customer_name == "Jane Doe"
    assert [item.part_id for item in invoice.items] == [item.part_id for item in quotation.items]
    assert invoice.items[0].quotation_item_id == quotation.items[0].id

    db.refresh(quotation)
    assert quotation.status == QuotationStatus.invoiced
    assert quotation.invoiced_at is not None

    remaining = invoice.due_date - utcnow()
    assert timedelta(days=29) < remaining <= timedelta(days=30)


def test_convert_twice_creates_one_invoice(db, quotation_service, quotation, actor):
    quotation_service.convert_to_invoice(quotation_id=quotation.id, actor=actor)
    db.commit()

    with pytest.raises(InvalidStateError):
        quotation_service.convert_to_invoice(quotation_id=quotation.id, actor=actor)
    db.rollback()

    assert db.query(Invoice).filter(Invoice.quotation_id == quotation.id).count() == 1


@pytest.mark.parametrize("status", [QuotationStatus.cancelled, QuotationStatus.expired, QuotationStatus.sold])
def test_convert_terminal_quotation_rejected(db, quotation_service, quotation, actor, status):
    quotation.status = status
    db.commit()

    with pytest.raises(InvalidStateError):
        quotation_service.convert_to_invoice(quotation_id=quotation.id, actor=actor)


def test_convert_unknown_quotation(quotation_service, actor):
    with pytest.raises(NotFoundError):
        quotation_service.convert_to_invoice(quotation_id="missing", actor=actor)


def test_converted_quotation_is_locked(db, quotation_service, invoice, quotation, actor):
    with pytest.raises(InvalidStateError):
        quotation_service.update_quotation(quotation_id=quotation.id, patch={"notes": "x"}, actor=actor)


# ======================================================
# 🔍 Reads
# ======================================================

def test_list_filters_and_paginates(db, quotation_service, quotation_payload, actor):
    for number in ("Q-A", "Q-B", "Q-C"):
        quotation_service.create_quotation(request=quotation_payload(quotationNumber=number), actor=actor)
    db.commit()

    rows, filters, total = quotation_service.list_quotations(
        {"limit": "2", "orderBy": "quotationNumber", "orderDirection": "asc"}
    )
    assert total == 3
    assert [q.quotation_number for q in rows] == ["Q-A", "Q-B"]
    assert filters.page == 1

    rows, _, total = quotation_service.list_quotations({"search": "Q-C"})
    assert total == 1

    rows, _, total = quotation_service.list_quotations({"status": "pending"})
    assert total == 0


def test_list_rejects_unknown_status(quotation_service):
    with pytest.raises(ValidationError):
        quotation_service.list_quotations({"status": "archived"})


def test_expiring_soon_only_pending(db, quotation_service, quotation_payload, actor):
    soon = (utcnow() + timedelta(days=3)).isoformat()
    later = (utcnow() + timedelta(days=20)).isoformat()
    q_soon = quotation_service.create_quotation(request=quotation_payload(validUntil=soon), actor=actor)
    q_later = quotation_service.create_quotation(request=quotation_payload(validUntil=later), actor=actor)
    q_draft = quotation_service.create_quotation(request=quotation_payload(validUntil=soon), actor=actor)
    for q in (q_soon, q_later):
        quotation_service.transition_status(quotation_id=q.id, target="pending", actor=actor)
    db.commit()

    expiring = quotation_service.get_expiring_soon(days=7)
    assert [q.id for q in expiring] == [q_soon.id]
    assert q_draft.id not in [q.id for q in expiring]


def test_statistics_grouped_by_status(db, quotation_service, quotation_payload, actor):
    first = quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    quotation_service.transition_status(quotation_id=first.id, target="cancelled", actor=actor)
    db.commit()

    stats = {row["status"]: row for row in quotation_service.get_statistics()}
    assert stats["draft"]["count"] == 1
    assert stats["cancelled"]["count"] == 1
    assert Decimal(str(stats["draft"]["total_amount"])) == Decimal("110")


def test_list_amount_bounds_accept_zero(quotation_service, quotation):
    assert quotation_service.list_quotations({"minAmount": "0"})[2] == 1
    assert quotation_service.list_quotations({"minAmount": "0", "maxAmount": "0"})[2] == 0

    with pytest.raises(ValidationError):
        quotation_service.list_quotations({"maxAmount": "-0.01"})
