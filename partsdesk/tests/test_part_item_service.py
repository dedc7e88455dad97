import pytest

from partsdesk.db.enums import AuditEntityType, PartItemStatus
from partsdesk.errors import AuthError, NotFoundError, ValidationError
from partsdesk.models.part_item import PartItem
from partsdesk.schemas.part_item import MAX_BULK_ITEMS


def _count(db) -> int:
    return db.query(PartItem).count()


# ======================================================
# ✍️ Create
# ======================================================

def test_create_item_defaults(db, part_item_service, part, actor):
    item = part_item_service.create_item(
        data={"partId": part.id, "barCode": "BC-0001", "location": "A1"},
        actor=actor,
    )
    db.commit()

    assert item.status == PartItemStatus.available
    assert item.condition.value == "new"
    assert item.added_by == actor.id
    assert item.part.part_number == "BRK-001"


def test_create_item_unknown_part(db, part_item_service, actor):
    with pytest.raises(ValidationError, match="Part not found"):
        part_item_service.create_item(data={"partId": "missing"}, actor=actor)
    assert _count(db) == 0


def test_create_item_unknown_supplier(part_item_service, part, actor):
    with pytest.raises(ValidationError, match="Supplier not found"):
        part_item_service.create_item(data={"partId": part.id, "supplierId": "nope"}, actor=actor)


def test_create_item_requires_actor(part_item_service, part):
    with pytest.raises(AuthError):
        part_item_service.create_item(data={"partId": part.id}, actor=None)


def test_duplicate_barcode_rejected(db, part_item_service, part, actor):
    part_item_service.create_item(data={"partId": part.id, "barCode": "BC-1"}, actor=actor)
    db.commit()

    with pytest.raises(ValidationError, match="Barcode already exists"):
        part_item_service.create_item(data={"partId": part.id, "barCode": "BC-1"}, actor=actor)


# ======================================================
# 📦 Bulk
# ======================================================

def test_bulk_create_inserts_all(db, part_item_service, part, actor, audit):
    payload = [{"partId": part.id, "barCode": f"BULK-{i}"} for i in range(5)]

    created = part_item_service.bulk_create(items=payload, actor=actor)
    db.commit()

    assert len(created) == 5
    assert _count(db) == 5
    logs = audit.list_for_entity(entity_type=AuditEntityType.PartItem, entity_id=created[0].id)
    assert [log.action.value for log in logs] == ["create"]


def test_bulk_create_over_limit_writes_nothing(db, part_item_service, part, actor):
    payload = [{"partId": part.id} for _ in range(MAX_BULK_ITEMS + 1)]

    with pytest.raises(ValidationError):
        part_item_service.bulk_create(items=payload, actor=actor)
    assert _count(db) == 0


def test_bulk_create_empty_rejected(part_item_service, actor):
    with pytest.raises(ValidationError):
        part_item_service.bulk_create(items=[], actor=actor)


@pytest.mark.parametrize("bad_entry", [
    {"partId": "missing"},
    {"status": "lost"},
    {"warrantyPeriod": -1},
    {"barCode": "DUP"},
])
def test_bulk_create_one_bad_entry_writes_nothing(db, part_item_service, part, actor, bad_entry):
    payload = [
        {"partId": part.id, "barCode": "DUP"},
        {"partId": part.id, "barCode": "OK-2"},
        dict({"partId": part.id}, **bad_entry),
    ]

    with pytest.raises(ValidationError):
        part_item_service.bulk_create(items=payload, actor=actor)
    assert _count(db) == 0


def test_bulk_create_barcode_taken_in_db(db, part_item_service, part, actor):
    part_item_service.create_item(data={"partId": part.id, "barCode": "TAKEN"}, actor=actor)
    db.commit()

    with pytest.raises(ValidationError, match="TAKEN"):
        part_item_service.bulk_create(
            items=[{"partId": part.id, "barCode": "FREE"}, {"partId": part.id, "barCode": "TAKEN"}],
            actor=actor,
        )
    assert _count(db) == 1


# ======================================================
# 🔍 Reads
# ======================================================

def test_barcode_lookup(db, part_item_service, part, actor):
    item = part_item_service.create_item(data={"partId": part.id, "barCode": "LOOK-1"}, actor=actor)
    db.commit()

    assert part_item_service.get_by_barcode("LOOK-1").id == item.id
    assert part_item_service.check_barcode("LOOK-1").id == item.id
    assert part_item_service.check_barcode("LOOK-2") is None


def test_list_items_filters(db, part_item_service, part, actor):
    part_item_service.bulk_create(
        items=[
            {"partId": part.id, "location": "Shelf A"},
            {"partId": part.id, "location": "Shelf B", "status": "reserved"},
            {"partId": part.id, "location": "Yard", "status": "damaged", "condition": "used"},
        ],
        actor=actor,
    )
    db.commit()

    assert len(part_item_service.list_items({"partId": part.id})) == 3
    assert len(part_item_service.list_items({"status": "reserved"})) == 1
    assert len(part_item_service.list_items({"condition": "used"})) == 1
    assert len(part_item_service.list_items({"location": "shelf"})) == 2
    assert len(part_item_service.list_items({"limit": "1", "orderBy": "addedOn"})) == 1


@pytest.mark.parametrize("filters", [{"status": "lost"}, {"condition": "broken"}, {"limit": "500"}])
def test_list_items_invalid_filters(part_item_service, filters):
    with pytest.raises(ValidationError):
        part_item_service.list_items(filters)


# ======================================================
# 🔁 Update
# ======================================================

def test_update_item_any_status(db, part_item_service, part, actor):
    item = part_item_service.create_item(data={"partId": part.id}, actor=actor)
    db.commit()

    for status in ("sold", "available", "damaged"):
        updated = part_item_service.update_item(patch={"id": item.id, "status": status}, actor=actor)
        assert updated.status.value == status
    assert updated.updated_by == actor.id


def test_update_item_barcode_conflict(db, part_item_service, part, actor):
    part_item_service.create_item(data={"partId": part.id, "barCode": "HELD"}, actor=actor)
    item = part_item_service.create_item(data={"partId": part.id, "barCode": "MINE"}, actor=actor)
    db.commit()

    with pytest.raises(ValidationError, match="HELD"):
        part_item_service.update_item(patch={"id": item.id, "barCode": "HELD"}, actor=actor)

    same = part_item_service.update_item(patch={"id": item.id, "barCode": "MINE"}, actor=actor)
    assert same.bar_code == "MINE"


def test_update_unknown_item(part_item_service, actor):
    with pytest.raises(NotFoundError):
        part_item_service.update_item(patch={"id": "missing", "notes": "x"}, actor=actor)


def test_update_requires_id(part_item_service, actor):
    with pytest.raises(ValidationError):
        part_item_service.update_item(patch={"notes": "x"}, actor=actor)


@pytest.mark.parametrize("field", ["status", "condition", "partId"])
def test_update_explicit_null_on_required_field_rejected(db, part_item_service, part, actor, field):
    item = part_item_service.create_item(data={"partId": part.id, "barCode": "NN-1"}, actor=actor)
    db.commit()

    with pytest.raises(ValidationError, match="cannot be null"):
        part_item_service.update_item(patch={"id": item.id, field: None}, actor=actor)

    db.rollback()
    db.refresh(item)
    assert item.status == PartItemStatus.available
    assert item.part_id == part.id


def test_update_nullable_field_can_be_cleared(db, part_item_service, part, actor):
    item = part_item_service.create_item(data={"partId": part.id, "location": "A1"}, actor=actor)

    updated = part_item_service.update_item(patch={"id": item.id, "location": None}, actor=actor)
    assert updated.location is None


# ======================================================
# 🔗 References
# ======================================================

def test_create_item_unknown_quotation(db, part_item_service, part, actor):
    with pytest.raises(ValidationError, match="Quotation not found"):
        part_item_service.create_item(data={"partId": part.id, "quotationId": "no-such-quotation"}, actor=actor)
    assert _count(db) == 0


def test_bulk_create_unknown_quotation_writes_nothing(db, part_item_service, part, actor):
    with pytest.raises(ValidationError, match="Quotation not found"):
        part_item_service.bulk_create(
            items=[{"partId": part.id}, {"partId": part.id, "quotationId": "no-such-quotation"}],
            actor=actor,
        )
    assert _count(db) == 0


def test_create_item_reserved_against_quotation(db, part_item_service, part, quotation, actor):
    item = part_item_service.create_item(
        data={"partId": part.id, "quotationId": quotation.id, "status": "reserved"},
        actor=actor,
    )
    assert item.quotation_id == quotation.id


@pytest.mark.parametrize("field,label", [("supplierId", "Supplier"), ("quotationId", "Quotation")])
def test_update_item_unknown_reference(db, part_item_service, part, actor, field, label):
    item = part_item_service.create_item(data={"partId": part.id}, actor=actor)
    db.commit()

    with pytest.raises(ValidationError, match=f"{label} not found"):
        part_item_service.update_item(patch={"id": item.id, field: "no-such-record"}, actor=actor)

    db.rollback()
    db.refresh(item)
    assert item.supplier_id is None
    assert item.quotation_id is None
