from datetime import timedelta

import pytest

from partsdesk.models.mixins.timestamp_mixin import utcnow

USER_EMAIL = "operator@example.com"


def _assert_envelope(response, status_code, status="Success"):
    body = response.get_json()
    assert response.status_code == status_code, body
    assert set(body) == {"status", "message", "data"}
    assert body["status"] == status
    return body["data"]


# ======================================================
# 🔐 Auth
# ======================================================

@pytest.mark.parametrize("method,path", [
    ("get", "/parts"),
    ("get", "/parts/items"),
    ("post", "/quotations"),
    ("get", "/quotations/statistics"),
    ("get", "/invoices"),
    ("post", "/invoices/some-id/payment"),
    ("get", "/companies"),
    ("get", "/auth/me"),
])
def test_protected_routes_require_login(anonymous_client, method, path):
    response = getattr(anonymous_client, method)(path, json={})
    _assert_envelope(response, 401, "Error")


def test_register_then_login(anonymous_client):
    payload = {
        "firstName": "Ana",
        "lastName": "Silva",
        "email": "Ana.Silva@Example.com",
        "password": "Secret123",
    }
    data = _assert_envelope(anonymous_client.post("/auth/register", json=payload), 201)
    assert data["email"] == "ana.silva@example.com"
    assert "password" not in data and "passwordHash" not in data

    _assert_envelope(anonymous_client.post("/auth/register", json=payload), 409, "Error")

    data = _assert_envelope(
        anonymous_client.post("/auth/login", json={"email": "ana.silva@example.com", "password": "Secret123"}),
        200,
    )
    assert data["fullName"] == "Ana Silva"


@pytest.mark.parametrize("password", ["short1A", "alllowercase1", "NoDigitsHere"])
def test_register_weak_password(anonymous_client, password):
    response = anonymous_client.post("/auth/register", json={
        "firstName": "Ana",
        "lastName": "Silva",
        "email": "ana@example.com",
        "password": password,
    })
    _assert_envelope(response, 400, "Error")


def test_login_wrong_password(anonymous_client, user):
    response = anonymous_client.post("/auth/login", json={"email": USER_EMAIL, "password": "Wrong1234"})
    _assert_envelope(response, 401, "Error")


def test_me_and_logout(client):
    data = _assert_envelope(client.get("/auth/me"), 200)
    assert data["email"] == USER_EMAIL

    _assert_envelope(client.post("/auth/logout"), 200)
    _assert_envelope(client.get("/auth/me"), 401, "Error")


def test_non_json_body_rejected(client):
    response = client.post("/quotations", data="not json", content_type="text/plain")
    _assert_envelope(response, 400, "Error")


# ======================================================
# 📦 Parts
# ======================================================

def test_create_and_list_parts(client):
    data = _assert_envelope(client.post("/parts", json={
        "partNumber": "OIL-5W30",
        "name": "Engine oil 5W-30",
        "category": "Fluids",
        "price": "29.90",
        "minimumStock": 1,
    }), 201)
    assert data["partNumber"] == "OIL-5W30"
    assert data["availableStock"] == 0

    page = _assert_envelope(client.get("/parts?searchText=oil"), 200)
    assert page["pagination"]["total"] == 1
    assert page["data"][0]["id"] == data["id"]

    low = _assert_envelope(client.get("/parts/low-stock"), 200)
    assert [p["id"] for p in low] == [data["id"]]


def test_unknown_part_is_404(client):
    _assert_envelope(client.get("/parts/does-not-exist"), 404, "Error")


def test_part_items_bulk_and_barcode_check(client, part):
    items = [{"partId": part.id, "barCode": f"RT-{i}"} for i in range(3)]
    data = _assert_envelope(client.post("/parts/items?bulk=true", json=items), 201)
    assert len(data) == 3

    found = _assert_envelope(client.get("/parts/items?checkBarcode=RT-1"), 200)
    assert found["exists"] is True
    assert found["item"]["barCode"] == "RT-1"

    missing = _assert_envelope(client.get("/parts/items?checkBarcode=RT-9"), 200)
    assert missing == {"exists": False, "item": None}

    too_many = [{"partId": part.id} for _ in range(101)]
    _assert_envelope(client.post("/parts/items?bulk=true", json=too_many), 400, "Error")
    assert len(_assert_envelope(client.get("/parts/items"), 200)) == 3


def test_part_item_update(client, part):
    created = _assert_envelope(client.post("/parts/items", json={"partId": part.id}), 201)

    updated = _assert_envelope(
        client.put("/parts/items", json={"id": created["id"], "status": "reserved"}),
        200,
    )
    assert updated["status"] == "reserved"


@pytest.mark.parametrize("method,path,body", [
    ("put", "/parts/items", {"status": None}),
    ("put", "/parts/items", {"supplierId": "no-such-company"}),
    ("put", "/parts/{part}", {"name": None}),
])
def test_part_updates_reject_bad_values_with_400(client, part, method, path, body):
    created = _assert_envelope(client.post("/parts/items", json={"partId": part.id}), 201)
    if path == "/parts/items":
        body = dict(body, id=created["id"])

    response = getattr(client, method)(path.format(part=part.id), json=body)
    _assert_envelope(response, 400, "Error")


# ======================================================
# 📝 Quotations
# ======================================================

def test_quotation_lifecycle(client, quotation_payload):
    quotation = _assert_envelope(client.post("/quotations", json=quotation_payload()), 201)
    assert quotation["status"] == "draft"
    assert quotation["totalAmount"] == 110.0
    assert quotation["items"][0]["quantity"] == 2

    _assert_envelope(client.patch(f"/quotations/{quotation['id']}", json={"bogus": 1}), 400, "Error")

    patched = _assert_envelope(
        client.patch(f"/quotations/{quotation['id']}", json={"notes": "Rush order"}),
        200,
    )
    assert patched["notes"] == "Rush order"

    invoice = _assert_envelope(client.post(f"/quotations/{quotation['id']}/confirm"), 201)
    assert invoice["quotationId"] == quotation["id"]
    assert invoice["paymentStatus"] == "pending"

    _assert_envelope(client.post(f"/quotations/{quotation['id']}/confirm"), 409, "Error")
    _assert_envelope(client.patch(f"/quotations/{quotation['id']}", json={"notes": "x"}), 409, "Error")

    fetched = _assert_envelope(client.get(f"/quotations/{quotation['id']}"), 200)
    assert fetched["status"] == "invoiced"


def test_quotation_list_envelope(client, quotation):
    page = _assert_envelope(client.get("/quotations?limit=5&status=draft"), 200)
    assert page["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}
    assert page["data"][0]["quotationNumber"] == quotation.quotation_number

    _assert_envelope(client.get("/quotations?limit=500"), 400, "Error")
    assert _assert_envelope(client.get("/quotations?minAmount=0"), 200)["pagination"]["total"] == 1


def test_quotation_statistics_and_expiring(client, quotation):
    stats = _assert_envelope(client.get("/quotations/statistics"), 200)
    assert stats[0]["status"] == "draft"

    expiring = _assert_envelope(client.get("/quotations/expiring?days=7"), 200)
    assert expiring == []


# ======================================================
# 🧾 Invoices
# ======================================================

def test_invoice_patch_ignores_unknown_keys(client, invoice):
    due = (utcnow() + timedelta(days=45)).replace(microsecond=0)

    data = _assert_envelope(
        client.patch(f"/invoices/{invoice.id}", json={"dueDate": due.isoformat(), "foo": "bar"}),
        200,
    )
    assert data["dueDate"].startswith(due.strftime("%Y-%m-%dT%H:%M:%S"))
    assert "foo" not in data
    assert data["totalAmount"] == 110.0

    _assert_envelope(client.patch(f"/invoices/{invoice.id}", json={"dueDate": None}), 400, "Error")
    assert _assert_envelope(client.get(f"/invoices/{invoice.id}"), 200)["dueDate"] == data["dueDate"]


def test_invoice_payment_flow(client, invoice):
    data = _assert_envelope(
        client.post(f"/invoices/{invoice.id}/payment", json={"amount": "60.00", "paymentMethod": "transfer"}),
        200,
    )
    assert data["paidAmount"] == 60.0
    assert data["balanceAmount"] == 50.0
    assert data["paymentStatus"] == "partial"

    _assert_envelope(client.post(f"/invoices/{invoice.id}/payment", json={"amount": "50.01"}), 400, "Error")
    _assert_envelope(client.post(f"/invoices/{invoice.id}/payment", json={"amount": "-1"}), 400, "Error")

    data = _assert_envelope(client.post(f"/invoices/{invoice.id}/payment", json={"amount": "50.00"}), 200)
    assert data["paymentStatus"] == "paid"
    assert len(data["payments"]) == 2

    revenue = _assert_envelope(client.get("/invoices/revenue?period=year"), 200)
    assert revenue[0]["revenue"] == 110.0


def test_invoice_list_and_statistics(client, invoice):
    page = _assert_envelope(client.get("/invoices?paymentStatus=pending"), 200)
    assert page["pagination"]["total"] == 1

    stats = _assert_envelope(client.get("/invoices/statistics"), 200)
    assert stats["overdueCount"] == 0
    assert stats["byStatus"][0]["paymentStatus"] == "pending"

    _assert_envelope(client.get("/invoices/overdue"), 200)
    _assert_envelope(client.get("/invoices/missing"), 404, "Error")


# ======================================================
# 🏢 Companies
# ======================================================

def test_company_create_and_fetch(client):
    created = _assert_envelope(client.post("/companies", json={
        "name": "Northwind Supply",
        "type": "supplier",
        "email": "sales@northwind.example",
        "website": "https://northwind.example",
        "creditLimit": "5000.00",
    }), 201)
    assert created["type"] == "supplier"

    fetched = _assert_envelope(client.get(f"/companies/{created['id']}"), 200)
    assert fetched["name"] == "Northwind Supply"

    listed = _assert_envelope(client.get("/companies?type=supplier"), 200)
    assert [c["id"] for c in listed] == [created["id"]]

    _assert_envelope(client.post("/companies", json={"name": "Bad", "type": "partner"}), 400, "Error")
