from decimal import Decimal

import pytest

USER_EMAIL = "operator@example.com"
USER_PASSWORD = "Operator123"


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """每个测试一个全新的 SQLite 文件库"""
    from partsdesk.db.init_db import init_db
    from partsdesk.db.session import reset_engine

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'partsdesk_test.db'}")
    reset_engine()
    init_db()
    yield
    reset_engine()


@pytest.fixture
def db():
    from partsdesk.db.session import get_session

    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def audit(db):
    from partsdesk.services.audit_log_service import AuditLogService
    return AuditLogService(db)


@pytest.fixture
def user(db):
    from partsdesk.services.user_service import UserService

    created = UserService(db).create_user(
        first_name="Test",
        last_name="Operator",
        email=USER_EMAIL,
        password=USER_PASSWORD,
    )
    db.commit()
    return created


@pytest.fixture
def actor(user):
    from partsdesk.services.actor import Actor
    return Actor(id=user.id, role="user")


@pytest.fixture
def part_service(db, audit):
    from partsdesk.services.part_service import PartService
    return PartService(db, audit)


@pytest.fixture
def part_item_service(db, audit, part_service):
    from partsdesk.services.part_item_service import PartItemService
    return PartItemService(db, audit, part_service)


@pytest.fixture
def quotation_service(db, audit, part_service):
    from partsdesk.services.quotation_service import QuotationService
    return QuotationService(db, audit, part_service)


@pytest.fixture
def invoice_service(db, audit):
    from partsdesk.services.invoice_service import InvoiceService
    return InvoiceService(db, audit)


@pytest.fixture
def part(db, part_service, actor):
    from partsdesk.schemas.part import PartIn

    created = part_service.create_part(
        data=PartIn(
            part_number="BRK-001",
            name="Brake pad set",
            category="Brakes",
            brand="Acme",
            price=Decimal("50.00"),
            minimum_stock=2,
        ),
        actor=actor,
    )
    db.commit()
    return created


@pytest.fixture
def quotation_payload(part):
    """
    生成合法的报价单请求体（金额自洽），可覆盖 header 字段
    """
    def build(quantity=2, unit_price="50.00", discount="0", tax="10.00", shipping="0", **header):
        line = Decimal(quantity) * Decimal(unit_price) * (Decimal("100") - Decimal(discount)) / Decimal("100")
        line = line.quantize(Decimal("0.01"))
        total = line + Decimal(tax) + Decimal(shipping)
        quotation = {
            "customerName": "Jane Doe",
            "customerEmail": "jane@example.com",
            "subtotal": str(line),
            "taxAmount": tax,
            "discountAmount": "0",
            "shippingAmount": shipping,
            "totalAmount": str(total),
        }
        quotation.update(header)
        return {
            "quotation": quotation,
            "items": [
                {
                    "partId": part.id,
                    "quantity": quantity,
                    "unitPrice": unit_price,
                    "discount": discount,
                    "totalPrice": str(line),
                }
            ],
        }

    return build


@pytest.fixture
def quotation(db, quotation_service, quotation_payload, actor):
    created = quotation_service.create_quotation(request=quotation_payload(), actor=actor)
    db.commit()
    return created


@pytest.fixture
def invoice(db, quotation_service, quotation, actor):
    created = quotation_service.convert_to_invoice(quotation_id=quotation.id, actor=actor)
    db.commit()
    return created


@pytest.fixture
def app(tmp_path):
    from partsdesk.app_factory import create_app

    flask_app = create_app({
        "TESTING": True,
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
    })
    return flask_app


@pytest.fixture
def anonymous_client(app):
    return app.test_client()


@pytest.fixture
def client(app, user):
    test_client = app.test_client()
    response = test_client.post("/auth/login", json={"email": USER_EMAIL, "password": USER_PASSWORD})
    assert response.status_code == 200, response.get_json()
    return test_client
