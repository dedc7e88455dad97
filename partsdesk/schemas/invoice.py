from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field
from typing_extensions import Annotated

from partsdesk.db.enums import PaymentStatus
from partsdesk.models.invoice import Invoice, InvoiceItem, Payment
from partsdesk.schemas.base_dto import (
    BaseDTO,
    ListQuery,
    PatchDTO,
    PositiveMoney,
    SnakeCase,
    UtcDateTime,
    money,
)
from partsdesk.schemas.part import PartSummaryDTO
from partsdesk.services.document_rules import derive_payment_status


# ======================================================
# 📥 Input
# ======================================================

class InvoicePatch(PatchDTO):
    """
    Only dueDate and notes are editable; every other key is dropped.
    """
    model_config = ConfigDict(extra="ignore")
    non_nullable = ("due_date",)

    due_date: Optional[UtcDateTime] = None
    notes: Optional[str] = None


class PaymentIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    amount: PositiveMoney
    payment_method: Optional[str] = Field(default=None, max_length=50)
    payment_reference: Optional[str] = Field(default=None, max_length=100)
    payment_date: Optional[UtcDateTime] = None
    notes: Optional[str] = None


InvoiceOrderBy = Literal["created_at", "updated_at", "total_amount", "invoice_number"]


class InvoiceFilters(ListQuery):
    payment_status: Optional[PaymentStatus] = None
    company_id: Optional[str] = None
    quotation_id: Optional[str] = None
    customer_email: Optional[str] = None
    created_by: Optional[str] = None
    date_from: Optional[UtcDateTime] = None
    date_to: Optional[UtcDateTime] = None
    due_date_from: Optional[UtcDateTime] = None
    due_date_to: Optional[UtcDateTime] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    search: Optional[str] = None
    order_by: Annotated[InvoiceOrderBy, SnakeCase] = "created_at"


class InvoiceStatisticsQuery(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    date_from: Optional[UtcDateTime] = None
    date_to: Optional[UtcDateTime] = None
    company_id: Optional[str] = None


class RevenueQuery(InvoiceStatisticsQuery):
    period: Literal["day", "week", "month", "year"] = "month"


# ======================================================
# 📤 Output
# ======================================================

class InvoiceItemDTO(BaseDTO):
    id: str
    position: int
    quotation_item_id: Optional[str] = None
    part_id: str
    part: Optional[PartSummaryDTO] = None
    quantity: int
    unit_price: float
    discount: float
    total_price: float
    serial_numbers: List[str] = []
    notes: Optional[str] = None

    @classmethod
    def from_orm_model(cls, item: InvoiceItem) -> "InvoiceItemDTO":
        return cls(
            id=item.id,
            position=item.position,
            quotation_item_id=item.quotation_item_id,
            part_id=item.part_id,
            part=PartSummaryDTO.from_orm_model(item.part) if item.part else None,
            quantity=item.quantity,
            unit_price=money(item.unit_price),
            discount=money(item.discount),
            total_price=money(item.total_price),
            serial_numbers=item.serial_numbers or [],
            notes=item.notes,
        )


class PaymentDTO(BaseDTO):
    id: str
    amount: float
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_date: datetime
    notes: Optional[str] = None
    recorded_by: str
    created_at: datetime

    @classmethod
    def from_orm_model(cls, payment: Payment) -> "PaymentDTO":
        return cls(
            id=payment.id,
            amount=money(payment.amount),
            payment_method=payment.payment_method,
            payment_reference=payment.payment_reference,
            payment_date=payment.payment_date,
            notes=payment.notes,
            recorded_by=payment.recorded_by,
            created_at=payment.created_at,
        )


class InvoiceQuotationDTO(BaseDTO):
    id: str
    quotation_number: str
    status: str


class InvoiceDTO(BaseDTO):
    id: str
    invoice_number: str
    quotation_id: str
    quotation: Optional[InvoiceQuotationDTO] = None

    company_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None

    subtotal: float
    tax_amount: float
    discount_amount: float
    shipping_amount: float
    total_amount: float
    paid_amount: float
    balance_amount: float
    payment_status: str

    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    items: List[InvoiceItemDTO] = []
    payments: List[PaymentDTO] = []

    @classmethod
    def from_orm_model(cls, invoice: Invoice) -> "InvoiceDTO":
        source = invoice.quotation
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            quotation_id=invoice.quotation_id,
            quotation=InvoiceQuotationDTO(
                id=source.id,
                quotation_number=source.quotation_number,
                status=source.status.value,
            ) if source else None,
            company_id=invoice.company_id,
            customer_name=invoice.customer_name,
            customer_email=invoice.customer_email,
            subtotal=money(invoice.subtotal),
            tax_amount=money(invoice.tax_amount),
            discount_amount=money(invoice.discount_amount),
            shipping_amount=money(invoice.shipping_amount),
            total_amount=money(invoice.total_amount),
            paid_amount=money(invoice.paid_amount),
            balance_amount=money(invoice.balance_amount),
            payment_status=derive_payment_status(
                invoice.total_amount, invoice.paid_amount, invoice.due_date
            ).value,
            due_date=invoice.due_date,
            notes=invoice.notes,
            created_by=invoice.created_by,
            updated_by=invoice.updated_by,
            created_at=invoice.created_at,
            updated_at=invoice.updated_at,
            items=[InvoiceItemDTO.from_orm_model(item) for item in invoice.items],
            payments=[PaymentDTO.from_orm_model(p) for p in invoice.payments],
        )


class PaymentStatusStatDTO(BaseDTO):
    payment_status: str
    count: int
    total_amount: float
    paid_amount: float
    balance_amount: float


class InvoiceStatisticsDTO(BaseDTO):
    by_status: List[PaymentStatusStatDTO]
    overdue_count: int
    overdue_amount: float


class RevenuePointDTO(BaseDTO):
    period: str
    invoice_count: int
    revenue: float
