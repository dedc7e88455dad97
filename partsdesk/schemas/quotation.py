from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field
from typing_extensions import Annotated

from partsdesk.db.enums import QuotationStatus
from partsdesk.models.quotation import Quotation, QuotationItem
from partsdesk.schemas.base_dto import (
    BaseDTO,
    Email,
    ListQuery,
    NonNegativeMoney,
    Percent,
    PositiveMoney,
    SnakeCase,
    UtcDateTime,
    money,
)
from partsdesk.schemas.part import PartSummaryDTO


# ======================================================
# 📥 Input
# ======================================================

class QuotationItemIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    part_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(gt=0)
    unit_price: PositiveMoney
    discount: Percent = Decimal("0")
    total_price: PositiveMoney
    notes: Optional[str] = None


class QuotationIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    quotation_number: Optional[str] = Field(default=None, max_length=100)
    company_id: Optional[str] = Field(default=None, max_length=36)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[Email] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    customer_address: Optional[str] = None

    subtotal: PositiveMoney
    tax_amount: NonNegativeMoney = Decimal("0")
    discount_amount: NonNegativeMoney = Decimal("0")
    shipping_amount: NonNegativeMoney = Decimal("0")
    total_amount: PositiveMoney

    valid_until: Optional[UtcDateTime] = None
    payment_terms: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class CreateQuotationRequest(BaseDTO):
    """POST /quotations body: {"quotation": {...}, "items": [...]}"""
    quotation: QuotationIn
    items: List[QuotationItemIn] = Field(min_length=1)


class QuotationPatch(BaseDTO):
    """
    Allow-listed quotation update. Any other key is rejected.
    """
    model_config = ConfigDict(extra="forbid")

    company_id: Optional[str] = Field(default=None, max_length=36)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[Email] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    customer_address: Optional[str] = None

    subtotal: Optional[PositiveMoney] = None
    tax_amount: Optional[NonNegativeMoney] = None
    discount_amount: Optional[NonNegativeMoney] = None
    shipping_amount: Optional[NonNegativeMoney] = None
    total_amount: Optional[PositiveMoney] = None

    valid_until: Optional[UtcDateTime] = None
    payment_terms: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    status: Optional[QuotationStatus] = None


QuotationOrderBy = Literal["created_at", "updated_at", "total_amount", "quotation_number"]


class QuotationFilters(ListQuery):
    status: Optional[QuotationStatus] = None
    company_id: Optional[str] = None
    customer_email: Optional[str] = None
    created_by: Optional[str] = None
    date_from: Optional[UtcDateTime] = None
    date_to: Optional[UtcDateTime] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    search: Optional[str] = None
    order_by: Annotated[QuotationOrderBy, SnakeCase] = "created_at"


class QuotationStatisticsQuery(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    date_from: Optional[UtcDateTime] = None
    date_to: Optional[UtcDateTime] = None
    company_id: Optional[str] = None


class ExpiringQuery(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    days: int = Field(default=7, ge=1, le=365)


# ======================================================
# 📤 Output
# ======================================================

class QuotationItemDTO(BaseDTO):
    id: str
    position: int
    part_id: str
    part: Optional[PartSummaryDTO] = None
    quantity: int
    unit_price: float
    discount: float
    total_price: float
    notes: Optional[str] = None

    @classmethod
    def from_orm_model(cls, item: QuotationItem) -> "QuotationItemDTO":
        return cls(
            id=item.id,
            position=item.position,
            part_id=item.part_id,
            part=PartSummaryDTO.from_orm_model(item.part) if item.part else None,
            quantity=item.quantity,
            unit_price=money(item.unit_price),
            discount=money(item.discount),
            total_price=money(item.total_price),
            notes=item.notes,
        )


class QuotationDTO(BaseDTO):
    id: str
    quotation_number: str
    status: str

    company_id: Optional[str] = None
    company_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None

    subtotal: float
    tax_amount: float
    discount_amount: float
    shipping_amount: float
    total_amount: float

    valid_until: Optional[datetime] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    created_by: str
    updated_by: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    invoiced_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    items: List[QuotationItemDTO] = []

    @classmethod
    def from_orm_model(cls, quotation: Quotation) -> "QuotationDTO":
        return cls(
            id=quotation.id,
            quotation_number=quotation.quotation_number,
            status=quotation.status.value,
            company_id=quotation.company_id,
            company_name=quotation.company.name if quotation.company else None,
            customer_name=quotation.customer_name,
            customer_email=quotation.customer_email,
            customer_phone=quotation.customer_phone,
            customer_address=quotation.customer_address,
            subtotal=money(quotation.subtotal),
            tax_amount=money(quotation.tax_amount),
            discount_amount=money(quotation.discount_amount),
            shipping_amount=money(quotation.shipping_amount),
            total_amount=money(quotation.total_amount),
            valid_until=quotation.valid_until,
            payment_terms=quotation.payment_terms,
            notes=quotation.notes,
            internal_notes=quotation.internal_notes,
            created_by=quotation.created_by,
            updated_by=quotation.updated_by,
            confirmed_by=quotation.confirmed_by,
            confirmed_at=quotation.confirmed_at,
            invoiced_at=quotation.invoiced_at,
            created_at=quotation.created_at,
            updated_at=quotation.updated_at,
            items=[QuotationItemDTO.from_orm_model(item) for item in quotation.items],
        )


class QuotationStatusStatDTO(BaseDTO):
    status: str
    count: int
    total_amount: float
