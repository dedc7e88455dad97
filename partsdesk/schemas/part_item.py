from datetime import datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, RootModel
from typing_extensions import Annotated

from partsdesk.db.enums import PartItemCondition, PartItemStatus
from partsdesk.models.part_item import PartItem
from partsdesk.schemas.base_dto import (
    BaseDTO,
    NonNegativeMoney,
    PatchDTO,
    SnakeCase,
    UtcDateTime,
    money,
)
from partsdesk.schemas.part import PartSummaryDTO

MAX_BULK_ITEMS = 100


class PartItemIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    part_id: str = Field(min_length=1, max_length=36)
    bar_code: Optional[str] = Field(default=None, min_length=1, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)
    shelve_location: Optional[str] = Field(default=None, max_length=100)
    supplier_id: Optional[str] = Field(default=None, max_length=36)
    purchase_price: Optional[NonNegativeMoney] = None
    purchase_date: Optional[UtcDateTime] = None
    expiry_date: Optional[UtcDateTime] = None
    warranty_period: Optional[int] = Field(default=None, ge=0)
    condition: PartItemCondition = PartItemCondition.new
    status: PartItemStatus = PartItemStatus.available
    quotation_id: Optional[str] = Field(default=None, max_length=36)
    notes: Optional[str] = None


class PartItemBulkIn(RootModel[List[PartItemIn]]):
    root: List[PartItemIn] = Field(min_length=1, max_length=MAX_BULK_ITEMS)


class PartItemUpdate(PatchDTO):
    """PUT /parts/items body: id plus any allow-listed field."""
    model_config = ConfigDict(extra="ignore")
    non_nullable = ("part_id", "status", "condition")

    id: str = Field(min_length=1, max_length=36)
    part_id: Optional[str] = Field(default=None, min_length=1, max_length=36)
    bar_code: Optional[str] = Field(default=None, min_length=1, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)
    shelve_location: Optional[str] = Field(default=None, max_length=100)
    supplier_id: Optional[str] = Field(default=None, max_length=36)
    purchase_price: Optional[NonNegativeMoney] = None
    purchase_date: Optional[UtcDateTime] = None
    expiry_date: Optional[UtcDateTime] = None
    warranty_period: Optional[int] = Field(default=None, ge=0)
    condition: Optional[PartItemCondition] = None
    status: Optional[PartItemStatus] = None
    quotation_id: Optional[str] = Field(default=None, max_length=36)
    notes: Optional[str] = None


PartItemOrderBy = Literal["added_on", "updated_on", "purchase_date", "expiry_date"]


class PartItemFilters(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    part_id: Optional[str] = None
    supplier_id: Optional[str] = None
    status: Optional[PartItemStatus] = None
    condition: Optional[PartItemCondition] = None
    location: Optional[str] = None
    bar_code: Optional[str] = None
    serial_number: Optional[str] = None
    search: Optional[str] = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    order_by: Annotated[PartItemOrderBy, SnakeCase] = "added_on"
    order_direction: str = Field(default="desc", pattern="^(asc|desc)$")


class PartItemDTO(BaseDTO):
    id: str
    part_id: str
    part: Optional[PartSummaryDTO] = None
    bar_code: Optional[str] = None
    serial_number: Optional[str] = None
    location: Optional[str] = None
    shelve_location: Optional[str] = None
    supplier_id: Optional[str] = None
    purchase_price: Optional[float] = None
    purchase_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    warranty_period: Optional[int] = None
    condition: str
    status: str
    quotation_id: Optional[str] = None
    notes: Optional[str] = None
    added_by: str
    updated_by: Optional[str] = None
    added_on: datetime
    updated_on: datetime

    @classmethod
    def from_orm_model(cls, item: PartItem) -> "PartItemDTO":
        return cls(
            id=item.id,
            part_id=item.part_id,
            part=PartSummaryDTO.from_orm_model(item.part) if item.part else None,
            bar_code=item.bar_code,
            serial_number=item.serial_number,
            location=item.location,
            shelve_location=item.shelve_location,
            supplier_id=item.supplier_id,
            purchase_price=money(item.purchase_price),
            purchase_date=item.purchase_date,
            expiry_date=item.expiry_date,
            warranty_period=item.warranty_period,
            condition=item.condition.value,
            status=item.status.value,
            quotation_id=item.quotation_id,
            notes=item.notes,
            added_by=item.added_by,
            updated_by=item.updated_by,
            added_on=item.added_on,
            updated_on=item.updated_on,
        )
