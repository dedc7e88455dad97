from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from partsdesk.models.part import Part
from partsdesk.schemas.base_dto import BaseDTO, NonNegativeMoney, PatchDTO, Percent, PositiveMoney, money


class PartIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    part_number: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    category: str = Field(min_length=1, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    compatible_models: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    images: Optional[List[str]] = None

    price: PositiveMoney
    discount: Percent = Decimal("0")
    cost_price: Optional[NonNegativeMoney] = None
    weight: Optional[Decimal] = Field(default=None, ge=0)
    dimensions: Optional[Dict[str, Any]] = None
    minimum_stock: int = Field(default=0, ge=0)


class PartUpdate(PatchDTO):
    """Allow-listed part update; unknown keys are dropped."""
    model_config = ConfigDict(extra="ignore")
    non_nullable = ("part_number", "name", "category", "price", "discount", "minimum_stock", "is_active")

    part_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    compatible_models: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    images: Optional[List[str]] = None

    price: Optional[PositiveMoney] = None
    discount: Optional[Percent] = None
    cost_price: Optional[NonNegativeMoney] = None
    weight: Optional[Decimal] = Field(default=None, ge=0)
    dimensions: Optional[Dict[str, Any]] = None
    minimum_stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class PartFilters(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    search_text: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    is_active: Optional[bool] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)


class PartSummaryDTO(BaseDTO):
    id: str
    part_number: str
    name: str
    brand: Optional[str] = None
    category: str
    price: float

    @classmethod
    def from_orm_model(cls, part: Part) -> "PartSummaryDTO":
        return cls(
            id=part.id,
            part_number=part.part_number,
            name=part.name,
            brand=part.brand,
            category=part.category,
            price=money(part.price),
        )


class PartDTO(BaseDTO):
    id: str
    part_number: str
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    compatible_models: List[str] = []
    specifications: Dict[str, Any] = {}
    images: List[str] = []
    price: float
    discount: float
    cost_price: Optional[float] = None
    weight: Optional[float] = None
    dimensions: Optional[Dict[str, Any]] = None
    minimum_stock: int
    is_active: bool
    available_stock: Optional[int] = None
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_model(cls, part: Part, available_stock: Optional[int] = None) -> "PartDTO":
        return cls(
            id=part.id,
            part_number=part.part_number,
            name=part.name,
            description=part.description,
            brand=part.brand,
            category=part.category,
            subcategory=part.subcategory,
            compatible_models=part.compatible_models or [],
            specifications=part.specifications or {},
            images=part.images or [],
            price=money(part.price),
            discount=money(part.discount),
            cost_price=money(part.cost_price),
            weight=float(part.weight) if part.weight is not None else None,
            dimensions=part.dimensions,
            minimum_stock=part.minimum_stock,
            is_active=part.is_active,
            available_stock=available_stock,
            created_by=part.created_by,
            updated_by=part.updated_by,
            created_at=part.created_at,
            updated_at=part.updated_at,
        )
