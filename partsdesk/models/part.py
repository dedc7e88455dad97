# partsdesk/models/part.py
from sqlalchemy import (
    String,
    Numeric,
    Integer,
    Boolean,
    Text,
    JSON,
    ForeignKey,
    CheckConstraint,
)
from partsdesk.db.base import Base
from partsdesk.models.mixins.timestamp_mixin import TimestampMixin
from sqlalchemy.orm import Mapped, mapped_column
from decimal import Decimal
from typing import Any, Dict, List, Optional


class Part(Base, TimestampMixin):
    """
    Catalog definition of a part (price, stock policy).
    Physical units live in PartItem.
    """

    __tablename__ = "parts"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_parts_price_positive"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_parts_discount_range"),
        CheckConstraint("minimum_stock >= 0", name="ck_parts_minimum_stock"),
    )

    # =========
    # 🔒 Identity
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Part UUID")
    part_number :Mapped[str] = mapped_column(String(100), unique=True, nullable=False, comment="Catalog part number")

    # =========
    # 🔤 Description
    # =========
    name :Mapped[str] = mapped_column(String(255), nullable=False)
    description :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category :Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    compatible_models :Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    specifications :Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    images :Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # =========
    # 💰 Pricing
    # =========
    price :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, comment="Selling price")
    discount :Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"), comment="Default discount percent")
    cost_price :Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    # =========
    # 📐 Physical
    # =========
    weight :Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3), nullable=True)
    dimensions :Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # =========
    # 📦 Stock policy
    # =========
    minimum_stock :Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_by :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    def __repr__(self) -> str:
        return f"<Part id={self.id} part_number={self.part_number} price={self.price}>"
