# partsdesk/models/part_item.py
from sqlalchemy import (
    String,
    Numeric,
    Integer,
    DateTime,
    Enum,
    Text,
    ForeignKey,
    CheckConstraint,
)
from partsdesk.db.base import Base
from partsdesk.db.enums import PartItemStatus, PartItemCondition
from partsdesk.models.mixins.timestamp_mixin import utcnow
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from decimal import Decimal
from typing import Optional


class PartItem(Base):
    """
    Physical (serialized or lot-tracked) unit of a Part.
    May be reserved for / sold against a quotation.
    """

    __tablename__ = "part_items"
    __table_args__ = (
        CheckConstraint("warranty_period IS NULL OR warranty_period >= 0", name="ck_part_items_warranty"),
    )

    # =========
    # 🔒 Identity & ownership
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Part item UUID")
    part_id :Mapped[str] = mapped_column(String(36), ForeignKey("parts.id"), nullable=False, comment="Owner part")
    part = relationship("Part", lazy="joined")

    # =========
    # 🏷 Identification
    # =========
    bar_code :Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    serial_number :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # =========
    # 📍 Storage
    # =========
    location :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shelve_location :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # =========
    # 🚚 Procurement
    # =========
    supplier_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("companies.id"), nullable=True)
    purchase_price :Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    purchase_date :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expiry_date :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    warranty_period :Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Warranty in days")

    # =========
    # 🔁 Caller-driven state
    # =========
    condition :Mapped[PartItemCondition] = mapped_column(
        Enum(PartItemCondition, name="part_item_condition", create_constraint=True),
        nullable=False,
        default=PartItemCondition.new,
    )
    status :Mapped[PartItemStatus] = mapped_column(
        Enum(PartItemStatus, name="part_item_status", create_constraint=True),
        nullable=False,
        default=PartItemStatus.available,
    )
    quotation_id :Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("quotations.id"),
        nullable=True,
        comment="Quotation this unit is reserved / sold against",
    )
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # =========
    # ⏱ Bookkeeping
    # =========
    added_by :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    added_on :Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_on :Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PartItem id={self.id} "
            f"part_id={self.part_id} "
            f"status={self.status.value}>"
        )
