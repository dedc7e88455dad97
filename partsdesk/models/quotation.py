# partsdesk/models/quotation.py
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
from partsdesk.db.enums import QuotationStatus
from partsdesk.models.mixins.timestamp_mixin import TimestampMixin
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


class Quotation(Base, TimestampMixin):
    """
    Quotation document. Owns its QuotationItems.

    Invariants:
    - status in (confirmed, invoiced, sold) -> immutable except through conversion
    - invoiced is only reached through QuotationService.convert_to_invoice
    """

    __tablename__ = "quotations"
    __table_args__ = (
        CheckConstraint("subtotal > 0", name="ck_quotations_subtotal_positive"),
        CheckConstraint("total_amount > 0", name="ck_quotations_total_positive"),
        CheckConstraint(
            "tax_amount >= 0 AND discount_amount >= 0 AND shipping_amount >= 0",
            name="ck_quotations_amounts_non_negative",
        ),
    )

    # =========
    # 🔒 Identity
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Quotation UUID")
    quotation_number :Mapped[str] = mapped_column(String(100), unique=True, nullable=False, comment="Human-facing number")

    # =========
    # 👤 Customer
    # =========
    company_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("companies.id"), nullable=True)
    company = relationship("Company", lazy="joined")
    customer_name :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_email :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    customer_address :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # =========
    # 💰 Amounts
    # =========
    subtotal :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    tax_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    discount_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    shipping_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    total_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # =========
    # 📌 Status & lifecycle
    # =========
    status :Mapped[QuotationStatus] = mapped_column(
        Enum(QuotationStatus, name="quotation_status", create_constraint=True),
        nullable=False,
        default=QuotationStatus.draft,
    )
    valid_until :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_terms :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    confirmed_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    confirmed_at :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    invoiced_at :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    items :Mapped[List["QuotationItem"]] = relationship(
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Quotation id={self.id} number={self.quotation_number} status={self.status.value}>"


class QuotationItem(Base, TimestampMixin):
    __tablename__ = "quotation_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_quotation_items_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_quotation_items_unit_price_positive"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_quotation_items_discount_range"),
        CheckConstraint("total_price > 0", name="ck_quotation_items_total_positive"),
    )

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Quotation item UUID")
    quotation_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
    )
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Line order inside quotation")
    part_id :Mapped[str] = mapped_column(String(36), ForeignKey("parts.id"), nullable=False)
    part = relationship("Part", lazy="joined")

    quantity :Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    discount :Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"), comment="Percent 0-100")
    total_price :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    quotation :Mapped[Quotation] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<QuotationItem id={self.id} part_id={self.part_id} qty={self.quantity}>"
