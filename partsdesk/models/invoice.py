# partsdesk/models/invoice.py
from sqlalchemy import (
    String,
    Numeric,
    Integer,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    CheckConstraint,
)
from partsdesk.db.base import Base
from partsdesk.models.mixins.timestamp_mixin import TimestampMixin, utcnow
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


class Invoice(Base, TimestampMixin):
    """
    Invoice derived from exactly one Quotation.
    Customer data and amounts are copied at conversion time.

    Invariants:
    - 0 <= paid_amount <= total_amount
    - paid_amount only ever increases (see InvoiceService.record_payment)
    - payment_status is derived, never stored
    """

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_invoices_total_positive"),
        CheckConstraint("paid_amount >= 0", name="ck_invoices_paid_non_negative"),
        CheckConstraint("paid_amount <= total_amount", name="ck_invoices_paid_not_above_total"),
    )

    # =========
    # 🔒 Identity & source
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Invoice UUID")
    invoice_number :Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    quotation_id :Mapped[str] = mapped_column(
        String(36),
        ForeignKey("quotations.id"),
        unique=True,
        nullable=False,
        comment="Source quotation, at most one invoice per quotation",
    )
    quotation = relationship("Quotation", lazy="joined")

    # =========
    # 👤 Denormalized customer
    # =========
    company_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("companies.id"), nullable=True)
    customer_name :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_email :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # =========
    # 💰 Amounts snapshot
    # =========
    subtotal :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    tax_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    discount_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    shipping_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    total_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    paid_amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    # =========
    # ✍️ Editable (dueDate / notes only)
    # =========
    due_date :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    items :Mapped[List["InvoiceItem"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
        lazy="selectin",
    )
    payments :Mapped[List["Payment"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.created_at",
        lazy="selectin",
    )

    @property
    def balance_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount

    def __repr__(self) -> str:
        return (
            f"<Invoice id={self.id} number={self.invoice_number} "
            f"total={self.total_amount} paid={self.paid_amount}>"
        )


class InvoiceItem(Base, TimestampMixin):
    __tablename__ = "invoice_items"

    id :Mapped[str] = mapped_column(String(36), primary_key=True)
    invoice_id :Mapped[str] = mapped_column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    quotation_item_id :Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("quotation_items.id"), nullable=True)
    position :Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_id :Mapped[str] = mapped_column(String(36), ForeignKey("parts.id"), nullable=False)
    part = relationship("Part", lazy="joined")

    quantity :Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    discount :Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    total_price :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    serial_numbers :Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    invoice :Mapped[Invoice] = relationship(back_populates="items")


class Payment(Base):
    """
    One accepted payment. Append-only; Invoice.paid_amount is the sum of these.
    """

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id :Mapped[str] = mapped_column(String(36), primary_key=True)
    invoice_id :Mapped[str] = mapped_column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    amount :Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_method :Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_reference :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_date :Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by :Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    created_at :Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    invoice :Mapped[Invoice] = relationship(back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment id={self.id} invoice_id={self.invoice_id} amount={self.amount}>"
