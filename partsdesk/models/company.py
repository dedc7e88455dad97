# partsdesk/models/company.py
from sqlalchemy import String, Boolean, Numeric, Text, Enum
from partsdesk.db.base import Base
from partsdesk.db.enums import CompanyType
from partsdesk.models.mixins.timestamp_mixin import TimestampMixin
from sqlalchemy.orm import Mapped, mapped_column
from decimal import Decimal
from typing import Optional


class Company(Base, TimestampMixin):
    """
    Customer and/or supplier.
    Referenced by quotations, invoices and supplied part items.
    """

    __tablename__ = "companies"

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Company UUID")
    name :Mapped[str] = mapped_column(String(255), nullable=False, comment="Company name")
    type :Mapped[CompanyType] = mapped_column(
        Enum(CompanyType, name="company_type", create_constraint=True),
        nullable=False,
        comment="customer / supplier / both",
    )
    logo :Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # =========
    # ☎️ Contact
    # =========
    email :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone_number :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fax_number :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    website :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tin :Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Tax identification number")
    registration_number :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # =========
    # 🏠 Address
    # =========
    address_line1 :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_line2 :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # =========
    # 🏦 Bank details
    # =========
    bank_name :Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_number :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    routing_number :Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    swift_code :Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # =========
    # 💰 Commercial terms
    # =========
    credit_limit :Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    payment_terms :Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tax_rate :Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    is_active :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes :Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name} type={self.type.value}>"
