import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from partsdesk.db.enums import CompanyType
from partsdesk.models.company import Company
from partsdesk.schemas.base_dto import BaseDTO, Email, money

WEBSITE_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


class CompanyIn(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, max_length=255)
    type: CompanyType
    logo: Optional[str] = Field(default=None, max_length=500)

    email: Optional[Email] = None
    phone_number: Optional[str] = Field(default=None, max_length=20)
    fax_number: Optional[str] = Field(default=None, max_length=20)
    website: Optional[str] = Field(default=None, max_length=255)
    tin: Optional[str] = Field(default=None, max_length=50)
    registration_number: Optional[str] = Field(default=None, max_length=100)

    address_line1: Optional[str] = Field(default=None, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)

    bank_name: Optional[str] = Field(default=None, max_length=255)
    account_number: Optional[str] = Field(default=None, max_length=100)
    routing_number: Optional[str] = Field(default=None, max_length=50)
    swift_code: Optional[str] = Field(default=None, max_length=20)

    credit_limit: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    payment_terms: Optional[str] = Field(default=None, max_length=100)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    is_active: bool = True
    notes: Optional[str] = None

    @field_validator("website")
    @classmethod
    def check_website(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not WEBSITE_PATTERN.match(value):
            raise ValueError("Invalid website URL")
        return value


class CompanyFilters(BaseDTO):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    type: Optional[CompanyType] = None
    is_active: Optional[bool] = None
    city: Optional[str] = None
    country: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class CompanyDTO(BaseDTO):
    id: str
    name: str
    type: str
    logo: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    fax_number: Optional[str] = None
    website: Optional[str] = None
    tin: Optional[str] = None
    registration_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    swift_code: Optional[str] = None
    credit_limit: Optional[float] = None
    payment_terms: Optional[str] = None
    tax_rate: Optional[float] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_model(cls, company: Company) -> "CompanyDTO":
        data = {
            column.key: getattr(company, column.key)
            for column in Company.__table__.columns
        }
        data["type"] = company.type.value
        data["credit_limit"] = money(company.credit_limit)
        data["tax_rate"] = money(company.tax_rate)
        return cls(**data)
