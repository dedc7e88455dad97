# partsdesk/db/enums.py
import enum

# Quotation related enums
class QuotationStatus(enum.Enum):
    draft = "draft"
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    expired = "expired"
    invoiced = "invoiced"
    sold = "sold"   # 已履约成交的终态别名，系统本身不产生


# Invoice related enums
class PaymentStatus(enum.Enum):
    pending = "pending"
    partial = "partial"
    paid = "paid"
    overdue = "overdue"


# PartItem related enums
class PartItemStatus(enum.Enum):
    available = "available"
    sold = "sold"
    damaged = "damaged"
    reserved = "reserved"


class PartItemCondition(enum.Enum):
    new = "new"
    refurbished = "refurbished"
    used = "used"


# Company related enums
class CompanyType(enum.Enum):
    customer = "customer"
    supplier = "supplier"
    both = "both"


# AuditLog related enums
class AuditEntityType(enum.Enum):
    User = "user"
    Company = "company"
    Part = "part"
    PartItem = "part_item"
    Quotation = "quotation"
    Invoice = "invoice"


class AuditAction(enum.Enum):
    create = "create"
    update = "update"
    confirm = "confirm"
    system = "system"
