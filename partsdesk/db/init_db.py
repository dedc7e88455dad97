from partsdesk.db.session import get_engine
from partsdesk.db.base import Base
#-------------------导入所有表，注册到 Base.metadata-----------------------
from partsdesk.models.user import User, Role  # noqa: F401
from partsdesk.models.company import Company  # noqa: F401
from partsdesk.models.part import Part  # noqa: F401
from partsdesk.models.part_item import PartItem  # noqa: F401
from partsdesk.models.quotation import Quotation, QuotationItem  # noqa: F401
from partsdesk.models.invoice import Invoice, InvoiceItem, Payment  # noqa: F401
from partsdesk.models.audit_log import AuditLog  # noqa: F401


def init_db():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
