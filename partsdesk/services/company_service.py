# partsdesk/services/company_service.py
from typing import List
from uuid import uuid4

from sqlalchemy.orm import Session

from partsdesk.db.enums import AuditEntityType
from partsdesk.errors import NotFoundError
from partsdesk.models.company import Company
from partsdesk.schemas.company import CompanyFilters, CompanyIn
from partsdesk.services.actor import Actor, require_actor
from partsdesk.services.audit_log_service import AuditLogService


class CompanyService:
    """Customers and suppliers."""

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    def list_companies(self, filters: CompanyFilters) -> List[Company]:
        query = self.db.query(Company)

        if filters.name:
            query = query.filter(Company.name.ilike(f"%{filters.name}%"))
        if filters.type is not None:
            query = query.filter(Company.type == filters.type)
        if filters.is_active is not None:
            query = query.filter(Company.is_active == filters.is_active)
        if filters.city:
            query = query.filter(Company.city.ilike(f"%{filters.city}%"))
        if filters.country:
            query = query.filter(Company.country.ilike(f"%{filters.country}%"))

        return (
            query.order_by(Company.name)
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )

    def get_by_id(self, company_id: str) -> Company:
        company = self.db.get(Company, company_id)
        if not company:
            raise NotFoundError("Company not found")
        return company

    def create_company(self, *, data: CompanyIn, actor: Actor) -> Company:
        '''
        创建公司（客户 / 供应商）

        :param data: 已校验的公司字段
        :type data: CompanyIn
        :param actor: 操作者
        :type actor: Actor
        '''
        actor = require_actor(actor)
        company = Company(id=str(uuid4()), **data.model_dump())
        self.db.add(company)
        self.db.flush()

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Company,
            entity_id=company.id,
            operator_id=actor.id,
        )
        return company
