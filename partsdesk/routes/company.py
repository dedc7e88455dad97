# partsdesk/routes/company.py
from flask import Blueprint

from partsdesk.routes.common import api_response, json_body, query_args, require_login, resolve_actor, unit_of_work
from partsdesk.schemas.base_dto import parse_input
from partsdesk.schemas.company import CompanyDTO, CompanyFilters, CompanyIn
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.company_service import CompanyService

company_bp = Blueprint('company', __name__, url_prefix='/companies')


@company_bp.route('', methods=['GET'])
def list_companies():
    """公司列表"""
    check = require_login()
    if check:
        return check

    filters = parse_input(CompanyFilters, query_args())
    with unit_of_work() as db:
        companies = CompanyService(db, AuditLogService(db)).list_companies(filters)
        payload = [CompanyDTO.from_orm_model(c).to_json() for c in companies]
    return api_response(payload, "Companies fetched successfully")


@company_bp.route('', methods=['POST'])
def create_company():
    check = require_login()
    if check:
        return check

    data = parse_input(CompanyIn, json_body())
    with unit_of_work() as db:
        company = CompanyService(db, AuditLogService(db)).create_company(
            data=data,
            actor=resolve_actor(),
        )
        payload = CompanyDTO.from_orm_model(company).to_json()
    return api_response(payload, "Company created successfully", 201)


@company_bp.route('/<company_id>', methods=['GET'])
def get_company(company_id):
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        company = CompanyService(db, AuditLogService(db)).get_by_id(company_id)
        payload = CompanyDTO.from_orm_model(company).to_json()
    return api_response(payload)
