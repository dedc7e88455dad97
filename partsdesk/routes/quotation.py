# partsdesk/routes/quotation.py
from flask import Blueprint

from partsdesk.routes.common import api_response, json_body, query_args, require_login, resolve_actor, unit_of_work
from partsdesk.schemas.base_dto import PageDTO, parse_input
from partsdesk.schemas.invoice import InvoiceDTO
from partsdesk.schemas.quotation import (
    ExpiringQuery,
    QuotationDTO,
    QuotationStatisticsQuery,
    QuotationStatusStatDTO,
)
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.part_service import PartService
from partsdesk.services.quotation_service import QuotationService

quotation_bp = Blueprint('quotation', __name__, url_prefix='/quotations')


def _service(db) -> QuotationService:
    audit_log_service = AuditLogService(db)
    return QuotationService(db, audit_log_service, PartService(db, audit_log_service))


@quotation_bp.route('', methods=['GET'])
def list_quotations():
    """报价单列表（过滤 + 分页）"""
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        rows, filters, total = _service(db).list_quotations(query_args())
        page = PageDTO.build(
            data=[QuotationDTO.from_orm_model(q) for q in rows],
            page=filters.page,
            limit=filters.limit,
            total=total,
        )
    return api_response(page.to_json(), "Quotations fetched successfully")


@quotation_bp.route('', methods=['POST'])
def create_quotation():
    """创建报价单（含明细）"""
    check = require_login()
    if check:
        return check

    body = json_body()
    with unit_of_work() as db:
        quotation = _service(db).create_quotation(request=body, actor=resolve_actor())
        payload = QuotationDTO.from_orm_model(quotation).to_json()
    return api_response(payload, "Quotation created successfully", 201)


@quotation_bp.route('/expiring', methods=['GET'])
def expiring_quotations():
    check = require_login()
    if check:
        return check

    query = parse_input(ExpiringQuery, query_args())
    with unit_of_work() as db:
        rows = _service(db).get_expiring_soon(days=query.days)
        payload = [QuotationDTO.from_orm_model(q).to_json() for q in rows]
    return api_response(payload)


@quotation_bp.route('/statistics', methods=['GET'])
def quotation_statistics():
    check = require_login()
    if check:
        return check

    query = parse_input(QuotationStatisticsQuery, query_args())
    with unit_of_work() as db:
        stats = _service(db).get_statistics(
            date_from=query.date_from,
            date_to=query.date_to,
            company_id=query.company_id,
        )
        payload = [QuotationStatusStatDTO(**row).to_json() for row in stats]
    return api_response(payload)


@quotation_bp.route('/<quotation_id>', methods=['GET'])
def get_quotation(quotation_id):
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        quotation = _service(db).get_by_id(quotation_id)
        payload = QuotationDTO.from_orm_model(quotation).to_json()
    return api_response(payload)


@quotation_bp.route('/<quotation_id>', methods=['PATCH'])
def update_quotation(quotation_id):
    """更新报价单（白名单字段，已确认 / 已开票的报价单不可编辑）"""
    check = require_login()
    if check:
        return check

    body = json_body()
    with unit_of_work() as db:
        quotation = _service(db).update_quotation(
            quotation_id=quotation_id,
            patch=body,
            actor=resolve_actor(),
        )
        payload = QuotationDTO.from_orm_model(quotation).to_json()
    return api_response(payload, "Quotation updated successfully")


@quotation_bp.route('/<quotation_id>/confirm', methods=['POST'])
def confirm_quotation(quotation_id):
    """报价单转发票"""
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        invoice = _service(db).convert_to_invoice(
            quotation_id=quotation_id,
            actor=resolve_actor(),
        )
        payload = InvoiceDTO.from_orm_model(invoice).to_json()
    return api_response(payload, "Quotation converted to invoice successfully", 201)
