# partsdesk/routes/invoice.py
from flask import Blueprint

from partsdesk.routes.common import api_response, json_body, query_args, require_login, resolve_actor, unit_of_work
from partsdesk.schemas.base_dto import PageDTO, parse_input
from partsdesk.schemas.invoice import (
    InvoiceDTO,
    InvoiceStatisticsDTO,
    InvoiceStatisticsQuery,
    PaymentIn,
    RevenuePointDTO,
    RevenueQuery,
)
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.invoice_service import InvoiceService

invoice_bp = Blueprint('invoice', __name__, url_prefix='/invoices')


def _service(db) -> InvoiceService:
    return InvoiceService(db, AuditLogService(db))


@invoice_bp.route('', methods=['GET'])
def list_invoices():
    """发票列表（过滤 + 分页）"""
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        rows, filters, total = _service(db).list_invoices(query_args())
        page = PageDTO.build(
            data=[InvoiceDTO.from_orm_model(i) for i in rows],
            page=filters.page,
            limit=filters.limit,
            total=total,
        )
    return api_response(page.to_json(), "Invoices fetched successfully")


@invoice_bp.route('/overdue', methods=['GET'])
def overdue_invoices():
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        payload = [InvoiceDTO.from_orm_model(i).to_json() for i in _service(db).get_overdue()]
    return api_response(payload)


@invoice_bp.route('/statistics', methods=['GET'])
def invoice_statistics():
    check = require_login()
    if check:
        return check

    query = parse_input(InvoiceStatisticsQuery, query_args())
    with unit_of_work() as db:
        stats = _service(db).get_statistics(
            date_from=query.date_from,
            date_to=query.date_to,
            company_id=query.company_id,
        )
        payload = InvoiceStatisticsDTO(**stats).to_json()
    return api_response(payload)


@invoice_bp.route('/revenue', methods=['GET'])
def revenue_by_period():
    check = require_login()
    if check:
        return check

    query = parse_input(RevenueQuery, query_args())
    with unit_of_work() as db:
        points = _service(db).get_revenue_by_period(
            period=query.period,
            date_from=query.date_from,
            date_to=query.date_to,
            company_id=query.company_id,
        )
        payload = [RevenuePointDTO(**point).to_json() for point in points]
    return api_response(payload)


@invoice_bp.route('/<invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        invoice = _service(db).get_by_id(invoice_id)
        payload = InvoiceDTO.from_orm_model(invoice).to_json()
    return api_response(payload)


@invoice_bp.route('/<invoice_id>', methods=['PATCH'])
def update_invoice(invoice_id):
    """只允许修改 dueDate / notes，其它字段忽略"""
    check = require_login()
    if check:
        return check

    body = json_body()
    with unit_of_work() as db:
        invoice = _service(db).update_invoice(
            invoice_id=invoice_id,
            patch=body,
            actor=resolve_actor(),
        )
        payload = InvoiceDTO.from_orm_model(invoice).to_json()
    return api_response(payload, "Invoice updated successfully")


@invoice_bp.route('/<invoice_id>/payment', methods=['POST'])
def record_payment(invoice_id):
    """记录付款"""
    check = require_login()
    if check:
        return check

    payment = parse_input(PaymentIn, json_body())
    with unit_of_work() as db:
        invoice = _service(db).record_payment(
            invoice_id=invoice_id,
            amount=payment.amount,
            actor=resolve_actor(),
            payment_method=payment.payment_method,
            payment_reference=payment.payment_reference,
            payment_date=payment.payment_date,
            notes=payment.notes,
        )
        payload = InvoiceDTO.from_orm_model(invoice).to_json()
    return api_response(payload, "Payment recorded successfully")
