# partsdesk/services/invoice_service.py
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from sqlalchemy import and_, asc, case, desc, func, literal_column, update
from sqlalchemy.orm import Session

from partsdesk.db.enums import AuditEntityType, PaymentStatus
from partsdesk.errors import NotFoundError, ValidationError
from partsdesk.logger import get_logger
from partsdesk.models.invoice import Invoice, Payment
from partsdesk.models.mixins.timestamp_mixin import utcnow
from partsdesk.schemas.base_dto import parse_input
from partsdesk.schemas.invoice import InvoiceFilters, InvoicePatch, PaymentIn
from partsdesk.services.actor import Actor, require_actor
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.document_rules import to_money

logger = get_logger(__name__)

_ORDER_COLUMNS = {
    "created_at": Invoice.created_at,
    "updated_at": Invoice.updated_at,
    "total_amount": Invoice.total_amount,
    "invoice_number": Invoice.invoice_number,
}

_PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-%W",
    "month": "%Y-%m",
    "year": "%Y",
}


def payment_status_expression(now: datetime):
    '''
    与 derive_payment_status 相同的推导规则，SQL 版本，用于列表过滤和统计
    paid > overdue > partial > pending
    '''
    return case(
        (Invoice.paid_amount >= Invoice.total_amount, PaymentStatus.paid.value),
        (
            and_(Invoice.due_date.isnot(None), Invoice.due_date < now),
            PaymentStatus.overdue.value,
        ),
        (Invoice.paid_amount > 0, PaymentStatus.partial.value),
        else_=PaymentStatus.pending.value,
    )


class InvoiceService:
    """
    Invoice ledger.
    Provides:
    - listing / lookup (payment status derived on read)
    - dueDate / notes edits
    - payment recording (capped at the outstanding balance)
    - overdue list, statistics, revenue by period
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    # ======================================================
    # 🔍 Queries
    # ======================================================

    def get_by_id(self, invoice_id: str) -> Invoice:
        invoice = self.db.get(Invoice, invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def _apply_scope(self, query, *, date_from=None, date_to=None, company_id=None):
        if date_from:
            query = query.filter(Invoice.created_at >= date_from)
        if date_to:
            query = query.filter(Invoice.created_at <= date_to)
        if company_id:
            query = query.filter(Invoice.company_id == company_id)
        return query

    def list_invoices(self, filters: Union[InvoiceFilters, dict, None] = None) -> Tuple[List[Invoice], InvoiceFilters, int]:
        '''
        条件 + 分页查询发票，paymentStatus 在 SQL 中推导后过滤

        :param filters: InvoiceFilters 或原始查询参数 dict
        :return: (当前页发票, 解析后的 filters, 总数)
        '''
        filters = parse_input(InvoiceFilters, filters or {})
        query = self._apply_scope(
            self.db.query(Invoice),
            date_from=filters.date_from,
            date_to=filters.date_to,
            company_id=filters.company_id,
        )

        if filters.payment_status is not None:
            query = query.filter(
                payment_status_expression(utcnow()) == filters.payment_status.value
            )
        if filters.quotation_id:
            query = query.filter(Invoice.quotation_id == filters.quotation_id)
        if filters.customer_email:
            query = query.filter(Invoice.customer_email == filters.customer_email)
        if filters.created_by:
            query = query.filter(Invoice.created_by == filters.created_by)
        if filters.due_date_from:
            query = query.filter(Invoice.due_date >= filters.due_date_from)
        if filters.due_date_to:
            query = query.filter(Invoice.due_date <= filters.due_date_to)
        if filters.min_amount is not None:
            query = query.filter(Invoice.total_amount >= filters.min_amount)
        if filters.max_amount is not None:
            query = query.filter(Invoice.total_amount <= filters.max_amount)
        if filters.search:
            query = query.filter(Invoice.invoice_number.ilike(f"%{filters.search}%"))

        total = query.count()
        direction = asc if filters.order_direction == "asc" else desc
        rows = (
            query.order_by(direction(_ORDER_COLUMNS[filters.order_by]), Invoice.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return rows, filters, total

    def get_overdue(self) -> List[Invoice]:
        '''未付清且已过到期日的发票，按到期日升序'''
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.paid_amount < Invoice.total_amount,
                Invoice.due_date.isnot(None),
                Invoice.due_date < utcnow(),
            )
            .order_by(Invoice.due_date.asc())
            .all()
        )

    def get_statistics(
        self,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        company_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = utcnow()
        status_expr = payment_status_expression(now)
        query = self._apply_scope(
            self.db.query(
                status_expr.label("payment_status"),
                func.count(Invoice.id),
                func.coalesce(func.sum(Invoice.total_amount), 0),
                func.coalesce(func.sum(Invoice.paid_amount), 0),
            ),
            date_from=date_from,
            date_to=date_to,
            company_id=company_id,
        )
        rows = query.group_by(literal_column("payment_status")).all()

        by_status = []
        overdue_count, overdue_amount = 0, Decimal("0")
        for status, count, total, paid in sorted(rows, key=lambda row: row[0]):
            total, paid = to_money(total), to_money(paid)
            by_status.append({
                "payment_status": status,
                "count": count,
                "total_amount": total,
                "paid_amount": paid,
                "balance_amount": total - paid,
            })
            if status == PaymentStatus.overdue.value:
                overdue_count, overdue_amount = count, total - paid

        return {
            "by_status": by_status,
            "overdue_count": overdue_count,
            "overdue_amount": overdue_amount,
        }

    def get_revenue_by_period(
        self,
        *,
        period: str = "month",
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        company_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        '''
        已付清发票的总额，按创建时间所在周期分组

        :param period: day / week / month / year
        :return: [{"period", "invoice_count", "revenue"}]，按周期升序
        '''
        if period not in _PERIOD_FORMATS:
            raise ValidationError(f"period: must be one of {', '.join(_PERIOD_FORMATS)}")
        fmt = _PERIOD_FORMATS[period]

        query = self._apply_scope(
            self.db.query(Invoice.created_at, Invoice.total_amount).filter(
                Invoice.paid_amount >= Invoice.total_amount
            ),
            date_from=date_from,
            date_to=date_to,
            company_id=company_id,
        )

        buckets: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for created_at, total in query.order_by(Invoice.created_at).all():
            key = created_at.strftime(fmt)
            bucket = buckets.setdefault(key, {"period": key, "invoice_count": 0, "revenue": Decimal("0")})
            bucket["invoice_count"] += 1
            bucket["revenue"] += to_money(total)
        return list(buckets.values())

    # ======================================================
    # ✍️ Mutations
    # ======================================================

    def update_invoice(
        self,
        *,
        invoice_id: str,
        patch: Union[InvoicePatch, dict],
        actor: Actor,
    ) -> Invoice:
        """
        Edit dueDate and/or notes. Every other key in the patch is dropped.

        :param invoice_id: invoice to edit
        :param patch: raw dict or InvoicePatch
        :param actor: caller identity
        :type actor: Actor
        :raises NotFoundError: unknown invoice
        :raises ValidationError: nothing editable left in the patch
        """
        actor = require_actor(actor)
        invoice = self.get_by_id(invoice_id)
        patch = parse_input(InvoicePatch, patch)
        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields to update (allowed: dueDate, notes)")

        for field, value in changes.items():
            before = getattr(invoice, field)
            if before == value:
                continue
            setattr(invoice, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Invoice,
                entity_id=invoice.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )

        invoice.updated_by = actor.id
        invoice.updated_at = utcnow()
        self.db.flush()
        return invoice

    def record_payment(
        self,
        *,
        invoice_id: str,
        amount: Any,
        actor: Actor,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
        payment_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Invoice:
        '''
        记录一笔付款：写 Payment 行并累加 paid_amount
        超过未付余额的付款直接拒绝，paid_amount 永不超过 total_amount

        :param invoice_id: 发票id
        :param amount: 付款金额，必须 > 0
        :param actor: 操作者
        :raises ValidationError: 金额非法或超过余额
        :raises NotFoundError: 发票不存在
        '''
        actor = require_actor(actor)
        payment_in = parse_input(PaymentIn, {
            "amount": amount,
            "payment_method": payment_method,
            "payment_reference": payment_reference,
            "payment_date": payment_date,
            "notes": notes,
        })
        invoice = self.get_by_id(invoice_id)

        observed_paid = to_money(invoice.paid_amount)
        balance = to_money(invoice.total_amount) - observed_paid
        if balance <= 0:
            raise ValidationError("Invoice is already fully paid")
        if payment_in.amount > balance:
            raise ValidationError(
                f"amount: payment {payment_in.amount} exceeds outstanding balance {balance}"
            )

        # compare-and-set：paid_amount 在读取之后被并发修改则本次不生效
        new_paid = observed_paid + payment_in.amount
        now = utcnow()
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice.id, Invoice.paid_amount == observed_paid)
            .values(paid_amount=new_paid, updated_by=actor.id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ValidationError("Invoice balance changed concurrently, retry the payment")

        payment = Payment(
            id=str(uuid4()),
            invoice=invoice,
            amount=payment_in.amount,
            payment_method=payment_in.payment_method,
            payment_reference=payment_in.payment_reference,
            payment_date=payment_in.payment_date or now,
            notes=payment_in.notes,
            recorded_by=actor.id,
        )
        self.db.add(payment)
        self.audit_log_service.record_system_update(
            entity_type=AuditEntityType.Invoice,
            entity_id=invoice.id,
            changed_attribute="paid_amount",
            before_value=observed_paid,
            after_value=new_paid,
            operator_id=actor.id,
        )
        self.db.flush()
        self.db.refresh(invoice)

        logger.info(
            f"Payment recorded on {invoice.invoice_number}: amount={payment_in.amount} "
            f"paid={invoice.paid_amount}/{invoice.total_amount} by={actor.id}"
        )
        return invoice
