# partsdesk/services/quotation_service.py
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from sqlalchemy import asc, desc, func, or_, update
from sqlalchemy.orm import Session

from partsdesk.config import Config
from partsdesk.db.enums import AuditEntityType, QuotationStatus
from partsdesk.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    flush_or_conflict,
)
from partsdesk.logger import get_logger
from partsdesk.models.company import Company
from partsdesk.models.invoice import Invoice, InvoiceItem
from partsdesk.models.mixins.timestamp_mixin import utcnow
from partsdesk.models.quotation import Quotation, QuotationItem
from partsdesk.schemas.base_dto import parse_input
from partsdesk.schemas.quotation import (
    CreateQuotationRequest,
    QuotationFilters,
    QuotationPatch,
)
from partsdesk.services.actor import Actor, require_actor
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.document_rules import (
    CONVERSION_ONLY_STATUSES,
    CONVERTIBLE_QUOTATION_STATUSES,
    IMMUTABLE_QUOTATION_STATUSES,
    check_quotation_totals,
    ensure_transition,
    generate_document_number,
)
from partsdesk.services.part_service import PartService

logger = get_logger(__name__)

_ORDER_COLUMNS = {
    "created_at": Quotation.created_at,
    "updated_at": Quotation.updated_at,
    "total_amount": Quotation.total_amount,
    "quotation_number": Quotation.quotation_number,
}

_AMOUNT_FIELDS = ("subtotal", "tax_amount", "discount_amount", "shipping_amount", "total_amount")


class QuotationService:
    """
    Quotation lifecycle.
    Provides:
    - listing / lookup
    - create (quotation + items, one transaction)
    - allow-listed update and status transitions
    - conversion into exactly one invoice
    - expiring-soon and per-status statistics

    Only flushes; the caller owns commit / rollback.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService, part_service: PartService):
        self.db = db
        self.audit_log_service = audit_log_service
        self.part_service = part_service

    # ======================================================
    # 🔍 Queries
    # ======================================================

    def list_quotations(self, filters: Union[QuotationFilters, dict, None] = None) -> Tuple[List[Quotation], QuotationFilters, int]:
        '''
        条件 + 分页查询报价单

        :param filters: QuotationFilters 或原始查询参数 dict
        :return: (当前页报价单, 解析后的 filters, 总数)
        '''
        filters = parse_input(QuotationFilters, filters or {})
        query = self.db.query(Quotation)

        if filters.status is not None:
            query = query.filter(Quotation.status == filters.status)
        if filters.company_id:
            query = query.filter(Quotation.company_id == filters.company_id)
        if filters.customer_email:
            query = query.filter(Quotation.customer_email == filters.customer_email)
        if filters.created_by:
            query = query.filter(Quotation.created_by == filters.created_by)
        if filters.date_from:
            query = query.filter(Quotation.created_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(Quotation.created_at <= filters.date_to)
        if filters.min_amount is not None:
            query = query.filter(Quotation.total_amount >= filters.min_amount)
        if filters.max_amount is not None:
            query = query.filter(Quotation.total_amount <= filters.max_amount)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(
                    Quotation.quotation_number.ilike(pattern),
                    Quotation.customer_name.ilike(pattern),
                    Quotation.customer_email.ilike(pattern),
                )
            )

        total = query.count()
        direction = asc if filters.order_direction == "asc" else desc
        rows = (
            query.order_by(direction(_ORDER_COLUMNS[filters.order_by]), Quotation.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return rows, filters, total

    def get_by_id(self, quotation_id: str) -> Quotation:
        quotation = self.db.get(Quotation, quotation_id)
        if not quotation:
            raise NotFoundError("Quotation not found")
        return quotation

    def get_expiring_soon(self, days: int = 7) -> List[Quotation]:
        '''pending 状态且 valid_until 落在未来 days 天内的报价单，按到期时间升序'''
        now = utcnow()
        return (
            self.db.query(Quotation)
            .filter(
                Quotation.status == QuotationStatus.pending,
                Quotation.valid_until.isnot(None),
                Quotation.valid_until >= now,
                Quotation.valid_until <= now + timedelta(days=days),
            )
            .order_by(Quotation.valid_until.asc())
            .all()
        )

    def get_statistics(
        self,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        company_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = self.db.query(
            Quotation.status,
            func.count(Quotation.id),
            func.coalesce(func.sum(Quotation.total_amount), 0),
        )
        if date_from:
            query = query.filter(Quotation.created_at >= date_from)
        if date_to:
            query = query.filter(Quotation.created_at <= date_to)
        if company_id:
            query = query.filter(Quotation.company_id == company_id)

        rows = query.group_by(Quotation.status).all()
        return [
            {"status": status.value, "count": count, "total_amount": total}
            for status, count, total in sorted(rows, key=lambda row: row[0].value)
        ]

    # ======================================================
    # ✅ Validation helpers
    # ======================================================

    def _ensure_parts_exist(self, part_ids: List[str]) -> None:
        missing = self.part_service.find_missing_ids(part_ids)
        if missing:
            raise ValidationError(f"Part not found: {', '.join(missing)}")

    def _ensure_company_exists(self, company_id: Optional[str]) -> None:
        if company_id and not self.db.get(Company, company_id):
            raise ValidationError(f"Company not found: {company_id}")

    # ======================================================
    # ✍️ Create
    # ======================================================

    def create_quotation(self, *, request: Union[CreateQuotationRequest, dict], actor: Actor) -> Quotation:
        """
        Create a draft quotation with its items.

        :param request: {"quotation": {...}, "items": [...]} or CreateQuotationRequest
        :param actor: caller identity, becomes created_by
        :type actor: Actor
        :raises ValidationError: bad fields, empty items, unknown part, totals mismatch
        :raises ConflictError: supplied quotation number already used
        """
        actor = require_actor(actor)
        request = parse_input(CreateQuotationRequest, request)
        header = request.quotation

        # 1️⃣ 金额服务端复算
        check_quotation_totals(
            items=request.items,
            subtotal=header.subtotal,
            tax_amount=header.tax_amount,
            discount_amount=header.discount_amount,
            shipping_amount=header.shipping_amount,
            total_amount=header.total_amount,
        )

        # 2️⃣ 引用校验
        self._ensure_parts_exist([item.part_id for item in request.items])
        self._ensure_company_exists(header.company_id)

        # 3️⃣ 单号
        if header.quotation_number:
            number = header.quotation_number
            exists = (
                self.db.query(Quotation.id)
                .filter(Quotation.quotation_number == number)
                .first()
            )
            if exists:
                raise ConflictError(f"Quotation number '{number}' already exists")
        else:
            number = generate_document_number(self.db, Quotation.quotation_number, "QT")

        now = utcnow()
        fields = header.model_dump(exclude={"quotation_number", "valid_until"})
        quotation = Quotation(
            id=str(uuid4()),
            quotation_number=number,
            status=QuotationStatus.draft,
            valid_until=header.valid_until or now + timedelta(days=Config.QUOTATION_VALIDITY_DAYS),
            created_by=actor.id,
            **fields,
        )
        quotation.items = [
            QuotationItem(id=str(uuid4()), position=position, **item.model_dump())
            for position, item in enumerate(request.items)
        ]
        self.db.add(quotation)
        flush_or_conflict(self.db, f"Quotation number '{number}' already exists")

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Quotation,
            entity_id=quotation.id,
            operator_id=actor.id,
        )
        logger.info(
            f"Quotation created: {quotation.quotation_number} "
            f"items={len(quotation.items)} total={quotation.total_amount} by={actor.id}"
        )
        return quotation

    # ======================================================
    # 🔁 Update & transitions
    # ======================================================

    def update_quotation(
        self,
        *,
        quotation_id: str,
        patch: Union[QuotationPatch, dict],
        actor: Actor,
    ) -> Quotation:
        '''
        更新报价单。confirmed / invoiced / sold 状态一律拒绝（先于补丁内容校验）

        :param quotation_id: 报价单id
        :param patch: 白名单字段，未知字段抛 ValidationError
        :param actor: 操作者
        :raises NotFoundError: 报价单不存在
        :raises InvalidStateError: 状态不可编辑或状态流转非法
        :raises ValidationError: 补丁非法
        '''
        actor = require_actor(actor)
        quotation = self.get_by_id(quotation_id)
        if quotation.status in IMMUTABLE_QUOTATION_STATUSES:
            raise InvalidStateError(
                f"Cannot edit quotation with status: {quotation.status.value}"
            )

        patch = parse_input(QuotationPatch, patch)
        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No updatable fields supplied")

        target_status = changes.pop("status", None)
        if "status" in patch.model_fields_set and target_status is None:
            raise ValidationError("status: cannot be null")
        if target_status in CONVERSION_ONLY_STATUSES:
            raise InvalidStateError(
                f"Status {target_status.value} is only reachable by converting to an invoice"
            )

        for field in _AMOUNT_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field}: cannot be null")

        if any(field in changes for field in _AMOUNT_FIELDS):
            merged = {field: changes.get(field, getattr(quotation, field)) for field in _AMOUNT_FIELDS}
            check_quotation_totals(items=quotation.items, **merged)

        if "company_id" in changes:
            self._ensure_company_exists(changes["company_id"])

        for field, value in changes.items():
            before = getattr(quotation, field)
            if before == value:
                continue
            setattr(quotation, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Quotation,
                entity_id=quotation.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )

        if target_status is not None:
            self._apply_transition(quotation, target_status, actor)

        quotation.updated_by = actor.id
        quotation.updated_at = utcnow()
        self.db.flush()
        return quotation

    def transition_status(
        self,
        *,
        quotation_id: str,
        target: Union[QuotationStatus, str],
        actor: Actor,
    ) -> Quotation:
        """
        Submit / approve / cancel / expire a quotation.
        invoiced and sold are reserved for convert_to_invoice.
        """
        actor = require_actor(actor)
        try:
            target = QuotationStatus(target)
        except ValueError as exc:
            raise ValidationError(f"status: unknown value '{target}'") from exc
        if target in CONVERSION_ONLY_STATUSES:
            raise InvalidStateError(
                f"Status {target.value} is only reachable by converting to an invoice"
            )

        quotation = self.get_by_id(quotation_id)
        self._apply_transition(quotation, target, actor)
        quotation.updated_by = actor.id
        self.db.flush()
        return quotation

    def _apply_transition(self, quotation: Quotation, target: QuotationStatus, actor: Actor) -> None:
        current = quotation.status
        ensure_transition(current, target)

        quotation.status = target
        if target == QuotationStatus.confirmed:
            quotation.confirmed_by = actor.id
            quotation.confirmed_at = utcnow()

        self.audit_log_service.record_confirm(
            entity_type=AuditEntityType.Quotation,
            entity_id=quotation.id,
            before_value=current,
            after_value=target,
            operator_id=actor.id,
        )
        logger.info(f"Quotation {quotation.quotation_number}: {current.value} -> {target.value}")

    # ======================================================
    # 🧾 Conversion
    # ======================================================

    def convert_to_invoice(self, *, quotation_id: str, actor: Actor) -> Invoice:
        """
        Turn a draft / pending / confirmed quotation into its invoice.

        The status flip is a single conditional UPDATE; if it touches no row
        another call already converted the quotation (or it is terminal),
        and nothing else is written. invoices.quotation_id is unique as well.

        :param quotation_id: source quotation
        :type quotation_id: str
        :param actor: caller identity, becomes the invoice's created_by
        :type actor: Actor
        :raises NotFoundError: unknown quotation
        :raises InvalidStateError: quotation not convertible
        """
        actor = require_actor(actor)
        quotation = self.get_by_id(quotation_id)
        before_status = quotation.status
        now = utcnow()

        result = self.db.execute(
            update(Quotation)
            .where(
                Quotation.id == quotation_id,
                Quotation.status.in_(list(CONVERTIBLE_QUOTATION_STATUSES)),
            )
            .values(
                status=QuotationStatus.invoiced,
                invoiced_at=now,
                updated_by=actor.id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.refresh(quotation)
            raise InvalidStateError(
                f"Quotation cannot be converted from status: {quotation.status.value}"
            )
        self.db.refresh(quotation)

        # 金额与客户信息快照
        invoice = Invoice(
            id=str(uuid4()),
            invoice_number=generate_document_number(self.db, Invoice.invoice_number, "INV"),
            quotation_id=quotation.id,
            quotation=quotation,
            company_id=quotation.company_id,
            customer_name=quotation.customer_name,
            customer_email=quotation.customer_email,
            subtotal=quotation.subtotal,
            tax_amount=quotation.tax_amount,
            discount_amount=quotation.discount_amount,
            shipping_amount=quotation.shipping_amount,
            total_amount=quotation.total_amount,
            paid_amount=0,
            due_date=now + timedelta(days=Config.INVOICE_DUE_DAYS),
            notes=quotation.notes,
            created_by=actor.id,
        )
        invoice.items = [
            InvoiceItem(
                id=str(uuid4()),
                quotation_item_id=item.id,
                position=item.position,
                part_id=item.part_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                total_price=item.total_price,
                notes=item.notes,
            )
            for item in quotation.items
        ]
        self.db.add(invoice)
        flush_or_conflict(self.db, "Quotation has already been converted to an invoice")

        self.audit_log_service.record_confirm(
            entity_type=AuditEntityType.Quotation,
            entity_id=quotation.id,
            before_value=before_status,
            after_value=QuotationStatus.invoiced,
            operator_id=actor.id,
        )
        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Invoice,
            entity_id=invoice.id,
            operator_id=actor.id,
        )
        logger.info(
            f"Quotation {quotation.quotation_number} converted to invoice "
            f"{invoice.invoice_number} total={invoice.total_amount} by={actor.id}"
        )
        return invoice
