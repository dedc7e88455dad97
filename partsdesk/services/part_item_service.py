# partsdesk/services/part_item_service.py
from typing import Any, List, Optional, Union
from uuid import uuid4

from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Session

from partsdesk.db.enums import AuditEntityType
from partsdesk.errors import NotFoundError, ValidationError, flush_or_conflict
from partsdesk.logger import get_logger
from partsdesk.models.company import Company
from partsdesk.models.part_item import PartItem
from partsdesk.models.quotation import Quotation
from partsdesk.schemas.base_dto import parse_input
from partsdesk.schemas.part_item import (
    PartItemBulkIn,
    PartItemFilters,
    PartItemIn,
    PartItemUpdate,
)
from partsdesk.services.actor import Actor, require_actor
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.part_service import PartService

logger = get_logger(__name__)

_ORDER_COLUMNS = {
    "added_on": PartItem.added_on,
    "updated_on": PartItem.updated_on,
    "purchase_date": PartItem.purchase_date,
    "expiry_date": PartItem.expiry_date,
}


class PartItemService:
    """
    Physical inventory units of catalog parts.

    status / condition are caller driven: any enum value may be set,
    there is no transition table for part items.
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService, part_service: PartService):
        self.db = db
        self.audit_log_service = audit_log_service
        self.part_service = part_service

    # ======================================================
    # 🔍 Queries
    # ======================================================

    def list_items(self, filters: Union[PartItemFilters, dict, None] = None) -> List[PartItem]:
        '''
        条件查询库存件。status / condition 非法值抛 ValidationError

        :param filters: PartItemFilters 或原始 dict（如查询参数）
        '''
        filters = parse_input(PartItemFilters, filters or {})
        query = self.db.query(PartItem)

        if filters.part_id:
            query = query.filter(PartItem.part_id == filters.part_id)
        if filters.supplier_id:
            query = query.filter(PartItem.supplier_id == filters.supplier_id)
        if filters.status is not None:
            query = query.filter(PartItem.status == filters.status)
        if filters.condition is not None:
            query = query.filter(PartItem.condition == filters.condition)
        if filters.location:
            query = query.filter(PartItem.location.ilike(f"%{filters.location}%"))
        if filters.bar_code:
            query = query.filter(PartItem.bar_code == filters.bar_code)
        if filters.serial_number:
            query = query.filter(PartItem.serial_number == filters.serial_number)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(
                    PartItem.bar_code.ilike(pattern),
                    PartItem.serial_number.ilike(pattern),
                    PartItem.location.ilike(pattern),
                    PartItem.shelve_location.ilike(pattern),
                    PartItem.notes.ilike(pattern),
                )
            )

        column = _ORDER_COLUMNS[filters.order_by]
        direction = asc if filters.order_direction == "asc" else desc
        return (
            query.order_by(direction(column), PartItem.id)
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )

    def get_by_id(self, item_id: str) -> PartItem:
        item = self.db.get(PartItem, item_id)
        if not item:
            raise NotFoundError("Part item not found")
        return item

    def get_by_barcode(self, bar_code: str) -> Optional[PartItem]:
        return (
            self.db.query(PartItem)
            .filter(PartItem.bar_code == bar_code)
            .first()
        )

    def check_barcode(self, bar_code: str) -> Optional[PartItem]:
        '''返回占用该条码的库存件，没有则为 None'''
        return self.get_by_barcode(bar_code)

    # ======================================================
    # ✅ Validation helpers
    # ======================================================

    def _ensure_exist(self, column, ids: List[str], label: str) -> None:
        wanted = sorted({i for i in ids if i})
        if not wanted:
            return
        found = {row[0] for row in self.db.query(column).filter(column.in_(wanted)).all()}
        missing = [i for i in wanted if i not in found]
        if missing:
            raise ValidationError(f"{label} not found: {', '.join(missing)}")

    def _validate_references(self, items: List[PartItemIn]) -> None:
        missing_parts = self.part_service.find_missing_ids([item.part_id for item in items])
        if missing_parts:
            raise ValidationError(f"Part not found: {', '.join(missing_parts)}")

        self._ensure_exist(Company.id, [item.supplier_id for item in items], "Supplier")
        self._ensure_exist(Quotation.id, [item.quotation_id for item in items], "Quotation")

    def _validate_barcodes(self, items: List[PartItemIn]) -> None:
        seen = set()
        for index, item in enumerate(items):
            if not item.bar_code:
                continue
            if item.bar_code in seen:
                raise ValidationError(f"{index}.barCode: duplicate barcode '{item.bar_code}' in request")
            seen.add(item.bar_code)

        if seen:
            taken = [
                row[0]
                for row in self.db.query(PartItem.bar_code).filter(PartItem.bar_code.in_(seen)).all()
            ]
            if taken:
                raise ValidationError(f"Barcode already exists: {', '.join(sorted(taken))}")

    # ======================================================
    # ✍️ Mutations
    # ======================================================

    def _build(self, data: PartItemIn, actor: Actor) -> PartItem:
        return PartItem(
            id=str(uuid4()),
            added_by=actor.id,
            **data.model_dump(),
        )

    def create_item(self, *, data: Union[PartItemIn, dict], actor: Actor) -> PartItem:
        actor = require_actor(actor)
        data = parse_input(PartItemIn, data)
        self._validate_references([data])
        self._validate_barcodes([data])

        item = self._build(data, actor)
        self.db.add(item)
        flush_or_conflict(self.db, "Barcode already exists")

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.PartItem,
            entity_id=item.id,
            operator_id=actor.id,
        )
        return item

    def bulk_create(self, *, items: Union[PartItemBulkIn, List[Any]], actor: Actor) -> List[PartItem]:
        """
        Insert 1..100 part items, all or nothing.
        Every entry is validated (fields, referenced parts, barcode uniqueness)
        before the first row is added to the session.

        :param items: raw list or PartItemBulkIn
        :param actor: caller identity
        :raises ValidationError: any entry invalid; nothing is written
        """
        actor = require_actor(actor)
        batch = parse_input(PartItemBulkIn, items).root
        self._validate_references(batch)
        self._validate_barcodes(batch)

        created = [self._build(data, actor) for data in batch]
        self.db.add_all(created)
        flush_or_conflict(self.db, "Barcode already exists")

        for item in created:
            self.audit_log_service.record_create(
                entity_type=AuditEntityType.PartItem,
                entity_id=item.id,
                operator_id=actor.id,
            )
        logger.info(f"Bulk inserted {len(created)} part items")
        return created

    def update_item(self, *, patch: Union[PartItemUpdate, dict], actor: Actor) -> PartItem:
        '''
        按 id 更新库存件，只接受白名单字段

        :param patch: PartItemUpdate（含 id）
        :param actor: 操作者
        '''
        actor = require_actor(actor)
        patch = parse_input(PartItemUpdate, patch)
        item = self.get_by_id(patch.id)
        changes = patch.model_dump(exclude_unset=True, exclude={"id"})

        if changes.get("part_id") and self.part_service.find_missing_ids([changes["part_id"]]):
            raise ValidationError(f"Part not found: {changes['part_id']}")
        self._ensure_exist(Company.id, [changes.get("supplier_id")], "Supplier")
        self._ensure_exist(Quotation.id, [changes.get("quotation_id")], "Quotation")
        new_code = changes.get("bar_code")
        if new_code and new_code != item.bar_code:
            holder = self.get_by_barcode(new_code)
            if holder and holder.id != item.id:
                raise ValidationError(f"Barcode already exists: {new_code}")

        for field, value in changes.items():
            before = getattr(item, field)
            if before == value:
                continue
            setattr(item, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.PartItem,
                entity_id=item.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )

        item.updated_by = actor.id
        flush_or_conflict(self.db, "Barcode already exists")
        return item
