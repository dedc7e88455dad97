# partsdesk/services/part_service.py
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from partsdesk.db.enums import AuditEntityType, PartItemStatus
from partsdesk.errors import ConflictError, NotFoundError, flush_or_conflict
from partsdesk.logger import get_logger
from partsdesk.models.part import Part
from partsdesk.models.part_item import PartItem
from partsdesk.schemas.part import PartFilters, PartIn, PartUpdate
from partsdesk.services.actor import Actor, require_actor
from partsdesk.services.audit_log_service import AuditLogService

logger = get_logger(__name__)


class PartService:
    """
    Parts catalog.
    Provides:
    - filtered / paginated listing
    - lookup by id and part number
    - create / update / soft delete
    - low-stock report
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    # ======================================================
    # 🔍 Queries
    # ======================================================

    def list_parts(self, filters: PartFilters) -> Tuple[List[Part], int]:
        query = self.db.query(Part)

        if filters.search_text:
            pattern = f"%{filters.search_text}%"
            query = query.filter(
                or_(
                    Part.part_number.ilike(pattern),
                    Part.name.ilike(pattern),
                    Part.description.ilike(pattern),
                    Part.brand.ilike(pattern),
                )
            )
        if filters.category:
            query = query.filter(Part.category == filters.category)
        if filters.brand:
            query = query.filter(Part.brand == filters.brand)
        if filters.is_active is not None:
            query = query.filter(Part.is_active == filters.is_active)
        if filters.min_price is not None:
            query = query.filter(Part.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Part.price <= filters.max_price)

        total = query.count()
        parts = (
            query.order_by(Part.created_at.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return parts, total

    def get_by_id(self, part_id: str) -> Part:
        part = self.db.get(Part, part_id)
        if not part:
            raise NotFoundError("Part not found")
        return part

    def get_by_part_number(self, part_number: str) -> Optional[Part]:
        return (
            self.db.query(Part)
            .filter(Part.part_number == part_number)
            .first()
        )

    def find_missing_ids(self, part_ids: List[str]) -> List[str]:
        '''返回 part_ids 中在库里不存在的 id（保持输入顺序，去重）'''
        wanted = list(dict.fromkeys(part_ids))
        if not wanted:
            return []
        found = {
            row[0]
            for row in self.db.query(Part.id).filter(Part.id.in_(wanted)).all()
        }
        return [part_id for part_id in wanted if part_id not in found]

    def available_stock(self, part_ids: List[str]) -> Dict[str, int]:
        if not part_ids:
            return {}
        rows = (
            self.db.query(PartItem.part_id, func.count(PartItem.id))
            .filter(
                PartItem.part_id.in_(part_ids),
                PartItem.status == PartItemStatus.available,
            )
            .group_by(PartItem.part_id)
            .all()
        )
        counts = {part_id: 0 for part_id in part_ids}
        counts.update({part_id: count for part_id, count in rows})
        return counts

    def get_low_stock(self) -> List[Tuple[Part, int]]:
        '''
        可用库存数量低于 minimum_stock 的启用零件

        :return: [(Part, available_count)]
        '''
        available = (
            self.db.query(
                PartItem.part_id.label("part_id"),
                func.count(PartItem.id).label("available_count"),
            )
            .filter(PartItem.status == PartItemStatus.available)
            .group_by(PartItem.part_id)
            .subquery()
        )
        count_expr = func.coalesce(available.c.available_count, 0)
        rows = (
            self.db.query(Part, count_expr)
            .outerjoin(available, available.c.part_id == Part.id)
            .filter(Part.is_active.is_(True), count_expr < Part.minimum_stock)
            .order_by(Part.part_number)
            .all()
        )
        return [(part, int(count)) for part, count in rows]

    # ======================================================
    # ✍️ Mutations
    # ======================================================

    def create_part(self, *, data: PartIn, actor: Actor) -> Part:
        """
        Create a catalog part.

        :param data: validated part fields
        :type data: PartIn
        :param actor: caller identity
        :type actor: Actor
        :raises ConflictError: part number already used
        """
        actor = require_actor(actor)
        if self.get_by_part_number(data.part_number):
            raise ConflictError(f"Part number '{data.part_number}' already exists")

        part = Part(
            id=str(uuid4()),
            created_by=actor.id,
            is_active=True,
            **data.model_dump(),
        )
        self.db.add(part)
        flush_or_conflict(self.db, f"Part number '{data.part_number}' already exists")

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.Part,
            entity_id=part.id,
            operator_id=actor.id,
        )
        logger.info(f"Part created: {part.part_number}")
        return part

    def update_part(self, *, part_id: str, patch: PartUpdate, actor: Actor) -> Part:
        '''
        按白名单更新零件字段，每个变更字段写一条审计日志

        :param part_id: 零件id
        :param patch: 已校验的更新字段（只含调用方提交的字段）
        :param actor: 操作者
        '''
        actor = require_actor(actor)
        part = self.get_by_id(part_id)
        changes = patch.model_dump(exclude_unset=True)

        new_number = changes.get("part_number")
        if new_number and new_number != part.part_number:
            existing = self.get_by_part_number(new_number)
            if existing and existing.id != part.id:
                raise ConflictError(f"Part number '{new_number}' already exists")

        for field, value in changes.items():
            before = getattr(part, field)
            if before == value:
                continue
            setattr(part, field, value)
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Part,
                entity_id=part.id,
                changed_attribute=field,
                before_value=before,
                after_value=value,
                operator_id=actor.id,
            )

        part.updated_by = actor.id
        flush_or_conflict(self.db, "Part number already exists")
        return part

    def deactivate_part(self, *, part_id: str, actor: Actor) -> Part:
        actor = require_actor(actor)
        part = self.get_by_id(part_id)
        if part.is_active:
            part.is_active = False
            part.updated_by = actor.id
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.Part,
                entity_id=part.id,
                changed_attribute="is_active",
                before_value=True,
                after_value=False,
                operator_id=actor.id,
            )
            self.db.flush()
        return part
