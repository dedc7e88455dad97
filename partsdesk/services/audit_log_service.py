from typing import Any, Optional, Union
from uuid import uuid4

from sqlalchemy.orm import Session

from partsdesk.models.audit_log import AuditLog
from partsdesk.db.enums import AuditEntityType, AuditAction
from partsdesk.models.mixins.timestamp_mixin import utcnow

from decimal import Decimal
from datetime import datetime, date
from enum import Enum


class AuditLogService:
    """
    Centralized service for recording all auditable actions.
    This service is the ONLY place where AuditLog records can be created.
    """

    def __init__(self, db: Session):
        self.db = db

    def serialize_audit_value(self, value) -> Any:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return str(value)      # 金额保留精度，用字符串
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (int, float, str, bool)):
            return value
        if isinstance(value, (list, dict)):
            return value
        return str(value)  # 兜底

    def _normalize_entity_type(self, entity_type: Union[str, AuditEntityType]) -> AuditEntityType:
        """
        将字符串或枚举值转换为 AuditEntityType 枚举
        支持枚举本身、枚举值（"part_item"）和枚举名称（"PartItem"）
        """
        if isinstance(entity_type, AuditEntityType):
            return entity_type

        entity_type_str = str(entity_type).strip()
        for enum_member in AuditEntityType:
            if enum_member.value == entity_type_str.lower():
                return enum_member
            if enum_member.name.lower() == entity_type_str.lower():
                return enum_member

        raise ValueError(f"Unknown entity_type: {entity_type_str}. Valid values: {[e.value for e in AuditEntityType]}")

    def _add(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        action: AuditAction,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> AuditLog:
        log = AuditLog(
            id=str(uuid4()),
            entity_type=self._normalize_entity_type(entity_type),
            entity_id=entity_id,
            action=action,
            changed_attribute=changed_attribute,
            before_value=self.serialize_audit_value(before_value),
            after_value=self.serialize_audit_value(after_value),
            operator_id=operator_id,
            timestamp=utcnow(),
        )
        self.db.add(log)
        return log

    def record_create(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        operator_id: str,
    ) -> None:
        '''
        创建一条创建操作的审计日志
        适用于创建 User, Company, Part, PartItem, Quotation, Invoice 等实体时调用

        :param entity_type: 实体类型：可以是字符串或 AuditEntityType 枚举
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: 所属实体唯一id
        :type entity_id: str
        :param operator_id: 操作用户ID
        :type operator_id: str
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.create,
            changed_attribute="__all__",
            before_value=None,
            after_value=None,
            operator_id=operator_id,
        )

    def record_update(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> None:
        '''
        创建一条更新操作的审计日志，一个字段一条

        :param entity_type: 实体类型：可以是字符串或 AuditEntityType 枚举
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: 所属实体唯一id
        :type entity_id: str
        :param changed_attribute: 变更的属性名称
        :type changed_attribute: str
        :param before_value：修改前的值
        :type before_value: Any
        :param after_value: 修改后的值
        :type after_value: Any
        :param operator_id: 操作用户ID
        :type operator_id: str
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.update,
            changed_attribute=changed_attribute,
            before_value=before_value,
            after_value=after_value,
            operator_id=operator_id,
        )

    def record_confirm(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        before_value: Any,
        after_value: Any,
        operator_id: str,
    ) -> None:
        '''
        创建一条确认操作的审计日志
        适用于 Quotation 状态流转（submit / approve / cancel / expire / convert）

        :param entity_type: 实体类型
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: 所属实体唯一id
        :type entity_id: str
        :param before_value: 流转前状态
        :param after_value: 流转后状态
        :param operator_id: 操作用户ID
        :type operator_id: str
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.confirm,
            changed_attribute="status",
            before_value=before_value,
            after_value=after_value,
            operator_id=operator_id,
        )

    def record_system_update(
        self,
        *,
        entity_type: Union[str, AuditEntityType],
        entity_id: str,
        changed_attribute: str,
        before_value: Any,
        after_value: Any,
        operator_id: Optional[str] = None,
    ) -> None:
        '''
        创建一条系统自动更新操作的审计日志，应用场景：
        InvoiceService 累加 paid_amount
        UserService 更新 last_login_at

        :param entity_type: 实体类型
        :type entity_type: Union[str, AuditEntityType]
        :param entity_id: 所属实体唯一id
        :type entity_id: str
        :param changed_attribute: 变更的属性名称
        :type changed_attribute: str
        :param before_value:  修改前的值
        :param after_value:  修改后的值
        :param operator_id: 触发该系统行为的用户，缺省为 SYSTEM
        '''
        self._add(
            entity_type=entity_type,
            entity_id=entity_id,
            action=AuditAction.system,
            changed_attribute=changed_attribute,
            before_value=before_value,
            after_value=after_value,
            operator_id=operator_id or "SYSTEM",
        )

    def list_for_entity(self, *, entity_type: Union[str, AuditEntityType], entity_id: str):
        return (
            self.db.query(AuditLog)
            .filter(
                AuditLog.entity_type == self._normalize_entity_type(entity_type),
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.timestamp)
            .all()
        )
