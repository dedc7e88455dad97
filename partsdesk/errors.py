# partsdesk/errors.py
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError


class ErrorType(str, Enum):
    '''
    业务执行过程中可能出现的问题的结构化分类

    VALIDATION_ERROR: 输入不符合字段约束（格式、范围、必填）
    PERMISSION_DENIED: 缺少或无效的操作者身份
    NOT_FOUND: 实体不存在
    BUSINESS_RULE_ERROR: 当前单据状态不允许该操作
    IRREVERSIBLE_CONFLICT: 唯一性冲突（重复的编号、邮箱等）
    SYSTEM_ERROR: 未知异常或未分类异常
    '''
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE_ERROR = "BUSINESS_RULE_ERROR"
    IRREVERSIBLE_CONFLICT = "IRREVERSIBLE_CONFLICT"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class DomainError(Exception):
    """
    Base class of every error raised by the service layer.
    Carries the error type and the HTTP status the JSON layer answers with.
    """
    error_type: ErrorType = ErrorType.SYSTEM_ERROR
    http_status: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    error_type = ErrorType.VALIDATION_ERROR
    http_status = 400


class AuthError(DomainError):
    error_type = ErrorType.PERMISSION_DENIED
    http_status = 401


class NotFoundError(DomainError):
    error_type = ErrorType.NOT_FOUND
    http_status = 404


class InvalidStateError(DomainError):
    error_type = ErrorType.BUSINESS_RULE_ERROR
    http_status = 409


class ConflictError(DomainError):
    error_type = ErrorType.IRREVERSIBLE_CONFLICT
    http_status = 409


class InternalError(DomainError):
    error_type = ErrorType.SYSTEM_ERROR
    http_status = 500


def from_pydantic(exc) -> ValidationError:
    '''
    将 pydantic 的 ValidationError 转换为领域 ValidationError，
    message 取第一条违反的约束

    :param exc: pydantic.ValidationError
    :return: ValidationError
    '''
    issues = exc.errors(include_url=False, include_context=False, include_input=False)
    if not issues:
        return ValidationError("Invalid data")
    first = issues[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    if location:
        message = f"{location}: {message}"
    return ValidationError(message, details=issues)


def is_unique_violation(exc: IntegrityError) -> bool:
    '''唯一约束冲突（sqlite / postgresql / mysql 的报错文本）'''
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate" in text


def flush_or_conflict(db, message: str) -> None:
    '''
    flush 当前会话，唯一约束冲突转换为 ConflictError，
    其它约束（NOT NULL、CHECK、外键）转换为 ValidationError
    回滚由调用方（路由层）负责

    :param db: sqlalchemy Session
    :param message: 唯一约束冲突时的提示
    '''
    try:
        db.flush()
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise ConflictError(message) from exc
        raise ValidationError(f"Invalid data: {exc.orig}") from exc
