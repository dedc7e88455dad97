import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake
from typing_extensions import Annotated

from partsdesk.errors import from_pydantic

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # 库里统一存 naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _snake(value):
    # orderBy=totalAmount 与 order_by=total_amount 都接受
    return to_snake(value) if isinstance(value, str) else value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]
Email = Annotated[str, Field(max_length=255), AfterValidator(_check_email)]
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=15, decimal_places=2)]
NonNegativeMoney = Annotated[Decimal, Field(ge=0, max_digits=15, decimal_places=2)]
Percent = Annotated[Decimal, Field(ge=0, le=100)]
SnakeCase = BeforeValidator(_snake)


class BaseDTO(BaseModel):
    """
    Wire model. camelCase on the wire, snake_case accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod  # 强制所有输出 DTO 显式定义映射
    def from_orm_model(cls, orm_obj):
        """
        子类应 override
        """
        raise NotImplementedError(
            f"{cls.__name__}.from_orm_model() must be implemented"
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PatchDTO(BaseDTO):
    """
    Partial update body. Omitted keys are left alone; an explicit null is
    rejected for the fields listed in non_nullable.
    """
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        for field in self.non_nullable:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{to_camel(field)}: cannot be null")
        return self


def money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class PaginationDTO(BaseDTO):
    page: int
    limit: int
    total: int
    total_pages: int


class PageDTO(BaseDTO):
    data: List[Dict[str, Any]]
    pagination: PaginationDTO

    @classmethod
    def build(cls, *, data: List[BaseDTO], page: int, limit: int, total: int) -> "PageDTO":
        return cls(
            data=[item.to_json() for item in data],
            pagination=PaginationDTO(
                page=page,
                limit=limit,
                total=total,
                total_pages=(total + limit - 1) // limit if limit else 0,
            ),
        )


class ListQuery(BaseDTO):
    """Pagination / ordering shared by the quotation and invoice lists."""
    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    order_direction: str = Field(default="desc", pattern="^(asc|desc)$")


M = TypeVar("M", bound=BaseModel)


def parse_input(model_cls: Type[M], data: Any) -> M:
    '''
    按 model_cls 校验输入，pydantic 错误统一转换为领域 ValidationError

    :param model_cls: 目标模型
    :param data: dict / list / 已是 model_cls 实例
    '''
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise from_pydantic(exc) from exc
