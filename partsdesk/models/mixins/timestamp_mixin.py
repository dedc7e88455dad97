# partsdesk/models/mixins/timestamp_mixin.py
from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    '''当前 UTC 时间（naive），全系统统一使用，避免 SQLite 丢失时区后比较出错'''
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """
    Base mixin for mutable business documents.

    Invariants:
    - created_at is written once
    - updated_at is refreshed by ORM on every UPDATE
    """
    # =========
    # ⏱ Timestamps
    # =========
    created_at :Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        comment="Creation timestamp (UTC)"
    )

    updated_at :Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Last update timestamp (UTC)"
    )
