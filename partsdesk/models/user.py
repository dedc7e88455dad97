# partsdesk/models/user.py
from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    JSON,
)
from partsdesk.db.base import Base
from partsdesk.models.mixins.timestamp_mixin import TimestampMixin
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import List, Optional


class Role(Base, TimestampMixin):
    """
    Named permission set. access holds a JSON list of permission strings.
    """

    __tablename__ = "roles"

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="Role UUID")
    name :Mapped[str] = mapped_column(String(100), unique=True, nullable=False, comment="Role name")
    description :Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Role description")
    access :Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list, comment="Permission strings")
    is_active :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Whether the role is active")

    def __repr__(self) -> str:
        return f"<Role name={self.name}>"


class User(Base, TimestampMixin):
    """
    System operator. Logs in with email + password.
    """

    __tablename__ = "users"

    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="User UUID")

    first_name :Mapped[str] = mapped_column(String(100), nullable=False, comment="First name")
    last_name :Mapped[str] = mapped_column(String(100), nullable=False, comment="Last name")

    email :Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Login email, stored lower-cased",
    )

    password_hash :Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Hashed password for authentication",
    )

    phone_number :Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="User phone number")

    role_id :Mapped[str] = mapped_column(String(36), ForeignKey("roles.id"), nullable=False, comment="Role ID")
    role :Mapped[Role] = relationship(lazy="joined")

    is_active :Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Whether the user account is active")
    is_email_verified :Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Whether the email has been verified")
    last_login_at :Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="Last successful login")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
