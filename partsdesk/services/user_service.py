# partsdesk/services/user_service.py
from uuid import uuid4
from typing import List, Optional
import bcrypt
from sqlalchemy.orm import Session

from partsdesk.config import Config
from partsdesk.db.enums import AuditEntityType
from partsdesk.errors import AuthError, ConflictError, NotFoundError
from partsdesk.logger import get_logger
from partsdesk.models.mixins.timestamp_mixin import utcnow
from partsdesk.models.user import Role, User
from partsdesk.services.audit_log_service import AuditLogService

logger = get_logger(__name__)


class UserService:
    """
    User service.
    Provides:
    - registration
    - authentication
    - user lookup
    - deactivation

    Session handling lives in the routes, not here.
    """

    def __init__(self, db: Session, audit_log_service: Optional[AuditLogService] = None):
        self.db = db
        self.audit_log_service = audit_log_service or AuditLogService(db)

    # ======================================================
    # 🔐 Internal helpers
    # ======================================================

    def _hash_password(self, password: str) -> str:
        '''Hash a password using bcrypt'''
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(),
        ).decode("utf-8")

    def _verify_password(self, password: str, password_hash: str) -> bool:
        '''verify a password against its hash'''
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    def get_or_create_role(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        access: Optional[List[str]] = None,
    ) -> Role:
        role = self.db.query(Role).filter(Role.name == name).first()
        if role:
            return role
        role = Role(
            id=str(uuid4()),
            name=name,
            description=description,
            access=access or [],
            is_active=True,
        )
        self.db.add(role)
        self.db.flush()
        return role

    # ======================================================
    # 👤 User CRUD
    # ======================================================

    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone_number: Optional[str] = None,
        role_name: Optional[str] = None,
    ) -> User:
        """
        Register a new user. Email is stored lower-cased.

        :param first_name: First name
        :type first_name: str
        :param last_name: Last name
        :type last_name: str
        :param email: Login email (unique)
        :type email: str
        :param password: Plaintext password
        :type password: str
        :param phone_number: User phone number
        :type phone_number: Optional[str]
        :param role_name: Role to assign, defaults to Config.DEFAULT_ROLE_NAME
        :type role_name: Optional[str]
        """
        email = email.strip().lower()

        # 1️⃣ email 唯一性校验
        if self.get_user_by_email(email):
            raise ConflictError("An account with this email already exists")

        # 2️⃣ 创建用户
        role = self.get_or_create_role(role_name or Config.DEFAULT_ROLE_NAME)
        user = User(
            id=str(uuid4()),
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=self._hash_password(password),
            phone_number=phone_number,
            role_id=role.id,
            is_active=True,
        )

        self.db.add(user)
        self.db.flush()

        self.audit_log_service.record_create(
            entity_type=AuditEntityType.User,
            entity_id=user.id,
            operator_id=user.id,
        )
        logger.info(f"User registered: {user.email}")
        return user

    def authenticate(
        self,
        *,
        email: str,
        password: str,
    ) -> User:
        """
        Authenticate user by email + password.
        Returns User if successful and stamps last_login_at.

        :param email: Login email
        :type email: str
        :param password: Plaintext password
        :type password: str
        """

        user = self.get_user_by_email(email)

        if not user:
            raise AuthError("Invalid email or password")

        if not user.is_active:
            raise AuthError("User account is deactivated")

        if not self._verify_password(password, user.password_hash):
            raise AuthError("Invalid email or password")

        before = user.last_login_at
        user.last_login_at = utcnow()
        self.audit_log_service.record_system_update(
            entity_type=AuditEntityType.User,
            entity_id=user.id,
            changed_attribute="last_login_at",
            before_value=before,
            after_value=user.last_login_at,
            operator_id=user.id,
        )
        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id)
            .first()
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.email == email.strip().lower())
            .first()
        )

    # ======================================================
    # 🔁 Account maintenance
    # ======================================================

    def deactivate_user(self, *, user_id: str, operator_id: Optional[str] = None) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        if user.is_active:
            user.is_active = False
            self.audit_log_service.record_update(
                entity_type=AuditEntityType.User,
                entity_id=user.id,
                changed_attribute="is_active",
                before_value=True,
                after_value=False,
                operator_id=operator_id or user.id,
            )
            self.db.flush()
        return user
