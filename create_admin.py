# create_admin.py
"""
创建初始管理员 / 示例用户
⚠️ 仅用于开发 / 手动维护
"""
from partsdesk.db.auto_init import create_admin_user, ensure_default_roles
from partsdesk.db.init_db import init_db
from partsdesk.db.session import get_session
from partsdesk.logger import get_logger
from partsdesk.services.user_service import UserService

logger = get_logger("create_admin")

SAMPLE_USERS = [
    {
        "first_name": "Sales",
        "last_name": "One",
        "email": "sales1@example.com",
        "password": "Sales12345",
    },
    {
        "first_name": "Sales",
        "last_name": "Two",
        "email": "sales2@example.com",
        "password": "Sales12345",
    },
]


def create_sample_users():
    db = get_session()
    try:
        user_service = UserService(db)
        for u in SAMPLE_USERS:
            if user_service.get_user_by_email(u["email"]):
                logger.info(f"User '{u['email']}' already exists, skipped")
                continue
            user_service.create_user(**u)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    ensure_default_roles()
    create_admin_user()
    create_sample_users()
