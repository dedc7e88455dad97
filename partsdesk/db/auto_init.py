"""
数据库自动初始化检查模块
在应用启动时自动检查并执行必要的初始化步骤：建表、默认角色、管理员账号
"""
from sqlalchemy import inspect

from partsdesk.config import Config
from partsdesk.db.session import get_engine, get_session
from partsdesk.db.init_db import init_db
from partsdesk.logger import get_logger
from partsdesk.services.user_service import UserService

logger = get_logger(__name__)

DEFAULT_ROLES = {
    "admin": ("Full access", ["*"]),
    "user": ("Parts, quotations and invoices", ["parts", "quotations", "invoices"]),
}


def check_tables_exist() -> bool:
    """检查数据库表是否存在"""
    inspector = inspect(get_engine())
    return "users" in inspector.get_table_names()


def ensure_default_roles():
    db = get_session()
    try:
        user_service = UserService(db)
        for name, (description, access) in DEFAULT_ROLES.items():
            user_service.get_or_create_role(name, description=description, access=access)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_admin_user(email: str = None, password: str = None) -> bool:
    """
    创建管理员用户，已存在则跳过

    :return: 是否新建
    """
    email = email or Config.ADMIN_EMAIL
    password = password or Config.ADMIN_PASSWORD

    db = get_session()
    try:
        user_service = UserService(db)
        if user_service.get_user_by_email(email):
            logger.info(f"Admin user already exists: {email}")
            return False

        user_service.create_user(
            first_name="System",
            last_name="Administrator",
            email=email,
            password=password,
            role_name="admin",
        )
        db.commit()
        logger.info(f"Admin user created: {email} (change the password after first login)")
        return True
    except Exception:
        db.rollback()
        logger.exception("Failed to create admin user")
        raise
    finally:
        db.close()


def auto_init():
    """
    自动初始化检查
    如果数据库未初始化或缺少管理员用户，自动执行初始化
    """
    logger.info("Checking database initialisation...")

    if not check_tables_exist():
        logger.info("Tables missing, creating schema")
        init_db()

    ensure_default_roles()
    create_admin_user()
    logger.info("Database initialisation check finished")


if __name__ == "__main__":
    auto_init()
