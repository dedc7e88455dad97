# partsdesk/config.py
import os
from dotenv import load_dotenv

# 加载环境变量
load_dotenv()

# 获取项目根目录（使用绝对路径）
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Config:
    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'partsdesk.db')}")

    # Flask / Session
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    SESSION_TYPE = os.getenv("SESSION_TYPE", "filesystem")
    SESSION_FILE_DIR = os.getenv("SESSION_FILE_DIR", os.path.join(BASE_DIR, "flask_session"))
    SESSION_KEY_PREFIX = "partsdesk:"

    # Logging
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Users
    DEFAULT_ROLE_NAME = os.getenv("DEFAULT_ROLE_NAME", "user")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin12345")

    # Document defaults (days)
    QUOTATION_VALIDITY_DAYS = int(os.getenv("QUOTATION_VALIDITY_DAYS", "30"))
    INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", "30"))

    # API Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "5000"))

    @staticmethod
    def validate():
        """Ensure required settings are usable"""
        missing = []
        if not Config.DATABASE_URL:
            missing.append("DATABASE_URL")
        if not Config.SECRET_KEY:
            missing.append("SECRET_KEY")

        if missing:
            raise EnvironmentError(f"Missing required environment variables: {', '.join(missing)}")

        return True
