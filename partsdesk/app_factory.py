'''“组装 Flask App 的工厂”（不启动，不产生行为副作用）
app_factory.py 是可复用、可测试、无副作用的 Flask 装配层，负责注入配置，注册蓝图，初始化 session，注册 error handler，
但不负责启动服务（不调用 app.run()）
会被 run.py / gunicorn / 单元测试调用'''
# partsdesk/app_factory.py
import os
from typing import Any, Dict, Optional

from flask import Flask
from flask_session import Session
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from partsdesk.config import Config
from partsdesk.errors import DomainError, is_unique_violation
from partsdesk.logger import get_logger
from partsdesk.routes.common import api_error

logger = get_logger(__name__)


def create_app(config_overrides: Optional[Dict[str, Any]] = None):
    """应用工厂函数"""
    app = Flask(__name__)

    # 基础配置
    app.config['SECRET_KEY'] = Config.SECRET_KEY
    app.config['DATABASE_URL'] = Config.DATABASE_URL
    app.config['JSON_SORT_KEYS'] = False

    # Session 配置
    app.config['SESSION_TYPE'] = Config.SESSION_TYPE
    app.config['SESSION_PERMANENT'] = False
    app.config['SESSION_USE_SIGNER'] = True
    app.config['SESSION_KEY_PREFIX'] = Config.SESSION_KEY_PREFIX
    app.config['SESSION_FILE_DIR'] = Config.SESSION_FILE_DIR

    if config_overrides:
        app.config.update(config_overrides)

    if app.config['SESSION_TYPE'] == 'filesystem':
        os.makedirs(app.config['SESSION_FILE_DIR'], exist_ok=True)

    # 初始化 Session
    Session(app)

    # 注册蓝图
    from partsdesk.routes.auth import auth_bp
    from partsdesk.routes.company import company_bp
    from partsdesk.routes.part import part_bp
    from partsdesk.routes.quotation import quotation_bp
    from partsdesk.routes.invoice import invoice_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(part_bp)
    app.register_blueprint(quotation_bp)
    app.register_blueprint(invoice_bp)

    # 注册错误处理
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """注册错误处理器，统一返回 {status, message, data} 信封"""

    @app.errorhandler(DomainError)
    def domain_error(error: DomainError):
        if error.http_status >= 500:
            logger.error(f"{error.error_type.value}: {error.message}", exc_info=error)
        return api_error(error.message, error.http_status, error.details)

    @app.errorhandler(IntegrityError)
    def integrity_error(error: IntegrityError):
        logger.warning(f"Integrity error: {error.orig}")
        if is_unique_violation(error):
            return api_error("Conflicting data", 409)
        return api_error("Invalid data", 400)

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return api_error(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logger.exception(f"Unhandled error: {error}")
        return api_error("Internal server error", 500)
