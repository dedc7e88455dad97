# partsdesk/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import os

from partsdesk.logger import get_logger

logger = get_logger(__name__)

_engine = None
_SessionLocal = None


def get_engine():
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            from partsdesk.config import Config
            db_url = Config.DATABASE_URL
        logger.info(f"Using database URL: {db_url}")
        connect_args = {}
        if db_url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
        _engine = create_engine(db_url, connect_args=connect_args)
    return _engine


def get_session():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine()
        )
    return _SessionLocal()


def reset_engine():
    '''丢弃当前 engine 和 sessionmaker，下次调用时按 DATABASE_URL 重新创建（测试用）'''
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
