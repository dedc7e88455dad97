# partsdesk/routes/common.py
from contextlib import contextmanager
from typing import Any, Dict, Optional

from flask import jsonify, request, session

from partsdesk.db.session import get_session
from partsdesk.errors import ValidationError
from partsdesk.services.actor import Actor


def resolve_actor() -> Optional[Actor]:
    """从服务端 session 解析当前操作者，未登录返回 None"""
    user_id = session.get("user_id")
    if not user_id:
        return None
    return Actor(id=user_id, role=session.get("user_role"))


def require_login():
    """检查登录状态，未登录返回 401 响应"""
    if resolve_actor() is None:
        return api_error("Unauthorized", 401)
    return None


def api_response(data: Any = None, message: str = "", status: int = 200):
    return jsonify({"status": "Success", "message": message, "data": data}), status


def api_error(message: str, status: int, data: Any = None):
    return jsonify({"status": "Error", "message": message, "data": data}), status


def query_args() -> Dict[str, str]:
    '''查询参数转 dict，空字符串视为未提供'''
    return {key: value for key, value in request.args.items() if value != ""}


def json_body() -> Any:
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError("Request body must be valid JSON")
    return body


@contextmanager
def unit_of_work():
    '''
    一个请求一个会话：成功 commit，异常 rollback 后继续抛出，最后 close
    '''
    db = get_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
