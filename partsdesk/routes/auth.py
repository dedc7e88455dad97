# partsdesk/routes/auth.py
from flask import Blueprint, session

from partsdesk.errors import AuthError
from partsdesk.routes.common import api_response, json_body, require_login, resolve_actor, unit_of_work
from partsdesk.schemas.auth import LoginIn, RegisterIn, UserDTO
from partsdesk.schemas.base_dto import parse_input
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.user_service import UserService

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    """注册"""
    data = parse_input(RegisterIn, json_body())
    with unit_of_work() as db:
        user_service = UserService(db, AuditLogService(db))
        user = user_service.create_user(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            password=data.password,
        )
        payload = UserDTO.from_orm_model(user).to_json()
    return api_response(payload, "User registered successfully", 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    """登录，成功后写入 session"""
    data = parse_input(LoginIn, json_body())
    with unit_of_work() as db:
        user_service = UserService(db, AuditLogService(db))
        user = user_service.authenticate(email=data.email, password=data.password)
        payload = UserDTO.from_orm_model(user).to_json()

        session.clear()
        session['user_id'] = user.id
        session['user_role'] = user.role.name if user.role else None
    return api_response(payload, "Login successful")


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """登出"""
    session.clear()
    return api_response(None, "Logged out")


@auth_bp.route('/me', methods=['GET'])
def me():
    check = require_login()
    if check:
        return check

    actor = resolve_actor()
    with unit_of_work() as db:
        user = UserService(db).get_user_by_id(actor.id)
        if not user or not user.is_active:
            session.clear()
            raise AuthError("Unauthorized")
        payload = UserDTO.from_orm_model(user).to_json()
    return api_response(payload)
