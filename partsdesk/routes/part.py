# partsdesk/routes/part.py
from flask import Blueprint, request

from partsdesk.routes.common import api_response, json_body, query_args, require_login, resolve_actor, unit_of_work
from partsdesk.schemas.base_dto import PageDTO, parse_input
from partsdesk.schemas.part import PartDTO, PartFilters, PartIn, PartUpdate
from partsdesk.schemas.part_item import PartItemDTO
from partsdesk.services.audit_log_service import AuditLogService
from partsdesk.services.part_item_service import PartItemService
from partsdesk.services.part_service import PartService

part_bp = Blueprint('part', __name__, url_prefix='/parts')


def _services(db):
    audit_log_service = AuditLogService(db)
    part_service = PartService(db, audit_log_service)
    part_item_service = PartItemService(db, audit_log_service, part_service)
    return part_service, part_item_service


# ======================================================
# 📦 Parts
# ======================================================

@part_bp.route('', methods=['GET'])
def list_parts():
    """零件列表（分页）"""
    check = require_login()
    if check:
        return check

    filters = parse_input(PartFilters, query_args())
    with unit_of_work() as db:
        part_service, _ = _services(db)
        parts, total = part_service.list_parts(filters)
        stock = part_service.available_stock([p.id for p in parts])
        page = PageDTO.build(
            data=[PartDTO.from_orm_model(p, stock.get(p.id, 0)) for p in parts],
            page=filters.page,
            limit=filters.limit,
            total=total,
        )
    return api_response(page.to_json(), "Parts fetched successfully")


@part_bp.route('', methods=['POST'])
def create_part():
    check = require_login()
    if check:
        return check

    data = parse_input(PartIn, json_body())
    with unit_of_work() as db:
        part_service, _ = _services(db)
        part = part_service.create_part(data=data, actor=resolve_actor())
        payload = PartDTO.from_orm_model(part, 0).to_json()
    return api_response(payload, "Part created successfully", 201)


@part_bp.route('/low-stock', methods=['GET'])
def low_stock():
    """可用库存低于最低库存的零件"""
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        part_service, _ = _services(db)
        payload = [
            PartDTO.from_orm_model(part, count).to_json()
            for part, count in part_service.get_low_stock()
        ]
    return api_response(payload)


# ======================================================
# 🏷 Part items
# ======================================================

@part_bp.route('/items', methods=['GET'])
def list_part_items():
    """库存件查询；?barcode= 精确查找，?checkBarcode= 检查条码占用"""
    check = require_login()
    if check:
        return check

    args = query_args()
    with unit_of_work() as db:
        _, part_item_service = _services(db)

        if args.get('barcode'):
            item = part_item_service.get_by_barcode(args['barcode'])
            payload = PartItemDTO.from_orm_model(item).to_json() if item else None
            return api_response(payload)

        if args.get('checkBarcode'):
            item = part_item_service.check_barcode(args['checkBarcode'])
            return api_response({
                "exists": item is not None,
                "item": PartItemDTO.from_orm_model(item).to_json() if item else None,
            })

        items = part_item_service.list_items(args)
        payload = [PartItemDTO.from_orm_model(item).to_json() for item in items]
    return api_response(payload, "Part items fetched successfully")


@part_bp.route('/items', methods=['POST'])
def create_part_items():
    """?bulk=true 时批量插入（全部成功或全部失败）"""
    check = require_login()
    if check:
        return check

    body = json_body()
    is_bulk = request.args.get('bulk') == 'true'
    with unit_of_work() as db:
        _, part_item_service = _services(db)
        if is_bulk:
            items = part_item_service.bulk_create(items=body, actor=resolve_actor())
            payload = [PartItemDTO.from_orm_model(item).to_json() for item in items]
            message = f"Successfully created {len(items)} part items"
        else:
            item = part_item_service.create_item(data=body, actor=resolve_actor())
            payload = PartItemDTO.from_orm_model(item).to_json()
            message = "Part item created successfully"
    return api_response(payload, message, 201)


@part_bp.route('/items', methods=['PUT', 'PATCH'])
def update_part_item():
    check = require_login()
    if check:
        return check

    body = json_body()
    with unit_of_work() as db:
        _, part_item_service = _services(db)
        item = part_item_service.update_item(patch=body, actor=resolve_actor())
        payload = PartItemDTO.from_orm_model(item).to_json()
    return api_response(payload, "Part item updated successfully")


# ======================================================
# 🔍 Single part
# ======================================================

@part_bp.route('/<part_id>', methods=['GET'])
def get_part(part_id):
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        part_service, _ = _services(db)
        part = part_service.get_by_id(part_id)
        stock = part_service.available_stock([part.id])
        payload = PartDTO.from_orm_model(part, stock[part.id]).to_json()
    return api_response(payload)


@part_bp.route('/<part_id>', methods=['PUT'])
def update_part(part_id):
    check = require_login()
    if check:
        return check

    patch = parse_input(PartUpdate, json_body())
    with unit_of_work() as db:
        part_service, _ = _services(db)
        part = part_service.update_part(part_id=part_id, patch=patch, actor=resolve_actor())
        payload = PartDTO.from_orm_model(part).to_json()
    return api_response(payload, "Part updated successfully!")


@part_bp.route('/<part_id>', methods=['DELETE'])
def delete_part(part_id):
    """软删除（停用）"""
    check = require_login()
    if check:
        return check

    with unit_of_work() as db:
        part_service, _ = _services(db)
        part = part_service.deactivate_part(part_id=part_id, actor=resolve_actor())
        payload = PartDTO.from_orm_model(part).to_json()
    return api_response(payload, "Part deactivated successfully!")
