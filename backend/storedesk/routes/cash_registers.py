# Overview: Cash register shifts: open, record sales, lock/unlock and close.

from flask import Blueprint, jsonify, request

from ..errors import NotFoundError
from ..services.cash_register_service import get_cash_register_service
from ..validation import get_json_body, parse_int, parse_pagination, require_fields

cash_registers_bp = Blueprint("cash_registers", __name__, url_prefix="/api/cash-registers")


@cash_registers_bp.post("/open")
def open_register_route():
    data = get_json_body()
    require_fields(data, "store_id", "user_id")
    register = get_cash_register_service().open_register(
        store_id=parse_int(data.get("store_id"), "store_id", required=True),
        user_id=parse_int(data.get("user_id"), "user_id", required=True),
        initial_amount=data.get("initial_amount", 0),
    )
    return jsonify({"cash_register": register.to_dict()}), 201


@cash_registers_bp.get("")
def list_registers_route():
    limit, offset = parse_pagination(request.args)
    filters = {
        "store_id": parse_int(request.args.get("store_id"), "store_id"),
        "user_id": parse_int(request.args.get("user_id"), "user_id"),
        "status": request.args.get("status") or None,
    }
    items, total = get_cash_register_service().list_registers(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [register.to_dict() for register in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@cash_registers_bp.get("/open")
def open_register_for_user_route():
    user_id = parse_int(request.args.get("user_id"), "user_id", required=True)
    register = get_cash_register_service().get_open_register_for_user(user_id)
    if not register:
        raise NotFoundError("Open cash register for user", user_id)
    return jsonify({"cash_register": register.to_dict()}), 200


@cash_registers_bp.get("/<int:register_id>")
def get_register_route(register_id: int):
    register = get_cash_register_service().get_register(register_id)
    return jsonify({"cash_register": register.to_dict()}), 200


@cash_registers_bp.post("/<int:register_id>/sales")
def add_sale_route(register_id: int):
    data = get_json_body()
    require_fields(data, "amount")
    register = get_cash_register_service().add_sale(register_id, data.get("amount"))
    return jsonify({"cash_register": register.to_dict()}), 200


@cash_registers_bp.post("/<int:register_id>/close")
def close_register_route(register_id: int):
    data = get_json_body()
    require_fields(data, "final_amount")
    register = get_cash_register_service().close_register(
        register_id, data.get("final_amount"), data.get("observations"),
    )
    return jsonify({"cash_register": register.to_dict()}), 200


@cash_registers_bp.post("/<int:register_id>/lock")
def lock_register_route(register_id: int):
    data = get_json_body()
    register = get_cash_register_service().lock_register(register_id, data.get("observations"))
    return jsonify({"cash_register": register.to_dict()}), 200


@cash_registers_bp.post("/<int:register_id>/unlock")
def unlock_register_route(register_id: int):
    register = get_cash_register_service().unlock_register(register_id)
    return jsonify({"cash_register": register.to_dict()}), 200
