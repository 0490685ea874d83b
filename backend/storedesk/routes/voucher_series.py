# Overview: Voucher series lanes: CRUD, number preview and atomic increments.

from flask import Blueprint, jsonify, request

from ..services.voucher_series_service import format_number, get_voucher_series_allocator
from ..validation import get_json_body, parse_int, parse_pagination, require_fields

voucher_series_bp = Blueprint("voucher_series", __name__, url_prefix="/api/voucher-series")


@voucher_series_bp.post("")
def create_series_route():
    data = get_json_body()
    require_fields(data, "store_id", "voucher_type", "series")
    lane = get_voucher_series_allocator().create_series(
        store_id=parse_int(data.get("store_id"), "store_id", required=True),
        voucher_type=data.get("voucher_type"),
        series=data.get("series"),
        starting_number=parse_int(data.get("current_number", 1), "current_number", minimum=1),
    )
    return jsonify({"voucher_series": lane.to_dict()}), 201


@voucher_series_bp.get("")
def list_series_route():
    limit, offset = parse_pagination(request.args)
    filters = {
        "store_id": parse_int(request.args.get("store_id"), "store_id"),
        "voucher_type": request.args.get("voucher_type") or None,
        "series": request.args.get("series") or None,
    }
    items, total = get_voucher_series_allocator().list_series(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [lane.to_dict() for lane in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@voucher_series_bp.get("/<int:series_id>")
def get_series_route(series_id: int):
    lane = get_voucher_series_allocator().get_series(series_id)
    return jsonify({"voucher_series": lane.to_dict()}), 200


@voucher_series_bp.get("/<int:series_id>/next-number")
def next_number_route(series_id: int):
    """Preview only; nothing is consumed."""
    return jsonify(get_voucher_series_allocator().get_next_number(series_id)), 200


@voucher_series_bp.post("/<int:series_id>/increment")
def increment_route(series_id: int):
    data = get_json_body()
    n = parse_int(data.get("n", 1), "n", minimum=1)
    lane, numbers = get_voucher_series_allocator().increment_by(series_id, n)
    return jsonify({
        "voucher_series": lane.to_dict(),
        "numbers": numbers,
        "formatted_numbers": [format_number(lane.series, number) for number in numbers],
    }), 200


@voucher_series_bp.route("/<int:series_id>", methods=["PUT", "PATCH"])
def update_series_route(series_id: int):
    data = get_json_body()
    lane = get_voucher_series_allocator().update_series(
        series_id,
        voucher_type=data.get("voucher_type"),
        series=data.get("series"),
        current_number=parse_int(data.get("current_number"), "current_number", minimum=1),
    )
    return jsonify({"voucher_series": lane.to_dict()}), 200


@voucher_series_bp.delete("/<int:series_id>")
def delete_series_route(series_id: int):
    get_voucher_series_allocator().delete_series(series_id)
    return "", 204
