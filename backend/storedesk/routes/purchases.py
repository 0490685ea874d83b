# Overview: Supplier purchases: registration, receiving into stock and cancellation.

from flask import Blueprint, jsonify, request

from ..services.purchase_service import get_purchase_service
from ..validation import get_json_body, parse_int, parse_pagination, require_fields

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def create_purchase_route():
    """
    Register a purchase.

    Body: store_id, supplier_id, user_id, document_type, details,
    purchase_date?, document_number?, tax?, discount?, notes?, status?
    """
    data = get_json_body()
    require_fields(data, "store_id", "supplier_id", "user_id", "document_type", "details")
    purchase = get_purchase_service().create_purchase(
        store_id=parse_int(data.get("store_id"), "store_id", required=True),
        supplier_id=parse_int(data.get("supplier_id"), "supplier_id", required=True),
        user_id=parse_int(data.get("user_id"), "user_id", required=True),
        document_type=data.get("document_type"),
        items=data.get("details"),
        purchase_date=data.get("purchase_date"),
        document_number=data.get("document_number"),
        tax=data.get("tax", 0),
        discount=data.get("discount", 0),
        notes=data.get("notes"),
        status=data.get("status") or "REGISTERED",
        currency=data.get("currency"),
    )
    return jsonify({"purchase": purchase.to_dict(include_details=True)}), 201


@purchases_bp.get("")
def list_purchases_route():
    limit, offset = parse_pagination(request.args)
    filters = {
        "store_id": parse_int(request.args.get("store_id"), "store_id"),
        "supplier_id": parse_int(request.args.get("supplier_id"), "supplier_id"),
        "user_id": parse_int(request.args.get("user_id"), "user_id"),
        "status": request.args.get("status") or None,
        "document_type": request.args.get("document_type") or None,
        "date_from": request.args.get("date_from") or None,
        "date_to": request.args.get("date_to") or None,
    }
    items, total = get_purchase_service().list_purchases(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [purchase.to_dict() for purchase in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    purchase = get_purchase_service().get_purchase(purchase_id)
    return jsonify({"purchase": purchase.to_dict(include_details=True)}), 200


@purchases_bp.patch("/<int:purchase_id>")
def update_purchase_route(purchase_id: int):
    data = get_json_body()
    purchase = get_purchase_service().update_purchase(
        purchase_id,
        notes=data.get("notes"),
        document_number=data.get("document_number"),
    )
    return jsonify({"purchase": purchase.to_dict(include_details=True)}), 200


@purchases_bp.post("/<int:purchase_id>/register")
def register_purchase_route(purchase_id: int):
    purchase = get_purchase_service().register_purchase(purchase_id)
    return jsonify({"purchase": purchase.to_dict(include_details=True)}), 200


@purchases_bp.post("/<int:purchase_id>/receive")
def receive_purchase_route(purchase_id: int):
    """REGISTERED -> RECEIVED; posts one ENTRY movement per line."""
    data = get_json_body()
    service = get_purchase_service()
    purchase = service.mark_as_received(purchase_id, user_id=parse_int(data.get("user_id"), "user_id"))
    return jsonify({
        "purchase": purchase.to_dict(include_details=True),
        "movements": [m.to_dict() for m in service.get_entries(purchase_id)],
    }), 200


@purchases_bp.post("/<int:purchase_id>/cancel")
def cancel_purchase_route(purchase_id: int):
    purchase = get_purchase_service().cancel_purchase(purchase_id)
    return jsonify({"purchase": purchase.to_dict(include_details=True)}), 200
