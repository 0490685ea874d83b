# Overview: Sale documents: creation, listing and lifecycle transitions.

from flask import Blueprint, jsonify, request

from ..services.sale_service import get_sale_service
from ..validation import get_json_body, parse_int, parse_pagination, require_fields

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Create a PENDING sale.

    Body: store_id, user_id, document_type, series, sale_date?, subtotal?,
    tax?, discount?, payment_method?, customer_id?, notes?, items?
    """
    data = get_json_body()
    require_fields(data, "store_id", "user_id", "document_type", "series")
    sale = get_sale_service().create_sale(
        store_id=parse_int(data.get("store_id"), "store_id", required=True),
        user_id=parse_int(data.get("user_id"), "user_id", required=True),
        document_type=data.get("document_type"),
        series=data.get("series"),
        sale_date=data.get("sale_date"),
        subtotal=data.get("subtotal"),
        tax=data.get("tax", 0),
        discount=data.get("discount", 0),
        payment_method=data.get("payment_method", "CASH"),
        customer_id=parse_int(data.get("customer_id"), "customer_id"),
        notes=data.get("notes"),
        items=data.get("items"),
        currency=data.get("currency"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 201


@sales_bp.get("")
def list_sales_route():
    limit, offset = parse_pagination(request.args)
    filters = {
        "store_id": parse_int(request.args.get("store_id"), "store_id"),
        "customer_id": parse_int(request.args.get("customer_id"), "customer_id"),
        "user_id": parse_int(request.args.get("user_id"), "user_id"),
        "status": request.args.get("status") or None,
        "document_type": request.args.get("document_type") or None,
        "date_from": request.args.get("date_from") or None,
        "date_to": request.args.get("date_to") or None,
    }
    items, total = get_sale_service().list_sales(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [sale.to_dict() for sale in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    sale = get_sale_service().get_sale(sale_id)
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200


@sales_bp.patch("/<int:sale_id>")
def update_sale_route(sale_id: int):
    data = get_json_body()
    sale = get_sale_service().update_sale(
        sale_id,
        notes=data.get("notes"),
        customer_id=parse_int(data.get("customer_id"), "customer_id"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    get_sale_service().delete_sale(sale_id)
    return "", 204


@sales_bp.post("/<int:sale_id>/complete")
def complete_sale_route(sale_id: int):
    """PENDING -> COMPLETED; takes stock. Optional body: items (for sales created without lines), user_id."""
    data = get_json_body()
    sale = get_sale_service().process_sale_with_products(
        sale_id,
        items=data.get("items"),
        user_id=parse_int(data.get("user_id"), "user_id"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200


@sales_bp.post("/<int:sale_id>/cancel")
def cancel_sale_route(sale_id: int):
    data = get_json_body()
    sale = get_sale_service().cancel_sale(
        sale_id,
        reason=data.get("reason"),
        user_id=parse_int(data.get("user_id"), "user_id"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200


@sales_bp.post("/<int:sale_id>/refund")
def refund_sale_route(sale_id: int):
    data = get_json_body()
    sale = get_sale_service().refund_sale(
        sale_id,
        reason=data.get("reason"),
        user_id=parse_int(data.get("user_id"), "user_id"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200


@sales_bp.patch("/<int:sale_id>/status")
def update_sale_status_route(sale_id: int):
    data = get_json_body()
    require_fields(data, "status")
    sale = get_sale_service().update_sale_status(
        sale_id,
        data.get("status"),
        reason=data.get("reason"),
        user_id=parse_int(data.get("user_id"), "user_id"),
    )
    return jsonify({"sale": sale.to_dict(include_details=True)}), 200
