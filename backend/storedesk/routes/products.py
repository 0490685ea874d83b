# Overview: Product stock operations and the movement ledger.

from flask import Blueprint, jsonify, request

from ..repositories import ProductRepository
from ..services.inventory_service import get_inventory_service
from ..services.product_service import get_product_service
from ..validation import get_json_body, parse_int, parse_pagination, require_fields

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _movement_response(movement, status: int = 200):
    product = ProductRepository().find_by_id(movement.product_id)
    return jsonify({"movement": movement.to_dict(), "product": product.to_dict()}), status


@products_bp.post("")
def create_product_route():
    """
    Create a product.

    Body: store_id, sku, name, price, description?, brand_id?, category_id?,
    minimum_stock?, maximum_stock?, initial_stock?, user_id?
    """
    data = get_json_body()
    require_fields(data, "store_id", "sku", "name", "price")
    product = get_product_service().create_product(
        store_id=parse_int(data.get("store_id"), "store_id", required=True),
        sku=data.get("sku"),
        name=data.get("name"),
        price=data.get("price"),
        description=data.get("description"),
        brand_id=parse_int(data.get("brand_id"), "brand_id"),
        category_id=parse_int(data.get("category_id"), "category_id"),
        minimum_stock=data.get("minimum_stock"),
        maximum_stock=data.get("maximum_stock"),
        initial_stock=data.get("initial_stock", 0),
        user_id=parse_int(data.get("user_id"), "user_id"),
    )
    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("")
def list_products_route():
    limit, offset = parse_pagination(request.args)
    is_active = request.args.get("is_active")
    filters = {
        "store_id": parse_int(request.args.get("store_id"), "store_id"),
        "brand_id": parse_int(request.args.get("brand_id"), "brand_id"),
        "category_id": parse_int(request.args.get("category_id"), "category_id"),
        "is_active": None if is_active in (None, "") else is_active.strip().lower() in ("1", "true", "yes"),
        "search": request.args.get("search") or None,
    }
    items, total = get_product_service().list_products(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [p.to_dict() for p in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = get_product_service().get_product(product_id)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.route("/<int:product_id>", methods=["PATCH", "PUT"])
def update_product_route(product_id: int):
    data = get_json_body()
    patch = dict(data)
    for field in ("brand_id", "category_id"):
        if field in patch:
            patch[field] = parse_int(patch[field], field)
    product = get_product_service().update_product(product_id, patch)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Soft delete: the product is deactivated, its history stays."""
    product = get_product_service().delete_product(product_id)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.get("/low-stock")
def low_stock_route():
    store_id = parse_int(request.args.get("store_id"), "store_id", required=True)
    products = get_inventory_service().get_low_stock_products(store_id)
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.get("/out-of-stock")
def out_of_stock_route():
    store_id = parse_int(request.args.get("store_id"), "store_id", required=True)
    products = get_inventory_service().get_out_of_stock_products(store_id)
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.post("/<int:product_id>/stock/add")
def add_stock_route(product_id: int):
    data = get_json_body()
    require_fields(data, "quantity")
    movement = get_inventory_service().add_stock(
        product_id,
        data.get("quantity"),
        user_id=parse_int(data.get("user_id"), "user_id"),
        reason=data.get("reason"),
    )
    return _movement_response(movement, 201)


@products_bp.post("/<int:product_id>/stock/remove")
def remove_stock_route(product_id: int):
    data = get_json_body()
    require_fields(data, "quantity")
    movement = get_inventory_service().remove_stock(
        product_id,
        data.get("quantity"),
        user_id=parse_int(data.get("user_id"), "user_id"),
        reason=data.get("reason"),
    )
    return _movement_response(movement, 201)


@products_bp.post("/<int:product_id>/stock/adjust")
def adjust_stock_route(product_id: int):
    data = get_json_body()
    require_fields(data, "new_stock")
    movement = get_inventory_service().adjust_stock(
        product_id,
        data.get("new_stock"),
        user_id=parse_int(data.get("user_id"), "user_id"),
        reason=data.get("reason"),
    )
    return _movement_response(movement, 201)


@products_bp.post("/<int:product_id>/stock/loss")
def record_loss_route(product_id: int):
    data = get_json_body()
    require_fields(data, "quantity")
    movement = get_inventory_service().record_loss(
        product_id,
        data.get("quantity"),
        user_id=parse_int(data.get("user_id"), "user_id"),
        reason=data.get("reason"),
    )
    return _movement_response(movement, 201)


@products_bp.get("/<int:product_id>/movements")
def movement_history_route(product_id: int):
    limit, offset = parse_pagination(request.args)
    movements = get_inventory_service().get_movement_history(product_id, limit=limit, offset=offset)
    return jsonify({
        "items": [m.to_dict() for m in movements],
        "limit": limit,
        "offset": offset,
    }), 200
