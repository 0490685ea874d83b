# Overview: Create, list, read and update for stores, brands, categories, persons, customers and suppliers.

from flask import Blueprint, jsonify, request

from ..services.entity_service import get_entity_service
from ..services.status_service import STATUS_ENTITIES, resolve_entity
from ..validation import get_json_body, parse_int, parse_pagination

entities_bp = Blueprint("entities", __name__, url_prefix="/api")

# Query args that carry ids rather than text
_INT_FILTERS = ("store_id", "person_id")


def create_entity_route(entity: str):
    model = resolve_entity(entity)
    record = get_entity_service(model).create_record(get_json_body())
    return jsonify({"record": record.to_dict()}), 201


def list_entities_route(entity: str):
    model = resolve_entity(entity)
    limit, offset = parse_pagination(request.args)
    filters = {key: request.args.get(key) or None for key in request.args if key not in ("limit", "offset")}
    for key in _INT_FILTERS:
        if key in filters:
            filters[key] = parse_int(filters[key], key)
    items, total = get_entity_service(model).list_records(filters, limit=limit, offset=offset)
    return jsonify({
        "items": [record.to_dict() for record in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200


def get_entity_route(entity: str, entity_id: int):
    model = resolve_entity(entity)
    record = get_entity_service(model).get_record(entity_id)
    return jsonify({"record": record.to_dict()}), 200


def update_entity_route(entity: str, entity_id: int):
    model = resolve_entity(entity)
    record = get_entity_service(model).update_record(entity_id, get_json_body())
    return jsonify({"record": record.to_dict()}), 200


# One concrete URL per segment so unknown segments stay 404 and never
# shadow the sale, product or register blueprints.
for _segment in STATUS_ENTITIES:
    entities_bp.add_url_rule(
        f"/{_segment}", f"create_{_segment}", create_entity_route,
        methods=["POST"], defaults={"entity": _segment},
    )
    entities_bp.add_url_rule(
        f"/{_segment}", f"list_{_segment}", list_entities_route,
        methods=["GET"], defaults={"entity": _segment},
    )
    entities_bp.add_url_rule(
        f"/{_segment}/<int:entity_id>", f"get_{_segment}", get_entity_route,
        methods=["GET"], defaults={"entity": _segment},
    )
    entities_bp.add_url_rule(
        f"/{_segment}/<int:entity_id>", f"update_{_segment}", update_entity_route,
        methods=["PATCH", "PUT"], defaults={"entity": _segment},
    )
