# Overview: Soft-delete status changes for stores, brands, categories, persons, customers and suppliers.

from flask import Blueprint, jsonify

from ..services.status_service import change_status, resolve_entity
from ..validation import get_json_body, require_fields

status_bp = Blueprint("status", __name__, url_prefix="/api")


@status_bp.route("/<string:entity>/<int:entity_id>/status", methods=["PATCH", "PUT"])
def change_status_route(entity: str, entity_id: int):
    model = resolve_entity(entity)
    data = get_json_body()
    require_fields(data, "status")
    record = change_status(model, entity_id, data.get("status"))
    return jsonify({"record": record.to_dict()}), 200
