# backend/uidops/routes/records.py
"""
Scan record routes.

Thin JSON wrappers over record_service:
- PATCH  /records/<id>       single field edit (draft shell on first edit)
- POST   /records            full create / natural-key upsert
- POST   /records/bulk       batch upsert (list body or {"rows": [...]})
- GET    /records            filter by from/to/status, capped by limit
- DELETE /records/by-key     duplicate cleanup by (sku_code, uid), single or batched
- DELETE /records/<id>       duplicate cleanup by id
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import business_clock, completion_bus
from ..services import record_service
from ..validation import StorageError, ValidationError


records_bp = Blueprint("records", __name__, url_prefix="/records")


@records_bp.patch("/<record_id>")
def patch_record_route(record_id: str):
    data = request.get_json(silent=True) or {}
    field = data.get("field")
    if not record_id or not field:
        return jsonify({"error": "id and field required"}), 400

    try:
        result = record_service.patch_field(
            record_id,
            field,
            data.get("value"),
            clock=business_clock(),
            bus=completion_bus(),
        )
        return jsonify(result.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to patch record %s", record_id)
        return jsonify({"error": "Storage error"}), 500


@records_bp.post("")
def create_record_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body required"}), 400

    try:
        result = record_service.create_or_upsert(data, clock=business_clock(), bus=completion_bus())
        return jsonify({"ok": True, "record": result.record, "created": result.created}), (201 if result.created else 200)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to upsert record")
        return jsonify({"error": "Storage error"}), 500


@records_bp.post("/bulk")
def bulk_records_route():
    data = request.get_json(silent=True)
    rows = data.get("rows") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        return jsonify({"error": "rows must be a list"}), 400

    try:
        result = record_service.bulk_upsert(rows, clock=business_clock(), bus=completion_bus())
        return jsonify(result.to_dict()), 200
    except StorageError:
        current_app.logger.exception("Failed to bulk upsert %d rows", len(rows))
        return jsonify({"error": "Storage error"}), 500


@records_bp.get("")
def list_records_route():
    max_limit = current_app.config["RECORDS_QUERY_MAX_LIMIT"]
    limit = request.args.get("limit", type=int)
    if limit is not None and limit > max_limit:
        limit = max_limit

    try:
        records = record_service.query_records(
            date_from=request.args.get("from"),
            date_to=request.args.get("to"),
            status=request.args.get("status"),
            limit=limit,
        )
        return jsonify({"records": [r.to_dict() for r in records]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@records_bp.delete("/by-key")
def delete_by_key_route():
    data = request.get_json(silent=True) or {}
    pairs = data.get("pairs") if isinstance(data, dict) else data
    if pairs is None:
        pairs = [data]
    if not isinstance(pairs, list) or not all(isinstance(p, dict) for p in pairs):
        return jsonify({"error": "pairs must be a list of {sku_code, uid}"}), 400

    try:
        deleted = record_service.delete_by_natural_keys(
            (p.get("sku_code"), p.get("uid")) for p in pairs
        )
        return jsonify({"ok": True, "deleted": deleted}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to delete records by key")
        return jsonify({"error": "Storage error"}), 500


@records_bp.delete("/<record_id>")
def delete_record_route(record_id: str):
    try:
        deleted = record_service.delete_record(record_id)
        return jsonify({"ok": True, "deleted": deleted}), 200
    except StorageError:
        current_app.logger.exception("Failed to delete record %s", record_id)
        return jsonify({"error": "Storage error"}), 500
