"""
Garden JSON API used by the front end.

Endpoints (mounted under /api/v1):
- GET    /garden             list the signed-in user's plants
- POST   /garden             add an identified plant
- POST   /garden/<id>/water  mark a plant watered
- DELETE /garden/<id>        remove a plant
"""

from flask import Blueprint, request, jsonify, current_app
from ..utils.auth import require_auth, get_current_user_id
from ..utils.errors import sanitize_error, log_info, GENERIC_MESSAGES
from ..utils.validation import validate_plant_payload, is_valid_uuid
from ..services import garden
from ..extensions import limiter


garden_bp = Blueprint("garden", __name__)


@garden_bp.before_request
def _enforce_ajax_for_mutations():
    """Enforce X-Requested-With header on all state-changing garden requests.

    HTML forms and cross-origin requests without CORS cannot set custom
    headers, so requiring one blocks cross-site form posts.
    """
    if request.method in ("POST", "PUT", "DELETE", "PATCH"):
        if request.headers.get("X-Requested-With") != "XMLHttpRequest":
            return jsonify({
                "success": False,
                "error": "Invalid request. Please refresh the page and try again."
            }), 403


def _not_found():
    return jsonify({"success": False, "error": GENERIC_MESSAGES["not_found"]}), 404


@garden_bp.route("/garden", methods=["GET"])
@require_auth
def list_garden():
    """Return the user's garden, newest plant first."""
    user_id = get_current_user_id()

    entries, error = garden.list_garden(user_id)
    if error:
        return jsonify({"error": sanitize_error(error, "database", "Load garden")}), 500

    return jsonify({"plants": [entry.to_api() for entry in entries]})


@garden_bp.route("/garden", methods=["POST"])
@require_auth
@limiter.limit(lambda: current_app.config["GARDEN_RATE_LIMIT"])
def add_to_garden():
    """
    Add an identified plant to the garden.

    Request body (JSON):
        {"plant": {"commonName": "...", "care": {"water": "Every 2-3 days", ...}, ...}}

    Returns:
        201 {"success": true, "plant": {...}, "nextWatering": "<iso>"}
    """
    user_id = get_current_user_id()

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "plant" not in data:
        return jsonify({"success": False, "error": "Plant data required"}), 400

    plant, validation_error = validate_plant_payload(data.get("plant"))
    if validation_error:
        return jsonify({"success": False, "error": validation_error}), 400

    entry, error = garden.add_plant(user_id, plant)
    if error:
        return jsonify({"success": False, "error": sanitize_error(error, "database", "Add to garden")}), 500

    log_info("Plant added to garden", user_id=user_id, plant_name=plant.common_name)
    payload = entry.to_api()
    return jsonify({"success": True, "plant": payload, "nextWatering": payload["nextWatering"]}), 201


@garden_bp.route("/garden/<entry_id>/water", methods=["POST"])
@require_auth
def water_plant(entry_id: str):
    """Mark a plant watered now; returns the recomputed next watering."""
    if not is_valid_uuid(entry_id):
        return _not_found()

    entry, error = garden.mark_watered(get_current_user_id(), entry_id)
    if error == garden.ERROR_NOT_FOUND:
        return _not_found()
    if error:
        return jsonify({"success": False, "error": sanitize_error(error, "database", "Water plant")}), 500

    payload = entry.to_api()
    return jsonify({"success": True, "plant": payload, "nextWatering": payload["nextWatering"]})


@garden_bp.route("/garden/<entry_id>", methods=["DELETE"])
@require_auth
def delete_from_garden(entry_id: str):
    """Remove a plant (and its pending reminders) from the garden."""
    if not is_valid_uuid(entry_id):
        return _not_found()

    _, error = garden.delete_plant(get_current_user_id(), entry_id)
    if error == garden.ERROR_NOT_FOUND:
        return _not_found()
    if error:
        return jsonify({"success": False, "error": sanitize_error(error, "database", "Delete plant")}), 500

    return jsonify({"success": True})
