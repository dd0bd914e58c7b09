"""
Cron endpoint that drives the watering reminder sweep.

An external scheduler (Render cron, Vercel cron, GitHub Actions...) calls
/api/v1/cron/watering-reminders with the shared secret in X-Cron-Secret.
"""

import hmac
from flask import Blueprint, request, jsonify, current_app
from ..utils.errors import log_warning
from ..services import garden


cron_bp = Blueprint("cron", __name__)


def _secret_matches(provided: str | None) -> bool:
    expected = current_app.config.get("CRON_SECRET", "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@cron_bp.route("/cron/watering-reminders", methods=["GET", "POST"])
def watering_reminders():
    """
    Run one reminder sweep.

    Returns:
        {"success": true, "remindersSent": 3, "stats": {...}}
    """
    if not _secret_matches(request.headers.get("X-Cron-Secret")):
        log_warning("Rejected watering reminder cron call", remote_addr=request.remote_addr)
        return jsonify({"error": "Unauthorized"}), 401

    stats = garden.get_context().engine.run_sweep_tick()
    if stats["errors"] and not stats["due"]:
        # The due list itself could not be read
        return jsonify({"success": False, "error": "Cron job failed", "stats": stats}), 500

    return jsonify({"success": True, "remindersSent": stats["sent"], "stats": stats})
