# Overview: Health check endpoint.

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from fenceflow.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Round-trip a trivial query.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "connected", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "disconnected",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Liveness plus database connectivity.

    Returns:
    - 200: {"status": "OK", ...}
    - 503: database unreachable
    """
    database = check_database_health()
    healthy = database["status"] == "connected"

    response = {
        "status": "OK" if healthy else "ERROR",
        "message": "Fence management API is running" if healthy else "Database unavailable",
        "timestamp": to_utc_z(utcnow()),
        "database": database,
    }
    return jsonify(response), 200 if healthy else 503
