# Overview: Admin dashboard summary route.

from flask import Blueprint, jsonify

from ..services import dashboard_service
from ..decorators import require_admin

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/summary")
@require_admin
def summary_route():
    return jsonify(dashboard_service.get_summary())
