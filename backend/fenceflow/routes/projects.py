# Overview: Flask API routes for project operations; parses input and returns JSON responses.

"""
Project routes.

SECURITY: All routes require authentication.
- Reads are open to admin and agency users
- Writes are admin-only
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Project, PROJECT_STATUSES
from ..services import project_service
from ..services.pagination import parse_pagination
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_int_arg,
    parse_choice_arg,
    collect_query_errors,
    ValidationError,
    BusinessRuleError,
    NotFoundError,
)
from ..decorators import require_any_role, require_admin

PROJECT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "description", "status", "start_date", "end_date", "budget", "manager_id"}),
    required_on_create=frozenset({"name", "status"}),
    choices={"status": PROJECT_STATUSES},
    min_values={"budget": 0},
)

projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


@projects_bp.get("")
@require_any_role
def list_projects_route():
    """
    List projects, newest first.

    Query params:
    - status: planning|in_progress|completed|on_hold
    - manager_id: int
    - page, limit: pagination (limit max 100)
    """
    try:
        status, manager_id = collect_query_errors(
            lambda: parse_choice_arg(request.args, "status", PROJECT_STATUSES),
            lambda: parse_int_arg(request.args, "manager_id", minimum=1),
        )
        page, limit = parse_pagination(request.args)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400

    return jsonify(project_service.list_projects(
        status=status, manager_id=manager_id, page=page, limit=limit,
    ))


@projects_bp.get("/stats/overview")
@require_any_role
def project_stats_route():
    return jsonify(project_service.project_stats())


@projects_bp.get("/<int:project_id>")
@require_any_role
def get_project_route(project_id: int):
    try:
        project = project_service.get_project(project_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"project": project})


@projects_bp.post("")
@require_admin
def create_project_route():
    try:
        patch = validate_payload(
            model=Project,
            payload=request.get_json(silent=True),
            policy=PROJECT_POLICY,
            partial=False,
        )
        project = project_service.create_project(patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create project")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Project created successfully", "project": project}), 201


@projects_bp.put("/<int:project_id>")
@require_admin
def update_project_route(project_id: int):
    try:
        patch = validate_payload(
            model=Project,
            payload=request.get_json(silent=True),
            policy=PROJECT_POLICY,
            partial=True,
        )
        project = project_service.update_project(project_id=project_id, patch=patch)
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update project")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Project updated successfully", "project": project})


@projects_bp.delete("/<int:project_id>")
@require_admin
def delete_project_route(project_id: int):
    try:
        project_service.delete_project(project_id=project_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BusinessRuleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete project")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Project deleted successfully"})
