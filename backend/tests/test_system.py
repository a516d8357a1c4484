# Overview: Pytest coverage for health, error handlers, CORS, seeding and CLI commands.

import pytest

from fenceflow.extensions import db
from fenceflow.models import User, Category, Project, Product
from fenceflow.services import bootstrap_service, product_service, project_service, user_service
from conftest import get_auth_token


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "OK"
        assert resp.json["database"]["status"] == "connected"
        assert resp.json["timestamp"].endswith("Z")


class TestErrorHandlers:

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.json == {"error": "Route not found"}

    def test_wrong_method_is_json_405(self, client, db_session):
        resp = client.delete("/api/health")
        assert resp.status_code == 405
        assert resp.json == {"error": "Method not allowed"}

    @pytest.mark.parametrize("service,func,path", [
        (product_service, "delete_product", "/api/products/1"),
        (project_service, "delete_project", "/api/projects/1"),
        (user_service, "delete_user", "/api/users/1"),
    ])
    def test_delete_failure_is_logged_json_500(self, client, admin_headers, monkeypatch, caplog,
                                                service, func, path):
        def boom(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(service, func, boom)
        resp = client.delete(path, headers=admin_headers)
        assert resp.status_code == 500
        assert resp.json == {"error": "Internal server error"}
        assert "Failed to delete" in caplog.text


class TestCors:

    def test_allowed_origin_is_echoed(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:8080"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:8080"
        assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]

    def test_unknown_origin_gets_no_header(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestSeed:

    def test_seed_creates_defaults(self, client, db_session):
        assert bootstrap_service.seed_initial_data() is True

        assert db_session.query(Category).count() == 6
        assert db_session.query(Project).count() == 2
        assert {p.sku for p in db_session.query(Product)} == {
            "FENCE-001", "CAM-001", "GATE-001", "TOOL-001", "SAFETY-001",
        }
        assert get_auth_token(client, "admin", "admin123") is not None
        assert get_auth_token(client, "agency1", "agency123") is not None

    def test_seed_is_idempotent(self, db_session):
        assert bootstrap_service.seed_initial_data() is True
        assert bootstrap_service.seed_initial_data() is False
        assert db_session.query(User).count() == 2


class TestCli:

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "ops",
            "--email", "ops@adrde.gov",
            "--name", "Operations",
            "--password", "opspass",
            "--role", "agency",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user: ops" in result.output

        db.session.expire_all()
        assert db.session.query(User).filter_by(username="ops").one().agency_name == "Operations"

        result = runner.invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "ops@adrde.gov" in result.output

    def test_users_create_rejects_short_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "ops",
            "--email", "ops@adrde.gov",
            "--name", "Operations",
            "--password", "123",
            "--role", "agency",
        ])
        assert result.exit_code != 0
        assert "Password validation failed" in result.output

    def test_system_init(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert db.session.query(Product).count() == 5

        result = runner.invoke(args=["system", "init"])
        assert "seed data skipped" in result.output

    def test_cleanup_security_events(self, app, db_session):
        from datetime import timedelta
        from fenceflow.models import SecurityEvent
        from fenceflow.time_utils import utcnow

        db_session.add(SecurityEvent(event_type="LOGIN_FAILED", action="admin", success=False,
                                     occurred_at=utcnow() - timedelta(days=120)))
        db_session.add(SecurityEvent(event_type="LOGIN_FAILED", action="admin", success=False,
                                     occurred_at=utcnow()))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-security-events"])
        assert result.exit_code == 0, result.output
        assert "Deleted 1 security events" in result.output
        assert db.session.query(SecurityEvent).count() == 1
        assert "LOGIN_FAILED: 1" in result.output

    def test_cleanup_rejects_zero_retention(self, app, db_session):
        result = app.test_cli_runner().invoke(
            args=["maintenance", "cleanup-security-events", "--retention-days", "0"]
        )
        assert result.exit_code != 0
        assert "retention_days must be at least 1" in result.output
