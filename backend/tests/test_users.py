# Overview: Pytest coverage for admin user management.

from decimal import Decimal

import pytest

from fenceflow.extensions import db
from fenceflow.models import User, Order, Project, InventoryTransaction
from fenceflow.services import user_service
from fenceflow.validation import BusinessRuleError
from conftest import get_auth_token


class TestUserListing:

    def test_list_users_hides_password_hash(self, client, admin_headers, agency_user):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 2
        assert all("password_hash" not in u for u in resp.json["users"])

    def test_filter_by_role(self, client, admin_headers, agency_user, other_agency_user):
        resp = client.get("/api/users?role=agency", headers=admin_headers)
        assert {u["username"] for u in resp.json["users"]} == {"agency1", "agency2"}

    def test_invalid_role_filter(self, client, admin_headers):
        resp = client.get("/api/users?role=root", headers=admin_headers)
        assert resp.status_code == 400

    def test_get_user(self, client, admin_headers, agency_user):
        resp = client.get(f"/api/users/{agency_user.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == "agency1"

    def test_get_missing_user(self, client, admin_headers):
        resp = client.get("/api/users/9999", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json["error"] == "User not found"

    def test_stats(self, client, admin_headers, agency_user, other_agency_user):
        resp = client.get("/api/users/stats/overview", headers=admin_headers)
        assert resp.json == {"total_users": 3, "admin_users": 1, "agency_users": 2}


class TestUserCreate:

    def test_admin_can_create_admin(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={
            "username": "admin2",
            "email": "admin2@adrde.gov",
            "password": "secret99",
            "name": "Second Admin",
            "role": "admin",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "admin"
        assert get_auth_token(client, "admin2", "secret99") is not None

    def test_create_duplicate_username(self, client, admin_headers, agency_user):
        resp = client.post("/api/users", headers=admin_headers, json={
            "username": "agency1",
            "email": "fresh@adrde.gov",
            "password": "secret99",
            "name": "Dup",
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "Username already exists"

    def test_create_missing_password(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={
            "username": "nopass",
            "email": "nopass@adrde.gov",
            "name": "No Pass",
        })
        assert resp.status_code == 400
        assert resp.json["errors"][0]["field"] == "password"


class TestUserUpdate:

    def test_update_user(self, client, admin_headers, agency_user):
        resp = client.put(f"/api/users/{agency_user.id}", headers=admin_headers, json={
            "name": "Agency One",
            "agency_name": "Northern Command",
            "role": "admin",
        })
        assert resp.status_code == 200
        assert resp.json["user"]["agency_name"] == "Northern Command"
        assert resp.json["user"]["role"] == "admin"

    def test_update_password(self, client, admin_headers, agency_user):
        resp = client.put(f"/api/users/{agency_user.id}", headers=admin_headers, json={"password": "rotated1"})
        assert resp.status_code == 200
        assert get_auth_token(client, "agency1", "rotated1") is not None

    def test_update_weak_password(self, client, admin_headers, agency_user):
        resp = client.put(f"/api/users/{agency_user.id}", headers=admin_headers, json={"password": "123"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("payload", [
        {"name": ""},
        {"email": "broken"},
        {"role": "superuser"},
    ])
    def test_update_invalid(self, client, admin_headers, agency_user, payload):
        resp = client.put(f"/api/users/{agency_user.id}", headers=admin_headers, json=payload)
        assert resp.status_code == 400

    def test_update_email_taken(self, client, admin_headers, agency_user):
        resp = client.put(f"/api/users/{agency_user.id}", headers=admin_headers, json={"email": "admin@adrde.gov"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Email already exists"

    def test_cannot_demote_last_admin(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/users/{admin_user.id}", headers=admin_headers, json={"role": "agency"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Cannot demote the last admin user"

    def test_update_missing_user(self, client, admin_headers):
        resp = client.put("/api/users/9999", headers=admin_headers, json={"name": "x"})
        assert resp.status_code == 404


class TestUserDelete:

    def test_delete_user_clears_references(self, client, admin_headers, agency_user, db_session, product):
        project = Project(name="Managed", status="planning", manager_id=agency_user.id)
        db_session.add(project)
        db_session.add(InventoryTransaction(product_id=product.id, transaction_type="in",
                                            quantity=1, reference_type="manual", created_by=agency_user.id))
        db_session.commit()
        project_id = project.id

        resp = client.delete(f"/api/users/{agency_user.id}", headers=admin_headers)
        assert resp.status_code == 200

        db.session.expire_all()
        assert db.session.get(Project, project_id).manager_id is None
        assert db.session.query(InventoryTransaction).one().created_by is None
        assert db.session.query(User).count() == 1

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cannot delete your own account"

    def test_cannot_delete_last_admin(self, db_session, admin_user, agency_user):
        # Unreachable over HTTP (the caller is itself an admin), so exercise the service
        with pytest.raises(BusinessRuleError, match="Cannot delete the last admin user"):
            user_service.delete_user(actor=agency_user, user_id=admin_user.id)

    def test_cannot_delete_user_with_orders(self, client, admin_headers, agency_user, db_session):
        db_session.add(Order(order_number="ORD-1-CAFEBABE", user_id=agency_user.id, total_amount=Decimal("0")))
        db_session.commit()

        resp = client.delete(f"/api/users/{agency_user.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cannot delete user that has orders"

    def test_delete_missing_user(self, client, admin_headers):
        resp = client.delete("/api/users/9999", headers=admin_headers)
        assert resp.status_code == 404
