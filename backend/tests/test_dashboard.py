# Overview: Pytest coverage for the admin dashboard summary.

from decimal import Decimal

from fenceflow.models import Product, Project


def test_summary_counts(client, admin_headers, agency_headers, db_session, product, second_product, project):
    db_session.add(Product(name="Old Sensor", sku="SENSOR-OLD", price=Decimal("10.00"),
                           stock_quantity=50, status="inactive"))
    db_session.add(Project(name="Done", status="completed"))
    db_session.commit()

    client.post("/api/orders", headers=agency_headers, json={"items": [{"product_id": product.id, "quantity": 1}]})

    resp = client.get("/api/dashboard/summary", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json == {
        "totalProjects": 2,
        "completedProjects": 1,
        "ongoingProjects": 1,
        "totalProducts": 3,
        "readyProducts": 1,
        "inProductionProducts": 1,
        "underMaintenanceProducts": 1,
        "totalOrders": 1,
        "pendingOrders": 1,
        "systemStatus": "Online",
    }


def test_summary_empty_database(client, admin_headers):
    resp = client.get("/api/dashboard/summary", headers=admin_headers)
    assert resp.json["totalProducts"] == 0
    assert resp.json["systemStatus"] == "Online"
