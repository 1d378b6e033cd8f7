"""
API Integration Tests
End-to-end testing of API endpoints with real HTTP requests
"""
import pytest
from datetime import date
from decimal import Decimal
from typing import Dict

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inventory_app.models.auth import Profile, UserAction, UserSession


class TestSystemAPI:
    """Health and info endpoints"""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    def test_system_info(self, client: TestClient):
        response = client.get("/info")

        assert response.status_code == 200
        data = response.json()
        assert data["api_version"] == "v1"
        assert "features" in data


class TestAuthenticationAPI:
    """Login, logout, profile and user creation"""

    def test_login_success(self, client: TestClient, db_session: Session, test_user: Profile):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": "viewer@example.com", "password": "viewerpassword123"},
            headers={"User-Agent": "Mozilla/5.0 (Windows NT 10.0)"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["session_id"]
        assert data["user"]["email"] == "viewer@example.com"
        assert data["user"]["is_admin"] is False

        session = db_session.get(UserSession, data["session_id"])
        assert session.device_type == "desktop"
        assert db_session.query(UserAction).filter(UserAction.action_type == "sign_in").count() == 1

    def test_login_invalid_credentials(self, client: TestClient, test_user: Profile):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": "viewer@example.com", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert "detail" in response.json()

    def test_protected_endpoint_without_auth(self, client: TestClient):
        assert client.get("/api/v1/inventory/warehouses").status_code == 401

    def test_me(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "viewer"

    def test_logout_ends_session(self, client: TestClient, db_session: Session, auth_headers: Dict[str, str]):
        response = client.post("/api/v1/auth/logout", headers=auth_headers)
        assert response.status_code == 200
        assert db_session.query(UserSession).filter(UserSession.ended_at.is_(None)).count() == 0
        assert db_session.query(UserAction).filter(UserAction.action_type == "sign_out").count() == 1

    def test_visibility_toggle(self, client: TestClient, db_session: Session, auth_headers: Dict[str, str]):
        hidden = client.post("/api/v1/auth/session/visibility", json={"visible": False}, headers=auth_headers)
        assert hidden.status_code == 200
        assert hidden.json()["ended"] is True

        visible = client.post("/api/v1/auth/session/visibility", json={"visible": True}, headers=auth_headers)
        assert visible.status_code == 200
        assert visible.json()["session_id"] == hidden.json()["session_id"]

    def test_create_user_requires_admin(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/auth/users",
            json={"email": "new@example.com", "password": "newpassword", "role": "viewer"},
            headers=auth_headers,
        )
        assert response.status_code == 403

    def test_admin_creates_user(self, client: TestClient, admin_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/auth/users",
            json={"email": "New@Example.com", "password": "newpassword", "role": "admin"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["is_admin"] is True

        duplicate = client.post(
            "/api/v1/auth/users",
            json={"email": "new@example.com", "password": "newpassword"},
            headers=admin_headers,
        )
        assert duplicate.status_code == 409


class TestMasterDataAPI:
    """Registry endpoints and role checks"""

    def test_list_tables(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/master-data/tables", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 8

    def test_list_records(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/master-data/warehouse", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["records"][0]["Common Name"] == "WH-A"

    def test_unknown_table(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/master-data/widgets", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_viewer_cannot_write(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/master-data/warehouse", json={"Common Name": "WH-C"}, headers=auth_headers
        )
        assert response.status_code == 403

    def test_admin_crud(self, client: TestClient, db_session: Session, master_data, admin_headers: Dict[str, str]):
        created = client.post(
            "/api/v1/master-data/warehouse",
            json={"Common Name": "WH-C", "City": "Fresno"},
            headers=admin_headers,
        )
        assert created.status_code == 201

        updated = client.put(
            "/api/v1/master-data/warehouse/WH-C", json={"City": "Modesto"}, headers=admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["City"] == "Modesto"

        deleted = client.delete("/api/v1/master-data/warehouse/WH-C", headers=admin_headers)
        assert deleted.status_code == 200

        missing = client.get("/api/v1/master-data/warehouse/WH-C", headers=admin_headers)
        assert missing.status_code == 404

        actions = {a.action_type for a in db_session.query(UserAction).all()}
        assert {"add_warehouse", "update_warehouse", "delete_warehouse"} <= actions

    def test_pack_size_key_with_slash(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/master-data/pack_size/4x1 gal/case", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == 1


class TestTransactionsAPI:
    """Transaction endpoints"""

    def _create(self, client, headers, **overrides):
        payload = {
            "type": "Inbound",
            "date": "2024-01-02",
            "warehouse": "WH-A",
            "reference_type": "Purchase Order",
            "status": "Received",
            "items": [{"item_name": "Widget", "quantity": "100"}],
        }
        payload.update(overrides)
        return client.post("/api/v1/transactions", json=payload, headers=headers)

    def test_create_and_get(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = self._create(client, auth_headers)
        assert response.status_code == 201
        created = response.json()
        assert created["reference_number"] == "IB-100001"
        assert Decimal(str(created["details"][0]["quantity"])) == Decimal("100")

        fetched = client.get(f"/api/v1/transactions/{created['transaction_id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["reference_type"] == "Purchase Order"

    def test_null_date_update_rejected(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        transaction_id = self._create(client, auth_headers).json()["transaction_id"]

        response = client.put(
            f"/api/v1/transactions/{transaction_id}", json={"transaction_date": None}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "validation_error", "detail": "Transaction date is required"}

    def test_invalid_status(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = self._create(client, auth_headers, status="Shipped")
        assert response.status_code == 400
        assert response.json()["detail"] == 'Status "Shipped" is not allowed for Inbound transaction'

    def test_transfer_and_blocked_delete(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/transactions/transfer",
            json={
                "date": "2024-02-01",
                "source_warehouse": "WH-A",
                "destination_warehouse": "WH-B",
                "items": [{"item_name": "Widget", "quantity": "10"}],
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        outbound = response.json()["outbound"]
        inbound = response.json()["inbound"]
        assert inbound["transaction_date"] == "2024-02-05"
        assert inbound["warehouse"] == "WH-B"

        blocked = client.delete(f"/api/v1/transactions/{outbound['transaction_id']}", headers=auth_headers)
        assert blocked.status_code == 409
        body = blocked.json()
        assert body["error"] == "referential_integrity"
        assert body["blocking_references"] == [inbound["reference_number"]]

    def test_update_advance_and_delete(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        created = self._create(client, auth_headers, type="Outbound", status="Pending").json()
        transaction_id = created["transaction_id"]
        detail_id = created["details"][0]["detail_id"]

        header = client.put(
            f"/api/v1/transactions/{transaction_id}", json={"customer_name": "Farm Co"}, headers=auth_headers
        )
        assert header.json()["customer_name"] == "Farm Co"

        bad_detail = client.put(
            f"/api/v1/transactions/{transaction_id}/details/{detail_id}",
            json={"quantity": "5", "inventory_status": "Stock", "status": "Received"},
            headers=auth_headers,
        )
        assert bad_detail.status_code == 400
        assert bad_detail.json()["detail"] == 'Status "Received" not allowed for Outbound transaction.'

        advanced = client.post(f"/api/v1/transactions/{transaction_id}/advance", headers=auth_headers)
        assert advanced.json()["details"][0]["status"] == "Shipped"

        deleted = client.delete(f"/api/v1/transactions/{transaction_id}", headers=auth_headers)
        assert deleted.status_code == 200
        assert client.get(f"/api/v1/transactions/{transaction_id}", headers=auth_headers).status_code == 404

    def test_list_filters(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        self._create(client, auth_headers)
        self._create(client, auth_headers, type="Outbound", status="Shipped", date="2024-01-03")

        response = client.get("/api/v1/transactions", params={"transaction_type": "Outbound"}, headers=auth_headers)
        assert response.status_code == 200
        assert [t["reference_number"] for t in response.json()] == ["OB-100001"]


class TestInventoryCountAPI:
    """Count workflow over HTTP"""

    def test_count_to_adjustment(self, client: TestClient, master_data, record_transaction, auth_headers: Dict[str, str]):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        start = client.post(
            "/api/v1/inventory/count/start", json={"warehouse": "WH-A", "date": "2024-03-31"}, headers=auth_headers
        )
        assert start.status_code == 200
        lines = start.json()["lines"]
        assert [l["item_name"] for l in lines] == ["Widget"]

        lines[0]["quantity"] = "80"
        variances = client.post(
            "/api/v1/inventory/count/variances",
            json={"warehouse": "WH-A", "date": "2024-03-31", "lines": lines},
            headers=auth_headers,
        )
        assert variances.status_code == 200
        review = variances.json()["review"]
        assert Decimal(str(review[0]["variance"])) == Decimal("-20")

        adjustment = client.post(
            "/api/v1/inventory/count/adjustment",
            json={"warehouse": "WH-A", "date": "2024-03-31", "variances": review},
            headers=auth_headers,
        )
        assert adjustment.status_code == 200
        body = adjustment.json()
        assert body["reference_number"] == "ADJ-100001"
        assert body["details"][0]["comments"] == "Count shortage"

        inventory = client.get(
            "/api/v1/inventory", params={"status": "Stock", "search": "WH-A"}, headers=auth_headers
        )
        widget = next(r for r in inventory.json() if r["item_name"] == "Widget")
        assert Decimal(str(widget["on_hand"])) == Decimal("80")

    def test_future_date_rejected(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/inventory/count/start", json={"warehouse": "WH-A", "date": "2999-01-01"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Count date cannot be in the future"

    def test_adjustment_rejects_inconsistent_variance(self, client: TestClient, record_transaction, auth_headers: Dict[str, str]):
        record_transaction("Inbound", date(2024, 3, 1), [("Widget", "100")], "Received")

        response = client.post(
            "/api/v1/inventory/count/adjustment",
            json={
                "warehouse": "WH-A",
                "date": "2024-03-31",
                "variances": [{
                    "item_name": "Widget",
                    "inventory_status": "Stock",
                    "physical_count": "80",
                    "calculated_count": "100",
                    "variance": "500",
                }],
            },
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

        listing = client.get("/api/v1/transactions", params={"transaction_type": "Adjustment"}, headers=auth_headers)
        assert listing.json() == []

    def test_warehouse_search(self, client: TestClient, master_data, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/inventory/warehouses", params={"search": "b"}, headers=auth_headers)
        assert [w["common_name"] for w in response.json()] == ["WH-B"]


class TestReportsAPI:
    """Reports over HTTP"""

    @pytest.fixture
    def history(self, record_transaction):
        record_transaction("Inbound", date(2024, 1, 2), [("Widget", "100"), ("Gizmo", "4")], "Received")
        record_transaction("Outbound", date(2024, 1, 3), [("Gizmo", "9")], "Shipped")

    def test_negative_report(self, client: TestClient, history, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/reports/negative", headers=auth_headers)
        assert response.status_code == 200
        items = response.json()["negative_items"]
        assert [(i["item_name"], i["warehouse"]) for i in items] == [("Gizmo", "WH-A")]

    def test_item_report(self, client: TestClient, history, auth_headers: Dict[str, str]):
        response = client.get("/api/v1/reports/item/Widget", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["transaction_count"] == 1

    def test_all_inventory_paged(self, client: TestClient, history, auth_headers: Dict[str, str]):
        response = client.get(
            "/api/v1/reports/all-inventory",
            params={"page_size": 5, "sort_by": "item_name", "sort_dir": "desc"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 12
        assert page["total_pages"] == 3
        assert page["items"][0]["item_name"] == "Widget"

    def test_manual_report(self, client: TestClient, history, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/reports/manual",
            json={
                "view": "vw_transaction_full",
                "columns": ["reference_number", "item_name"],
                "where": [{"column": "item_name", "operator": "=", "value": "Gizmo"}],
            },
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["row_count"] == 2

    def test_manual_report_invalid_view(self, client: TestClient, auth_headers: Dict[str, str]):
        response = client.post(
            "/api/v1/reports/manual", json={"view": "profiles", "columns": []}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid view name"
