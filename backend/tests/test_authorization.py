"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Roles outside an endpoint's allow-list get 403
- Ownership checks: 404 for a missing resource, 403 for someone else's
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/users/me"),
            ("POST", "/api/users/staff"),
            ("POST", "/api/users/logout"),
            ("DELETE", "/api/users/1"),
            ("GET", "/api/branches"),
            ("POST", "/api/branches"),
            ("GET", "/api/stores"),
            ("POST", "/api/stores/branch/1"),
            ("GET", "/api/inventories/1"),
            ("POST", "/api/inventories/1/items"),
            ("GET", "/api/item"),
            ("POST", "/api/item/items/bulk"),
            ("GET", "/api/categories"),
            ("POST", "/api/transactions"),
            ("GET", "/api/transactions/store/1"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_version_is_public(self, client, app):
        resp = client.get("/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == app.config["APP_VERSION"]


# =============================================================================
# ROLE CHECKS - 403
# =============================================================================


class TestCashierDenied:
    """Cashier role cannot manage the catalogue, stores or users."""

    def test_cannot_create_branch(self, client, cashier_headers):
        resp = client.post("/api/branches", json={"name": "X", "address": "Y"}, headers=cashier_headers)
        assert resp.status_code == 403
        assert "ADMIN" in resp.get_json()["required_roles"]

    def test_cannot_create_item(self, client, cashier_headers, category):
        resp = client.post(
            "/api/item",
            json={"name": "Gum", "price_cents": 50, "category_id": category.id},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_list_categories(self, client, cashier_headers):
        assert client.get("/api/categories", headers=cashier_headers).status_code == 403

    def test_cannot_bulk_load(self, client, cashier_headers, store, items):
        resp = client.post(
            "/api/item/items/bulk",
            json={"inventory_id": store.inventory.id, "items": [{"item_id": items[0].id, "quantity": 1}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_delete_user(self, client, cashier_headers, manager):
        assert client.delete(f"/api/users/{manager.id}", headers=cashier_headers).status_code == 403

    def test_can_read_items(self, client, cashier_headers, items):
        resp = client.get("/api/item", headers=cashier_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()) == 2


class TestManagerLimits:

    def test_manager_cannot_create_branch(self, client, manager_headers):
        resp = client.post("/api/branches", json={"name": "X", "address": "Y"}, headers=manager_headers)
        assert resp.status_code == 403

    def test_manager_cannot_delete_store(self, client, manager_headers, store):
        assert client.delete(f"/api/stores/{store.id}", headers=manager_headers).status_code == 403

    def test_manager_cannot_delete_users(self, client, manager_headers, cashier):
        assert client.delete(f"/api/users/{cashier.id}", headers=manager_headers).status_code == 403

    def test_manager_cannot_grant_admin(self, client, manager_headers, cashier, db_session):
        resp = client.put(f"/api/users/{cashier.id}", json={"role": "ADMIN"}, headers=manager_headers)
        assert resp.status_code == 403
        db_session.refresh(cashier)
        assert cashier.role == "CASHIER"

    def test_manager_is_not_branch_owner(self, client, manager_headers, branch):
        resp = client.post(
            f"/api/stores/branch/{branch.id}",
            json={"name": "Kiosk", "code": "K-1", "address": "Mall", "outlet_type": "KIOSK"},
            headers=manager_headers,
        )
        assert resp.status_code == 403


# =============================================================================
# OWNERSHIP - 404 / 403
# =============================================================================


class TestOwnership:

    def test_owner_can_update_branch(self, client, admin_headers, branch):
        resp = client.put(f"/api/branches/{branch.id}", json={"phone": "555-0199"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["phone"] == "555-0199"

    def test_other_admin_cannot_update_branch(self, client, other_admin_headers, branch):
        resp = client.put(f"/api/branches/{branch.id}", json={"phone": "000"}, headers=other_admin_headers)
        assert resp.status_code == 403

    def test_other_admin_cannot_delete_branch(self, client, other_admin_headers, branch, db_session):
        resp = client.delete(f"/api/branches/{branch.id}", headers=other_admin_headers)
        assert resp.status_code == 403

    def test_missing_branch_is_404(self, client, admin_headers, db_session):
        resp = client.put("/api/branches/9999", json={"phone": "1"}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Branch not found"

    def test_other_admin_cannot_update_store(self, client, other_admin_headers, store):
        resp = client.put(f"/api/stores/{store.id}", json={"phone": "1"}, headers=other_admin_headers)
        assert resp.status_code == 403

    def test_other_admin_cannot_add_store_to_branch(self, client, other_admin_headers, branch):
        resp = client.post(
            f"/api/stores/branch/{branch.id}",
            json={"name": "Pop-up", "code": "PU-1", "address": "Park", "outlet_type": "KIOSK"},
            headers=other_admin_headers,
        )
        assert resp.status_code == 403

    def test_branch_listing_is_per_tenant(self, client, admin_headers, other_admin_headers, manager_headers, branch):
        assert len(client.get("/api/branches", headers=admin_headers).get_json()) == 1
        assert client.get("/api/branches", headers=other_admin_headers).get_json() == []
        # Staff see their tenant owner's branches
        assert [b["id"] for b in client.get("/api/branches", headers=manager_headers).get_json()] == [branch.id]


# =============================================================================
# USER MANAGEMENT SCOPE - tenant and rank
# =============================================================================


class TestUserManagementScope:
    """Users can only be read or changed inside the caller's tenant, and managers only below themselves."""

    def test_manager_cannot_demote_admin(self, client, manager_headers, admin, db_session):
        resp = client.put(f"/api/users/{admin.id}", json={"role": "CASHIER"}, headers=manager_headers)
        assert resp.status_code == 403
        db_session.refresh(admin)
        assert admin.role == "ADMIN"

    def test_manager_cannot_reset_admin_password(self, client, login, manager_headers, admin):
        resp = client.put(f"/api/users/{admin.id}", json={"password": "Hijack123!"}, headers=manager_headers)
        assert resp.status_code == 403
        assert login(admin.email, "Hijack123!").status_code == 401
        assert login(admin.email).status_code == 200

    def test_manager_cannot_touch_peer_manager(self, client, manager_headers, admin, user_factory, db_session):
        peer = user_factory("night_manager", "MANAGER", manager=admin)
        resp = client.put(f"/api/users/{peer.id}", json={"is_active": False}, headers=manager_headers)
        assert resp.status_code == 403
        db_session.refresh(peer)
        assert peer.is_active is True

    def test_manager_can_manage_own_staff(self, client, manager_headers, cashier):
        resp = client.put(f"/api/users/{cashier.id}", json={"fullname": "Till Renamed"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["fullname"] == "Till Renamed"

    def test_other_tenant_cannot_update(self, client, other_admin_headers, cashier, db_session):
        resp = client.put(f"/api/users/{cashier.id}", json={"is_active": False}, headers=other_admin_headers)
        assert resp.status_code == 404
        db_session.refresh(cashier)
        assert cashier.is_active is True

    def test_other_tenant_cannot_delete(self, client, other_admin_headers, cashier, db_session):
        from retailhub.models import User

        resp = client.delete(f"/api/users/{cashier.id}", headers=other_admin_headers)
        assert resp.status_code == 404
        assert db_session.get(User, cashier.id) is not None

    def test_other_tenant_cannot_read(self, client, other_admin_headers, cashier):
        assert client.get(f"/api/users/{cashier.id}", headers=other_admin_headers).status_code == 404
