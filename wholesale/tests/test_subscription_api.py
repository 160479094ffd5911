"""
Test subscription, account and admin routes.
"""
from datetime import datetime

from wholesale.core.config import settings
from wholesale.features.audit.service import log_limit_reached, log_upgrade
from wholesale.tests.factories import add_broadcasts, add_products, create_account


ADMIN_KEY = "admin-key-for-tests"


def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


class TestPlansEndpoint:
    def test_lists_active_plans_in_order(self, client):
        resp = client.get("/api/subscription/plans")

        assert resp.status_code == 200
        plans = resp.json()["data"]
        assert [p["plan_id"] for p in plans] == ["free", "standard", "premium"]
        assert plans[1]["monthly_price"] == "9.99"
        assert plans[2]["limits"]["products"] == -1


class TestStatusEndpoint:
    def test_requires_auth(self, client):
        assert client.get("/api/subscription/status").status_code == 401

    def test_missing_account_reads_as_free(self, client):
        resp = client.get("/api/subscription/status", headers=_headers("nobody"))

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["current_plan"] == "free"
        assert data["is_active"] is False

    def test_standard_account(self, client):
        create_account("u_std", plan="standard")

        data = client.get("/api/subscription/status", headers=_headers("u_std")).json()["data"]

        assert data["current_plan"] == "standard"
        assert data["is_active"] is True
        assert data["plan"]["limits"]["teamMembers"] == 3


class TestUsageEndpoint:
    def test_usage_report(self, client):
        create_account("u_free")
        add_products("u_free", 3)
        add_broadcasts("u_free", [datetime(2025, 6, 3), datetime(2025, 5, 3)])

        resp = client.get(
            "/api/subscription/usage",
            params={"now": "2025-06-20T10:00:00"},
            headers=_headers("u_free"),
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "plan": "free",
            "limits": {"products": 10, "broadcasts": 5, "teamMembers": 1, "customGroups": 2},
            "usage": {"products": 3, "broadcasts": 1, "teamMembers": 1},
            "percentUsed": {"products": 30, "broadcasts": 20, "teamMembers": 100},
        }

    def test_invalid_now_is_400(self, client):
        resp = client.get("/api/subscription/usage", params={"now": "yesterday"}, headers=_headers("u1"))
        assert resp.status_code == 400


class TestHistoryEndpoint:
    def test_history_newest_first(self, client):
        create_account("u_hist")
        log_upgrade("u_hist", "free", "standard")
        log_limit_reached("u_hist", "products", 50, "standard")

        resp = client.get("/api/subscription/history", headers=_headers("u_hist"))

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert [e["event_type"] for e in body["data"]] == ["limit_reached", "upgrade"]


class TestAccountsEndpoint:
    def test_register_creates_free_account(self, client):
        resp = client.post(
            "/api/accounts/me",
            json={"email": "shop@example.com", "business_name": "Corner Shop"},
            headers=_headers("u_new"),
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["current_plan"] == "free"
        assert data["subscription_status"] == "inactive"

    def test_register_is_idempotent(self, client):
        create_account("u_std", plan="standard")

        resp = client.post("/api/accounts/me", json={}, headers=_headers("u_std"))

        assert resp.json()["data"]["current_plan"] == "standard"

    def test_get_missing_account_is_404(self, client):
        resp = client.get("/api/accounts/me", headers=_headers("nobody"))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"


class TestAdminEndpoints:
    def test_override_requires_admin_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)

        resp = client.post(
            "/api/admin/subscription/override",
            json={"user_id": "u1", "plan_id": "premium", "reason": "pilot"},
            headers={"X-Admin-Key": "wrong"},
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "admin_required"

    def test_override_without_configured_key_is_forbidden(self, client):
        resp = client.post(
            "/api/admin/subscription/override",
            json={"user_id": "u1", "plan_id": "premium", "reason": "pilot"},
            headers={"X-Admin-Key": "anything"},
        )
        assert resp.status_code == 403

    def test_override_changes_limits(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)
        create_account("u_free")
        add_products("u_free", 10)

        resp = client.post(
            "/api/admin/subscription/override",
            json={"user_id": "u_free", "plan_id": "premium", "reason": "pilot"},
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["current_plan"] == "premium"

        resp = client.post(
            "/api/products",
            json={"name": "Rice 25kg", "price": "30.00"},
            headers=_headers("u_free"),
        )
        assert resp.status_code == 201

    def test_override_unknown_plan_is_404(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)

        resp = client.post(
            "/api/admin/subscription/override",
            json={"user_id": "u1", "plan_id": "enterprise", "reason": "typo"},
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 404

    def test_stats(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)
        log_upgrade("u1", "free", "standard")
        log_limit_reached("u2", "broadcasts", 5, "free")

        resp = client.get(
            "/api/admin/subscription/stats",
            params={"timeRange": "7d"},
            headers={"X-Admin-Key": ADMIN_KEY},
        )

        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["timeRange"] == "7d"
        assert stats["upgrades"] == 1
        assert stats["limitReached"] == 1
        assert stats["totalEvents"] == 2

    def test_stats_rejects_unknown_range(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_KEY", ADMIN_KEY)

        resp = client.get(
            "/api/admin/subscription/stats",
            params={"timeRange": "1y"},
            headers={"X-Admin-Key": ADMIN_KEY},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"
