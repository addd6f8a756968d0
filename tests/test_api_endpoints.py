"""
Tests for API endpoints
"""

import pytest
from sqlalchemy.orm import Session

from app.services.account_service import AccountService

PROOF = "data:image/png;base64,AAA"


@pytest.fixture
def auth():
    """Identity returned by the overridden auth dependency; tests switch users by editing it"""
    return {"uid": "uid_alice", "email": "alice@example.com", "name": "Alice", "token": {}}


@pytest.fixture
def client(db_session: Session, auth):
    """Test client sharing the test database session, with Firebase auth bypassed"""
    from fastapi.testclient import TestClient
    from app.core.database import get_db
    from app.core.middleware import get_current_user
    from app.main import app

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: dict(auth)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session: Session):
    AccountService().register_user(db_session, "admin@example.com", "Admin", is_admin=True)
    return {"uid": "uid_admin", "email": "admin@example.com", "name": "Admin", "token": {}}


def _login(auth, identity):
    auth.clear()
    auth.update(identity)


def _register(client, auth, email, name):
    _login(auth, {"uid": f"uid_{name}", "email": email, "name": name, "token": {}})
    response = client.post("/api/v1/accounts/register", json={})
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoint:

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuthentication:

    def test_missing_token_is_rejected(self, client):
        from app.core.middleware import get_current_user
        from app.main import app

        app.dependency_overrides.pop(get_current_user)
        response = client.get("/api/v1/accounts/me")
        assert response.status_code in (401, 403)

    def test_invalid_token_is_rejected(self, client, mock_firebase_admin):
        from app.core.middleware import get_current_user
        from app.main import app

        app.dependency_overrides.pop(get_current_user)
        mock_firebase_admin.verify_id_token.side_effect = ValueError("bad token")
        response = client.get("/api/v1/accounts/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestAccountEndpoints:

    def test_register_and_me(self, client, auth):
        body = _register(client, auth, "alice@example.com", "Alice")
        assert body["plan"] == "free"
        assert body["role"] == {"kind": "standalone"}

        response = client.get("/api/v1/accounts/me")
        assert response.status_code == 200
        me = response.json()
        assert me["email"] == "alice@example.com"
        assert me["effective_plan"] == "free"
        assert me["subscription_status"] == "active"

    def test_register_twice_conflicts(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        response = client.post("/api/v1/accounts/register", json={})
        assert response.status_code == 409

    def test_me_without_account(self, client):
        response = client.get("/api/v1/accounts/me")
        assert response.status_code == 404

    def test_plan_request(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")

        response = client.post("/api/v1/accounts/plan-requests", json={
            "plan": "pro",
            "company_name": "Acme",
            "payment_proof_image": PROOF,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["pending_plan"] == "pro"
        assert body["subscription_status"] == "payment_pending"
        assert body["unread_notifications"] == 1

        again = client.post("/api/v1/accounts/plan-requests", json={"plan": "custom"})
        assert again.status_code == 409

    def test_unknown_plan_is_rejected(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        response = client.post("/api/v1/accounts/plan-requests", json={"plan": "platinum"})
        assert response.status_code == 422

    def test_team_member_request(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")

        response = client.post("/api/v1/accounts/team/members", json={
            "member_email": "bob@example.com",
            "payment_proof_image": PROOF,
        })
        assert response.status_code == 200
        assert response.json()["role"] == {
            "kind": "owner",
            "members": [],
            "pending_members": ["bob@example.com"],
        }

    def test_team_member_request_requires_proof(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        response = client.post("/api/v1/accounts/team/members", json={
            "member_email": "bob@example.com",
            "payment_proof_image": "",
        })
        assert response.status_code == 422

    def test_remove_unknown_member(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        response = client.delete("/api/v1/accounts/team/members/bob@example.com")
        assert response.status_code == 404

    def test_projects(self, client, auth, db_session: Session):
        from app.models.project import Project

        _register(client, auth, "alice@example.com", "Alice")
        db_session.add(Project(id="p1", name="Bridge", user_email="alice@example.com"))
        db_session.commit()

        response = client.get("/api/v1/accounts/projects")
        assert response.status_code == 200
        assert [p["id"] for p in response.json()["projects"]] == ["p1"]


class TestNotificationEndpoints:

    def test_mark_one_and_all(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        client.post("/api/v1/accounts/plan-requests", json={"plan": "pro"})
        user = client.post("/api/v1/accounts/team/members", json={
            "member_email": "bob@example.com",
            "payment_proof_image": PROOF,
        }).json()
        first_id = user["notifications"][0]["id"]

        response = client.patch(f"/api/v1/notifications/{first_id}", json={"read": True})
        assert response.status_code == 200
        assert response.json()["unread_notifications"] == 1

        response = client.patch("/api/v1/notifications/missing", json={"read": True})
        assert response.status_code == 200
        assert response.json()["unread_notifications"] == 1

        response = client.post("/api/v1/notifications/read-all")
        assert response.status_code == 200
        assert response.json()["unread_notifications"] == 0


class TestSubscriptionEndpoints:

    def test_plans_are_public(self, client):
        response = client.get("/api/v1/subscriptions/plans")
        assert response.status_code == 200
        assert [p["tier"] for p in response.json()["plans"]] == ["free", "pro", "custom"]

    def test_history_after_approval(self, client, auth, admin):
        alice = {"uid": "uid_alice", "email": "alice@example.com", "name": "Alice", "token": {}}
        _register(client, auth, "alice@example.com", "Alice")
        client.post("/api/v1/accounts/plan-requests", json={"plan": "pro"})

        _login(auth, admin)
        inquiry_id = client.get("/api/v1/admin/plan-inquiries").json()["inquiries"][0]["id"]
        client.post(f"/api/v1/admin/plan-inquiries/{inquiry_id}/approve")

        _login(auth, alice)
        response = client.get("/api/v1/subscriptions/history")
        assert response.status_code == 200
        history = response.json()["history"]
        assert [(h["from_plan"], h["to_plan"]) for h in history] == [("free", "pro")]


class TestAdminEndpoints:

    def test_non_admin_is_forbidden(self, client, auth):
        _register(client, auth, "alice@example.com", "Alice")
        assert client.get("/api/v1/admin/users").status_code == 403
        assert client.post("/api/v1/admin/plan-inquiries/x/approve").status_code == 403

    def test_admin_from_settings(self, client, auth, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "admin_emails", ["boss@example.com"])
        _login(auth, {"uid": "uid_boss", "email": "boss@example.com", "name": "Boss", "token": {}})
        assert client.get("/api/v1/admin/users").status_code == 200

    def test_admin_email_from_settings_ignores_case(self, client, auth, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "admin_emails", ["boss@example.com"])
        _login(auth, {"uid": "uid_boss", "email": " Boss@Example.com", "name": "Boss", "token": {}})
        assert client.get("/api/v1/admin/users").status_code == 200

    def test_admin_account_flag_ignores_case(self, client, auth, admin):
        _login(auth, {**admin, "email": "ADMIN@example.com"})
        assert client.get("/api/v1/admin/users").status_code == 200

    def test_plan_inquiry_approval(self, client, auth, admin):
        _register(client, auth, "alice@example.com", "Alice")
        client.post("/api/v1/accounts/plan-requests", json={"plan": "pro"})

        _login(auth, admin)
        inquiries = client.get("/api/v1/admin/plan-inquiries", params={"status": "pending"}).json()["inquiries"]
        assert len(inquiries) == 1

        response = client.post(f"/api/v1/admin/plan-inquiries/{inquiries[0]['id']}/approve")
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["plan"] == "pro"
        assert body["user"]["pending_plan"] is None
        assert body["inquiries"][0]["status"] == "approved"

        again = client.post(f"/api/v1/admin/plan-inquiries/{inquiries[0]['id']}/reject")
        assert again.status_code == 409

    def test_unknown_inquiry(self, client, auth, admin):
        _login(auth, admin)
        assert client.post("/api/v1/admin/plan-inquiries/missing/approve").status_code == 404
        assert client.post("/api/v1/admin/team-inquiries/missing/reject").status_code == 404

    def test_team_inquiry_approval(self, client, auth, admin):
        _register(client, auth, "bob@example.com", "Bob")
        _register(client, auth, "alice@example.com", "Alice")
        client.post("/api/v1/accounts/team/members", json={
            "member_email": "bob@example.com",
            "payment_proof_image": PROOF,
        })

        _login(auth, admin)
        inquiry_id = client.get("/api/v1/admin/team-inquiries").json()["inquiries"][0]["id"]
        response = client.post(f"/api/v1/admin/team-inquiries/{inquiry_id}/approve")

        assert response.status_code == 200
        owner, member = response.json()["users"]
        assert owner["role"]["members"] == ["bob@example.com"]
        assert member["role"] == {"kind": "member", "member_of": "alice@example.com"}

    def test_team_inquiry_rejection(self, client, auth, admin):
        _register(client, auth, "alice@example.com", "Alice")
        client.post("/api/v1/accounts/team/members", json={
            "member_email": "bob@example.com",
            "payment_proof_image": PROOF,
        })

        _login(auth, admin)
        inquiry_id = client.get("/api/v1/admin/team-inquiries").json()["inquiries"][0]["id"]
        response = client.post(f"/api/v1/admin/team-inquiries/{inquiry_id}/reject")

        assert response.status_code == 200
        assert response.json()["owner"]["role"] == {"kind": "standalone"}

    def test_users_listing_and_crm_update(self, client, auth, admin):
        _register(client, auth, "alice@example.com", "Alice")

        _login(auth, admin)
        users = client.get("/api/v1/admin/users").json()["users"]
        assert [u["email"] for u in users] == ["alice@example.com"]
        assert users[0]["project_count"] == 0

        response = client.put("/api/v1/admin/users", json={
            "users": [{"email": "alice@example.com", "crm_notes": "follow up in March"}]
        })
        assert response.status_code == 200
        assert response.json()["users"][0]["crm_notes"] == "follow up in March"
        assert response.json()["users"][0]["name"] == "Alice"

    def test_delete_user(self, client, auth, admin):
        _register(client, auth, "alice@example.com", "Alice")

        _login(auth, admin)
        response = client.delete("/api/v1/admin/users/alice@example.com")
        assert response.status_code == 204
        assert client.get("/api/v1/admin/users").json()["users"] == []

        assert client.delete("/api/v1/admin/users/alice@example.com").status_code == 404

    def test_refresh_statuses(self, client, auth, admin):
        _login(auth, admin)
        response = client.post("/api/v1/admin/subscriptions/refresh")
        assert response.status_code == 200
        assert response.json() == {"changed": 0}
