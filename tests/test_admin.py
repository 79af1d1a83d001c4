from app.core.auth import ADMIN_TOKEN_COOKIE
from app.core.config import settings
from app.models.audit import Audit
from app.models.email_subscriber import EmailSubscriber
from tests.conftest import create_profile


async def test_login_rejects_wrong_password(client):
    response = await client.post(
        "/api/admin/login",
        json={"email": "admin@webcore.test", "password": "wrong"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


async def test_login_sets_admin_cookie(client):
    response = await client.post(
        "/api/admin/login",
        json={"email": "Admin@WebCore.test", "password": "correct-horse"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["expiresAt"]
    assert response.cookies.get(ADMIN_TOKEN_COOKIE) == body["token"]


async def test_login_refused_without_token_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_JWT_SECRET", "")
    response = await client.post(
        "/api/admin/login",
        json={"email": "admin@webcore.test", "password": "correct-horse"},
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "Admin auth not configured"


async def test_admin_routes_require_token(client):
    for path in ("/api/admin/stats", "/api/admin/audits", "/api/admin/users", "/api/admin/subscriptions"):
        response = await client.get(path)
        assert response.status_code == 401, path


async def test_user_token_is_not_an_admin_token(client):
    response = await client.get("/api/admin/stats", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_dashboard_stats(client, db, admin_headers):
    db.add_all([
        Audit(url="https://a.example", status=Audit.STATUS_COMPLETED, overall_score=80,
              total_tokens=1000, estimated_cost=0.01),
        Audit(url="https://b.example", status=Audit.STATUS_COMPLETED, overall_score=60,
              total_tokens=500, estimated_cost=0.005),
        Audit(url="https://c.example", status=Audit.STATUS_FAILED, error_message="boom"),
        EmailSubscriber(email="lead@example.com", source="audit"),
    ])
    await db.commit()

    response = await client.get("/api/admin/stats", headers=admin_headers)

    assert response.status_code == 200
    stats = response.json()["stats"]
    assert stats["totalAudits"] == 3
    assert stats["completedAudits"] == 2
    assert stats["failedAudits"] == 1
    assert stats["totalTokens"] == 1500
    assert stats["avgScore"] == 70
    assert stats["emailSubscribers"] == 1
    assert len(response.json()["recentAudits"]) == 3


async def test_audit_list_filters_admin_runs(client, db, admin_headers):
    db.add_all([
        Audit(url="https://admin.example", status=Audit.STATUS_COMPLETED, overall_score=90, is_admin=True),
        Audit(url="https://user.example", status=Audit.STATUS_COMPLETED, overall_score=40, is_admin=False),
        Audit(url="https://legacy.example", status=Audit.STATUS_PENDING, is_admin=None),
    ])
    await db.commit()

    response = await client.get("/api/admin/audits?filter=admin", headers=admin_headers)
    assert response.status_code == 200
    assert [a["url"] for a in response.json()["audits"]] == ["https://admin.example"]

    response = await client.get("/api/admin/audits?filter=user&sort=score&direction=desc", headers=admin_headers)
    urls = [a["url"] for a in response.json()["audits"]]
    assert urls == ["https://user.example", "https://legacy.example"]


async def test_user_search(client, db, admin_headers):
    await create_profile(db, email="alice@example.com", full_name="Alice", tier="pro")
    await create_profile(db, email="bob@example.com", full_name="Bob", tier="free")

    response = await client.get("/api/admin/users?search=ALICE", headers=admin_headers)

    assert response.status_code == 200
    users = response.json()["users"]
    assert [u["email"] for u in users] == ["alice@example.com"]
