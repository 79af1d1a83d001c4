import uuid

from app.api.routes import audits as audits_route
from tests.conftest import create_profile, make_user_token


def fake_run_stream(captured: list):
    async def run_stream(options, emit):
        captured.append(options)
        await emit("status", {"phase": "scraping", "message": "Starting audit...", "progress": 1})
        await emit("complete", {"url": options.url, "overallScore": 81})
        return None

    return run_stream


async def test_test_audit_requires_url(client):
    response = await client.get("/api/test-audit")
    assert response.status_code == 400
    assert response.json()["detail"] == "URL required. Use ?url=example.com"


async def test_audit_stream_requires_url(client):
    response = await client.get("/api/audit-stream")
    assert response.status_code == 400


async def test_audit_stream_relays_runner_events(client, monkeypatch):
    captured = []
    monkeypatch.setattr(audits_route.audit_runner, "run_stream", fake_run_stream(captured))

    response = await client.get("/api/audit-stream", params={"url": "acme.example", "pages": 3})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    body = response.text
    assert "event: status" in body
    assert "event: complete" in body
    assert body.index("event: status") < body.index("event: complete")

    options = captured[0]
    assert options.url == "acme.example"
    assert options.max_pages == 3
    assert options.user_id is None
    assert len(options.category_names) == len(audits_route.ALL_CATEGORIES)


async def test_audit_stream_caps_signed_in_user_to_plan(client, db, monkeypatch):
    captured = []
    monkeypatch.setattr(audits_route.audit_runner, "run_stream", fake_run_stream(captured))
    profile = await create_profile(db, id=uuid.uuid4(), tier="free", audits_limit=1, audits_used_this_month=0)

    response = await client.get(
        "/api/audit-stream",
        params={"url": "acme.example", "pages": 10},
        headers={"Authorization": f"Bearer {make_user_token(profile.id)}"},
    )

    assert response.status_code == 200
    options = captured[0]
    assert options.user_id == profile.id
    assert options.max_pages == 1
    assert len(options.category_names) == 3


async def test_audit_stream_refuses_user_without_audits(client, db, monkeypatch):
    monkeypatch.setattr(audits_route.audit_runner, "run_stream", fake_run_stream([]))
    profile = await create_profile(db, tier="free", audits_limit=1, audits_used_this_month=1)

    response = await client.get(
        "/api/audit-stream",
        params={"url": "acme.example"},
        headers={"Authorization": f"Bearer {make_user_token(profile.id)}"},
    )

    assert response.status_code == 403
    body = response.json()
    assert body["upgradeUrl"] == "/pricing"
    assert body["auditsRemaining"] == 0


async def test_admin_audits_are_not_metered(client, db, admin_headers, monkeypatch):
    captured = []
    monkeypatch.setattr(audits_route.audit_runner, "run_stream", fake_run_stream(captured))

    response = await client.get(
        "/api/audit-stream", params={"url": "acme.example", "pages": 5}, headers=admin_headers
    )

    assert response.status_code == 200
    assert captured[0].is_admin is True
    assert captured[0].max_pages == 5


async def test_unknown_website_type_is_404(client, monkeypatch):
    monkeypatch.setattr(audits_route.audit_runner, "run_stream", fake_run_stream([]))
    response = await client.get(
        "/api/audit-stream", params={"url": "acme.example", "websiteType": "no-such-type"}
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Website type not found"
