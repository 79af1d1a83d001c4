from datetime import datetime, timezone

from sqlalchemy import select

from app.models.email_subscriber import EmailSubscriber
from app.services.subscriber_service import (
    ALREADY_ON_WAITLIST,
    JOINED_WAITLIST,
    REJOINED_WAITLIST,
    subscriber_service,
)


async def test_email_capture_normalizes_and_reports_existing(client):
    response = await client.post(
        "/api/email-capture",
        json={"email": "  Lead@Example.COM ", "auditUrl": "https://shop.example"},
    )
    assert response.status_code == 200
    first = response.json()
    assert first["exists"] is False

    response = await client.post(
        "/api/email-capture",
        json={"email": "lead@example.com", "auditUrl": "https://other.example"},
    )
    second = response.json()
    assert second["exists"] is True
    assert second["id"] == first["id"]


async def test_email_capture_updates_audit_url(client, db):
    await client.post("/api/email-capture", json={"email": "a@b.co", "auditUrl": "https://one.example"})
    await client.post("/api/email-capture", json={"email": "a@b.co", "auditUrl": "https://two.example"})

    subscriber = (await db.execute(select(EmailSubscriber))).scalar_one()
    assert subscriber.email == "a@b.co"
    assert subscriber.audit_url == "https://two.example"
    assert subscriber.source == "audit"


async def test_email_capture_rejects_invalid_address(client):
    response = await client.post("/api/email-capture", json={"email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please provide a valid email address"


async def test_waitlist_signup_is_idempotent(client):
    response = await client.post("/api/waitlist", json={"email": "early@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == JOINED_WAITLIST

    response = await client.post("/api/waitlist", json={"email": "EARLY@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == ALREADY_ON_WAITLIST


async def test_waitlist_readds_unsubscribed_address(db):
    db.add(EmailSubscriber(
        email="back@example.com",
        source="audit",
        unsubscribed_at=datetime.now(timezone.utc),
    ))
    await db.flush()

    outcome = await subscriber_service.join_waitlist(db, "back@example.com")

    assert outcome.message == REJOINED_WAITLIST
    assert outcome.created is False
    subscriber = await subscriber_service.get_by_email(db, "back@example.com")
    assert subscriber.unsubscribed_at is None
    assert subscriber.source == "waitlist"
