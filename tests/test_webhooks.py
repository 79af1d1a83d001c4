import hashlib
import hmac
import json
import time

from sqlalchemy import select

from app.core.config import settings
from app.models.invoice import Invoice
from app.models.subscription_event import SubscriptionEvent
from app.models.user_profile import UserProfile
from app.services.webhook_service import webhook_service
from tests.conftest import create_profile


def sign(payload: str, secret: str = None, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    timestamp = timestamp or int(time.time())
    secret = secret or settings.STRIPE_WEBHOOK_SECRET
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


async def test_audit_pack_checkout_adds_audits_without_changing_tier(db):
    profile = await create_profile(db, tier="pro", audits_limit=25, purchased_audits=2)

    await webhook_service.handle_event(db, {
        "id": "evt_pack",
        "type": "checkout.session.completed",
        "data": {"object": {
            "metadata": {"userId": str(profile.id), "type": "audit_pack", "audits": "25", "tier": "pro"},
        }},
    })

    assert profile.purchased_audits == 27
    assert profile.tier == "pro"
    assert profile.audits_limit == 25


async def test_subscription_checkout_sets_tier_and_resets_usage(db):
    profile = await create_profile(db, tier="free", audits_limit=1, audits_used_this_month=1)

    await webhook_service.handle_event(db, {
        "id": "evt_sub",
        "type": "checkout.session.completed",
        "data": {"object": {
            "customer": "cus_123",
            "subscription": "sub_123",
            "metadata": {"userId": str(profile.id), "tier": "pro"},
        }},
    })

    assert profile.tier == "pro"
    assert profile.audits_limit == 25
    assert profile.audits_used_this_month == 0
    assert profile.subscription_status == UserProfile.STATUS_ACTIVE
    assert profile.stripe_customer_id == "cus_123"
    assert profile.stripe_subscription_id == "sub_123"


async def test_subscription_deleted_downgrades_and_clears_packs(db):
    profile = await create_profile(
        db, tier="agency", audits_limit=100, purchased_audits=40, stripe_customer_id="cus_gone"
    )

    await webhook_service.handle_event(db, {
        "id": "evt_del",
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_gone", "customer": "cus_gone"}},
    })

    assert profile.tier == "free"
    assert profile.subscription_status == UserProfile.STATUS_CANCELED
    assert profile.audits_limit == 1
    assert profile.purchased_audits == 0


async def test_payment_failed_marks_past_due_and_records_open_invoice(db):
    profile = await create_profile(db, tier="pro", audits_limit=25, stripe_customer_id="cus_late")

    await webhook_service.handle_event(db, {
        "id": "evt_fail",
        "type": "invoice.payment_failed",
        "data": {"object": {
            "id": "in_late",
            "customer": "cus_late",
            "amount_due": 4900,
            "currency": "usd",
        }},
    })

    assert profile.subscription_status == UserProfile.STATUS_PAST_DUE
    invoice = (await db.execute(select(Invoice))).scalar_one()
    assert invoice.stripe_invoice_id == "in_late"
    assert invoice.status == Invoice.STATUS_OPEN
    assert invoice.amount == 4900


async def test_subscription_payment_rolls_over_and_reactivates(db):
    profile = await create_profile(
        db,
        tier="pro",
        audits_limit=25,
        audits_used_this_month=20,
        stripe_customer_id="cus_paid",
        subscription_status=UserProfile.STATUS_PAST_DUE,
    )

    await webhook_service.handle_event(db, {
        "id": "evt_paid",
        "type": "invoice.payment_succeeded",
        "data": {"object": {
            "id": "in_paid",
            "customer": "cus_paid",
            "subscription": "sub_paid",
            "amount_paid": 4900,
        }},
    })

    assert profile.subscription_status == UserProfile.STATUS_ACTIVE
    assert profile.audits_limit == 30
    assert profile.audits_used_this_month == 0


async def test_events_are_recorded(db):
    await webhook_service.handle_event(db, {
        "id": "evt_other",
        "type": "customer.created",
        "data": {"object": {"id": "cus_new"}},
    })

    event = (await db.execute(select(SubscriptionEvent))).scalar_one()
    assert event.stripe_event_id == "evt_other"
    assert event.event_type == "customer.created"
    assert event.event_metadata == {"id": "cus_new"}


async def test_webhook_requires_signature(client):
    response = await client.post("/api/webhooks/stripe", content="{}")
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing signature"


async def test_webhook_rejects_bad_signature(client):
    payload = json.dumps({"id": "evt_x", "type": "customer.created", "data": {"object": {}}})
    response = await client.post(
        "/api/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": sign(payload, secret="whsec_wrong")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"


async def test_webhook_applies_signed_event(client, db):
    profile = await create_profile(db, tier="starter", audits_limit=5)
    payload = json.dumps({
        "id": "evt_signed",
        "type": "checkout.session.completed",
        "data": {"object": {
            "metadata": {"userId": str(profile.id), "type": "audit_pack", "audits": "5"},
        }},
    })

    response = await client.post(
        "/api/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": sign(payload)},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    await db.refresh(profile)
    assert profile.purchased_audits == 5
