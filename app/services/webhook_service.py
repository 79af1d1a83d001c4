"""Stripe webhook verification and event handling.

Events are applied to ``user_profiles`` and ``invoices`` and then recorded
in ``subscription_events``. Invoice upserts and the event record are
best-effort: they run in a savepoint and a failure there is only logged.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.pricing import get_pack_from_price_id, get_tier_from_price_id, get_tier_limits
from app.models.invoice import Invoice
from app.models.subscription_event import SubscriptionEvent
from app.models.user_profile import UserProfile
from app.services.usage_service import usage_service

logger = logging.getLogger(__name__)

# Seconds a signed payload stays valid
SIGNATURE_TOLERANCE = 300


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _invoice_subscription(invoice: Dict[str, Any]) -> Optional[str]:
    """Subscription id of an invoice, across old and new API shapes."""
    if invoice.get("subscription"):
        return invoice["subscription"]
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


def _line_price_id(line: Dict[str, Any]) -> Optional[str]:
    price = line.get("price")
    if isinstance(price, dict) and price.get("id"):
        return price["id"]
    details = (line.get("pricing") or {}).get("price_details") or {}
    return details.get("price")


class StripeWebhookService:
    """Verifies and applies Stripe webhook events."""

    def __init__(self):
        """Initialize the event dispatch table."""
        self._handlers: Dict[str, Callable[[AsyncSession, Dict[str, Any]], Awaitable[None]]] = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_changed,
            "customer.subscription.updated": self._subscription_changed,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._payment_succeeded,
            "invoice.payment_failed": self._payment_failed,
        }

    def verify_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        """Check the Stripe signature and parse the event.

        Raises:
            stripe.SignatureVerificationError: If the signature is invalid.
            ValueError: If the payload is not JSON.
        """
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            body,
            sig_header,
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=SIGNATURE_TOLERANCE,
        )
        return json.loads(body)

    async def handle_event(self, db: AsyncSession, event: Dict[str, Any]) -> None:
        """Apply one event to the database and record it."""
        event_type = event.get("type", "")
        data = (event.get("data") or {}).get("object") or {}
        logger.info(f"[Webhook] Received {event_type} ({event.get('id')})")

        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info(f"[Webhook] Unhandled event type: {event_type}")
        else:
            await handler(db, data)

        await self._record_event(db, event, data)

    async def _find_by_customer(self, db: AsyncSession, customer_id: Optional[str]) -> Optional[UserProfile]:
        if not customer_id:
            return None
        result = await db.execute(
            select(UserProfile).where(UserProfile.stripe_customer_id == customer_id)
        )
        return result.scalar_one_or_none()

    async def _checkout_completed(self, db: AsyncSession, session: Dict[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        if not user_id:
            logger.warning("[Webhook] Checkout session without userId metadata")
            return

        if metadata.get("type") == "audit_pack":
            try:
                audits = int(metadata.get("audits") or 0)
            except ValueError:
                audits = 0
            if audits > 0:
                await usage_service.add_purchased_audits(db, user_id, audits)
            return

        profile = await usage_service.get_profile(db, user_id)
        if profile is None:
            logger.warning(f"[Webhook] Checkout for unknown user {user_id}")
            return

        tier = metadata.get("tier") or "starter"
        profile.tier = tier
        profile.stripe_subscription_id = session.get("subscription")
        profile.subscription_status = UserProfile.STATUS_ACTIVE
        profile.audits_limit = get_tier_limits(tier).audits_per_month
        profile.audits_used_this_month = 0
        if session.get("customer") and not profile.stripe_customer_id:
            profile.stripe_customer_id = session["customer"]
        await db.flush()
        logger.info(f"[Webhook] {user_id} subscribed to {tier}")

    async def _subscription_changed(self, db: AsyncSession, subscription: Dict[str, Any]) -> None:
        metadata = subscription.get("metadata") or {}
        profile = None
        if metadata.get("userId"):
            profile = await usage_service.get_profile(db, metadata["userId"])
        if profile is None:
            profile = await self._find_by_customer(db, subscription.get("customer"))
        if profile is None:
            logger.warning(f"[Webhook] No user for subscription {subscription.get('id')}")
            return

        items = (subscription.get("items") or {}).get("data") or []
        price_id = ((items[0].get("price") or {}).get("id")) if items else None
        tier = get_tier_from_price_id(price_id)

        profile.tier = tier
        profile.subscription_status = subscription.get("status")
        profile.stripe_subscription_id = subscription.get("id")
        profile.audits_limit = get_tier_limits(tier).audits_per_month
        period_end = subscription.get("current_period_end") or (
            items[0].get("current_period_end") if items else None
        )
        if period_end:
            profile.current_period_end = _from_epoch(period_end)
        await db.flush()

    async def _subscription_deleted(self, db: AsyncSession, subscription: Dict[str, Any]) -> None:
        profile = await self._find_by_customer(db, subscription.get("customer"))
        if profile is None:
            logger.warning(f"[Webhook] No user for deleted subscription {subscription.get('id')}")
            return

        await usage_service.clear_purchased_audits(db, profile.id)
        profile.tier = UserProfile.TIER_FREE
        profile.subscription_status = UserProfile.STATUS_CANCELED
        profile.audits_limit = get_tier_limits("free").audits_per_month
        await db.flush()

    async def _payment_succeeded(self, db: AsyncSession, invoice: Dict[str, Any]) -> None:
        profile = await self._find_by_customer(db, invoice.get("customer"))
        if profile is None:
            logger.warning(f"[Webhook] No user for invoice {invoice.get('id')}")
            return

        subscription_id = _invoice_subscription(invoice)

        if not subscription_id:
            lines = (invoice.get("lines") or {}).get("data") or []
            for line in lines:
                pack = get_pack_from_price_id(_line_price_id(line))
                if pack:
                    await usage_service.add_purchased_audits(db, profile.id, pack[1])

        await self._upsert_invoice(
            db,
            profile,
            invoice,
            amount=invoice.get("amount_paid") or 0,
            status=Invoice.STATUS_PAID,
        )

        if subscription_id:
            await usage_service.apply_monthly_rollover(db, profile.id)
            profile.subscription_status = UserProfile.STATUS_ACTIVE
            await db.flush()

    async def _payment_failed(self, db: AsyncSession, invoice: Dict[str, Any]) -> None:
        profile = await self._find_by_customer(db, invoice.get("customer"))
        if profile is None:
            logger.warning(f"[Webhook] No user for failed invoice {invoice.get('id')}")
            return

        profile.subscription_status = UserProfile.STATUS_PAST_DUE
        await db.flush()

        await self._upsert_invoice(
            db,
            profile,
            invoice,
            amount=invoice.get("amount_due") or 0,
            status=Invoice.STATUS_OPEN,
        )

    async def _upsert_invoice(
        self,
        db: AsyncSession,
        profile: UserProfile,
        invoice: Dict[str, Any],
        amount: int,
        status: str,
    ) -> None:
        stripe_invoice_id = invoice.get("id")
        if not stripe_invoice_id:
            return

        try:
            async with db.begin_nested():
                result = await db.execute(
                    select(Invoice).where(Invoice.stripe_invoice_id == stripe_invoice_id)
                )
                record = result.scalar_one_or_none()
                if record is None:
                    record = Invoice(user_id=profile.id, stripe_invoice_id=stripe_invoice_id)
                    db.add(record)

                record.amount = amount
                record.currency = invoice.get("currency") or "usd"
                record.status = status
                record.invoice_url = invoice.get("hosted_invoice_url")
                record.invoice_pdf = invoice.get("invoice_pdf")
                record.period_start = _from_epoch(invoice.get("period_start"))
                record.period_end = _from_epoch(invoice.get("period_end"))
        except Exception as e:
            logger.error(f"[Webhook] Failed to save invoice {stripe_invoice_id}: {e}")

    async def _record_event(self, db: AsyncSession, event: Dict[str, Any], data: Dict[str, Any]) -> None:
        try:
            async with db.begin_nested():
                db.add(
                    SubscriptionEvent(
                        stripe_event_id=event.get("id"),
                        event_type=event.get("type", "unknown"),
                        event_metadata=data,
                    )
                )
        except Exception as e:
            logger.error(f"[Webhook] Failed to log event {event.get('id')}: {e}")


webhook_service = StripeWebhookService()
