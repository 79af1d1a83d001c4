"""Stripe Checkout and billing portal sessions."""

import asyncio
import logging

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.pricing import AUDIT_PACKS, get_pack_price_id, get_subscription_price_id
from app.models.user_profile import UserProfile

logger = logging.getLogger(__name__)

# Initialize Stripe
stripe.api_key = settings.STRIPE_SECRET_KEY


class BillingError(Exception):
    """A billing action the caller asked for cannot be performed."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StripeService:
    """Creates Stripe sessions for subscriptions, audit packs and the portal.

    The Stripe SDK is synchronous, so calls run in a worker thread.
    """

    async def get_or_create_customer(self, db: AsyncSession, profile: UserProfile) -> str:
        """Return the profile's Stripe customer, creating and saving it if needed."""
        if profile.stripe_customer_id:
            return profile.stripe_customer_id

        customer = await asyncio.to_thread(
            stripe.Customer.create,
            email=profile.email,
            name=profile.full_name or None,
            metadata={"userId": str(profile.id)},
        )
        profile.stripe_customer_id = customer["id"]
        await db.flush()
        logger.info(f"[Stripe] Created customer {customer['id']} for {profile.id}")
        return customer["id"]

    async def create_checkout_session(
        self,
        db: AsyncSession,
        profile: UserProfile,
        tier: str,
        billing_period: str,
    ) -> str:
        """Create a subscription Checkout session.

        Returns:
            The Checkout URL.

        Raises:
            BillingError: If no price is configured for the plan.
        """
        price_id = get_subscription_price_id(tier, billing_period)
        if not price_id:
            raise BillingError(f"Price ID not configured for {tier} {billing_period}")

        customer_id = await self.get_or_create_customer(db, profile)
        user_id = str(profile.id)

        session = await asyncio.to_thread(
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=f"{settings.APP_URL}/billing?success=true&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.APP_URL}/pricing?canceled=true",
            metadata={
                "userId": user_id,
                "tier": tier,
                "billingPeriod": billing_period,
            },
            subscription_data={
                "metadata": {"userId": user_id, "tier": tier},
            },
            allow_promotion_codes=True,
        )
        return session["url"]

    async def create_pack_checkout_session(
        self,
        db: AsyncSession,
        profile: UserProfile,
        pack_size: str,
    ) -> str:
        """Create a one-off payment session for an audit pack.

        Raises:
            BillingError: If the user is on the free tier or the pack
                price is not configured.
        """
        tier = profile.tier or "free"
        if tier == "free":
            raise BillingError("Audit packs are available on paid plans", status_code=403)

        pack = AUDIT_PACKS.get(pack_size)
        price_id = get_pack_price_id(pack_size, tier) if pack else ""
        if not price_id:
            raise BillingError(f"Pack price ID not configured for {pack_size} {tier}")

        customer_id = await self.get_or_create_customer(db, profile)
        audits = pack["audits"]

        session = await asyncio.to_thread(
            stripe.checkout.Session.create,
            customer=customer_id,
            mode="payment",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=f"{settings.APP_URL}/billing?pack_success=true&audits={audits}",
            cancel_url=f"{settings.APP_URL}/billing?pack_canceled=true",
            metadata={
                "userId": str(profile.id),
                "type": "audit_pack",
                "packSize": pack_size,
                "audits": str(audits),
                "tier": tier,
            },
        )
        return session["url"]

    async def create_portal_session(self, profile: UserProfile) -> str:
        """Create a billing portal session for managing the subscription.

        Raises:
            BillingError: If the user has never been a Stripe customer.
        """
        if not profile.stripe_customer_id:
            raise BillingError("No billing account found")

        session = await asyncio.to_thread(
            stripe.billing_portal.Session.create,
            customer=profile.stripe_customer_id,
            return_url=f"{settings.APP_URL}/billing",
        )
        return session["url"]


stripe_service = StripeService()
