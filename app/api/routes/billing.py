"""Billing endpoints: Stripe Checkout, the billing portal and usage."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import DatabaseDep
from app.core.auth import CurrentUser, SupabaseUser
from app.models.invoice import Invoice
from app.models.user_profile import UserProfile
from app.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    InvoiceItem,
    InvoiceListResponse,
    PackCheckoutRequest,
    UsageCheckResult,
)
from app.services.stripe_service import BillingError, stripe_service
from app.services.usage_service import usage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing")


async def _require_profile(db: AsyncSession, user: SupabaseUser) -> UserProfile:
    profile = await usage_service.get_profile(db, user.user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User profile not found")
    return profile


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(body: CheckoutRequest, user: CurrentUser, db: DatabaseDep) -> CheckoutResponse:
    """Start a subscription checkout for the signed-in user."""
    profile = await _require_profile(db, user)
    try:
        url = await stripe_service.create_checkout_session(db, profile, body.tier, body.billing_period)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"[Billing] Checkout failed for {user.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create checkout session")
    return CheckoutResponse(url=url)


@router.post("/pack-checkout", response_model=CheckoutResponse)
async def create_pack_checkout(
    body: PackCheckoutRequest,
    user: CurrentUser,
    db: DatabaseDep,
) -> CheckoutResponse:
    """Start a one-off checkout for an audit pack (paid tiers only)."""
    profile = await _require_profile(db, user)
    try:
        url = await stripe_service.create_pack_checkout_session(db, profile, body.pack_size)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"[Billing] Pack checkout failed for {user.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create checkout session")
    return CheckoutResponse(url=url)


@router.post("/portal", response_model=CheckoutResponse)
async def create_portal(user: CurrentUser, db: DatabaseDep) -> CheckoutResponse:
    profile = await _require_profile(db, user)
    try:
        url = await stripe_service.create_portal_session(profile)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"[Billing] Portal session failed for {user.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create portal session")
    return CheckoutResponse(url=url)


@router.get("/usage", response_model=UsageCheckResult)
async def get_usage(user: CurrentUser, db: DatabaseDep) -> UsageCheckResult:
    """Remaining audits and plan limits for the signed-in user."""
    return await usage_service.check_user_usage(db, user.user_id)


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(user: CurrentUser, db: DatabaseDep) -> InvoiceListResponse:
    profile = await _require_profile(db, user)
    result = await db.execute(
        select(Invoice)
        .where(Invoice.user_id == profile.id)
        .order_by(Invoice.created_at.desc())
    )
    return InvoiceListResponse(
        invoices=[InvoiceItem.model_validate(invoice) for invoice in result.scalars().all()]
    )
