"""Stripe webhook receiver."""

import logging

import stripe
from fastapi import APIRouter, HTTPException, Request, status

from app.api.deps import DatabaseDep
from app.services.webhook_service import webhook_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, db: DatabaseDep) -> dict:
    """Verify a Stripe event and mirror it into the database.

    Processes checkout, subscription lifecycle and invoice events so plan
    and quota columns stay in sync with Stripe.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    try:
        event = webhook_service.verify_event(payload, sig_header)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning(f"[Webhook] Signature verification failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        await webhook_service.handle_event(db, event)
    except Exception as e:
        logger.error(f"[Webhook] Handler error for {event.get('type')}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Handler failed")

    return {"received": True}
