"""Public email capture and waitlist routes."""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from app.api.deps import DatabaseDep
from app.schemas.subscriber import (
    EmailCaptureRequest,
    EmailCaptureResponse,
    MessageResponse,
    WaitlistRequest,
)
from app.services.notion_service import notion_service
from app.services.subscriber_service import InvalidEmailError, normalize_email, subscriber_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/email-capture", response_model=EmailCaptureResponse)
async def capture_email(
    body: EmailCaptureRequest,
    db: DatabaseDep,
    background_tasks: BackgroundTasks,
) -> EmailCaptureResponse:
    """Save an email left on an audit report and sync it to Notion."""
    try:
        email = normalize_email(body.email)
    except InvalidEmailError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        subscriber_id, exists = await subscriber_service.capture_email(
            db, email, source=body.source, audit_url=body.audit_url
        )
    except Exception as e:
        logger.error(f"[Subscribers] Email capture failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save email. Please try again.",
        )

    background_tasks.add_task(notion_service.add_email_to_notion, email, body.source, body.audit_url)
    return EmailCaptureResponse(exists=exists, id=subscriber_id)


@router.post("/waitlist", response_model=MessageResponse)
async def join_waitlist(
    body: WaitlistRequest,
    db: DatabaseDep,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    try:
        email = normalize_email(body.email)
    except InvalidEmailError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        outcome = await subscriber_service.join_waitlist(db, email, source=body.source)
    except Exception as e:
        logger.error(f"[Subscribers] Waitlist signup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to join waitlist. Please try again.",
        )

    if outcome.created:
        background_tasks.add_task(notion_service.add_email_to_notion, email, body.source)
    return MessageResponse(message=outcome.message)
