"""Email capture and waitlist signups."""

import logging
from typing import Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.email_subscriber import EmailSubscriber

logger = logging.getLogger(__name__)

ALREADY_ON_WAITLIST = "You are already on the waitlist!"
REJOINED_WAITLIST = "Welcome back! You have been re-added to the waitlist."
JOINED_WAITLIST = "Successfully joined the waitlist!"


class InvalidEmailError(ValueError):
    """The submitted address is not an email."""


def normalize_email(email: Optional[str]) -> str:
    """Lowercase and strip ``email``.

    Raises:
        InvalidEmailError: If the address is empty or has no ``@``.
    """
    if not email or "@" not in email:
        raise InvalidEmailError("Please provide a valid email address")
    return email.strip().lower()


class WaitlistOutcome(BaseModel):
    message: str
    created: bool = False


class SubscriberService:
    """Stores captured addresses; Notion sync is left to the caller."""

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[EmailSubscriber]:
        result = await db.execute(select(EmailSubscriber).where(EmailSubscriber.email == email))
        return result.scalar_one_or_none()

    async def capture_email(
        self,
        db: AsyncSession,
        email: str,
        source: str = EmailSubscriber.SOURCE_AUDIT,
        audit_url: Optional[str] = None,
    ) -> Tuple[UUID, bool]:
        """Insert the address or refresh its audit URL.

        Returns:
            Tuple of (subscriber id, whether it already existed).
        """
        existing = await self.get_by_email(db, email)
        if existing:
            if audit_url:
                existing.audit_url = audit_url
                await db.flush()
            return existing.id, True

        subscriber = EmailSubscriber(
            email=email,
            source=source,
            audit_url=audit_url,
            verified=False,
        )
        db.add(subscriber)
        await db.flush()
        logger.info(f"[Subscribers] Captured {email} from {source}")
        return subscriber.id, False

    async def join_waitlist(
        self,
        db: AsyncSession,
        email: str,
        source: str = EmailSubscriber.SOURCE_WAITLIST,
    ) -> WaitlistOutcome:
        """Add the address to the waitlist, re-subscribing it if it opted out."""
        existing = await self.get_by_email(db, email)
        if existing and existing.unsubscribed_at is None:
            return WaitlistOutcome(message=ALREADY_ON_WAITLIST)

        if existing:
            existing.unsubscribed_at = None
            existing.source = source
            await db.flush()
            return WaitlistOutcome(message=REJOINED_WAITLIST)

        try:
            async with db.begin_nested():
                db.add(EmailSubscriber(email=email, source=source, verified=False))
        except IntegrityError:
            # Lost a race with a concurrent signup for the same address
            return WaitlistOutcome(message=ALREADY_ON_WAITLIST)

        logger.info(f"[Subscribers] {email} joined the waitlist")
        return WaitlistOutcome(message=JOINED_WAITLIST, created=True)


subscriber_service = SubscriberService()
