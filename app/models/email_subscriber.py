"""EmailSubscriber model for captured leads and the waitlist."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class EmailSubscriber(Base):
    """An email address collected from an audit, the newsletter or the waitlist.

    Attributes:
        id: Unique identifier (UUID).
        email: Normalized (lowercase) email address.
        source: Where the address was captured (audit, newsletter, waitlist).
        audit_url: URL of the audit that prompted the capture.
        verified: Whether the address has been confirmed.
        unsubscribed_at: When the address opted out, if it did.
        user_id: Linked user profile, if any.
        created_at: When the address was captured.
    """

    __tablename__ = "email_subscribers"

    SOURCE_AUDIT = "audit"
    SOURCE_NEWSLETTER = "newsletter"
    SOURCE_WAITLIST = "waitlist"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    source: Mapped[str] = mapped_column(
        String(50),
        default=SOURCE_AUDIT,
        nullable=False,
    )
    audit_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unsubscribed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    user_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of the subscriber."""
        return f"<EmailSubscriber(email={self.email}, source={self.source})>"
