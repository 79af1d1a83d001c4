"""SubscriptionEvent model, the Stripe webhook audit trail."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class SubscriptionEvent(Base):
    """A Stripe event received by the webhook.

    Attributes:
        id: Unique identifier (UUID).
        stripe_event_id: Stripe's event ID.
        event_type: Stripe event type, e.g. invoice.payment_succeeded.
        event_metadata: The event's data object (column "metadata").
        created_at: When the event was recorded.
    """

    __tablename__ = "subscription_events"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    stripe_event_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_subscription_events_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        """String representation of the event."""
        return f"<SubscriptionEvent(type={self.event_type}, stripe_event_id={self.stripe_event_id})>"
