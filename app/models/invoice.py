"""Invoice model synced from Stripe invoices."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.user_profile import UserProfile


class Invoice(Base):
    """A Stripe invoice for a user.

    Attributes:
        id: Unique identifier (UUID).
        user_id: Reference to the user.
        stripe_invoice_id: Stripe's invoice ID.
        amount: Amount in the smallest currency unit (cents).
        currency: ISO currency code.
        status: paid or open.
        invoice_url: Hosted invoice page.
        invoice_pdf: Link to the PDF.
        period_start: Billing period start.
        period_end: Billing period end.
    """

    __tablename__ = "invoices"

    STATUS_PAID = "paid"
    STATUS_OPEN = "open"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_invoice_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="usd", nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    invoice_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    invoice_pdf: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    period_start: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["UserProfile"] = relationship(
        "UserProfile",
        back_populates="invoices",
    )

    def __repr__(self) -> str:
        """String representation of the invoice."""
        return f"<Invoice(stripe_invoice_id={self.stripe_invoice_id}, status={self.status})>"
