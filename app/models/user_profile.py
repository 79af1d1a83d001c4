"""UserProfile model mirroring the authenticated user and their plan."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.audit import Audit
    from app.models.invoice import Invoice


class UserProfile(Base):
    """Profile for a user authenticated through Supabase.

    The id matches the ``sub`` claim of the user's access token. Plan and
    quota columns are kept in sync with Stripe by the webhook handler.

    Attributes:
        id: Unique identifier (UUID), equal to the auth subject.
        email: User's email address.
        full_name: Display name.
        avatar_url: Profile picture URL.
        company_name: Optional company name.
        tier: Plan level (free, starter, pro, agency).
        subscription_status: Stripe subscription status mirror.
        stripe_customer_id: Stripe customer ID.
        stripe_subscription_id: Stripe subscription ID.
        audits_used_this_month: Audits consumed in the current period.
        audits_limit: Monthly allowance including rolled-over audits.
        purchased_audits: Audits bought in packs, consumed after the allowance.
        current_period_end: End of the current billing period.
        last_audit_at: When the user last ran an audit.
    """

    __tablename__ = "user_profiles"

    TIER_FREE = "free"
    TIER_STARTER = "starter"
    TIER_PRO = "pro"
    TIER_AGENCY = "agency"

    VALID_TIERS = {TIER_FREE, TIER_STARTER, TIER_PRO, TIER_AGENCY}

    # Status values mirrored from Stripe
    STATUS_ACTIVE = "active"
    STATUS_PAST_DUE = "past_due"
    STATUS_CANCELED = "canceled"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tier: Mapped[str] = mapped_column(
        String(20),
        default=TIER_FREE,
        nullable=False,
    )
    subscription_status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    audits_used_this_month: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    audits_limit: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    purchased_audits: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_audit_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    audits: Mapped[List["Audit"]] = relationship(
        "Audit",
        back_populates="user",
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_user_profiles_stripe_customer_id", "stripe_customer_id"),
        Index("ix_user_profiles_tier", "tier"),
    )

    def __repr__(self) -> str:
        """String representation of the profile."""
        return f"<UserProfile(id={self.id}, email={self.email}, tier={self.tier})>"

    @property
    def is_paid(self) -> bool:
        """Check if the user is on a paid tier."""
        return self.tier != self.TIER_FREE
