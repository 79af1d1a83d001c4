"""Audit model for scored website reports."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.user_profile import UserProfile
    from app.models.website_type import WebsiteType


class Audit(Base):
    """One scrape and analysis run producing a scored report for a URL.

    Attributes:
        id: Unique identifier (UUID).
        url: The URL being audited.
        overall_score: Weighted score from 0-100.
        category_scores: Score per category keyed by snake_case name.
        summary: Executive summary text.
        brief: Business context extracted for the site.
        status: pending, processing, completed or failed.
        error_message: Error message if the audit failed.
        user_id: Optional reference to the requesting user.
        input_tokens: LLM input tokens spent.
        output_tokens: LLM output tokens spent.
        total_tokens: Sum of input and output tokens.
        estimated_cost: Estimated LLM cost in dollars.
        source_ip: Salted hash of the requester's IP.
        user_agent: Requester's user agent (truncated).
        is_admin: Whether an admin ran the audit.
        website_type_id: Optional website type used for weighting.
        created_at: When the audit was started.
        completed_at: When the audit finished.
    """

    __tablename__ = "audits"

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    VALID_STATUSES = {
        STATUS_PENDING,
        STATUS_PROCESSING,
        STATUS_COMPLETED,
        STATUS_FAILED,
    }

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    overall_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category_scores: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
    )
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brief: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=STATUS_PENDING,
        nullable=False,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("user_profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    input_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    output_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    estimated_cost: Mapped[float] = mapped_column(
        Numeric(10, 4, asdecimal=False),
        default=0.0,
        nullable=False,
    )
    source_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    is_admin: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        default=False,
        nullable=True,
    )
    website_type_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("website_types.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    user: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile",
        back_populates="audits",
    )
    website_type: Mapped[Optional["WebsiteType"]] = relationship(
        "WebsiteType",
        back_populates="audits",
    )

    __table_args__ = (
        Index("ix_audits_status", "status"),
        Index("ix_audits_created_at", "created_at"),
        Index("ix_audits_website_type_id", "website_type_id"),
    )

    def __repr__(self) -> str:
        """String representation of the audit."""
        return f"<Audit(id={self.id}, url={self.url}, status={self.status})>"

    @property
    def duration_seconds(self) -> Optional[int]:
        """Seconds between creation and completion, if finished."""
        if not self.completed_at or not self.created_at:
            return None
        created = self.created_at
        completed = self.completed_at
        # SQLite hands back naive datetimes
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if completed.tzinfo is None:
            completed = completed.replace(tzinfo=timezone.utc)
        return round((completed - created).total_seconds())

    def mark_complete(
        self,
        score: int,
        category_scores: Dict[str, Any],
        summary: str,
        brief: Optional[Dict[str, Any]],
    ) -> None:
        """Mark the audit as completed with its results."""
        self.status = self.STATUS_COMPLETED
        self.overall_score = score
        self.category_scores = category_scores
        self.summary = summary
        self.brief = brief
        self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, error: str) -> None:
        """Mark the audit as failed with error message."""
        self.status = self.STATUS_FAILED
        self.error_message = error[:500]
        self.completed_at = datetime.now(timezone.utc)
