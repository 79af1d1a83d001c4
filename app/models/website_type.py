"""WebsiteType model for per-type category weighting."""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.audit import Audit


class WebsiteType(Base):
    """A kind of website (e-commerce, SaaS, portfolio...) with its own weights.

    Attributes:
        id: Unique identifier (UUID).
        name: Display name.
        slug: URL-safe unique identifier derived from the name.
        description: Optional description.
        icon: Optional icon name.
        category_weights: Weight per category display name.
        focus_areas: Areas the analysis should emphasise.
        best_practices: Practices expected for this kind of site.
        is_active: Whether the type can be selected.
        is_default: Whether this is the fallback type (at most one).
    """

    __tablename__ = "website_types"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_weights: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    focus_areas: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    best_practices: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
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
        back_populates="website_type",
    )

    def __repr__(self) -> str:
        """String representation of the website type."""
        return f"<WebsiteType(slug={self.slug}, is_default={self.is_default})>"
