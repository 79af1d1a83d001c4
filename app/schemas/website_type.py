"""Pydantic schemas for website type administration."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from app.core.pricing import CATEGORY_WEIGHTS
from app.schemas.common import CamelModel

# Weight per category display name used when a type sets none
DEFAULT_CATEGORY_WEIGHTS: Dict[str, float] = dict(CATEGORY_WEIGHTS)


class WebsiteTypeCreate(CamelModel):
    """Request body for creating a website type."""

    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    category_weights: Optional[Dict[str, float]] = None
    focus_areas: List[str] = Field(default_factory=list)
    best_practices: List[str] = Field(default_factory=list)
    is_active: bool = True
    is_default: bool = False


class WebsiteTypeUpdate(CamelModel):
    """Request body for updating a website type.

    Only fields present in the request are applied.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    category_weights: Optional[Dict[str, float]] = None
    focus_areas: Optional[List[str]] = None
    best_practices: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class WebsiteTypeResponse(CamelModel):
    """A website type as returned by the admin API."""

    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    category_weights: Dict[str, float] = Field(default_factory=dict)
    focus_areas: List[str] = Field(default_factory=list)
    best_practices: List[str] = Field(default_factory=list)
    is_active: bool
    is_default: bool
    created_at: datetime
    updated_at: datetime
    audit_count: Optional[int] = None


class WebsiteTypeListResponse(CamelModel):
    website_types: List[WebsiteTypeResponse]


class WebsiteTypeEnvelope(CamelModel):
    website_type: WebsiteTypeResponse
