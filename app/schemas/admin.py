"""Pydantic schemas for the admin console API."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class AdminLoginRequest(CamelModel):
    email: str
    password: str


class AdminLoginResponse(CamelModel):
    """Issued admin session token.

    Attributes:
        token: Signed HS256 token, also set as the admin cookie.
        expires_at: Token expiry time.
    """

    token: str
    expires_at: datetime


class DashboardStats(CamelModel):
    total_audits: int = 0
    completed_audits: int = 0
    failed_audits: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    avg_score: int = 0
    email_subscribers: int = 0


class RecentAudit(CamelModel):
    id: UUID
    url: str
    score: Optional[int] = None
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    tokens: int = 0
    cost: float = 0.0
    business_name: Optional[str] = None


class DashboardResponse(CamelModel):
    """Admin dashboard figures.

    Attributes:
        stats: Totals over every audit.
        recent_audits: The newest audits.
        audits_by_day: Audit counts for the last seven days, keyed by
            short weekday name (Mon, Tue...).
    """

    stats: DashboardStats
    recent_audits: List[RecentAudit]
    audits_by_day: Dict[str, int]


class AuditListItem(CamelModel):
    id: UUID
    url: str
    score: Optional[int] = None
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    category_scores: Optional[Dict[str, Any]] = None
    brief: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    error_message: Optional[str] = None
    is_admin: bool = False
    user_id: Optional[UUID] = None
    user_email: Optional[str] = None
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None


class AuditListStats(CamelModel):
    total: int = 0
    admin_count: int = 0
    user_count: int = 0
    completed: int = 0
    failed: int = 0
    avg_score: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0


class AuditListResponse(CamelModel):
    audits: List[AuditListItem]
    total: int
    page: int
    limit: int
    stats: AuditListStats


class SubscriptionItem(CamelModel):
    id: UUID
    user_id: UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    tier: str
    subscription_status: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    created_at: datetime


class SubscriptionStats(CamelModel):
    """Subscription counts and monthly recurring revenue.

    Attributes:
        mrr: Sum of the monthly plan price over active subscriptions.
        by_tier: Active subscription count per paid tier.
    """

    total: int = 0
    active: int = 0
    canceled: int = 0
    past_due: int = 0
    mrr: int = 0
    by_tier: Dict[str, int] = Field(default_factory=dict)


class SubscriptionListResponse(CamelModel):
    subscriptions: List[SubscriptionItem]
    stats: SubscriptionStats


class UserListItem(CamelModel):
    id: UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    company_name: Optional[str] = None
    tier: str
    subscription_status: Optional[str] = None
    audits_used_this_month: int = 0
    audits_limit: int = 1
    purchased_audits: int = 0
    last_audit_at: Optional[datetime] = None
    created_at: datetime


class UserListResponse(CamelModel):
    users: List[UserListItem]
    total: int
    page: int
    limit: int


class ContactScrapeRequest(CamelModel):
    urls: List[str] = Field(default_factory=list)
