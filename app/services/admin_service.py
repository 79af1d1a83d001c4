"""Read-only queries behind the admin console."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import Float, and_, case, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pricing import PAID_TIERS, TIER_PRICES
from app.models.audit import Audit
from app.models.email_subscriber import EmailSubscriber
from app.models.user_profile import UserProfile
from app.schemas.admin import (
    AuditListItem,
    AuditListResponse,
    AuditListStats,
    DashboardResponse,
    DashboardStats,
    RecentAudit,
    SubscriptionItem,
    SubscriptionListResponse,
    SubscriptionStats,
    UserListItem,
    UserListResponse,
)

logger = logging.getLogger(__name__)

RECENT_AUDITS_LIMIT = 10
AUDITS_BY_DAY_WINDOW = timedelta(days=7)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _audit_item(audit: Audit) -> AuditListItem:
    return AuditListItem(
        id=audit.id,
        url=audit.url,
        score=audit.overall_score,
        status=audit.status,
        created_at=audit.created_at,
        completed_at=audit.completed_at,
        duration_seconds=audit.duration_seconds,
        input_tokens=audit.input_tokens or 0,
        output_tokens=audit.output_tokens or 0,
        total_tokens=audit.total_tokens or 0,
        cost=audit.estimated_cost or 0.0,
        category_scores=audit.category_scores or {},
        brief=audit.brief or {},
        summary=audit.summary,
        error_message=audit.error_message,
        is_admin=audit.is_admin is True,
        user_id=audit.user_id,
        source_ip=audit.source_ip,
        user_agent=audit.user_agent,
    )


class AdminService:
    """Dashboard figures and paginated listings for the admin console."""

    async def get_dashboard(self, db: AsyncSession) -> DashboardResponse:
        """Totals, the latest audits and a seven-day histogram.

        Tokens, cost and average score only count completed audits.
        """
        completed = Audit.status == Audit.STATUS_COMPLETED
        row = (await db.execute(
            select(
                func.count(Audit.id),
                _count_where(completed),
                _count_where(Audit.status == Audit.STATUS_FAILED),
                func.coalesce(func.sum(case((completed, Audit.total_tokens), else_=0)), 0),
                func.coalesce(func.sum(case((completed, Audit.estimated_cost), else_=0)), 0),
                func.coalesce(func.sum(case((completed, func.coalesce(Audit.overall_score, 0)), else_=0)), 0),
            )
        )).one()
        total, completed_count, failed_count, total_tokens, total_cost, score_sum = row

        subscribers = await db.scalar(select(func.count(EmailSubscriber.id))) or 0

        recent = (await db.execute(
            select(Audit).order_by(Audit.created_at.desc()).limit(RECENT_AUDITS_LIMIT)
        )).scalars().all()

        since = datetime.now(timezone.utc) - AUDITS_BY_DAY_WINDOW
        created = (await db.execute(
            select(Audit.created_at).where(Audit.created_at >= since)
        )).scalars().all()
        audits_by_day: Dict[str, int] = {}
        for created_at in created:
            day = _as_utc(created_at).strftime("%a")
            audits_by_day[day] = audits_by_day.get(day, 0) + 1

        return DashboardResponse(
            stats=DashboardStats(
                total_audits=total,
                completed_audits=completed_count,
                failed_audits=failed_count,
                total_tokens=int(total_tokens),
                total_cost=round(float(total_cost), 4),
                avg_score=round(score_sum / completed_count) if completed_count else 0,
                email_subscribers=subscribers,
            ),
            recent_audits=[
                RecentAudit(
                    id=audit.id,
                    url=audit.url,
                    score=audit.overall_score,
                    status=audit.status,
                    created_at=audit.created_at,
                    completed_at=audit.completed_at,
                    tokens=audit.total_tokens or 0,
                    cost=audit.estimated_cost or 0.0,
                    business_name=(audit.brief or {}).get("business_name") or None,
                )
                for audit in recent
            ],
            audits_by_day=audits_by_day,
        )

    async def list_audits(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 25,
        audit_filter: str = "all",
        sort: str = "date",
        direction: str = "desc",
    ) -> AuditListResponse:
        """One page of audits plus stats over every audit."""
        conditions = []
        if audit_filter == "admin":
            conditions.append(Audit.is_admin.is_(True))
        elif audit_filter == "user":
            conditions.append(or_(Audit.is_admin.is_(None), Audit.is_admin.is_(False)))

        column = Audit.overall_score if sort == "score" else Audit.created_at
        order = column.asc() if direction == "asc" else column.desc()

        query = select(Audit).where(*conditions).order_by(order.nulls_last())
        total = await db.scalar(select(func.count(Audit.id)).where(*conditions)) or 0
        audits = (await db.execute(
            query.offset((page - 1) * limit).limit(limit)
        )).scalars().all()

        return AuditListResponse(
            audits=[_audit_item(audit) for audit in audits],
            total=total,
            page=page,
            limit=limit,
            stats=await self._audit_stats(db),
        )

    async def _audit_stats(self, db: AsyncSession) -> AuditListStats:
        completed = Audit.status == Audit.STATUS_COMPLETED
        scored = and_(completed, Audit.overall_score.is_not(None))
        row = (await db.execute(
            select(
                func.count(Audit.id),
                _count_where(Audit.is_admin.is_(True)),
                _count_where(completed),
                _count_where(Audit.status == Audit.STATUS_FAILED),
                func.avg(case((scored, cast(Audit.overall_score, Float)), else_=None)),
                func.coalesce(func.sum(Audit.total_tokens), 0),
                func.coalesce(func.sum(Audit.estimated_cost), 0),
            )
        )).one()
        total, admin_count, completed_count, failed_count, avg_score, total_tokens, total_cost = row
        return AuditListStats(
            total=total,
            admin_count=admin_count,
            user_count=total - admin_count,
            completed=completed_count,
            failed=failed_count,
            avg_score=round(avg_score) if avg_score is not None else 0,
            total_tokens=int(total_tokens),
            total_cost=float(total_cost),
        )

    async def list_subscriptions(self, db: AsyncSession) -> SubscriptionListResponse:
        """Profiles that have ever subscribed, newest first, with MRR."""
        profiles = (await db.execute(
            select(UserProfile)
            .where(UserProfile.stripe_subscription_id.is_not(None))
            .order_by(UserProfile.created_at.desc())
        )).scalars().all()

        statuses = [profile.subscription_status for profile in profiles]
        active = [p for p in profiles if p.subscription_status == UserProfile.STATUS_ACTIVE]
        mrr = sum(TIER_PRICES.get(p.tier, {}).get("monthly", 0) for p in active)

        return SubscriptionListResponse(
            subscriptions=[
                SubscriptionItem(
                    id=profile.id,
                    user_id=profile.id,
                    email=profile.email,
                    full_name=profile.full_name,
                    tier=profile.tier,
                    subscription_status=profile.subscription_status,
                    stripe_subscription_id=profile.stripe_subscription_id,
                    stripe_customer_id=profile.stripe_customer_id,
                    current_period_end=profile.current_period_end,
                    created_at=profile.created_at,
                )
                for profile in profiles
            ],
            stats=SubscriptionStats(
                total=len(profiles),
                active=len(active),
                canceled=statuses.count(UserProfile.STATUS_CANCELED),
                past_due=statuses.count(UserProfile.STATUS_PAST_DUE),
                mrr=mrr,
                by_tier={tier: sum(1 for p in active if p.tier == tier) for tier in PAID_TIERS},
            ),
        )

    async def list_users(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        tier: Optional[str] = None,
    ) -> UserListResponse:
        """Search profiles by email or name, optionally within one tier."""
        conditions = []
        if search:
            pattern = f"%{search.strip().lower()}%"
            conditions.append(or_(
                func.lower(UserProfile.email).like(pattern),
                func.lower(UserProfile.full_name).like(pattern),
            ))
        if tier:
            conditions.append(UserProfile.tier == tier)

        total = await db.scalar(select(func.count(UserProfile.id)).where(*conditions)) or 0
        profiles = (await db.execute(
            select(UserProfile)
            .where(*conditions)
            .order_by(UserProfile.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )).scalars().all()

        return UserListResponse(
            users=[UserListItem.model_validate(profile) for profile in profiles],
            total=total,
            page=page,
            limit=limit,
        )


admin_service = AdminService()
