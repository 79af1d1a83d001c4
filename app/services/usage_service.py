"""Audit quota tracking for user profiles."""

import logging
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pricing import get_tier_limits
from app.models.user_profile import UserProfile
from app.schemas.billing import UsageCheckResult

logger = logging.getLogger(__name__)

UserId = Union[UUID, str]


def _as_uuid(user_id: UserId) -> UUID:
    return user_id if isinstance(user_id, UUID) else UUID(str(user_id))


class UsageService:
    """Checks and updates a user's audit allowance.

    Monthly audits are consumed before purchased pack audits. Canceled
    subscriptions fall back to the free allowance and past-due ones are
    blocked until payment is fixed.
    """

    async def get_profile(self, db: AsyncSession, user_id: UserId) -> Optional[UserProfile]:
        """Load a profile by id, None if it does not exist."""
        try:
            return await db.get(UserProfile, _as_uuid(user_id))
        except ValueError:
            logger.warning(f"[Usage] Invalid user id {user_id!r}")
            return None

    async def check_user_usage(self, db: AsyncSession, user_id: UserId) -> UsageCheckResult:
        """Decide whether the user may run another audit.

        Args:
            db: Database session.
            user_id: Profile id.

        Returns:
            UsageCheckResult describing the decision and the plan limits.
        """
        profile = await self.get_profile(db, user_id)
        free = get_tier_limits("free")

        if profile is None:
            return UsageCheckResult(
                allowed=False,
                reason="User profile not found",
                audits_remaining=0,
                audits_limit=0,
                tier="free",
                pages_limit=free.pages_per_audit,
                allowed_categories=free.categories,
            )

        tier = profile.tier or "free"
        limits = get_tier_limits(tier)
        used = profile.audits_used_this_month or 0
        limit = limits.audits_per_month if profile.audits_limit is None else profile.audits_limit
        purchased = profile.purchased_audits or 0

        if profile.subscription_status == UserProfile.STATUS_PAST_DUE:
            return UsageCheckResult(
                allowed=False,
                reason="Your payment is past due. Please update your payment method to continue.",
                audits_remaining=0,
                audits_limit=limit,
                purchased_audits=purchased,
                tier=tier,
                pages_limit=limits.pages_per_audit,
                allowed_categories=limits.categories,
            )

        if profile.subscription_status == UserProfile.STATUS_CANCELED:
            free_remaining = max(0, free.audits_per_month - used)
            allowed = used < free.audits_per_month
            return UsageCheckResult(
                allowed=allowed,
                reason=None if allowed else "Your subscription was canceled. Upgrade to continue auditing.",
                audits_remaining=free_remaining,
                audits_limit=free.audits_per_month,
                purchased_audits=0,
                tier="free",
                pages_limit=free.pages_per_audit,
                allowed_categories=free.categories,
            )

        monthly_remaining = max(0, limit - used)
        total_available = monthly_remaining + purchased

        if total_available <= 0:
            if tier != "free":
                reason = "You've used all your audits. Purchase an audit pack to continue."
            else:
                reason = "You've reached your monthly audit limit. Upgrade your plan for more audits."
            return UsageCheckResult(
                allowed=False,
                reason=reason,
                audits_remaining=0,
                audits_limit=limit,
                purchased_audits=purchased,
                tier=tier,
                pages_limit=limits.pages_per_audit,
                allowed_categories=limits.categories,
                can_buy_packs=tier != "free",
            )

        return UsageCheckResult(
            allowed=True,
            audits_remaining=monthly_remaining,
            audits_limit=limit,
            purchased_audits=purchased,
            tier=tier,
            pages_limit=limits.pages_per_audit,
            allowed_categories=limits.categories,
            can_buy_packs=tier != "free",
        )

    async def increment_usage(self, db: AsyncSession, user_id: UserId) -> bool:
        """Consume one audit, monthly allowance first, then purchased packs.

        Over quota nothing is consumed; the audit should have been refused
        upstream.

        Returns:
            True if an audit was consumed.
        """
        profile = await self.get_profile(db, user_id)
        if profile is None:
            logger.warning(f"[Usage] Cannot increment usage, no profile for {user_id}")
            return False

        used = profile.audits_used_this_month or 0
        limit = profile.audits_limit or 0
        purchased = profile.purchased_audits or 0

        if used < limit:
            profile.audits_used_this_month = used + 1
        elif purchased > 0:
            profile.purchased_audits = purchased - 1
        else:
            logger.warning(f"[Usage] {user_id} ran an audit with no audits left")
            return False

        profile.last_audit_at = datetime.now(timezone.utc)
        await db.flush()
        return True

    async def add_purchased_audits(self, db: AsyncSession, user_id: UserId, count: int) -> bool:
        """Credit audits bought in a pack."""
        profile = await self.get_profile(db, user_id)
        if profile is None:
            logger.warning(f"[Usage] Cannot add {count} audits, no profile for {user_id}")
            return False

        profile.purchased_audits = (profile.purchased_audits or 0) + count
        await db.flush()
        logger.info(f"[Usage] Added {count} purchased audits for {user_id}")
        return True

    async def clear_purchased_audits(self, db: AsyncSession, user_id: UserId) -> bool:
        """Drop all purchased audits, used when a subscription is canceled."""
        profile = await self.get_profile(db, user_id)
        if profile is None:
            return False

        profile.purchased_audits = 0
        await db.flush()
        return True

    def _roll_over(self, profile: UserProfile) -> None:
        limits = get_tier_limits(profile.tier)
        if profile.tier == "free" or profile.tier not in ("starter", "pro", "agency"):
            profile.audits_used_this_month = 0
            profile.audits_limit = limits.audits_per_month
            return

        unused = max(0, (profile.audits_limit or 0) - (profile.audits_used_this_month or 0))
        profile.audits_limit = min(limits.audits_per_month + unused, limits.rollover_cap)
        profile.audits_used_this_month = 0

    async def apply_monthly_rollover(self, db: AsyncSession, user_id: UserId) -> bool:
        """Start a new period, carrying unused paid audits up to the tier cap."""
        profile = await self.get_profile(db, user_id)
        if profile is None:
            return False

        self._roll_over(profile)
        await db.flush()
        logger.info(
            f"[Usage] Rolled over {user_id}: tier={profile.tier} limit={profile.audits_limit}"
        )
        return True

    async def reset_unsubscribed_users(self, db: AsyncSession) -> int:
        """Roll over every profile without an active subscription.

        Paid subscribers roll over when their invoice is paid instead.

        Returns:
            Number of profiles reset.
        """
        result = await db.execute(
            select(UserProfile).where(
                or_(
                    UserProfile.tier == "free",
                    UserProfile.subscription_status == UserProfile.STATUS_CANCELED,
                )
            )
        )
        profiles = result.scalars().all()
        for profile in profiles:
            self._roll_over(profile)
        await db.flush()
        return len(profiles)


usage_service = UsageService()
