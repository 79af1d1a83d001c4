import uuid

from app.models.user_profile import UserProfile
from app.services.usage_service import usage_service
from tests.conftest import create_profile


async def test_missing_profile_is_refused(db):
    result = await usage_service.check_user_usage(db, uuid.uuid4())
    assert result.allowed is False
    assert result.reason == "User profile not found"


async def test_free_user_with_audit_left_is_allowed(db):
    profile = await create_profile(db, tier="free", audits_limit=1, audits_used_this_month=0)
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is True
    assert result.audits_remaining == 1
    assert result.pages_limit == 1
    assert result.allowed_categories == ["business", "technical", "brand"]
    assert result.can_buy_packs is False


async def test_free_user_over_limit_is_told_to_upgrade(db):
    profile = await create_profile(db, tier="free", audits_limit=1, audits_used_this_month=1)
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is False
    assert "Upgrade your plan" in result.reason


async def test_paid_user_out_of_audits_is_offered_packs(db):
    profile = await create_profile(db, tier="pro", audits_limit=25, audits_used_this_month=25)
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is False
    assert result.can_buy_packs is True
    assert "audit pack" in result.reason


async def test_purchased_audits_allow_past_monthly_limit(db):
    profile = await create_profile(
        db, tier="starter", audits_limit=5, audits_used_this_month=5, purchased_audits=3
    )
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is True
    assert result.audits_remaining == 0
    assert result.purchased_audits == 3


async def test_past_due_is_blocked(db):
    profile = await create_profile(
        db, tier="pro", audits_limit=25, subscription_status=UserProfile.STATUS_PAST_DUE
    )
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is False
    assert "past due" in result.reason


async def test_canceled_falls_back_to_free_allowance(db):
    profile = await create_profile(
        db,
        tier="pro",
        audits_limit=25,
        audits_used_this_month=0,
        purchased_audits=10,
        subscription_status=UserProfile.STATUS_CANCELED,
    )
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is True
    assert result.tier == "free"
    assert result.audits_limit == 1
    assert result.purchased_audits == 0


async def test_increment_consumes_monthly_before_purchased(db):
    profile = await create_profile(
        db, tier="starter", audits_limit=5, audits_used_this_month=4, purchased_audits=2
    )

    await usage_service.increment_usage(db, profile.id)
    assert profile.audits_used_this_month == 5
    assert profile.purchased_audits == 2

    await usage_service.increment_usage(db, profile.id)
    assert profile.audits_used_this_month == 5
    assert profile.purchased_audits == 1
    assert profile.last_audit_at is not None


async def test_rollover_carries_unused_audits_up_to_cap(db):
    pro = await create_profile(db, email="pro@example.com", tier="pro", audits_limit=25, audits_used_this_month=5)
    starter = await create_profile(
        db, email="starter@example.com", tier="starter", audits_limit=20, audits_used_this_month=0
    )

    await usage_service.apply_monthly_rollover(db, pro.id)
    await usage_service.apply_monthly_rollover(db, starter.id)

    assert pro.audits_limit == 45
    assert pro.audits_used_this_month == 0
    assert starter.audits_limit == 20


async def test_free_rollover_resets_without_carry(db):
    profile = await create_profile(db, tier="free", audits_limit=1, audits_used_this_month=0)
    await usage_service.apply_monthly_rollover(db, profile.id)
    assert profile.audits_limit == 1


async def test_reset_unsubscribed_users_skips_active_subscribers(db):
    free = await create_profile(db, email="free@example.com", tier="free", audits_used_this_month=1)
    paid = await create_profile(
        db,
        email="paid@example.com",
        tier="pro",
        audits_limit=25,
        audits_used_this_month=10,
        subscription_status=UserProfile.STATUS_ACTIVE,
    )

    count = await usage_service.reset_unsubscribed_users(db)

    assert count == 1
    assert free.audits_used_this_month == 0
    assert paid.audits_used_this_month == 10


async def test_increment_over_quota_consumes_nothing(db):
    profile = await create_profile(
        db, tier="starter", audits_limit=5, audits_used_this_month=5, purchased_audits=0
    )

    assert await usage_service.increment_usage(db, profile.id) is False
    assert profile.audits_used_this_month == 5
    assert profile.purchased_audits == 0
    assert profile.last_audit_at is None


async def test_explicit_zero_limit_is_not_replaced_by_tier_default(db):
    profile = await create_profile(db, tier="pro", audits_limit=0, audits_used_this_month=0)
    result = await usage_service.check_user_usage(db, profile.id)
    assert result.allowed is False
    assert result.audits_limit == 0
