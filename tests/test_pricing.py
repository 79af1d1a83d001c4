from app.core.pricing import (
    ALL_CATEGORIES,
    category_names,
    get_pack_from_price_id,
    get_tier_from_price_id,
    get_tier_limits,
)


def test_paid_tiers_with_all_categories_expand_to_every_category():
    assert get_tier_limits("pro").categories == ALL_CATEGORIES
    assert get_tier_limits("agency").categories == ALL_CATEGORIES


def test_starter_limits():
    limits = get_tier_limits("starter")
    assert limits.audits_per_month == 5
    assert limits.pages_per_audit == 3
    assert limits.rollover_cap == 20
    assert "traffic" not in limits.categories


def test_unknown_tier_falls_back_to_free():
    assert get_tier_limits("enterprise") == get_tier_limits("free")
    assert get_tier_limits(None).audits_per_month == 1


def test_tier_from_price_id_matches_monthly_and_yearly_prices():
    assert get_tier_from_price_id("price_pro_m") == "pro"
    assert get_tier_from_price_id("price_pro_y") == "pro"
    assert get_tier_from_price_id("price_starter_m") == "starter"
    assert get_tier_from_price_id("price_unknown") == "free"
    assert get_tier_from_price_id(None) == "free"


def test_pack_from_price_id():
    assert get_pack_from_price_id("price_pack_medium_pro") == ("medium", 25)
    assert get_pack_from_price_id("price_pro_m") is None
    assert get_pack_from_price_id("") is None


def test_category_names_drops_unknown_ids():
    assert category_names(["business", "nope", "ux"]) == ["Business Overview", "User Experience"]
