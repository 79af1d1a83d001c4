"""Plan tiers, audit packs and Stripe price mapping."""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from app.core.config import settings

ALL_CATEGORIES: List[str] = [
    "business",
    "technical",
    "brand",
    "ux",
    "traffic",
    "security",
    "content",
    "conversion",
    "social",
    "trust",
]

# Category id -> display name used in prompts and reports
CATEGORY_MAP: Dict[str, str] = {
    "business": "Business Overview",
    "technical": "Technical Foundation",
    "brand": "Brand & Messaging",
    "ux": "User Experience",
    "traffic": "Traffic Readiness",
    "security": "Security",
    "content": "Content Strategy",
    "conversion": "Conversion & Engagement",
    "social": "Social & Multimedia",
    "trust": "Trust & Credibility",
}

# Display name -> weight in the overall score
CATEGORY_WEIGHTS: Dict[str, float] = {
    "Business Overview": 1.0,
    "Technical Foundation": 1.2,
    "Brand & Messaging": 1.0,
    "User Experience": 1.0,
    "Traffic Readiness": 1.0,
    "Security": 0.8,
    "Content Strategy": 0.8,
    "Conversion & Engagement": 1.0,
    "Social & Multimedia": 0.6,
    "Trust & Credibility": 1.0,
}

TIERS = ("free", "starter", "pro", "agency")
PAID_TIERS = ("starter", "pro", "agency")

TIER_LIMITS: Dict[str, Dict] = {
    "free": {
        "audits_per_month": 1,
        "pages_per_audit": 1,
        "rollover_cap": 0,
        "categories": ["business", "technical", "brand"],
    },
    "starter": {
        "audits_per_month": 5,
        "pages_per_audit": 3,
        "rollover_cap": 20,
        "categories": ["business", "technical", "brand", "ux", "content", "security"],
    },
    "pro": {
        "audits_per_month": 25,
        "pages_per_audit": 10,
        "rollover_cap": 100,
        "categories": "all",
    },
    "agency": {
        "audits_per_month": 100,
        "pages_per_audit": 25,
        "rollover_cap": 400,
        "categories": "all",
    },
}

TIER_PRICES: Dict[str, Dict[str, int]] = {
    "free": {"monthly": 0, "yearly": 0},
    "starter": {"monthly": 19, "yearly": 190},
    "pro": {"monthly": 49, "yearly": 490},
    "agency": {"monthly": 149, "yearly": 1490},
}

PACK_SIZES = ("small", "medium", "large")

AUDIT_PACKS: Dict[str, Dict] = {
    "small": {"audits": 5, "prices": {"starter": 20, "pro": 15, "agency": 10}},
    "medium": {"audits": 25, "prices": {"starter": 75, "pro": 50, "agency": 35}},
    "large": {"audits": 100, "prices": {"starter": 250, "pro": 150, "agency": 100}},
}


class TierLimits(BaseModel):
    """Expanded quota for one tier."""

    audits_per_month: int
    pages_per_audit: int
    rollover_cap: int
    categories: List[str]


def get_tier_limits(tier: Optional[str]) -> TierLimits:
    """Limits for a tier, falling back to free for unknown tiers."""
    limits = TIER_LIMITS.get(tier or "free", TIER_LIMITS["free"])
    categories = limits["categories"]
    return TierLimits(
        audits_per_month=limits["audits_per_month"],
        pages_per_audit=limits["pages_per_audit"],
        rollover_cap=limits["rollover_cap"],
        categories=list(ALL_CATEGORIES) if categories == "all" else list(categories),
    )


def get_subscription_price_id(tier: str, billing_period: str) -> str:
    """Configured Stripe price for a tier and billing period ('' if unset)."""
    attr = f"STRIPE_PRICE_{tier.upper()}_{billing_period.upper()}"
    return getattr(settings, attr, "") or ""


def get_pack_price_id(pack_size: str, tier: str) -> str:
    """Configured Stripe price for an audit pack at a tier ('' if unset)."""
    attr = f"STRIPE_PACK_{pack_size.upper()}_{tier.upper()}"
    return getattr(settings, attr, "") or ""


def get_tier_from_price_id(price_id: Optional[str]) -> str:
    """Map a subscription price (monthly or yearly) to its tier."""
    if not price_id:
        return "free"
    for tier in PAID_TIERS:
        for period in ("monthly", "yearly"):
            if get_subscription_price_id(tier, period) == price_id:
                return tier
    return "free"


def get_pack_from_price_id(price_id: Optional[str]) -> Optional[Tuple[str, int]]:
    """Map a pack price to (pack size, audits), or None if it is not a pack."""
    if not price_id:
        return None
    for size in PACK_SIZES:
        for tier in PAID_TIERS:
            if get_pack_price_id(size, tier) == price_id:
                return size, AUDIT_PACKS[size]["audits"]
    return None


def category_names(category_ids: List[str]) -> List[str]:
    """Display names for category ids, dropping unknown ids."""
    return [CATEGORY_MAP[c] for c in category_ids if c in CATEGORY_MAP]
