"""Subscription plans and the seller-dashboard features they unlock."""
from __future__ import annotations

from typing import Mapping, Optional

from .schema import PlanFeatures

TIER_ORDER = ("free", "starter", "business")

TIER_NAMES: dict[str, str] = {
    "free": "Free",
    "starter": "Starter",
    "business": "Business",
}

FEATURE_FLAGS = (
    "statistics",
    "email_composer",
    "lead_pipeline",
    "auto_reply",
    "team_management",
    "api_access",
)

REQUIRED_TIER: dict[str, str] = {
    "statistics": "starter",
    "email_composer": "starter",
    "lead_pipeline": "business",
    "auto_reply": "business",
    "team_management": "business",
    "api_access": "business",
}

DEFAULT_PLANS: dict[str, PlanFeatures] = {
    "free": PlanFeatures(),
    "starter": PlanFeatures(
        max_listings=5,
        max_images_per_listing=10,
        max_team_members=1,
        featured_per_month=1,
        statistics=True,
        email_composer=True,
        support_level="24h",
    ),
    "business": PlanFeatures(
        max_listings=25,
        max_images_per_listing=20,
        max_team_members=5,
        featured_per_month=5,
        statistics=True,
        email_composer=True,
        lead_pipeline=True,
        auto_reply=True,
        team_management=True,
        api_access=True,
        support_level="4h",
    ),
}

# limits handed out when everything is unlocked
UNLIMITED = -1


def get_plan_tier(slug: Optional[str]) -> str:
    return slug if slug in TIER_ORDER else "free"


def has_tier(slug: Optional[str], min_tier: str) -> bool:
    return TIER_ORDER.index(get_plan_tier(slug)) >= TIER_ORDER.index(get_plan_tier(min_tier))


def tier_name(tier: str) -> str:
    return TIER_NAMES.get(tier, tier)


def required_tier_for(feature: str) -> str:
    if feature not in REQUIRED_TIER:
        raise ValueError(
            f"Unknown feature '{feature}'. Available: {', '.join(FEATURE_FLAGS)}"
        )
    return REQUIRED_TIER[feature]


class PlanCatalog:
    """Feature flags per plan slug.

    With ``all_features_unlocked`` every flag is on and every limit is
    unlimited, whatever plan the account holds.
    """

    def __init__(
        self,
        plans: Optional[Mapping[str, PlanFeatures]] = None,
        all_features_unlocked: bool = False,
    ) -> None:
        self.plans: dict[str, PlanFeatures] = {**DEFAULT_PLANS, **(plans or {})}
        self.all_features_unlocked = all_features_unlocked

    def features_for(self, slug: Optional[str]) -> PlanFeatures:
        return self.plans.get(get_plan_tier(slug), self.plans["free"])

    def has_feature(self, slug: Optional[str], feature: str) -> bool:
        if feature not in FEATURE_FLAGS:
            return False
        if self.all_features_unlocked:
            return True
        return bool(getattr(self.features_for(slug), feature))

    def get_feature_limit(self, slug: Optional[str], limit: str) -> int:
        features = self.features_for(slug)
        value = getattr(features, limit, None)
        if not isinstance(value, int) or isinstance(value, bool):
            return 0
        if self.all_features_unlocked:
            return UNLIMITED
        return value

    def can_create_listing(self, slug: Optional[str], current_count: int) -> bool:
        limit = self.get_feature_limit(slug, "max_listings")
        return limit == UNLIMITED or current_count < limit

    def locked_features(self, slug: Optional[str]) -> list[str]:
        return [f for f in FEATURE_FLAGS if not self.has_feature(slug, f)]
