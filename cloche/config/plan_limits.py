"""
Plan Limits Configuration
Defines quota limits for each subscription tier
"""

import enum
from typing import Dict, NamedTuple, Optional, Union
from cloche.models.boutique import PlanTier
from cloche.utils.errors import ValidationError


class _Unlimited:
    """Sentinel for quotas without an upper bound; never equal to any integer"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNLIMITED"


UNLIMITED = _Unlimited()

Limit = Union[int, _Unlimited]


class ResourceKind(str, enum.Enum):
    PRODUCT = "product"
    LEAD = "lead"
    BOUTIQUE_MESSAGE = "boutique_message"


class PlanLimits(NamedTuple):
    max_products: Limit
    max_leads: Limit
    max_boutique_messages: Limit

    def for_resource(self, resource: ResourceKind) -> Limit:
        return {
            ResourceKind.PRODUCT: self.max_products,
            ResourceKind.LEAD: self.max_leads,
            ResourceKind.BOUTIQUE_MESSAGE: self.max_boutique_messages,
        }[resource]


PLAN_LIMITS: Dict[PlanTier, PlanLimits] = {
    PlanTier.BASIC: PlanLimits(
        max_products=3,
        max_leads=5,
        max_boutique_messages=5,
    ),
    PlanTier.PROFESSIONAL: PlanLimits(
        max_products=20,
        max_leads=UNLIMITED,
        max_boutique_messages=UNLIMITED,
    ),
    PlanTier.PREMIUM: PlanLimits(
        max_products=UNLIMITED,
        max_leads=UNLIMITED,
        max_boutique_messages=UNLIMITED,
    ),
}

# Wording used in denial messages, keyed by resource
RESOURCE_LABELS = {
    ResourceKind.PRODUCT: "products",
    ResourceKind.LEAD: "leads",
    ResourceKind.BOUTIQUE_MESSAGE: "sent messages",
}

UPGRADE_HINTS = {
    ResourceKind.PRODUCT: "Upgrade to add more.",
    ResourceKind.LEAD: "Upgrade to receive more.",
    ResourceKind.BOUTIQUE_MESSAGE: "Upgrade to continue.",
}

_TIERS_BY_KEY = {tier.value.lower(): tier for tier in PlanTier}


def resolve_plan_tier(plan_name: Optional[str]) -> PlanTier:
    """Case-insensitive plan lookup; empty or unknown values fall back to Basic"""
    if isinstance(plan_name, PlanTier):
        return plan_name
    key = str(plan_name or "").strip().lower()
    return _TIERS_BY_KEY.get(key, PlanTier.BASIC)


def parse_plan_tier(plan_name: Optional[str]) -> PlanTier:
    """Strict plan lookup for plan changes; unknown names are rejected"""
    key = str(plan_name or "").strip().lower()
    if key not in _TIERS_BY_KEY:
        raise ValidationError("Invalid plan")
    return _TIERS_BY_KEY[key]


def get_plan_limits(plan_name: Optional[str]) -> PlanLimits:
    """Get quota limits for a plan name"""
    return PLAN_LIMITS[resolve_plan_tier(plan_name)]


def get_limit_for_resource(plan_name: Optional[str], resource: ResourceKind) -> Limit:
    """Get the specific limit for a resource kind"""
    return get_plan_limits(plan_name).for_resource(resource)


def is_unlimited(limit: Limit) -> bool:
    return limit is UNLIMITED


def is_within_limit(current: int, limit: Limit) -> bool:
    """True when one more item may be admitted"""
    if is_unlimited(limit):
        return True
    return current < limit


def limit_as_number(limit: Limit) -> Optional[int]:
    """Render a limit for API payloads (None = unlimited)"""
    return None if is_unlimited(limit) else limit


def get_upgrade_message(plan_tier: PlanTier, resource: ResourceKind, limit: int) -> str:
    """Denial message naming the plan and its limit"""
    return (
        f"Your {plan_tier.value} plan allows only {limit} {RESOURCE_LABELS[resource]}. "
        f"{UPGRADE_HINTS[resource]}"
    )
