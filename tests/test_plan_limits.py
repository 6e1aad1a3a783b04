import pytest

from cloche.config.plan_limits import (
    UNLIMITED,
    ResourceKind,
    get_limit_for_resource,
    get_plan_limits,
    get_upgrade_message,
    is_unlimited,
    is_within_limit,
    limit_as_number,
    parse_plan_tier,
    resolve_plan_tier,
)
from cloche.models.boutique import PlanTier
from cloche.utils.errors import ValidationError


def test_basic_limits():
    limits = get_plan_limits("Basic")
    assert limits.max_products == 3
    assert limits.max_leads == 5
    assert limits.max_boutique_messages == 5


def test_professional_caps_products_only():
    limits = get_plan_limits("Professional")
    assert limits.max_products == 20
    assert is_unlimited(limits.max_leads)
    assert is_unlimited(limits.max_boutique_messages)


def test_premium_is_unlimited_everywhere():
    for resource in ResourceKind:
        assert get_limit_for_resource("Premium", resource) is UNLIMITED


@pytest.mark.parametrize("plan_name", [None, "", "  ", "Gold", "enterprise"])
def test_unknown_plans_resolve_to_basic(plan_name):
    assert resolve_plan_tier(plan_name) is PlanTier.BASIC
    assert get_plan_limits(plan_name) == get_plan_limits("Basic")


def test_plan_lookup_ignores_case_and_whitespace():
    assert resolve_plan_tier(" premium ") is PlanTier.PREMIUM
    assert resolve_plan_tier("PROFESSIONAL") is PlanTier.PROFESSIONAL
    assert resolve_plan_tier(PlanTier.PREMIUM) is PlanTier.PREMIUM


def test_strict_parse_rejects_unknown_plan():
    assert parse_plan_tier("professional") is PlanTier.PROFESSIONAL
    with pytest.raises(ValidationError, match="Invalid plan"):
        parse_plan_tier("Gold")


def test_within_limit_is_strictly_less_than():
    assert is_within_limit(2, 3)
    assert not is_within_limit(3, 3)
    assert is_within_limit(10_000, UNLIMITED)


def test_unlimited_is_not_a_number():
    assert UNLIMITED != 0
    assert limit_as_number(UNLIMITED) is None
    assert limit_as_number(20) == 20


def test_upgrade_messages():
    assert get_upgrade_message(PlanTier.BASIC, ResourceKind.PRODUCT, 3) == (
        "Your Basic plan allows only 3 products. Upgrade to add more."
    )
    assert get_upgrade_message(PlanTier.BASIC, ResourceKind.LEAD, 5) == (
        "Your Basic plan allows only 5 leads. Upgrade to receive more."
    )
    assert get_upgrade_message(PlanTier.BASIC, ResourceKind.BOUTIQUE_MESSAGE, 5) == (
        "Your Basic plan allows only 5 sent messages. Upgrade to continue."
    )
