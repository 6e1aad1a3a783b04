"""
Quota Guard Service
Admits or denies plan-gated writes (products, leads, boutique-sent messages)

Usage is never stored: it is recounted from the underlying rows on every check.
Under the default check-then-act strategy two concurrent requests can both pass
the count before either insert commits, overshooting a quota by a small margin.
The row_lock strategy reads the boutique row FOR UPDATE before counting so that
admissions for one boutique serialize until the inserting transaction commits.
"""

import os
import enum
import logging
from typing import Any, Dict, NamedTuple, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from cloche.models.boutique import Boutique, PlanTier
from cloche.models.conversation import Conversation, Message, SenderType
from cloche.models.lead import Lead
from cloche.models.product import Product
from cloche.config.plan_limits import (
    Limit,
    ResourceKind,
    get_plan_limits,
    get_limit_for_resource,
    get_upgrade_message,
    is_unlimited,
    is_within_limit,
    limit_as_number,
    resolve_plan_tier,
)
from cloche.services.account_store import AccountStore, account_store
from cloche.utils.errors import QuotaExceeded

logger = logging.getLogger(__name__)


class AdmissionStrategy(str, enum.Enum):
    CHECK_THEN_ACT = "check_then_act"
    ROW_LOCK = "row_lock"


def _strategy_from_env() -> AdmissionStrategy:
    value = os.getenv("QUOTA_ADMISSION_STRATEGY", AdmissionStrategy.CHECK_THEN_ACT.value)
    try:
        return AdmissionStrategy(value.strip().lower())
    except ValueError:
        logger.warning(f"Unknown QUOTA_ADMISSION_STRATEGY={value!r}, using check_then_act")
        return AdmissionStrategy.CHECK_THEN_ACT


class QuotaDecision(NamedTuple):
    allowed: bool
    message: Optional[str]
    plan_tier: PlanTier
    limit: Limit
    current: Optional[int]  # None when the limit is unlimited and nothing was counted


class QuotaGuard:
    """Service for checking plan quotas at write time"""

    def __init__(
        self,
        strategy: Optional[AdmissionStrategy] = None,
        accounts: Optional[AccountStore] = None
    ):
        self.strategy = strategy or _strategy_from_env()
        self.accounts = accounts or account_store

    async def check(self, boutique_id: int, resource: ResourceKind, db: AsyncSession) -> QuotaDecision:
        """
        Decide whether one more item of a resource may be written

        Args:
            boutique_id: Owning boutique
            resource: Resource kind being written
            db: Database session (the caller's insert must use the same session)

        Returns:
            QuotaDecision; raises NotFound when the boutique does not exist
        """
        lock = self.strategy is AdmissionStrategy.ROW_LOCK
        plan_tier = await self.accounts.get_plan_tier(boutique_id, db, lock=lock)
        limit = get_limit_for_resource(plan_tier, resource)

        if is_unlimited(limit):
            return QuotaDecision(True, None, plan_tier, limit, None)

        current = await self.count_usage(boutique_id, resource, db)
        if is_within_limit(current, limit):
            return QuotaDecision(True, None, plan_tier, limit, current)

        logger.warning(
            f"Quota exceeded: boutique={boutique_id}, resource={resource.value}, "
            f"current={current}, limit={limit}, plan={plan_tier.value}"
        )
        message = get_upgrade_message(plan_tier, resource, limit)
        return QuotaDecision(False, message, plan_tier, limit, current)

    async def ensure(self, boutique_id: int, resource: ResourceKind, db: AsyncSession) -> QuotaDecision:
        """Same as check() but raises QuotaExceeded on denial"""
        decision = await self.check(boutique_id, resource, db)
        if not decision.allowed:
            raise QuotaExceeded(
                decision.message,
                resource=resource.value,
                plan_tier=decision.plan_tier.value,
                limit=limit_as_number(decision.limit),
                current=decision.current
            )
        return decision

    async def count_usage(self, boutique_id: int, resource: ResourceKind, db: AsyncSession) -> int:
        """Count the rows of a resource currently owned by a boutique"""
        if resource is ResourceKind.PRODUCT:
            query = select(func.count(Product.id)).where(Product.boutique_id == boutique_id)
        elif resource is ResourceKind.LEAD:
            query = select(func.count(Lead.id)).where(Lead.boutique_id == boutique_id)
        elif resource is ResourceKind.BOUTIQUE_MESSAGE:
            query = (
                select(func.count(Message.id))
                .join(Conversation, Conversation.id == Message.conversation_id)
                .where(
                    Conversation.boutique_id == boutique_id,
                    Message.sender_type == SenderType.BOUTIQUE.value
                )
            )
        else:
            raise ValueError(f"Unknown resource kind: {resource}")

        result = await db.execute(query)
        return result.scalar() or 0

    async def usage_stats(self, boutique: Boutique, db: AsyncSession) -> Dict[str, Any]:
        """Current usage and limits for a boutique's dashboard"""
        plan_tier = resolve_plan_tier(boutique.plan)
        limits = get_plan_limits(plan_tier)

        products = await self.count_usage(boutique.id, ResourceKind.PRODUCT, db)
        leads = await self.count_usage(boutique.id, ResourceKind.LEAD, db)
        messages = await self.count_usage(boutique.id, ResourceKind.BOUTIQUE_MESSAGE, db)

        return {
            "plan": plan_tier.value,
            "products": {"current": products, "limit": limit_as_number(limits.max_products)},
            "leads": {"current": leads, "limit": limit_as_number(limits.max_leads)},
            "messages": {"current": messages, "limit": limit_as_number(limits.max_boutique_messages)},
        }


# Global instance
quota_guard = QuotaGuard()
