"""
Lead Store Service
Plan-gated capture of customer inquiries
"""

import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cloche.models.lead import Lead
from cloche.config.plan_limits import ResourceKind
from cloche.services.quota_guard import QuotaGuard, quota_guard
from cloche.utils.database import commit_or_rollback
from cloche.utils.errors import ValidationError

logger = logging.getLogger(__name__)


class LeadStore:
    def __init__(self, guard: Optional[QuotaGuard] = None):
        self.guard = guard or quota_guard

    async def capture_lead(
        self,
        boutique_id: int,
        customer_name: str,
        db: AsyncSession,
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
        product_name: Optional[str] = None,
        message: Optional[str] = None
    ) -> Lead:
        """Record an inquiry once the boutique's plan admits another lead"""
        safe_name = str(customer_name or "").strip()
        safe_email = str(customer_email or "").strip().lower()
        safe_phone = str(customer_phone or "").strip()

        if not boutique_id or not safe_name:
            raise ValidationError("boutiqueId and customer_name are required")
        if not safe_email and not safe_phone:
            raise ValidationError("customer_email or customer_phone is required")

        await self.guard.ensure(boutique_id, ResourceKind.LEAD, db)

        lead = Lead(
            boutique_id=boutique_id,
            customer_name=safe_name,
            customer_email=safe_email or None,
            customer_phone=safe_phone or None,
            product_name=str(product_name or "").strip() or None,
            message=str(message or "").strip() or None
        )
        db.add(lead)
        await commit_or_rollback(db, "capture lead")

        logger.info(f"Lead captured: lead_id={lead.id}, boutique={boutique_id}")
        return lead

    async def list_for_boutique(self, boutique_id: int, db: AsyncSession) -> List[Lead]:
        result = await db.execute(
            select(Lead)
            .where(Lead.boutique_id == boutique_id)
            .order_by(Lead.created_at.desc(), Lead.id.desc())
        )
        return list(result.scalars().all())


# Global instance
lead_store = LeadStore()
