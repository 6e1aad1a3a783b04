"""
Showcase Store Service
Boutique public display profile (district, area, tags, image, rating)
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from cloche.models.showcase import BoutiqueShowcase, DEFAULT_SHOWCASE_RATING
from cloche.services.account_store import AccountStore, account_store
from cloche.utils.database import commit_or_rollback
from cloche.utils.errors import ValidationError

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _parse_rating(rating: Any) -> Decimal:
    if rating is None or str(rating).strip() == "":
        return Decimal(str(DEFAULT_SHOWCASE_RATING))
    try:
        value = Decimal(str(rating).strip())
    except InvalidOperation:
        raise ValidationError("Rating must be a number")
    if not value.is_finite() or value <= 0:
        return Decimal(str(DEFAULT_SHOWCASE_RATING))
    if value > 5:
        raise ValidationError("Rating must be between 0 and 5")
    return value.quantize(Decimal("0.1"))


def serialize_showcase(showcase: Optional[BoutiqueShowcase]) -> Dict[str, Any]:
    if showcase is None:
        return {
            "district": "",
            "area": "",
            "tags": "",
            "image_url": "",
            "rating": DEFAULT_SHOWCASE_RATING,
        }
    return {
        "district": showcase.district or "",
        "area": showcase.area or "",
        "tags": showcase.tags or "",
        "image_url": showcase.image_url or "",
        "rating": float(showcase.rating) if showcase.rating else DEFAULT_SHOWCASE_RATING,
    }


class ShowcaseStore:
    def __init__(self, accounts: Optional[AccountStore] = None):
        self.accounts = accounts or account_store

    async def _find(self, boutique_id: int, db: AsyncSession) -> Optional[BoutiqueShowcase]:
        result = await db.execute(select(BoutiqueShowcase).where(BoutiqueShowcase.boutique_id == boutique_id))
        return result.scalar_one_or_none()

    async def get_showcase(self, boutique_id: int, db: AsyncSession) -> Dict[str, Any]:
        """Showcase fields, with defaults when the boutique has not set one up yet"""
        await self.accounts.get_boutique(boutique_id, db)
        return serialize_showcase(await self._find(boutique_id, db))

    async def save_showcase(
        self,
        boutique_id: int,
        db: AsyncSession,
        district: Optional[str] = None,
        area: Optional[str] = None,
        tags: Optional[str] = None,
        rating: Any = None
    ) -> Dict[str, Any]:
        """Create or replace the showcase text fields and rating"""
        await self.accounts.get_boutique(boutique_id, db)
        parsed_rating = _parse_rating(rating)

        showcase = await self._find(boutique_id, db)
        if showcase is None:
            showcase = BoutiqueShowcase(boutique_id=boutique_id)
            db.add(showcase)

        showcase.district = _clean(district)
        showcase.area = _clean(area)
        showcase.tags = _clean(tags)
        showcase.rating = parsed_rating

        await commit_or_rollback(db, "save showcase")
        logger.info(f"Showcase saved: boutique_id={boutique_id}, district={showcase.district}")
        return serialize_showcase(showcase)

    async def set_showcase_image(self, boutique_id: int, image_url: str, db: AsyncSession) -> Optional[str]:
        """Set the showcase image, creating the showcase row if needed; returns the previous URL"""
        await self.accounts.get_boutique(boutique_id, db)

        showcase = await self._find(boutique_id, db)
        previous = None
        if showcase is None:
            showcase = BoutiqueShowcase(boutique_id=boutique_id, rating=Decimal(str(DEFAULT_SHOWCASE_RATING)))
            db.add(showcase)
        else:
            previous = showcase.image_url

        showcase.image_url = image_url
        await commit_or_rollback(db, "update showcase image")
        return previous


# Global instance
showcase_store = ShowcaseStore()
