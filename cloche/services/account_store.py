"""
Account Store Service
Boutique and customer account records, credentials, profile and plan field
"""

import re
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from cloche.models.boutique import Boutique, PlanTier
from cloche.models.showcase import BoutiqueShowcase, DEFAULT_SHOWCASE_RATING
from cloche.models.user import User
from cloche.config.plan_limits import resolve_plan_tier, parse_plan_tier
from cloche.utils.database import commit_or_rollback
from cloche.utils.errors import AuthenticationError, Conflict, NotFound, ValidationError
from cloche.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\d{10}$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: Optional[str]) -> str:
    return str(email or "").strip().lower()


def _require_gmail(email: str):
    if not email.endswith("@gmail.com"):
        raise ValidationError("Only Gmail addresses are allowed")


class AccountStore:
    """Persistence-facing operations for boutique and user accounts"""

    # ------------------------------------------------------------------ signup

    async def create_user(self, name: str, email: str, password: str, db: AsyncSession) -> User:
        """Create a customer account"""
        name = str(name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise ValidationError("All fields required")

        result = await db.execute(select(User.id).where(User.email == email))
        if result.first():
            raise Conflict("User already exists")

        user = User(name=name, email=email, password_hash=hash_password(password))
        db.add(user)
        await commit_or_rollback(db, "create user", conflict_message="User already exists")

        logger.info(f"Created user account: user_id={user.id}")
        return user

    async def create_boutique(
        self,
        boutique_name: str,
        owner_name: str,
        email: str,
        phone: str,
        city: str,
        password: str,
        db: AsyncSession
    ) -> Boutique:
        """Create a boutique (partner) account on the Basic plan"""
        fields = [boutique_name, owner_name, email, phone, city, password]
        if not all(str(value or "").strip() for value in fields):
            raise ValidationError("All partner fields are required")

        email = normalize_email(email)
        phone = str(phone).strip()

        result = await db.execute(
            select(Boutique.id).where(or_(Boutique.email == email, Boutique.phone == phone))
        )
        if result.first():
            raise Conflict("Boutique already exists")

        boutique = Boutique(
            boutique_name=str(boutique_name).strip(),
            owner_name=str(owner_name).strip(),
            email=email,
            phone=phone,
            city=str(city).strip(),
            plan=PlanTier.BASIC.value,
            password_hash=hash_password(password)
        )
        db.add(boutique)
        await commit_or_rollback(db, "create boutique", conflict_message="Boutique already exists")

        logger.info(f"Created boutique account: boutique_id={boutique.id}, plan={boutique.plan}")
        return boutique

    # ------------------------------------------------------------------- login

    async def authenticate_boutique(self, identifier: str, password: str, db: AsyncSession) -> Optional[Boutique]:
        """Look up a boutique by email (when the identifier has an @) or phone and verify its password"""
        lookup = str(identifier or "").strip()
        if not lookup or not password:
            raise ValidationError("Email/phone and password required")

        if "@" in lookup:
            query = select(Boutique).where(Boutique.email == lookup.lower())
        else:
            query = select(Boutique).where(Boutique.phone == lookup)

        result = await db.execute(query)
        boutique = result.scalar_one_or_none()

        if not boutique or not verify_password(password, boutique.password_hash):
            return None
        return boutique

    async def authenticate_user(self, email: str, password: str, db: AsyncSession) -> Optional[User]:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password required")

        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    # ---------------------------------------------------------------- boutique

    async def get_boutique(self, boutique_id: int, db: AsyncSession) -> Boutique:
        result = await db.execute(select(Boutique).where(Boutique.id == boutique_id))
        boutique = result.scalar_one_or_none()
        if not boutique:
            raise NotFound("Boutique not found")
        return boutique

    async def get_plan_tier(self, boutique_id: int, db: AsyncSession, lock: bool = False) -> PlanTier:
        """
        Resolve a boutique's active plan

        With lock=True the boutique row is read FOR UPDATE, holding it until the
        caller's transaction ends.
        """
        query = select(Boutique.plan).where(Boutique.id == boutique_id)
        if lock:
            query = query.with_for_update()

        result = await db.execute(query)
        row = result.first()
        if row is None:
            raise NotFound("Boutique not found")
        return resolve_plan_tier(row.plan)

    async def update_profile(
        self,
        boutique_id: int,
        db: AsyncSession,
        boutique_name: str,
        owner_name: str,
        email: str,
        phone: str,
        city: str
    ) -> Boutique:
        """Update boutique contact fields"""
        if not all(str(value or "").strip() for value in [boutique_name, owner_name, email, phone, city]):
            raise ValidationError("All profile fields are required")

        email = normalize_email(email)
        phone = str(phone).strip()
        _require_gmail(email)
        if not PHONE_PATTERN.match(phone):
            raise ValidationError("Phone number must be exactly 10 digits")

        boutique = await self.get_boutique(boutique_id, db)

        result = await db.execute(
            select(Boutique.id).where(
                Boutique.id != boutique_id,
                or_(Boutique.email == email, Boutique.phone == phone)
            )
        )
        if result.first():
            raise Conflict("Email or phone already in use")

        boutique.boutique_name = str(boutique_name).strip()
        boutique.owner_name = str(owner_name).strip()
        boutique.email = email
        boutique.phone = phone
        boutique.city = str(city).strip()

        await commit_or_rollback(db, "update profile", conflict_message="Email or phone already in use")
        return boutique

    async def change_password(self, boutique_id: int, current_password: str, new_password: str, db: AsyncSession):
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        if len(str(new_password)) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")

        boutique = await self.get_boutique(boutique_id, db)
        if not verify_password(current_password, boutique.password_hash):
            raise AuthenticationError("Current password is incorrect")

        boutique.password_hash = hash_password(new_password)
        await commit_or_rollback(db, "update password")

    async def update_plan(self, boutique_id: int, plan: str, db: AsyncSession) -> PlanTier:
        """Explicit plan change; the only path that mutates the plan field"""
        if not boutique_id or not plan:
            raise ValidationError("boutiqueId and plan are required")

        plan_tier = parse_plan_tier(plan)
        boutique = await self.get_boutique(boutique_id, db)

        previous = boutique.plan
        boutique.plan = plan_tier.value
        await commit_or_rollback(db, "update subscription")

        logger.info(f"Plan changed: boutique_id={boutique_id}, from={previous}, to={plan_tier.value}")
        return plan_tier

    async def list_boutiques(self, db: AsyncSession, city: Optional[str] = None) -> List[Dict[str, Any]]:
        """Boutique directory merged with showcase fields, optionally filtered by district/city"""
        result = await db.execute(
            select(Boutique, BoutiqueShowcase)
            .outerjoin(BoutiqueShowcase, BoutiqueShowcase.boutique_id == Boutique.id)
            .order_by(Boutique.boutique_name.asc())
        )

        merged = []
        for boutique, showcase in result.all():
            merged.append({
                "id": boutique.id,
                "boutique_name": boutique.boutique_name,
                "owner_name": boutique.owner_name,
                "email": boutique.email,
                "phone": boutique.phone,
                "city": boutique.city,
                "plan": resolve_plan_tier(boutique.plan).value,
                "district": showcase.district if showcase else None,
                "area": showcase.area if showcase else None,
                "tags": showcase.tags if showcase else None,
                "image_url": showcase.image_url if showcase else None,
                "rating": float(showcase.rating) if showcase and showcase.rating else DEFAULT_SHOWCASE_RATING,
            })

        city_filter = str(city or "").strip().lower()
        if not city_filter:
            return merged
        return [
            row for row in merged
            if str(row["district"] or row["city"] or "").strip().lower() == city_filter
        ]

    # -------------------------------------------------------------------- user

    async def get_user(self, user_id: int, db: AsyncSession) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFound("User not found")
        return user

    async def update_user(self, user_id: int, name: str, email: str, db: AsyncSession) -> User:
        name = str(name or "").strip()
        email = normalize_email(email)
        if not name or not email:
            raise ValidationError("Name and email are required")
        _require_gmail(email)

        user = await self.get_user(user_id, db)

        result = await db.execute(select(User.id).where(User.email == email, User.id != user_id))
        if result.first():
            raise Conflict("Email already in use")

        user.name = name
        user.email = email
        await commit_or_rollback(db, "update user", conflict_message="Email already in use")
        return user


# Global instance
account_store = AccountStore()
