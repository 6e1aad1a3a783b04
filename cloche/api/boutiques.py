"""
Boutique profile API endpoints
Profile, password, showcase, directory and dashboard usage
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional, Union
import logging

from cloche.utils.database import get_db
from cloche.services.account_store import account_store
from cloche.services.image_storage import ImageStorage, ImageUpload, get_image_storage
from cloche.services.quota_guard import quota_guard
from cloche.services.showcase_store import showcase_store
from cloche.utils.errors import MarketplaceError, ValidationError
from cloche.config.plan_limits import resolve_plan_tier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["boutiques"])

# Pydantic models
class ProfileUpdateRequest(BaseModel):
    boutique_name: Optional[str] = None
    owner_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None

class PasswordUpdateRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None

class ShowcaseRequest(BaseModel):
    district: Optional[str] = None
    area: Optional[str] = None
    tags: Optional[str] = None
    rating: Optional[Union[float, str]] = None

class ProfileResponse(BaseModel):
    id: int
    boutique_name: str
    owner_name: str
    email: str
    phone: str
    city: str
    plan: str

class BoutiqueListing(BaseModel):
    id: int
    boutique_name: str
    owner_name: str
    email: str
    phone: str
    city: str
    plan: str
    district: Optional[str]
    area: Optional[str]
    tags: Optional[str]
    image_url: Optional[str]
    rating: float


def _profile(boutique) -> ProfileResponse:
    return ProfileResponse(
        id=boutique.id,
        boutique_name=boutique.boutique_name,
        owner_name=boutique.owner_name,
        email=boutique.email,
        phone=boutique.phone,
        city=boutique.city,
        plan=resolve_plan_tier(boutique.plan).value
    )


@router.get("/profile/{boutique_id}", response_model=ProfileResponse)
async def get_profile(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    boutique = await account_store.get_boutique(boutique_id, db)
    return _profile(boutique)


@router.put("/profile/{boutique_id}")
async def update_profile(
    boutique_id: int,
    profile_data: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    boutique = await account_store.update_profile(
        boutique_id,
        db,
        boutique_name=profile_data.boutique_name,
        owner_name=profile_data.owner_name,
        email=profile_data.email,
        phone=profile_data.phone,
        city=profile_data.city
    )
    return {"success": True, "message": "Profile updated successfully", "profile": _profile(boutique)}


@router.put("/profile/{boutique_id}/password")
async def update_password(
    boutique_id: int,
    password_data: PasswordUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    await account_store.change_password(
        boutique_id,
        password_data.currentPassword,
        password_data.newPassword,
        db
    )
    return {"success": True, "message": "Password updated successfully"}


@router.get("/profile/{boutique_id}/showcase")
async def get_showcase(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    showcase = await showcase_store.get_showcase(boutique_id, db)
    boutique = await account_store.get_boutique(boutique_id, db)
    return {"boutique_id": boutique_id, **showcase, "boutique_name": boutique.boutique_name}


async def _save_showcase(boutique_id: int, showcase_data: ShowcaseRequest, db: AsyncSession):
    showcase = await showcase_store.save_showcase(
        boutique_id,
        db,
        district=showcase_data.district,
        area=showcase_data.area,
        tags=showcase_data.tags,
        rating=showcase_data.rating
    )
    return {"success": True, "message": "Showcase updated successfully", "showcase": showcase}


@router.put("/profile/{boutique_id}/showcase")
async def replace_showcase(
    boutique_id: int,
    showcase_data: ShowcaseRequest,
    db: AsyncSession = Depends(get_db)
):
    return await _save_showcase(boutique_id, showcase_data, db)


@router.post("/profile/{boutique_id}/showcase")
async def create_showcase(
    boutique_id: int,
    showcase_data: ShowcaseRequest,
    db: AsyncSession = Depends(get_db)
):
    return await _save_showcase(boutique_id, showcase_data, db)


@router.post("/profile/{boutique_id}/showcase-image")
async def upload_showcase_image(
    boutique_id: int,
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """Upload the showcase image; the previous one is removed from storage"""
    if image is None or not image.filename:
        raise ValidationError("Image file is required")

    await account_store.get_boutique(boutique_id, db)

    upload = ImageUpload(await image.read(), image.filename, image.content_type)
    image_url = storage.save(upload, folder=f"showcase/{boutique_id}", prefix="showcase")
    try:
        previous = await showcase_store.set_showcase_image(boutique_id, image_url, db)
    except MarketplaceError:
        storage.delete(image_url)
        raise

    if previous and previous != image_url and not storage.delete(previous):
        logger.warning(f"Previous showcase image not removed: boutique_id={boutique_id}, url={previous}")

    return {"success": True, "image_url": image_url, "message": "Showcase image uploaded"}


@router.get("/boutiques", response_model=List[BoutiqueListing])
async def list_boutiques(
    city: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Public boutique directory"""
    return await account_store.list_boutiques(db, city=city)


@router.get("/dashboard/{boutique_id}")
async def get_dashboard(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Usage counters against the boutique's plan"""
    boutique = await account_store.get_boutique(boutique_id, db)
    stats = await quota_guard.usage_stats(boutique, db)

    return {
        "boutiqueName": boutique.boutique_name,
        "ownerName": boutique.owner_name,
        "totalLeads": stats["leads"]["current"],
        "leadsUsed": stats["leads"]["current"],
        "messagesUsed": stats["messages"]["current"],
        "productsUsed": stats["products"]["current"],
        "plan": stats["plan"],
        "limits": {
            "products": stats["products"]["limit"],
            "leads": stats["leads"]["limit"],
            "messages": stats["messages"]["limit"]
        }
    }
