"""
Customer account API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from cloche.utils.database import get_db
from cloche.services.account_store import account_store

router = APIRouter(tags=["users"])

class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


@router.get("/user/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await account_store.get_user(user_id, db)


@router.put("/user/{user_id}")
async def update_user(
    user_id: int,
    user_data: UserUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    user = await account_store.update_user(user_id, user_data.name, user_data.email, db)
    return {
        "success": True,
        "userId": user.id,
        "name": user.name,
        "email": user.email,
        "message": "Profile updated successfully"
    }
