"""
Leads API endpoints
Handles plan-gated lead capture and per-boutique listing
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from cloche.utils.database import get_db
from cloche.services.lead_store import lead_store

router = APIRouter(tags=["leads"])

# Pydantic models for request/response
class LeadCreateRequest(BaseModel):
    boutiqueId: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    product_name: Optional[str] = None
    message: Optional[str] = None

class LeadResponse(BaseModel):
    id: int
    boutique_id: int
    customer_name: str
    customer_email: Optional[str]
    customer_phone: Optional[str]
    product_name: Optional[str]
    message: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/", status_code=201)
async def capture_lead(
    lead_data: LeadCreateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Capture a customer inquiry for a boutique (counted against its plan)"""
    lead = await lead_store.capture_lead(
        lead_data.boutiqueId,
        lead_data.customer_name,
        db,
        customer_email=lead_data.customer_email,
        customer_phone=lead_data.customer_phone,
        product_name=lead_data.product_name,
        message=lead_data.message
    )
    return {"success": True, "message": "Lead captured successfully", "leadId": lead.id}


@router.get("/list/{boutique_id}", response_model=List[LeadResponse])
async def list_leads(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    return await lead_store.list_for_boutique(boutique_id, db)
