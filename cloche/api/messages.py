"""
Messaging API endpoints
Customer/boutique conversations, inbox listings and plan-gated sending
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from cloche.utils.database import get_db
from cloche.models.conversation import SenderType
from cloche.services.conversation_store import conversation_store, serialize_conversation
from cloche.services.messaging_service import messaging_service
from cloche.utils.errors import ValidationError

router = APIRouter(tags=["messages"])

# Pydantic models
class SendMessageRequest(BaseModel):
    conversationId: Optional[int] = None
    message_text: Optional[str] = None
    senderType: Optional[str] = None

class StartConversationRequest(BaseModel):
    boutiqueId: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    product_name: Optional[str] = None

class StatusRequest(BaseModel):
    status: Optional[str] = None

class StatusUpdateRequest(StatusRequest):
    conversationId: Optional[int] = None

class ConversationResponse(BaseModel):
    id: int
    boutique_id: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    product_name: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime]

class ConversationSummaryResponse(ConversationResponse):
    boutique_name: Optional[str]
    last_message_time: Optional[datetime]
    last_message: Optional[str]
    unread_count: int

class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_type: str
    message_text: str
    is_read: bool
    created_at: datetime


@router.post("/send")
async def send_message(
    request: SendMessageRequest,
    db: AsyncSession = Depends(get_db)
):
    """Send a message; boutique-sent messages count against the plan"""
    message = await messaging_service.send_message(
        request.conversationId,
        request.message_text,
        db,
        sender_type=request.senderType
    )
    return {"success": True, "message": "Message sent successfully", "messageId": message.id}


@router.post("/customer/conversation")
async def start_customer_conversation(
    request: StartConversationRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Find or open the customer's conversation with a boutique about a product"""
    conversation, created = await conversation_store.find_or_create(
        request.boutiqueId,
        request.customer_name,
        request.customer_email,
        db,
        customer_phone=request.customer_phone,
        product_name=request.product_name
    )
    if created:
        response.status_code = 201

    return {
        "success": True,
        "conversationId": conversation.id,
        "conversation": serialize_conversation(conversation)
    }


@router.get("/conversations/{boutique_id}", response_model=List[ConversationSummaryResponse])
async def list_boutique_conversations(
    boutique_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Boutique inbox"""
    return await conversation_store.list_for_boutique(boutique_id, db)


@router.get("/customer/conversations", response_model=List[ConversationSummaryResponse])
async def list_customer_conversations(
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Customer inbox across boutiques"""
    return await conversation_store.list_for_customer(email, db)


@router.get("/conversation/{conversation_id}", response_model=List[MessageResponse])
async def get_boutique_messages(
    conversation_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Messages as seen by the boutique; marks customer messages read"""
    return await conversation_store.list_messages(conversation_id, SenderType.BOUTIQUE, db)


@router.get("/customer/conversation/{conversation_id}", response_model=List[MessageResponse])
async def get_customer_messages(
    conversation_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Messages as seen by the customer; marks boutique messages read"""
    return await conversation_store.list_messages(conversation_id, SenderType.CUSTOMER, db)


@router.get("/details/{conversation_id}", response_model=ConversationResponse)
async def get_conversation_details(
    conversation_id: int,
    db: AsyncSession = Depends(get_db)
):
    conversation = await conversation_store.get_conversation(conversation_id, db)
    return serialize_conversation(conversation)


@router.put("/status/{conversation_id}")
async def update_status(
    conversation_id: int,
    request: StatusRequest,
    db: AsyncSession = Depends(get_db)
):
    await conversation_store.set_status(conversation_id, request.status, db)
    return {"success": True, "message": "Status updated successfully"}


@router.put("/status")
async def update_status_by_body(
    request: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    if not request.conversationId or not request.status:
        raise ValidationError("conversationId and status are required")

    await conversation_store.set_status(request.conversationId, request.status, db)
    return {"success": True, "message": "Status updated successfully"}
