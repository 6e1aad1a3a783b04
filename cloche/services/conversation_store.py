"""
Conversation Store Service
Customer/boutique threads, inbox summaries, message listing and read tracking
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError

from cloche.models.boutique import Boutique
from cloche.models.conversation import Conversation, ConversationStatus, Message, SenderType
from cloche.utils.database import commit_or_rollback
from cloche.utils.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


def serialize_conversation(conversation: Conversation) -> Dict[str, Any]:
    return {
        "id": conversation.id,
        "boutique_id": conversation.boutique_id,
        "customer_name": conversation.customer_name,
        "customer_email": conversation.customer_email,
        "customer_phone": conversation.customer_phone,
        "product_name": conversation.product_name or "",
        "status": conversation.status,
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
    }


def serialize_message(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_type": message.sender_type,
        "message_text": message.message_text,
        "is_read": bool(message.is_read),
        "created_at": message.created_at,
    }


class ConversationStore:
    """Creates, finds and lists conversations and their messages"""

    async def find_or_create(
        self,
        boutique_id: int,
        customer_name: str,
        customer_email: str,
        db: AsyncSession,
        customer_phone: Optional[str] = None,
        product_name: Optional[str] = None
    ) -> Tuple[Conversation, bool]:
        """
        Reuse the conversation for (boutique, email, product) or start a new one

        Email is trimmed and lower-cased; a missing product name and an empty one
        are the same key. An existing conversation is returned unchanged even
        when the name or phone in the request differ.

        Returns:
            (conversation, created)
        """
        safe_name = str(customer_name or "").strip()
        safe_email = str(customer_email or "").strip().lower()
        safe_phone = str(customer_phone or "").strip()
        safe_product = str(product_name or "").strip()

        if not boutique_id or not safe_name or not safe_email:
            raise ValidationError("boutiqueId, customer_name and customer_email are required")

        result = await db.execute(
            select(Conversation)
            .where(
                Conversation.boutique_id == boutique_id,
                Conversation.customer_email == safe_email,
                func.coalesce(Conversation.product_name, "") == safe_product
            )
            .order_by(Conversation.id.desc())
            .limit(1)
        )
        existing = result.scalar_one_or_none()
        if existing:
            return existing, False

        boutique = await db.execute(select(Boutique.id).where(Boutique.id == boutique_id))
        if boutique.first() is None:
            raise NotFound("Boutique not found")

        conversation = Conversation(
            boutique_id=boutique_id,
            customer_name=safe_name,
            customer_email=safe_email,
            customer_phone=safe_phone or None,
            product_name=safe_product,
            status=ConversationStatus.ACTIVE.value
        )
        db.add(conversation)
        await commit_or_rollback(db, "create conversation")

        logger.info(
            f"Conversation created: id={conversation.id}, boutique={boutique_id}, "
            f"product={safe_product!r}"
        )
        return conversation, True

    async def get_conversation(self, conversation_id: int, db: AsyncSession) -> Conversation:
        result = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
        conversation = result.scalar_one_or_none()
        if not conversation:
            raise NotFound("Conversation not found")
        return conversation

    def _summary_query(self, viewer: SenderType):
        """Conversations with last activity, last message text and the viewer's unread count"""
        last_time = (
            select(func.max(Message.created_at))
            .where(Message.conversation_id == Conversation.id)
            .correlate(Conversation)
            .scalar_subquery()
        )
        last_message = (
            select(Message.message_text)
            .where(Message.conversation_id == Conversation.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
            .correlate(Conversation)
            .scalar_subquery()
        )
        unread_count = (
            select(func.count(Message.id))
            .where(
                Message.conversation_id == Conversation.id,
                Message.is_read.is_(False),
                Message.sender_type == viewer.counterpart.value
            )
            .correlate(Conversation)
            .scalar_subquery()
        )
        last_message_time = func.coalesce(last_time, Conversation.created_at).label("last_message_time")

        query = select(
            Conversation,
            last_message_time,
            last_message.label("last_message"),
            unread_count.label("unread_count"),
            Boutique.boutique_name,
        ).outerjoin(Boutique, Boutique.id == Conversation.boutique_id)

        return query.order_by(last_message_time.desc(), Conversation.id.desc())

    def _summaries(self, rows) -> List[Dict[str, Any]]:
        summaries = []
        for conversation, last_message_time, last_message, unread_count, boutique_name in rows:
            summary = serialize_conversation(conversation)
            summary.update({
                "boutique_name": boutique_name,
                "last_message_time": last_message_time,
                "last_message": last_message,
                "unread_count": int(unread_count or 0),
            })
            summaries.append(summary)
        return summaries

    async def list_for_boutique(self, boutique_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
        """Boutique inbox, most recently active conversation first"""
        query = self._summary_query(SenderType.BOUTIQUE).where(Conversation.boutique_id == boutique_id)
        result = await db.execute(query)
        return self._summaries(result.all())

    async def list_for_customer(self, customer_email: str, db: AsyncSession) -> List[Dict[str, Any]]:
        """Customer inbox across all boutiques, most recently active conversation first"""
        safe_email = str(customer_email or "").strip().lower()
        if not safe_email:
            raise ValidationError("email query param is required")

        query = self._summary_query(SenderType.CUSTOMER).where(Conversation.customer_email == safe_email)
        result = await db.execute(query)
        return self._summaries(result.all())

    async def list_messages(self, conversation_id: int, viewer: SenderType, db: AsyncSession) -> List[Dict[str, Any]]:
        """
        Messages of a conversation in creation order

        Viewing marks every message from the other party as read. The returned
        payload is captured before that update, so it shows the read flags as
        they were when the viewer opened the conversation.
        """
        await self.get_conversation(conversation_id, db)

        result = await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .execution_options(populate_existing=True)
        )
        messages = [serialize_message(message) for message in result.scalars().all()]

        await self._mark_read(conversation_id, viewer.counterpart, db)
        return messages

    async def _mark_read(self, conversation_id: int, sender: SenderType, db: AsyncSession):
        """Best-effort bulk read flag; failures are logged, never raised"""
        try:
            await db.execute(
                update(Message)
                .where(
                    Message.conversation_id == conversation_id,
                    Message.sender_type == sender.value,
                    Message.is_read.is_(False)
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error marking messages as read: conversation={conversation_id}, sender={sender.value}: {e}")

    async def set_status(self, conversation_id: int, status: str, db: AsyncSession) -> Conversation:
        if not status:
            raise ValidationError("Missing status")
        try:
            new_status = ConversationStatus(str(status).strip().lower())
        except ValueError:
            raise ValidationError("Invalid status")

        conversation = await self.get_conversation(conversation_id, db)
        conversation.status = new_status.value
        await commit_or_rollback(db, "update status")
        return conversation


# Global instance
conversation_store = ConversationStore()
