"""
Messaging Service
Plan-gated message sending
"""

import logging
from typing import Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession

from cloche.models.conversation import ConversationStatus, Message, SenderType
from cloche.config.plan_limits import ResourceKind
from cloche.services.conversation_store import ConversationStore, conversation_store
from cloche.services.quota_guard import QuotaGuard, quota_guard
from cloche.utils.database import commit_or_rollback, utcnow
from cloche.utils.errors import ValidationError

logger = logging.getLogger(__name__)


class MessagingService:
    """Orchestrates the quota check and the insert for a new message"""

    def __init__(
        self,
        guard: Optional[QuotaGuard] = None,
        conversations: Optional[ConversationStore] = None
    ):
        self.guard = guard or quota_guard
        self.conversations = conversations or conversation_store

    async def send_message(
        self,
        conversation_id: int,
        message_text: str,
        db: AsyncSession,
        sender_type: Union[SenderType, str, None] = SenderType.BOUTIQUE
    ) -> Message:
        """
        Append a message to a conversation

        Customer messages are never quota-limited. Boutique messages are counted
        against the owning boutique's plan first and nothing is written when the
        plan denies. Raises NotFound if the conversation does not resolve.
        """
        if not conversation_id or not str(message_text or "").strip():
            raise ValidationError("Missing conversationId or message_text")

        try:
            if isinstance(sender_type, SenderType):
                sender = sender_type
            else:
                sender = SenderType(str(sender_type or SenderType.BOUTIQUE.value).strip().lower())
        except ValueError:
            raise ValidationError("senderType must be 'customer' or 'boutique'")

        conversation = await self.conversations.get_conversation(conversation_id, db)

        if sender is SenderType.BOUTIQUE:
            await self.guard.ensure(conversation.boutique_id, ResourceKind.BOUTIQUE_MESSAGE, db)

        message = Message(
            conversation_id=conversation.id,
            sender_type=sender.value,
            message_text=message_text,
            is_read=False
        )
        db.add(message)

        conversation.status = ConversationStatus.ACTIVE.value
        conversation.updated_at = utcnow()

        await commit_or_rollback(db, "send message")

        logger.info(
            f"Message sent: conversation={conversation.id}, boutique={conversation.boutique_id}, "
            f"sender={sender.value}, message_id={message.id}"
        )
        return message


# Global instance
messaging_service = MessagingService()
