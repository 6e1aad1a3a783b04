"""
Conversation and Message models - per-product customer inbox threads
"""

from sqlalchemy import Column, String, DateTime, Boolean, Text, Integer, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cloche.utils.database import Base, utcnow
import enum

class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    CLOSED = "closed"

class SenderType(str, enum.Enum):
    CUSTOMER = "customer"
    BOUTIQUE = "boutique"

    @property
    def counterpart(self) -> "SenderType":
        """The other party of a conversation"""
        return SenderType.BOUTIQUE if self is SenderType.CUSTOMER else SenderType.CUSTOMER

class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    boutique_id = Column(Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False, index=True)

    # Customer identity
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)  # stored lower-cased
    customer_phone = Column(String(20))

    # Empty string when the thread is not about a specific product
    product_name = Column(String(255), nullable=False, default="")
    status = Column(String(20), nullable=False, default=ConversationStatus.ACTIVE.value)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    boutique = relationship("Boutique", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.id"
    )

    __table_args__ = (
        Index("ix_conversations_match_key", "boutique_id", "customer_email", "product_name"),
    )

    def __repr__(self):
        return f"<Conversation(id={self.id}, boutique_id={self.boutique_id}, email='{self.customer_email}', status='{self.status}')>"


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_type = Column(String(20), nullable=False)  # SenderType enum
    message_text = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)

    # Microsecond application timestamps keep ordering stable within one transaction
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    # Relationship
    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self):
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, sender='{self.sender_type}')>"
