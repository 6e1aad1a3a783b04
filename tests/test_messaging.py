import pytest
from sqlalchemy import func, select

from cloche.models.boutique import PlanTier
from cloche.models.conversation import Message, SenderType
from cloche.services.conversation_store import conversation_store
from cloche.services.messaging_service import messaging_service
from cloche.utils.errors import NotFound, QuotaExceeded, ValidationError


async def message_count(db, conversation_id):
    result = await db.execute(select(func.count(Message.id)).where(Message.conversation_id == conversation_id))
    return result.scalar()


async def test_basic_boutique_sixth_message_denied(db, make_boutique):
    boutique = await make_boutique()
    conversation, _ = await conversation_store.find_or_create(boutique.id, "Nimali", "nimali@gmail.com", db)

    for i in range(5):
        await messaging_service.send_message(conversation.id, f"reply {i}", db)

    with pytest.raises(QuotaExceeded) as exc_info:
        await messaging_service.send_message(conversation.id, "reply 5", db, sender_type=SenderType.BOUTIQUE)

    assert "5 sent messages" in exc_info.value.message
    assert exc_info.value.resource == "boutique_message"
    assert await message_count(db, conversation.id) == 5


async def test_customers_are_never_limited(db, make_boutique):
    boutique = await make_boutique()
    conversation, _ = await conversation_store.find_or_create(boutique.id, "Nimali", "nimali@gmail.com", db)

    for i in range(5):
        await messaging_service.send_message(conversation.id, f"reply {i}", db, sender_type="boutique")
    for i in range(8):
        await messaging_service.send_message(conversation.id, f"question {i}", db, sender_type="Customer")

    assert await message_count(db, conversation.id) == 13


async def test_message_quota_counts_across_conversations(db, make_boutique):
    boutique = await make_boutique()
    first, _ = await conversation_store.find_or_create(boutique.id, "A", "a@gmail.com", db)
    second, _ = await conversation_store.find_or_create(boutique.id, "B", "b@gmail.com", db)

    for i in range(3):
        await messaging_service.send_message(first.id, f"to a {i}", db)
    for i in range(2):
        await messaging_service.send_message(second.id, f"to b {i}", db)

    with pytest.raises(QuotaExceeded):
        await messaging_service.send_message(second.id, "one more", db)


async def test_professional_messages_unlimited(db, make_boutique):
    boutique = await make_boutique(plan=PlanTier.PROFESSIONAL)
    conversation, _ = await conversation_store.find_or_create(boutique.id, "Nimali", "nimali@gmail.com", db)

    for i in range(12):
        await messaging_service.send_message(conversation.id, f"reply {i}", db)
    assert await message_count(db, conversation.id) == 12


async def test_send_validation(db, make_boutique):
    boutique = await make_boutique()
    conversation, _ = await conversation_store.find_or_create(boutique.id, "Nimali", "nimali@gmail.com", db)

    with pytest.raises(ValidationError, match="Missing conversationId or message_text"):
        await messaging_service.send_message(conversation.id, "   ", db)
    with pytest.raises(ValidationError, match="senderType"):
        await messaging_service.send_message(conversation.id, "hi", db, sender_type="admin")
    with pytest.raises(NotFound):
        await messaging_service.send_message(9999, "hi", db)
