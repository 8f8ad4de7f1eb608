"""Direct messaging between members."""

from typing import Optional
from src.models.conversation import Conversation, Message, MessageCreate
from src.services import supabase_client as db
from src.utils.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from src.utils.logging import get_structured_logger, sanitize_message_text

logger = get_structured_logger(__name__)

REPLY_SUBJECT = "Conversation"


async def open_conversation(user_a: str, user_b: str, request_id: Optional[str] = None) -> Conversation:
    """Find the conversation between two users or start one."""
    if user_a == user_b:
        raise ValidationFailedError("You cannot message yourself")

    existing = await db.find_conversation(user_a, user_b)
    if existing:
        return Conversation(**existing)

    try:
        row = await db.create_conversation({
            "participant1_id": user_a,
            "participant2_id": user_b,
            "request_id": request_id,
        })
    except ConflictError:
        # Lost a race with the other participant; theirs is as good as ours
        row = await db.find_conversation(user_a, user_b)
        if row is None:
            raise
    logger.info(
        "Conversation started",
        conversation_id=row.get("id"),
        request_id=request_id,
    )
    return Conversation(**row)


async def _post(conversation: Conversation, sender_id: str, receiver_id: str,
                content: MessageCreate, request_id: Optional[str]) -> Message:
    row = await db.create_message({
        "conversation_id": conversation.id,
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "request_id": request_id,
        "subject": content.subject,
        "message": content.message,
    })
    await db.touch_conversation(conversation.id)
    logger.info(
        "Message sent",
        conversation_id=conversation.id,
        sender_id=sender_id,
        text=sanitize_message_text(content.message),
    )
    return Message(**row)


async def send_message(
    sender_id: str,
    receiver_id: str,
    subject: str,
    message: str,
    request_id: Optional[str] = None,
) -> Message:
    """Contact another member, reusing any existing conversation between the two."""
    content = MessageCreate(subject=subject, message=message)
    if await db.get_profile(receiver_id) is None:
        raise NotFoundError(f"Profile not found: {receiver_id}")

    conversation = await open_conversation(sender_id, receiver_id, request_id)
    return await _post(conversation, sender_id, receiver_id, content, request_id)


async def _participant_conversation(conversation_id: str, user_id: str) -> Conversation:
    row = await db.get_conversation(conversation_id)
    if row is None:
        raise NotFoundError(f"Conversation not found: {conversation_id}")
    conversation = Conversation(**row)
    if not conversation.has_participant(user_id):
        raise PermissionDeniedError("You are not part of this conversation")
    return conversation


async def reply(conversation_id: str, sender_id: str, message: str) -> Message:
    conversation = await _participant_conversation(conversation_id, sender_id)
    content = MessageCreate(subject=REPLY_SUBJECT, message=message)
    receiver_id = conversation.other_participant(sender_id)
    return await _post(conversation, sender_id, receiver_id, content, conversation.request_id)


async def list_conversations(user_id: str) -> list[dict]:
    """Conversations with the other participant's profile, latest activity first."""
    conversations = [Conversation(**row) for row in await db.list_conversations(user_id)]
    profiles = await db.get_profiles_by_ids(c.other_participant(user_id) for c in conversations)
    return [
        {
            **c.model_dump(mode="json"),
            "other_participant": profiles.get(c.other_participant(user_id)),
        }
        for c in conversations
    ]


async def list_conversation_messages(conversation_id: str, user_id: str) -> list[Message]:
    await _participant_conversation(conversation_id, user_id)
    return [Message(**row) for row in await db.list_messages(conversation_id)]


async def list_inbox(user_id: str) -> dict:
    messages = [Message(**row) for row in await db.list_user_messages(user_id)]
    unread = sum(1 for m in messages if m.receiver_id == user_id and not m.is_read)
    return {
        "messages": [m.model_dump(mode="json") for m in messages],
        "unread_count": unread,
    }


async def mark_read(message_id: str, user_id: str) -> Message:
    row = await db.get_message(message_id)
    if row is None:
        raise NotFoundError(f"Message not found: {message_id}")
    message = Message(**row)
    if message.receiver_id != user_id:
        raise PermissionDeniedError("Only the recipient can mark a message read")
    if message.is_read:
        return message
    return Message(**await db.mark_message_read(message_id))
