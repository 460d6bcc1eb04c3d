"""Studio-to-user messaging over LINE, with a local chat log."""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.chat import ChatMessage, MessageSender
from studiobook.models.member import User
from studiobook.services.booking_rules import LineNotLinked, MessageDeliveryFailed
from studiobook.services.line import LinePayload, send_line_message

logger = logging.getLogger(__name__)

_LOG_LABELS = {"sticker": "[sticker]", "image": "[image]"}


def log_text(payload: LinePayload) -> str:
    """What the chat log records for a payload."""
    if isinstance(payload, str):
        return payload
    return _LOG_LABELS.get(payload.get("type"), "[message]")


async def send_message_to_user(
    db: AsyncSession,
    user_id: int,
    payload: LinePayload,
    send_line: Callable[[str, LinePayload], Awaitable[bool]] | None = None,
) -> ChatMessage:
    """Push a message to the user's LINE and log it as an already-read ADMIN message."""
    send_line = send_line or send_line_message
    user = await db.get(User, user_id)
    if user is None or not user.line_user_id:
        raise LineNotLinked(f"User {user_id} has not linked a LINE account.")

    if not await send_line(user.line_user_id, payload):
        raise MessageDeliveryFailed("LINE did not accept the message.")

    message = ChatMessage(user_id=user.id, sender=MessageSender.ADMIN, content=log_text(payload), is_read=True)
    db.add(message)
    await db.flush()
    await db.refresh(message)  # load server-side timestamps
    logger.info("Message sent to user #%d", user.id)
    return message


async def get_unread_count(db: AsyncSession) -> int:
    """Messages from users the studio has not read yet."""
    result = await db.execute(
        select(func.count(ChatMessage.id)).where(
            ChatMessage.sender == MessageSender.USER,
            ChatMessage.is_read.is_(False),
        )
    )
    return result.scalar_one()
