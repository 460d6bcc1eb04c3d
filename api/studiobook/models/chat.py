"""Chat log between the studio and a user's LINE account."""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studiobook.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from studiobook.models.member import User


class MessageSender(enum.StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class ChatMessage(TimestampMixin, Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    sender: Mapped[MessageSender] = mapped_column(
        Enum(MessageSender, name="message_sender", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped["User"] = relationship(lazy="raise")

    __table_args__ = (Index("ix_chat_messages_user", "user_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<ChatMessage {self.sender.value} user={self.user_id}>"
