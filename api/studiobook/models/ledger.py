"""Prepaid ledger: one row per movement of a member's prepaid balance."""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studiobook.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from studiobook.models.booking import Booking
    from studiobook.models.member import Member


class TransactionType(enum.StrEnum):
    BOOKING_DEBIT = "booking_debit"
    CANCELLATION_REFUND = "cancellation_refund"


class PrepaidTransaction(TimestampMixin, Base):
    """A single balance movement: negative is a debit, positive a refund."""

    __tablename__ = "prepaid_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, name="prepaid_transaction_type", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    member: Mapped["Member"] = relationship(lazy="raise")
    booking: Mapped["Booking"] = relationship(lazy="raise")

    __table_args__ = (Index("ix_prepaid_txn_member", "member_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<PrepaidTransaction {self.transaction_type.value} {self.amount} member={self.member_id}>"
