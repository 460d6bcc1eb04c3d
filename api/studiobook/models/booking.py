"""Booking model.

A booking reserves a trainer for a member for the duration of a service menu.
Times are stored as studio wall clock (date + start/end time of day); a
booking never crosses midnight. Bookings are never deleted: cancellation is a
status change so quota history survives.
"""

import enum
from datetime import date, datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studiobook.core.config import STUDIO_TZ
from studiobook.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from studiobook.models.member import Member
    from studiobook.models.service_menu import ServiceMenu
    from studiobook.models.staff import Staff


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"  # terminal, does not consume quota
    CANCELLED_LATE = "cancelled_late"  # terminal, consumes quota


class CancellationReason(str, enum.Enum):
    NORMAL = "NORMAL"
    SICKNESS = "SICKNESS"
    BEREAVEMENT = "BEREAVEMENT"
    OTHER = "OTHER"


CANCELLED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.CANCELLED_LATE)
QUOTA_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CANCELLED_LATE)
RELIEF_REASONS = (CancellationReason.SICKNESS, CancellationReason.BEREAVEMENT)


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id"), nullable=False)
    service_menu_id: Mapped[int | None] = mapped_column(ForeignKey("service_menus.id"))

    # When (studio local time)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [x.value for x in e]),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    cancellation_reason: Mapped[CancellationReason | None] = mapped_column(
        Enum(CancellationReason, name="cancellation_reason", values_callable=lambda e: [x.value for x in e]),
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Amount taken from the member's prepaid balance; refunded verbatim
    paid_from_prepaid: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    member: Mapped["Member"] = relationship(back_populates="bookings", lazy="raise")
    staff: Mapped["Staff"] = relationship(lazy="raise")
    service_menu: Mapped["ServiceMenu | None"] = relationship(lazy="raise")

    __table_args__ = (
        # Staff calendar lookups (availability, overlap checks)
        Index("ix_bookings_staff_date", "staff_id", "booking_date"),
        # Member lookups (quota, relief, my bookings)
        Index("ix_bookings_member_date", "member_id", "booking_date"),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.start_time, tzinfo=STUDIO_TZ)

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.end_time, tzinfo=STUDIO_TZ)

    @property
    def is_cancelled(self) -> bool:
        return self.status in CANCELLED_STATUSES

    def __repr__(self) -> str:
        return f"<Booking {self.booking_date} {self.start_time}-{self.end_time} staff={self.staff_id} {self.status.value}>"
