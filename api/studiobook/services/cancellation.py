"""Booking cancellation state machine.

confirmed -> cancelled       (24h or more ahead, or relief granted; refunds prepaid)
confirmed -> cancelled_late  (inside 24h; consumes quota, no refund)

Relief: a late cancellation for sickness or bereavement is treated as an
ordinary cancellation once per member per calendar month. The month is the
month in which the cancellation is made (studio time), read from
Booking.cancelled_at.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.config import STUDIO_TZ
from studiobook.models.booking import (
    CANCELLED_STATUSES,
    RELIEF_REASONS,
    Booking,
    BookingStatus,
    CancellationReason,
)
from studiobook.services.admission import lock_member
from studiobook.services.booking_rules import (
    NOTICE_HOURS,
    AlreadyCancelled,
    BookingNotFound,
    StoreUnavailable,
    month_bounds,
    studio_now,
    to_studio_time,
)
from studiobook.services.ledger import refund_for_cancellation

logger = logging.getLogger(__name__)


@dataclass
class CancellationOutcome:
    booking: Booking
    relieved: bool
    refunded: int


async def relief_used_this_month(db: AsyncSession, member_id: int, now: datetime) -> bool:
    """Has the member already had a sickness/bereavement cancellation go through as 'cancelled' this month?"""
    first, next_first = month_bounds(now.date())
    month_start = datetime.combine(first, time(0, 0), tzinfo=STUDIO_TZ)
    next_month_start = datetime.combine(next_first, time(0, 0), tzinfo=STUDIO_TZ)
    result = await db.execute(
        select(Booking.id)
        .where(
            Booking.member_id == member_id,
            Booking.status == BookingStatus.CANCELLED,
            Booking.cancellation_reason.in_(RELIEF_REASONS),
            Booking.cancelled_at >= month_start,
            Booking.cancelled_at < next_month_start,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


def hours_until(booking: Booking, now: datetime) -> float:
    return (booking.starts_at - now) / timedelta(hours=1)


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    member_id: int | None = None,
    reason: CancellationReason | str | None = None,
    now: datetime | None = None,
) -> CancellationOutcome:
    """Cancel a confirmed booking, deciding status, relief and refund.

    member_id, when given, must own the booking (members cancelling their own);
    admins pass None. The caller owns the outer transaction.
    """
    now = to_studio_time(now) if now else studio_now()
    reason = CancellationReason(reason) if reason else None

    try:
        result = await db.execute(
            select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None or (member_id is not None and booking.member_id != member_id):
            raise BookingNotFound(f"Booking {booking_id} not found.")

        # Serializes relief lookups and refunds for this member
        await lock_member(db, booking.member_id)

        # Re-read under the member lock so a concurrent cancel is seen
        await db.refresh(booking, attribute_names=["status"])
        if booking.status in CANCELLED_STATUSES:
            raise AlreadyCancelled(f"Booking {booking_id} is already cancelled.")

        relieved = False
        if hours_until(booking, now) >= NOTICE_HOURS:
            status = BookingStatus.CANCELLED
            reason = reason or CancellationReason.NORMAL
        else:
            status = BookingStatus.CANCELLED_LATE
            if reason in RELIEF_REASONS and not await relief_used_this_month(db, booking.member_id, now):
                status = BookingStatus.CANCELLED
                relieved = True
            reason = reason or CancellationReason.OTHER

        booking.status = status
        booking.cancellation_reason = reason
        booking.cancelled_at = now

        refunded = 0
        if status == BookingStatus.CANCELLED:
            refunded = await refund_for_cancellation(db, booking)

        await db.flush()
    except SQLAlchemyError as exc:
        raise StoreUnavailable("Cancellation could not be saved; nothing was written.") from exc

    logger.info(
        "Booking #%d %s (reason=%s relieved=%s refunded=%d)",
        booking.id,
        status.value,
        reason.value,
        relieved,
        refunded,
    )
    return CancellationOutcome(booking=booking, relieved=relieved, refunded=refunded)
