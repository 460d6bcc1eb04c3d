"""Day-before reminders for confirmed bookings.

Run once a day (Celery beat, or the cron endpoint). Each booking for tomorrow
is reminded over LINE when the member's user has linked LINE, otherwise by
email. One failed delivery never stops the batch.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta

import aiosmtplib
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studiobook.models.booking import Booking, BookingStatus
from studiobook.models.member import Member
from studiobook.services.booking_rules import studio_now, to_studio_time
from studiobook.services.email import send_email
from studiobook.services.line import send_line_message

logger = logging.getLogger(__name__)

SENT = "sent"
FAILED = "failed"
NO_CONTACT = "no_contact"


def reminder_text(booking: Booking) -> str:
    menu = booking.service_menu.name if booking.service_menu else "Session"
    return (
        f"Reminder: {menu} with {booking.staff.name} tomorrow, "
        f"{booking.booking_date:%Y-%m-%d} {booking.start_time:%H:%M}-{booking.end_time:%H:%M}.\n"
        "Cancellations less than 24 hours before the session count toward your monthly sessions."
    )


async def bookings_for_day(db: AsyncSession, day: date) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.booking_date == day, Booking.status == BookingStatus.CONFIRMED)
        .options(
            selectinload(Booking.member).selectinload(Member.user),
            selectinload(Booking.staff),
            selectinload(Booking.service_menu),
        )
        .order_by(Booking.start_time, Booking.id)
    )
    return list(result.scalars().all())


async def send_reminders(
    db: AsyncSession,
    send_line: Callable[[str, str], Awaitable[bool]] | None = None,
    send_mail: Callable[[str, str, str], Awaitable[None]] | None = None,
    target_date: date | None = None,
    now: datetime | None = None,
) -> dict:
    """Remind every confirmed booking on target_date (default: tomorrow, studio time)."""
    send_line = send_line or send_line_message
    send_mail = send_mail or send_email
    if target_date is None:
        today = (to_studio_time(now) if now else studio_now()).date()
        target_date = today + timedelta(days=1)

    bookings = await bookings_for_day(db, target_date)
    details = []
    sent = 0

    for booking in bookings:
        user = booking.member.user
        text = reminder_text(booking)
        status = NO_CONTACT

        if user is not None and user.line_user_id:
            status = SENT if await send_line(user.line_user_id, text) else FAILED
        elif user is not None and user.email:
            try:
                await send_mail(user.email, "Your session tomorrow", text)
                status = SENT
            except (aiosmtplib.SMTPException, OSError) as exc:
                logger.error("Reminder email for booking #%d failed: %s", booking.id, exc)
                status = FAILED

        if status == SENT:
            sent += 1
        details.append({"booking_id": booking.id, "member_id": booking.member_id, "status": status})

    logger.info("Reminders for %s: %d processed, %d sent", target_date, len(bookings), sent)
    return {"date": target_date, "processed": len(bookings), "sent": sent, "details": details}
