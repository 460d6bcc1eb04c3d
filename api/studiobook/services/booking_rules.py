"""Booking rules enforcement.

All booking validation lives here, separate from the route handlers and the
engines that commit. Every failure is a BookingViolation subclass carrying a
stable rule code; the HTTP layer maps the code to a status once.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.config import STUDIO_TZ
from studiobook.models.booking import QUOTA_STATUSES, Booking
from studiobook.models.member import Member

NOTICE_HOURS = 24
LOOKAHEAD_BUFFER_DAYS = 1


class BookingViolation(Exception):
    """Base class for every rule the scheduling core can refuse on."""

    rule = "booking_violation"
    status_code = 422

    def __init__(self, message: str, rule: str | None = None):
        if rule:
            self.rule = rule
        self.message = message
        super().__init__(message)


class MemberNotFound(BookingViolation):
    rule = "member_not_found"
    status_code = 404


class MenuInvalid(BookingViolation):
    rule = "menu_invalid"


class LookaheadExceeded(BookingViolation):
    rule = "lookahead_exceeded"


class NoticeTooShort(BookingViolation):
    rule = "notice_too_short"


class QuotaExceeded(BookingViolation):
    rule = "quota_exceeded"


class NoStaffAvailable(BookingViolation):
    rule = "no_staff_available"
    status_code = 409


class BookingNotFound(BookingViolation):
    rule = "booking_not_found"
    status_code = 404


class AlreadyCancelled(BookingViolation):
    rule = "already_cancelled"
    status_code = 409


class StaffNotFound(BookingViolation):
    rule = "staff_not_found"
    status_code = 404


class TrainerNotAllowed(BookingViolation):
    rule = "trainer_not_allowed"


class LineNotLinked(BookingViolation):
    rule = "line_not_linked"


class MessageDeliveryFailed(BookingViolation):
    rule = "message_delivery_failed"
    status_code = 502


class StoreUnavailable(BookingViolation):
    """A commit against the store failed; nothing was written."""

    rule = "store_unavailable"
    status_code = 503


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def studio_now() -> datetime:
    return datetime.now(STUDIO_TZ)


def to_studio_time(moment: datetime) -> datetime:
    """Naive datetimes are read as studio wall clock; aware ones are converted."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=STUDIO_TZ)
    return moment.astimezone(STUDIO_TZ)


def month_bounds(day: date) -> tuple[date, date]:
    """First day of the month and first day of the following month."""
    first = day.replace(day=1)
    if first.month == 12:
        return first, first.replace(year=first.year + 1, month=1)
    return first, first.replace(month=first.month + 1)


def minutes_of(t: time) -> int:
    return t.hour * 60 + t.minute


def calc_end_time(start_time: time, duration_minutes: int) -> time:
    """End time of a same-day booking. Raises ValueError past midnight."""
    end = minutes_of(start_time) + duration_minutes
    if end >= 24 * 60:
        raise ValueError("Booking would run past midnight")
    return time(end // 60, end % 60)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def check_lookahead(member: Member, start: datetime, now: datetime) -> None:
    """start must not be later than midnight today + plan limit + one buffer day."""
    rules = member.plan_rules
    today_start = datetime.combine(now.date(), time(0, 0), tzinfo=STUDIO_TZ)
    max_allowed = today_start + timedelta(days=rules.limit_days + LOOKAHEAD_BUFFER_DAYS)
    if start > max_allowed:
        raise LookaheadExceeded(
            f"The {rules.label} plan can book at most {rules.limit_days} days ahead."
        )


def check_notice(start: datetime, now: datetime) -> None:
    """Bookings need at least 24 hours of notice."""
    if start < now + timedelta(hours=NOTICE_HOURS):
        raise NoticeTooShort(f"Bookings must be made at least {NOTICE_HOURS} hours in advance.")


async def count_sessions_in_month(db: AsyncSession, member_id: int, day: date) -> int:
    """Bookings that consume quota (confirmed or late-cancelled) in day's calendar month."""
    first, next_first = month_bounds(day)
    result = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.member_id == member_id,
            Booking.status.in_(QUOTA_STATUSES),
            Booking.booking_date >= first,
            Booking.booking_date < next_first,
        )
    )
    return result.scalar_one()


async def check_quota(db: AsyncSession, member: Member, day: date) -> None:
    used = await count_sessions_in_month(db, member.id, day)
    if used >= member.contracted_sessions:
        raise QuotaExceeded(
            f"Monthly limit reached: {used} of {member.contracted_sessions} sessions used in {day:%Y-%m}."
        )
