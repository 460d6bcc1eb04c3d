"""Slot availability for the booking grid.

Reports staff-calendar truth only: a start time is free for a trainer when the
whole service fits inside one of their working intervals and does not overlap
a confirmed booking. The 24-hour notice and plan lookahead are not applied
here; admission enforces them at write time.
"""

from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.booking import Booking, BookingStatus
from studiobook.models.service_menu import ServiceMenu
from studiobook.models.staff import Staff
from studiobook.services.booking_rules import MenuInvalid, minutes_of
from studiobook.services.shifts import Interval, resolve_shifts_for_staff

OPEN_TIME = time(10, 0)
LAST_START = time(21, 0)  # inclusive
SLOT_MINUTES = 15


def slot_grid() -> list[time]:
    """Candidate start times: every 15 minutes from 10:00 through 21:00."""
    slots = []
    current = minutes_of(OPEN_TIME)
    while current <= minutes_of(LAST_START):
        slots.append(time(current // 60, current % 60))
        current += SLOT_MINUTES
    return slots


def slot_fits(start_minutes: int, duration_minutes: int, working: list[Interval], booked: list[Interval]) -> bool:
    """[start, start+duration) lies inside one working interval and overlaps no booking.

    Uses half-open overlap, so back-to-back bookings do not conflict.
    """
    end_minutes = start_minutes + duration_minutes
    inside_shift = any(
        minutes_of(w_start) <= start_minutes and end_minutes <= minutes_of(w_end) for w_start, w_end in working
    )
    if not inside_shift:
        return False
    return not any(
        minutes_of(b_start) < end_minutes and minutes_of(b_end) > start_minutes for b_start, b_end in booked
    )


def compute_available_starts(working: list[Interval], booked: list[Interval], duration_minutes: int) -> list[time]:
    return [t for t in slot_grid() if slot_fits(minutes_of(t), duration_minutes, working, booked)]


async def get_active_menu(db: AsyncSession, service_menu_id: int) -> ServiceMenu:
    result = await db.execute(
        select(ServiceMenu).where(ServiceMenu.id == service_menu_id, ServiceMenu.is_active.is_(True))
    )
    menu = result.scalar_one_or_none()
    if menu is None:
        raise MenuInvalid(f"Service menu {service_menu_id} does not exist or is not offered.")
    return menu


async def booked_intervals_for_staff(
    db: AsyncSession, staff_ids: list[int], on_date: date
) -> dict[int, list[Interval]]:
    """Confirmed bookings per trainer on on_date, in one query."""
    booked: dict[int, list[Interval]] = {sid: [] for sid in staff_ids}
    if not staff_ids:
        return booked
    result = await db.execute(
        select(Booking.staff_id, Booking.start_time, Booking.end_time).where(
            Booking.staff_id.in_(staff_ids),
            Booking.booking_date == on_date,
            Booking.status == BookingStatus.CONFIRMED,
        )
    )
    for staff_id, start, end in result.all():
        booked[staff_id].append((start, end))
    return booked


async def available_slots(
    db: AsyncSession,
    on_date: date,
    service_menu_id: int,
    staff_ids: list[int] | None = None,
) -> dict:
    """Every grid start time for on_date with the trainers free to take it.

    Returns {"date", "service_menu_id", "duration_minutes", "slots"} where each
    slot is {"time": "HH:MM", "staff_ids": [...], "is_available": bool}.
    staff_ids limits the trainers considered; inactive trainers never count.
    """
    menu = await get_active_menu(db, service_menu_id)

    query = select(Staff.id).where(Staff.is_active.is_(True)).order_by(Staff.id)
    if staff_ids is not None:
        query = query.where(Staff.id.in_(staff_ids))
    active_ids = list((await db.execute(query)).scalars().all())

    working_by_staff = await resolve_shifts_for_staff(db, active_ids, on_date)
    booked_by_staff = await booked_intervals_for_staff(db, active_ids, on_date)

    free_by_staff = {
        sid: set(compute_available_starts(working_by_staff[sid], booked_by_staff[sid], menu.duration_minutes))
        for sid in active_ids
    }

    slots = []
    for t in slot_grid():
        free = [sid for sid in active_ids if t in free_by_staff[sid]]
        slots.append({"time": t.strftime("%H:%M"), "staff_ids": free, "is_available": bool(free)})

    return {
        "date": on_date,
        "service_menu_id": menu.id,
        "duration_minutes": menu.duration_minutes,
        "slots": slots,
    }
