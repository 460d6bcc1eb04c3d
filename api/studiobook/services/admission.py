"""Booking admission: validate a member's request and commit it to a trainer.

Validation (member, menu, lookahead, notice, quota) runs before any write.
Each trainer candidate is then tried in its own SAVEPOINT: the trainer row is
locked, their calendar re-checked, and the booking plus any prepaid debit
written together. A candidate that no longer fits only rolls back its own
savepoint; the next one is tried. The first trainer who fits wins.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.booking import Booking, BookingStatus
from studiobook.models.member import Member
from studiobook.models.service_menu import ServiceMenu
from studiobook.models.staff import Staff
from studiobook.services.availability import booked_intervals_for_staff, get_active_menu, slot_fits, slot_grid
from studiobook.services.booking_rules import (
    MemberNotFound,
    NoStaffAvailable,
    StoreUnavailable,
    calc_end_time,
    check_lookahead,
    check_notice,
    check_quota,
    minutes_of,
    studio_now,
    to_studio_time,
)
from studiobook.services.ledger import debit_for_booking
from studiobook.services.shifts import resolve_shifts

logger = logging.getLogger(__name__)


class _SlotTaken(Exception):
    """The candidate trainer cannot take the slot (off shift or already booked)."""


async def lock_member(db: AsyncSession, member_id: int) -> Member:
    """Load the member row FOR UPDATE, refreshing any stale copy in the session."""
    result = await db.execute(
        select(Member)
        .where(Member.id == member_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise MemberNotFound(f"Member {member_id} not found.")
    return member


async def _candidate_staff(db: AsyncSession, staff_id: int | None) -> list[Staff]:
    if staff_id is not None:
        staff = await db.get(Staff, staff_id)
        if staff is None or not staff.is_active:
            raise NoStaffAvailable(f"Trainer {staff_id} is not available for booking.")
        return [staff]

    result = await db.execute(select(Staff).where(Staff.is_active.is_(True)).order_by(Staff.id))
    return list(result.scalars().all())


async def _commit_for_staff(
    db: AsyncSession,
    member: Member,
    menu: ServiceMenu,
    staff: Staff,
    start: datetime,
    notes: str | None,
) -> Booking:
    """Re-check one trainer's calendar under lock and write the booking."""
    result = await db.execute(
        select(Staff).where(Staff.id == staff.id).with_for_update().execution_options(populate_existing=True)
    )
    locked = result.scalar_one_or_none()
    if locked is None or not locked.is_active:
        raise _SlotTaken

    day = start.date()
    start_time = start.time()
    working = await resolve_shifts(db, locked.id, day)
    booked = (await booked_intervals_for_staff(db, [locked.id], day))[locked.id]
    if not slot_fits(minutes_of(start_time), menu.duration_minutes, working, booked):
        raise _SlotTaken

    booking = Booking(
        member_id=member.id,
        staff_id=locked.id,
        service_menu_id=menu.id,
        booking_date=day,
        start_time=start_time,
        end_time=calc_end_time(start_time, menu.duration_minutes),
        duration_minutes=menu.duration_minutes,
        status=BookingStatus.CONFIRMED,
        paid_from_prepaid=0,
        notes=notes,
    )
    db.add(booking)
    await db.flush()

    booking.paid_from_prepaid = await debit_for_booking(db, member, locked.unit_price, booking.id)
    await db.flush()
    return booking


async def create_booking(
    db: AsyncSession,
    member_id: int,
    service_menu_id: int,
    start: datetime,
    staff_id: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """Admit a booking or raise the BookingViolation explaining why not.

    staff_id=None means "no preference": active trainers are tried in id order.
    The caller owns the outer transaction (commit or rollback).
    """
    now = to_studio_time(now) if now else studio_now()
    start = to_studio_time(start)

    try:
        member = await lock_member(db, member_id)
        menu = await get_active_menu(db, service_menu_id)
        check_lookahead(member, start, now)
        check_notice(start, now)
        await check_quota(db, member, start.date())
        candidates = await _candidate_staff(db, staff_id)
    except SQLAlchemyError as exc:
        raise StoreUnavailable("Could not read booking data; nothing was written.") from exc

    if start.time() not in slot_grid():
        raise NoStaffAvailable("Sessions start on the quarter hour between 10:00 and 21:00.")
    try:
        calc_end_time(start.time(), menu.duration_minutes)
    except ValueError:
        raise NoStaffAvailable("The session would run past the end of the day.") from None

    for staff in candidates:
        try:
            async with db.begin_nested():
                booking = await _commit_for_staff(db, member, menu, staff, start, notes)
        except _SlotTaken:
            logger.debug("Trainer %d cannot take %s for member %d", staff.id, start, member_id)
            continue
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Booking could not be saved; nothing was written.") from exc

        logger.info(
            "Booking #%d created: member=%d trainer=%d %s %s-%s prepaid=%d",
            booking.id,
            member.id,
            booking.staff_id,
            booking.booking_date,
            booking.start_time.strftime("%H:%M"),
            booking.end_time.strftime("%H:%M"),
            booking.paid_from_prepaid,
        )
        return booking

    raise NoStaffAvailable("No trainer is free for that time.")
