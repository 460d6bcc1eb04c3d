"""Working hours for a trainer on a given date.

A date-specific override, when present, is the only source of truth for that
date (including "closed"); otherwise the recurring weekly shifts apply.
"""

from collections.abc import Iterable
from datetime import date, time

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.staff import Shift, ShiftOverride

Interval = tuple[time, time]


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort and merge overlapping or touching intervals; drop empty ones."""
    merged: list[list[time]] = []
    for start, end in sorted(i for i in intervals if i[0] < i[1]):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(s, e) for s, e in merged]


def resolve_working_intervals(
    shifts: Iterable[Shift],
    overrides: Iterable[ShiftOverride],
    on_date: date,
) -> list[Interval]:
    """Pure resolution over already-loaded rows for one trainer."""
    todays_overrides = [o for o in overrides if o.override_date == on_date]
    if todays_overrides:
        return merge_intervals((o.start_time, o.end_time) for o in todays_overrides if not o.is_closed)

    weekday = on_date.weekday()
    return merge_intervals((s.start_time, s.end_time) for s in shifts if s.day_of_week == weekday)


async def resolve_shifts(db: AsyncSession, staff_id: int, on_date: date) -> list[Interval]:
    """Working intervals for staff_id on on_date. Unknown staff yields []."""
    override_result = await db.execute(
        select(ShiftOverride).where(ShiftOverride.staff_id == staff_id, ShiftOverride.override_date == on_date)
    )
    overrides = override_result.scalars().all()
    if overrides:
        return resolve_working_intervals([], overrides, on_date)

    shift_result = await db.execute(
        select(Shift).where(Shift.staff_id == staff_id, Shift.day_of_week == on_date.weekday())
    )
    return resolve_working_intervals(shift_result.scalars().all(), [], on_date)


async def resolve_shifts_for_staff(
    db: AsyncSession, staff_ids: list[int], on_date: date
) -> dict[int, list[Interval]]:
    """Bulk version used by the availability grid: two queries for all trainers."""
    if not staff_ids:
        return {}

    shift_result = await db.execute(
        select(Shift).where(Shift.staff_id.in_(staff_ids), Shift.day_of_week == on_date.weekday())
    )
    override_result = await db.execute(
        select(ShiftOverride).where(ShiftOverride.staff_id.in_(staff_ids), ShiftOverride.override_date == on_date)
    )

    shifts_by_staff: dict[int, list[Shift]] = {sid: [] for sid in staff_ids}
    for shift in shift_result.scalars().all():
        shifts_by_staff[shift.staff_id].append(shift)
    overrides_by_staff: dict[int, list[ShiftOverride]] = {sid: [] for sid in staff_ids}
    for override in override_result.scalars().all():
        overrides_by_staff[override.staff_id].append(override)

    return {
        sid: resolve_working_intervals(shifts_by_staff[sid], overrides_by_staff[sid], on_date) for sid in staff_ids
    }


async def replace_weekly_shifts(
    db: AsyncSession, staff_id: int, shifts: Iterable[tuple[int, time, time]]
) -> list[Shift]:
    """Replace a trainer's recurring schedule with (day_of_week, start, end) rows."""
    await db.execute(delete(Shift).where(Shift.staff_id == staff_id))
    rows = [Shift(staff_id=staff_id, day_of_week=dow, start_time=start, end_time=end) for dow, start, end in shifts]
    db.add_all(rows)
    await db.flush()
    return rows


async def set_override(
    db: AsyncSession, staff_id: int, on_date: date, start_time: time | None = None, end_time: time | None = None
) -> ShiftOverride:
    """Add hours for one date. Without times the trainer is closed that day.

    A closed row replaces any other override rows for the date; adding hours
    to a closed date reopens it.
    """
    existing = (
        await db.execute(
            select(ShiftOverride).where(ShiftOverride.staff_id == staff_id, ShiftOverride.override_date == on_date)
        )
    ).scalars().all()
    for row in existing:
        if start_time is None or row.is_closed:
            await db.delete(row)

    override = ShiftOverride(staff_id=staff_id, override_date=on_date, start_time=start_time, end_time=end_time)
    db.add(override)
    await db.flush()
    return override
