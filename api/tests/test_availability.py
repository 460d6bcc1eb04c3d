"""Shift resolution and the availability grid."""

from datetime import date, time
from types import SimpleNamespace

import pytest

from studiobook.models import Booking, BookingStatus, ShiftOverride
from studiobook.services.availability import available_slots, compute_available_starts, slot_fits, slot_grid
from studiobook.services.booking_rules import MenuInvalid
from studiobook.services.shifts import (
    merge_intervals,
    replace_weekly_shifts,
    resolve_shifts,
    resolve_working_intervals,
    set_override,
)

MONDAY = date(2026, 3, 9)
TUESDAY = date(2026, 3, 3)


def _shift(dow, start, end):
    return SimpleNamespace(day_of_week=dow, start_time=start, end_time=end)


def _override(on, start=None, end=None):
    return SimpleNamespace(
        override_date=on, start_time=start, end_time=end, is_closed=start is None or end is None
    )


def _booking(staff, on, start, end, status=BookingStatus.CONFIRMED, member=None):
    return Booking(
        member_id=member.id,
        staff_id=staff.id,
        booking_date=on,
        start_time=start,
        end_time=end,
        duration_minutes=(end.hour * 60 + end.minute) - (start.hour * 60 + start.minute),
        status=status,
    )


def _slot(result, hhmm):
    return next(s for s in result["slots"] if s["time"] == hhmm)


# ---------------------------------------------------------------------------
# Shift resolution
# ---------------------------------------------------------------------------


class TestMergeIntervals:
    def test_overlapping_and_touching_merge(self):
        merged = merge_intervals(
            [(time(13, 0), time(14, 0)), (time(10, 0), time(12, 0)), (time(11, 0), time(13, 0))]
        )
        assert merged == [(time(10, 0), time(14, 0))]

    def test_disjoint_stay_sorted(self):
        merged = merge_intervals([(time(15, 0), time(18, 0)), (time(10, 0), time(12, 0))])
        assert merged == [(time(10, 0), time(12, 0)), (time(15, 0), time(18, 0))]

    def test_empty_intervals_dropped(self):
        assert merge_intervals([(time(10, 0), time(10, 0)), (time(12, 0), time(11, 0))]) == []


class TestResolveWorkingIntervals:
    def test_weekly_shift_for_matching_weekday(self):
        shifts = [_shift(0, time(10, 0), time(19, 0)), _shift(1, time(12, 0), time(20, 0))]
        assert resolve_working_intervals(shifts, [], MONDAY) == [(time(10, 0), time(19, 0))]

    def test_no_shift_that_weekday(self):
        shifts = [_shift(1, time(12, 0), time(20, 0))]
        assert resolve_working_intervals(shifts, [], MONDAY) == []

    def test_closed_override_beats_weekly_shift(self):
        shifts = [_shift(0, time(10, 0), time(19, 0))]
        assert resolve_working_intervals(shifts, [_override(MONDAY)], MONDAY) == []

    def test_override_hours_replace_weekly_shift(self):
        shifts = [_shift(0, time(10, 0), time(19, 0))]
        overrides = [_override(MONDAY, time(14, 0), time(16, 0)), _override(MONDAY, time(17, 0), time(18, 0))]
        assert resolve_working_intervals(shifts, overrides, MONDAY) == [
            (time(14, 0), time(16, 0)),
            (time(17, 0), time(18, 0)),
        ]

    def test_override_for_other_date_ignored(self):
        shifts = [_shift(0, time(10, 0), time(19, 0))]
        assert resolve_working_intervals(shifts, [_override(date(2026, 3, 16))], MONDAY) == [
            (time(10, 0), time(19, 0))
        ]


@pytest.mark.asyncio
async def test_resolve_shifts_unknown_staff_is_empty(db):
    assert await resolve_shifts(db, 999, MONDAY) == []


@pytest.mark.asyncio
async def test_replace_weekly_shifts(db, studio):
    yuji = studio["yuji"]
    await replace_weekly_shifts(db, yuji.id, [(0, time(12, 0), time(15, 0))])

    assert await resolve_shifts(db, yuji.id, MONDAY) == [(time(12, 0), time(15, 0))]
    assert await resolve_shifts(db, yuji.id, TUESDAY) == []


@pytest.mark.asyncio
async def test_set_override_closed_replaces_other_rows(db, studio):
    yuji = studio["yuji"]
    await set_override(db, yuji.id, MONDAY, time(12, 0), time(14, 0))
    assert await resolve_shifts(db, yuji.id, MONDAY) == [(time(12, 0), time(14, 0))]

    await set_override(db, yuji.id, MONDAY)
    assert await resolve_shifts(db, yuji.id, MONDAY) == []

    # Adding hours to a closed date reopens it
    await set_override(db, yuji.id, MONDAY, time(15, 0), time(17, 0))
    assert await resolve_shifts(db, yuji.id, MONDAY) == [(time(15, 0), time(17, 0))]


# ---------------------------------------------------------------------------
# Slot arithmetic
# ---------------------------------------------------------------------------


class TestSlotGrid:
    def test_quarter_hours_from_ten_to_nine_inclusive(self):
        grid = slot_grid()
        assert len(grid) == 45
        assert grid[0] == time(10, 0)
        assert grid[1] == time(10, 15)
        assert grid[-1] == time(21, 0)


class TestSlotFits:
    WORKING = [(time(10, 0), time(19, 0))]
    BOOKED = [(time(11, 0), time(12, 0))]

    def test_back_to_back_is_free(self):
        assert slot_fits(12 * 60, 60, self.WORKING, self.BOOKED)
        assert slot_fits(10 * 60, 60, self.WORKING, self.BOOKED)

    def test_overlap_is_taken(self):
        assert not slot_fits(11 * 60 + 30, 60, self.WORKING, self.BOOKED)
        assert not slot_fits(10 * 60 + 15, 60, self.WORKING, self.BOOKED)

    def test_must_end_within_shift(self):
        assert slot_fits(18 * 60, 60, self.WORKING, [])
        assert not slot_fits(18 * 60 + 15, 60, self.WORKING, [])

    def test_cannot_straddle_two_intervals(self):
        working = [(time(10, 0), time(12, 0)), (time(13, 0), time(15, 0))]
        assert not slot_fits(11 * 60 + 30, 60, working, [])

    def test_compute_available_starts(self):
        starts = compute_available_starts([(time(10, 0), time(12, 0))], [(time(10, 30), time(11, 0))], 30)
        assert starts == [time(10, 0), time(11, 0), time(11, 15), time(11, 30)]


# ---------------------------------------------------------------------------
# Availability grid
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_closed_override_empties_monday(db, studio, make_trainer):
    mondays_only = await make_trainer("Kenta", 5500, hours=(time(10, 0), time(19, 0)), days=[0])
    db.add(ShiftOverride(staff_id=mondays_only.id, override_date=MONDAY))
    await db.flush()

    result = await available_slots(db, MONDAY, studio["menu"].id, staff_ids=[mondays_only.id])

    assert len(result["slots"]) == 45
    assert all(s["staff_ids"] == [] and not s["is_available"] for s in result["slots"])

    # The following Monday the weekly shift applies again
    next_week = await available_slots(db, date(2026, 3, 16), studio["menu"].id, staff_ids=[mondays_only.id])
    assert _slot(next_week, "10:00")["staff_ids"] == [mondays_only.id]
    assert _slot(next_week, "18:15")["staff_ids"] == []


@pytest.mark.asyncio
async def test_booked_trainer_drops_out_of_overlapping_slots(db, studio):
    yuji, risa = studio["yuji"], studio["risa"]
    db.add(_booking(yuji, TUESDAY, time(11, 0), time(12, 0), member=studio["member"]))
    await db.flush()

    result = await available_slots(db, TUESDAY, studio["menu"].id)

    assert result["duration_minutes"] == 60
    assert _slot(result, "10:00")["staff_ids"] == [yuji.id, risa.id]
    assert _slot(result, "10:15")["staff_ids"] == [risa.id]
    assert _slot(result, "11:45")["staff_ids"] == [risa.id]
    assert _slot(result, "12:00")["staff_ids"] == [yuji.id, risa.id]
    assert _slot(result, "21:00")["is_available"]


@pytest.mark.asyncio
async def test_cancelled_bookings_do_not_block(db, studio):
    yuji = studio["yuji"]
    for status in (BookingStatus.CANCELLED, BookingStatus.CANCELLED_LATE):
        db.add(_booking(yuji, TUESDAY, time(11, 0), time(12, 0), status=status, member=studio["member"]))
    await db.flush()

    result = await available_slots(db, TUESDAY, studio["menu"].id, staff_ids=[yuji.id])
    assert _slot(result, "11:00")["staff_ids"] == [yuji.id]


@pytest.mark.asyncio
async def test_inactive_trainer_never_listed(db, studio, make_trainer):
    retired = await make_trainer("Retired", 5000, is_active=False)

    result = await available_slots(db, TUESDAY, studio["menu"].id)
    assert retired.id not in _slot(result, "10:00")["staff_ids"]

    only_retired = await available_slots(db, TUESDAY, studio["menu"].id, staff_ids=[retired.id])
    assert not any(s["is_available"] for s in only_retired["slots"])


@pytest.mark.asyncio
async def test_inactive_or_unknown_menu_rejected(db, studio):
    with pytest.raises(MenuInvalid):
        await available_slots(db, TUESDAY, studio["retired_menu"].id)
    with pytest.raises(MenuInvalid):
        await available_slots(db, TUESDAY, 999)
