"""Member records: creation, profile edits, plan changes and main-trainer assignment.

A main trainer may only be set for plans that include one; moving a member to
a plan without trainer support clears the assignment.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.booking import Booking, BookingStatus
from studiobook.models.member import Member, MemberPlan, User, get_plan_rules
from studiobook.models.staff import Staff
from studiobook.services.booking_rules import MemberNotFound, StaffNotFound, TrainerNotAllowed


async def _ensure_trainer(db: AsyncSession, plan: MemberPlan, staff_id: int) -> None:
    if not get_plan_rules(plan).allows_main_trainer:
        raise TrainerNotAllowed(f"The {get_plan_rules(plan).label} plan does not include a main trainer.")
    if await db.get(Staff, staff_id) is None:
        raise StaffNotFound(f"Trainer {staff_id} not found.")


async def create_member(
    db: AsyncSession,
    name: str,
    plan: MemberPlan = MemberPlan.STANDARD,
    contracted_sessions: int = 0,
    prepaid_balance: int = 0,
    main_trainer_id: int | None = None,
    user_id: int | None = None,
    **profile,
) -> Member:
    if contracted_sessions < 0 or prepaid_balance < 0:
        raise ValueError("contracted_sessions and prepaid_balance must be >= 0")
    if main_trainer_id is not None:
        await _ensure_trainer(db, plan, main_trainer_id)

    member = Member(
        name=name,
        plan=plan,
        contracted_sessions=contracted_sessions,
        prepaid_balance=prepaid_balance,
        main_trainer_id=main_trainer_id,
        user_id=user_id,
        join_date=profile.pop("join_date", None) or date.today(),
        **profile,
    )
    db.add(member)
    await db.flush()
    return member


async def get_member(db: AsyncSession, member_id: int) -> Member:
    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFound(f"Member {member_id} not found.")
    return member


async def assign_main_trainer(db: AsyncSession, member: Member, staff_id: int | None) -> Member:
    if staff_id is not None:
        await _ensure_trainer(db, member.plan, staff_id)
    member.main_trainer_id = staff_id
    await db.flush()
    return member


async def change_plan(db: AsyncSession, member: Member, plan: MemberPlan) -> Member:
    member.plan = plan
    if not get_plan_rules(plan).allows_main_trainer:
        member.main_trainer_id = None
    await db.flush()
    return member


PROFILE_FIELDS = ("name", "kana", "gender", "phone", "date_of_birth", "join_date")


async def update_member_profile(db: AsyncSession, member: Member, **fields) -> Member:
    """Edit profile fields; a new name is copied onto the linked login as well."""
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Not profile fields: {', '.join(sorted(unknown))}")
    if "name" in fields and not fields["name"]:
        raise ValueError("name must not be empty")

    for key, value in fields.items():
        setattr(member, key, value)
    if "name" in fields and member.user_id is not None:
        user = await db.get(User, member.user_id)
        if user is not None:
            user.name = fields["name"]
    await db.flush()
    return member


async def list_member_bookings(db: AsyncSession, member_id: int) -> list[Booking]:
    """Active (confirmed) bookings, soonest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.member_id == member_id, Booking.status == BookingStatus.CONFIRMED)
        .order_by(Booking.booking_date, Booking.start_time)
    )
    return list(result.scalars().all())
