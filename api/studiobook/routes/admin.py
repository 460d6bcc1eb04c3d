"""Studio administration: trainers, schedules, menus, members and messages.

Every endpoint requires an admin user.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.database import get_db
from studiobook.core.dependencies import require_admin
from studiobook.models.member import Member
from studiobook.models.service_menu import ServiceMenu
from studiobook.models.staff import Staff
from studiobook.schemas import (
    BookingOut,
    CancellationOut,
    CancelRequest,
    ChatMessageIn,
    ChatMessageOut,
    MainTrainerIn,
    MemberCreate,
    MemberOut,
    MemberProfileUpdate,
    MenuCreate,
    MenuOut,
    OverrideIn,
    OverrideOut,
    PlanChangeIn,
    PrepaidBalanceOut,
    ShiftOut,
    ShiftsReplace,
    StaffCreate,
    StaffOut,
    UnreadCountOut,
)
from studiobook.services.booking_rules import StaffNotFound
from studiobook.services.cancellation import cancel_booking
from studiobook.services.chat import get_unread_count, send_message_to_user
from studiobook.services.ledger import list_transactions
from studiobook.services.members import (
    assign_main_trainer,
    change_plan,
    create_member,
    get_member,
    list_member_bookings,
    update_member_profile,
)
from studiobook.services.shifts import replace_weekly_shifts, set_override

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


async def _get_staff(db: AsyncSession, staff_id: int) -> Staff:
    staff = await db.get(Staff, staff_id)
    if staff is None:
        raise StaffNotFound(f"Trainer {staff_id} not found.")
    return staff


# ---------------------------------------------------------------------------
# Trainers and schedules
# ---------------------------------------------------------------------------


@router.post("/staff", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
async def add_staff(body: StaffCreate, db: AsyncSession = Depends(get_db)):
    staff = Staff(name=body.name, color=body.color, unit_price=body.unit_price)
    db.add(staff)
    await db.flush()
    return staff


@router.put("/staff/{staff_id}/shifts", response_model=list[ShiftOut])
async def replace_shifts(staff_id: int, body: ShiftsReplace, db: AsyncSession = Depends(get_db)):
    """Replace the trainer's whole weekly schedule."""
    await _get_staff(db, staff_id)
    return await replace_weekly_shifts(
        db, staff_id, [(s.day_of_week, s.start_time, s.end_time) for s in body.shifts]
    )


@router.post("/staff/{staff_id}/overrides", response_model=OverrideOut, status_code=status.HTTP_201_CREATED)
async def add_override(staff_id: int, body: OverrideIn, db: AsyncSession = Depends(get_db)):
    await _get_staff(db, staff_id)
    return await set_override(db, staff_id, body.override_date, body.start_time, body.end_time)


@router.post("/menus", response_model=MenuOut, status_code=status.HTTP_201_CREATED)
async def add_menu(body: MenuCreate, db: AsyncSession = Depends(get_db)):
    menu = ServiceMenu(name=body.name, duration_minutes=body.duration_minutes, price=body.price)
    db.add(menu)
    await db.flush()
    return menu


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.post("/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
async def add_member(body: MemberCreate, db: AsyncSession = Depends(get_db)):
    return await create_member(db, **body.model_dump())


@router.get("/members", response_model=list[MemberOut])
async def list_members(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Member).order_by(Member.id))
    return result.scalars().all()


@router.patch("/members/{member_id}", response_model=MemberOut)
async def edit_member_profile(member_id: int, body: MemberProfileUpdate, db: AsyncSession = Depends(get_db)):
    member = await get_member(db, member_id)
    return await update_member_profile(db, member, **body.model_dump(exclude_unset=True))


@router.put("/members/{member_id}/plan", response_model=MemberOut)
async def set_plan(member_id: int, body: PlanChangeIn, db: AsyncSession = Depends(get_db)):
    member = await get_member(db, member_id)
    return await change_plan(db, member, body.plan)


@router.put("/members/{member_id}/main-trainer", response_model=MemberOut)
async def set_main_trainer(member_id: int, body: MainTrainerIn, db: AsyncSession = Depends(get_db)):
    member = await get_member(db, member_id)
    return await assign_main_trainer(db, member, body.staff_id)


@router.get("/members/{member_id}/bookings", response_model=list[BookingOut])
async def member_bookings(member_id: int, db: AsyncSession = Depends(get_db)):
    await get_member(db, member_id)
    return await list_member_bookings(db, member_id)


@router.get("/members/{member_id}/prepaid", response_model=PrepaidBalanceOut)
async def member_prepaid(member_id: int, db: AsyncSession = Depends(get_db)):
    member = await get_member(db, member_id)
    return PrepaidBalanceOut(
        member_id=member.id,
        balance=member.prepaid_balance,
        transactions=await list_transactions(db, member.id),
    )


@router.post("/bookings/{booking_id}/cancel", response_model=CancellationOut)
async def cancel_any_booking(booking_id: int, body: CancelRequest | None = None, db: AsyncSession = Depends(get_db)):
    outcome = await cancel_booking(db, booking_id, reason=body.reason if body else None)
    return CancellationOut(
        booking=BookingOut.model_validate(outcome.booking),
        relieved=outcome.relieved,
        refunded=outcome.refunded,
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.post("/users/{user_id}/messages", response_model=ChatMessageOut, status_code=status.HTTP_201_CREATED)
async def message_user(user_id: int, body: ChatMessageIn, db: AsyncSession = Depends(get_db)):
    return await send_message_to_user(db, user_id, body.payload)


@router.get("/messages/unread-count", response_model=UnreadCountOut)
async def unread_count(db: AsyncSession = Depends(get_db)):
    return UnreadCountOut(count=await get_unread_count(db))
