"""Member booking routes: book, list upcoming, cancel.

Rules live in the services; a BookingViolation raised there is rendered by the
application-wide handler in main.py.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.database import get_db
from studiobook.core.dependencies import get_current_member
from studiobook.models.booking import Booking, BookingStatus
from studiobook.models.member import Member
from studiobook.schemas import BookingCreate, BookingOut, CancellationOut, CancelRequest
from studiobook.services.admission import create_booking
from studiobook.services.booking_rules import studio_now
from studiobook.services.cancellation import cancel_booking

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def book_session(
    body: BookingCreate,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await create_booking(
        db,
        member_id=member.id,
        service_menu_id=body.service_menu_id,
        start=body.start,
        staff_id=body.staff_id,
        notes=body.notes,
    )


@router.get("", response_model=list[BookingOut])
async def list_my_bookings(
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """Upcoming confirmed bookings, soonest first."""
    result = await db.execute(
        select(Booking)
        .where(
            Booking.member_id == member.id,
            Booking.status == BookingStatus.CONFIRMED,
            Booking.booking_date >= studio_now().date(),
        )
        .order_by(Booking.booking_date, Booking.start_time)
        .limit(50)
    )
    return result.scalars().all()


@router.post("/{booking_id}/cancel", response_model=CancellationOut)
async def cancel_my_booking(
    booking_id: int,
    body: CancelRequest | None = None,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    outcome = await cancel_booking(db, booking_id, member_id=member.id, reason=body.reason if body else None)
    return CancellationOut(
        booking=BookingOut.model_validate(outcome.booking),
        relieved=outcome.relieved,
        refunded=outcome.refunded,
    )
