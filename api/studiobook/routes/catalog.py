"""Public catalog: service menus, trainers and the availability grid."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.database import get_db
from studiobook.models.service_menu import ServiceMenu
from studiobook.models.staff import Staff
from studiobook.schemas import AvailabilityOut, MenuOut, StaffOut
from studiobook.services.availability import available_slots

router = APIRouter(tags=["catalog"])


@router.get("/menus", response_model=list[MenuOut])
async def list_menus(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ServiceMenu).where(ServiceMenu.is_active.is_(True)).order_by(ServiceMenu.id)
    )
    return result.scalars().all()


@router.get("/staff", response_model=list[StaffOut])
async def list_staff(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Staff).where(Staff.is_active.is_(True)).order_by(Staff.id))
    return result.scalars().all()


@router.get("/availability", response_model=AvailabilityOut)
async def get_availability(
    service_menu_id: int,
    on_date: date = Query(alias="date"),
    staff_id: int | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Free trainers per 15-minute start time on one date.

    Notice and lookahead are not applied; the booking call enforces them.
    """
    staff_ids = [staff_id] if staff_id is not None else None
    return await available_slots(db, on_date, service_menu_id, staff_ids=staff_ids)
