"""Endpoints for external schedulers (authenticated by the cron secret)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.core.database import get_db
from studiobook.core.dependencies import require_cron_secret
from studiobook.schemas import ReminderRunOut
from studiobook.services.reminders import send_reminders

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.get("/reminders", response_model=ReminderRunOut)
async def run_reminders(db: AsyncSession = Depends(get_db)):
    """Send tomorrow's booking reminders now."""
    return await send_reminders(db)
