"""Celery worker configuration and scheduled tasks.

Run with:
    celery -A studiobook.worker worker --beat
"""

import asyncio
import logging

from celery import Celery
from celery.schedules import crontab

from studiobook.core.config import settings
from studiobook.core.database import async_session_factory
from studiobook.services.reminders import send_reminders

logger = logging.getLogger(__name__)

celery_app = Celery(
    "studiobook",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.studio_timezone,
    enable_utc=True,
    beat_schedule={
        "booking-reminders": {
            "task": "studiobook.send_booking_reminders",
            "schedule": crontab(hour=settings.reminder_hour, minute=0),
        },
    },
)


async def _run_reminders() -> dict:
    async with async_session_factory() as session:
        summary = await send_reminders(session)
        await session.commit()
    return summary


@celery_app.task(name="studiobook.send_booking_reminders")
def send_booking_reminders() -> dict:
    summary = asyncio.run(_run_reminders())
    logger.info("Reminder task finished: %d/%d sent", summary["sent"], summary["processed"])
    return {"date": summary["date"].isoformat(), "processed": summary["processed"], "sent": summary["sent"]}
