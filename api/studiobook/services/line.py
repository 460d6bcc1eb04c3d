"""LINE Messaging API push client.

Used by the reminder batch and the admin chat. Delivery failures are logged
and reported as False; callers decide whether that aborts anything.
"""

import logging
from typing import Any

import httpx

from studiobook.core.config import settings

logger = logging.getLogger(__name__)

LinePayload = str | dict[str, Any]


def build_message(payload: LinePayload) -> dict[str, Any]:
    """Plain strings become text messages; dicts (sticker, image) pass through."""
    if isinstance(payload, str):
        return {"type": "text", "text": payload}
    return payload


async def send_line_message(to: str, payload: LinePayload, client: httpx.AsyncClient | None = None) -> bool:
    """Push one message to a LINE user. Returns True when LINE accepted it."""
    body = {"to": to, "messages": [build_message(payload)]}
    headers = {"Authorization": f"Bearer {settings.line_channel_access_token}"}

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.line_timeout_seconds) as own_client:
                response = await own_client.post(settings.line_push_url, json=body, headers=headers)
        else:
            response = await client.post(settings.line_push_url, json=body, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("LINE push to %s failed: %s", to, exc)
        return False

    logger.info("LINE message sent to %s", to)
    return True
