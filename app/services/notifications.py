"""
Fire-and-forget notifications for account approval decisions.

Scheduled through FastAPI ``BackgroundTasks`` after the response is sent.
Delivery failures are logged and never affect the approval itself.
"""

from __future__ import annotations

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


async def notify_account_decision(
    decision: str,
    *,
    user_id: int,
    email: str,
    name: str | None,
) -> None:
    """Tell the outside world that ``email`` was approved or rejected."""
    payload = {"event": f"account.{decision}", "user_id": user_id, "email": email, "name": name}
    url = settings.NOTIFY_WEBHOOK_URL
    if not url:
        logger.info("Account %s: %s (no webhook configured)", decision, email)
        return

    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Could not deliver account.%s notification for %s: %s", decision, email, e)
        return
    logger.info("Delivered account.%s notification for %s", decision, email)
