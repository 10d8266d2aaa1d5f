"""Long-polling event source.

:func:`poll_updates` turns ``getUpdates`` into an endless async stream of
validated :class:`~sdk.models.Update` models, ready for
:meth:`bot.framework.BotFramework.handle_updates`.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

import requests
from pydantic import ValidationError

from core.logger import BotFrameworkLogger
from sdk.client import TelegramClient
from sdk.exceptions import APIException
from sdk.models import Update

logger = BotFrameworkLogger.get_logger()

RETRY_DELAY: float = 5.0


async def poll_updates(
    client: TelegramClient,
    timeout: int = 30,
    offset: Optional[int] = None,
    retry_delay: float = RETRY_DELAY,
) -> AsyncIterator[Update]:
    """Yield updates forever, acknowledging each batch via ``offset``.

    Failed polls are logged and retried after *retry_delay* seconds (or the
    ``retry_after`` Telegram asks for).  Updates that fail validation are
    logged and skipped; the offset still moves past them.
    """
    logger.info("Polling for updates", extra={"poll_timeout": timeout})
    while True:
        try:
            raw_updates = await client.get_updates(offset=offset, timeout=timeout)
        except APIException as exc:
            delay = exc.retry_after or retry_delay
            logger.warning(
                "getUpdates failed, retrying",
                extra={"api_endpoint": "getUpdates", "status_code": exc.status_code, "retry_in": delay},
            )
            await asyncio.sleep(delay)
            continue
        except requests.RequestException as exc:
            logger.warning(
                "getUpdates request error, retrying",
                extra={"api_endpoint": "getUpdates", "error": str(exc), "retry_in": retry_delay},
            )
            await asyncio.sleep(retry_delay)
            continue

        if raw_updates:
            logger.debug("Received updates", extra={"count": len(raw_updates)})
        for raw in raw_updates:
            update_id = raw.get("update_id")
            if isinstance(update_id, int):
                offset = update_id + 1
            try:
                update = Update.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Failed to parse update", extra={"update_id": update_id, "error": str(exc)})
                continue
            yield update
