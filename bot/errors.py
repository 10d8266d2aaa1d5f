"""Error reporting for failed updates.

An error handler receives the bot, the update that failed, and the
exception.  The default, :func:`report_to_chat`, sends the error text back
to the originating chat through the bot's sender.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

from core.logger import BotFrameworkLogger
from core.storage import ANY_CHAT
from bot.classifier import get_chat_id
from sdk.models import Update

if TYPE_CHECKING:
    from bot.framework import BotFramework

logger = BotFrameworkLogger.get_logger()


class Sender(Protocol):
    """Anything that can deliver a text message to a chat."""

    async def send_message(self, chat_id: int, text: str) -> Any: ...  # noqa: E704


ErrorHandler = Callable[["BotFramework", Update, Exception], Awaitable[None]]


async def report_to_chat(bot: BotFramework, update: Update, error: Exception) -> None:
    """Send ``str(error)`` to the update's chat; log and drop it if there is none."""
    chat_id = get_chat_id(update)
    if chat_id == ANY_CHAT:
        logger.info(
            "No chat to report error to",
            extra={"update_id": update.update_id, "error": str(error)},
        )
        return
    await bot.sender.send_message(chat_id, str(error))


async def log_only(bot: BotFramework, update: Update, error: Exception) -> None:
    """Error handler that never talks to users — failures stay in the logs."""
    logger.warning(
        "Update failed",
        extra={"update_id": update.update_id, "chat_id": get_chat_id(update), "error": str(error)},
    )
