"""Entry point — wire the Telegram client, handler storage and router, then poll.

Usage::

    BOT_TOKEN=123:abc python main.py

Set ``HANDLERS_DB_PATH`` to keep bindings in a JSON file across restarts;
otherwise they live in memory and are re-registered on every start.
"""

import asyncio

from config import (
    BASE_URL,
    BOT_TOKEN,
    ERROR_REPLIES,
    HANDLERS_DB_PATH,
    LOG_LEVEL,
    POLL_TIMEOUT,
    REPORT_UNHANDLED,
)
from core.logger import BotFrameworkLogger
from core.memory import InMemoryStorage
from core.persistent import JsonFileDB, PersistentStorage
from core.storage import Storage
from bot.commands import HelpCommand, ReplyCommand
from bot.errors import log_only, report_to_chat
from bot.framework import BotFramework
from bot.polling import poll_updates
from sdk.client import TelegramClient

logger = BotFrameworkLogger.get_logger()


def build_storage() -> Storage:
    """Return persistent storage when ``HANDLERS_DB_PATH`` is set, else in-memory."""
    if not HANDLERS_DB_PATH:
        return InMemoryStorage()
    storage = PersistentStorage(JsonFileDB(HANDLERS_DB_PATH))
    storage.register_factories(ReplyCommand.prototype(), HelpCommand())
    return storage


async def register_default_handlers(bot: BotFramework) -> None:
    """Bind the stock commands every chat gets."""
    await bot.register_command("/start", ReplyCommand(text="👋 Hello! Send /help to see what I can do."))
    await bot.register_command("/help", HelpCommand())


async def run() -> None:
    """Start the router and long-poll until cancelled.

    Raises:
        EnvironmentError: If ``BOT_TOKEN`` is not set.
    """
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    BotFrameworkLogger.set_level(LOG_LEVEL)
    client = TelegramClient(BASE_URL)
    bot = BotFramework(
        client,
        build_storage(),
        error_handler=report_to_chat if ERROR_REPLIES else log_only,
        report_unhandled=REPORT_UNHANDLED,
    )
    await register_default_handlers(bot)

    me = await client.get_me()
    logger.info("Bot is running", extra={"bot_username": me.username, "bot_id": me.id})
    await bot.handle_updates(poll_updates(client, timeout=POLL_TIMEOUT))


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
