"""Telegram routing layer — dispatcher, classifier, error reporting and polling.

This package may import from ``core/``, ``sdk/`` and ``config`` only.
"""

from bot.classifier import Classification, classify, extract_command, get_chat_id
from bot.commands import HelpCommand, ReplyCommand
from bot.errors import log_only, report_to_chat
from bot.framework import BotFramework
from bot.polling import poll_updates

__all__ = [
    # Dispatcher
    "BotFramework",
    # Classification
    "Classification",
    "classify",
    "extract_command",
    "get_chat_id",
    # Error handlers
    "report_to_chat",
    "log_only",
    # Event source
    "poll_updates",
    # Stock commands
    "ReplyCommand",
    "HelpCommand",
]
