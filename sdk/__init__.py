"""Thin Telegram Bot API binding — Pydantic models, async client, and exceptions.

Usage::

    from sdk import TelegramClient, APIException
    from sdk.models import Update, Message
"""

from sdk.client import TelegramClient
from sdk.exceptions import APIException

__all__ = [
    "TelegramClient",
    "APIException",
]
