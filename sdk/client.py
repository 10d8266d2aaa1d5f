"""TelegramClient — the Bot API calls the router needs.

HTTP calls use the ``requests`` library.  Every public method is a
coroutine that offloads the blocking request via :func:`asyncio.to_thread`
so the event loop keeps dispatching other updates meanwhile.

The client satisfies the router's ``Sender`` contract
(:meth:`TelegramClient.send_message`) and feeds
:func:`bot.polling.poll_updates` through :meth:`TelegramClient.get_updates`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import requests

from core.logger import BotFrameworkLogger
from sdk.exceptions import APIException
from sdk.models import User

logger = BotFrameworkLogger.get_logger()


class TelegramClient:
    """Client-side service layer for the Telegram Bot API.

    Raises :class:`APIException` for non-2xx responses and for bodies with
    ``"ok": false``; transport failures propagate as
    :class:`requests.RequestException`.
    """

    _DEFAULT_TIMEOUT: int = 10

    def __init__(self, base_url: str, timeout: int = _DEFAULT_TIMEOUT) -> None:
        """Create a client bound to *base_url*.

        Args:
            base_url: Full Bot API base URL (e.g. ``https://api.telegram.org/bot<token>``).
            timeout: Default request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    def _post(self, endpoint: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a POST request and return the parsed JSON body.

        Raises:
            APIException: If the status code is not 2xx or ``ok`` is false.
            requests.RequestException: On transport-level failures.
        """
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        response = requests.post(url, json=payload, timeout=timeout or self._timeout)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok or body.get("ok") is False:
            logger.warning(
                "Bot API call failed",
                extra={"api_endpoint": endpoint, "status_code": response.status_code, "api_response": body},
            )
            raise APIException(response.status_code, body)
        return body

    async def _call(self, endpoint: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(self._post, endpoint, payload, timeout)

    # ------------------------------------------------------------------
    #  Endpoints
    # ------------------------------------------------------------------

    async def get_me(self) -> User:
        """Return the bot's own :class:`~sdk.models.User`."""
        data = await self._call("getMe")
        return User.model_validate(data["result"])

    async def get_updates(self, offset: Optional[int] = None, timeout: int = 0, limit: Optional[int] = 100, allowed_updates: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Long-poll for incoming updates and return the raw update dicts.

        The HTTP timeout is padded past the long-poll *timeout* so Telegram
        answers before ``requests`` gives up.
        """
        payload: Dict[str, Any] = {"timeout": timeout}
        if offset is not None:
            payload["offset"] = offset
        if limit is not None:
            payload["limit"] = limit
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates
        data = await self._call("getUpdates", payload, timeout=timeout + self._timeout)
        return data.get("result", [])

    async def send_message(self, chat_id: int, text: str, reply_markup: Optional[Dict[str, Any]] = None, parse_mode: Optional[str] = None) -> Dict[str, Any]:
        """Send a text message to a chat."""
        logger.debug("Sending message", extra={"chat_id": chat_id, "api_endpoint": "sendMessage", "text_preview": text[:80]})
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", payload)

    async def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None, show_alert: Optional[bool] = None) -> Dict[str, Any]:
        """Acknowledge a callback query so the client stops showing a spinner."""
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text is not None:
            payload["text"] = text
        if show_alert is not None:
            payload["show_alert"] = show_alert
        return await self._call("answerCallbackQuery", payload)
