"""BotFramework — routes every update to the handler bound for it.

Resolution order for one update:

1. A universal (``any``) handler for the chat, or for every chat, preempts
   all other routing.
2. Callback queries and inline queries are matched by data / query prefix.
3. Media messages resolve the single binding of their kind.
4. Text resolves the slash command, then the literal text (keyboard
   commands), then the plain-text handler.

Every lookup tries the update's own chat first and then scope ``0``.
:meth:`BotFramework.handle_updates` runs each update in its own
``asyncio`` task behind a catch-all boundary, so one failing handler never
stops the loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Iterable
from typing import Optional

from core.exceptions import HandlerNotFoundError, NoHandlersError, RegistrationError
from core.kinds import PREFIX_KINDS, Kind
from core.logger import BotFrameworkLogger
from core.memory import InMemoryStorage
from core.storage import ANY_CHAT, Command, HandlerFunc, Storage, as_command, handler_name
from bot.classifier import Classification, classify, get_chat_id
from bot.errors import ErrorHandler, Sender, report_to_chat
from sdk.models import Update

logger = BotFrameworkLogger.get_logger()

Handler = Command | HandlerFunc


class BotFramework:
    """Dispatcher plus the registration surface applications use.

    Args:
        sender: Delivers messages; used by the default error handler and
            available to handlers as ``bot.sender``.
        storage: Binding registry.  Defaults to a fresh
            :class:`~core.memory.InMemoryStorage`, so several bots in one
            process never share routes.
        error_handler: Called as ``error_handler(bot, update, error)`` for
            every failed update.  Defaults to
            :func:`bot.errors.report_to_chat`.
        report_unhandled: Forward updates nobody handles
            (:class:`~core.exceptions.NoHandlersError`) to the error handler
            too.  Off by default; they are only logged.
    """

    def __init__(
        self,
        sender: Sender,
        storage: Optional[Storage] = None,
        error_handler: Optional[ErrorHandler] = None,
        report_unhandled: bool = False,
    ) -> None:
        self.sender = sender
        self.storage: Storage = storage if storage is not None else InMemoryStorage()
        self.error_handler: ErrorHandler = error_handler or report_to_chat
        self.report_unhandled = report_unhandled
        self._tasks: set[asyncio.Task] = set()

    # ── dispatch ─────────────────────────────────────────────────────────

    async def handle_updates(self, source: AsyncIterable[Update] | Iterable[Update]) -> None:
        """Consume *source* and handle each update in its own task.

        Returns once the source is exhausted and every spawned task has
        finished.  Errors never escape; they go to :attr:`error_handler`.
        """
        logger.info("Handling updates", extra={"storage": type(self.storage).__name__})
        if isinstance(source, AsyncIterable):
            async for update in source:
                self._spawn(update)
        else:
            for update in source:
                self._spawn(update)
                # Let spawned tasks start while a long or endless source is still producing.
                await asyncio.sleep(0)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    @property
    def pending(self) -> int:
        """Number of updates currently being handled."""
        return len(self._tasks)

    def _spawn(self, update: Update) -> None:
        task = asyncio.create_task(self._process(update), name=f"update-{update.update_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, update: Update) -> None:
        """Run one update behind the catch-all boundary."""
        try:
            await self.handle_update(update)
        except NoHandlersError as exc:
            logger.debug(
                "No handlers for update",
                extra={"update_id": update.update_id, "chat_id": get_chat_id(update), "kind": exc.kind},
            )
            if self.report_unhandled:
                await self._report(update, exc)
        except Exception as exc:
            logger.exception(
                "Update handling failed",
                extra={"update_id": update.update_id, "chat_id": get_chat_id(update), "error": str(exc)},
            )
            await self._report(update, exc)

    async def _report(self, update: Update, error: Exception) -> None:
        try:
            await self.error_handler(self, update, error)
        except Exception:
            logger.exception(
                "Error handler failed",
                extra={"update_id": update.update_id, "error": str(error)},
            )

    async def handle_update(self, update: Update) -> None:
        """Route *update* to its handler and run it.

        Raises:
            NoMessageError: The update has no message, callback or inline query.
            UnclassifiableUpdateError: The message has nothing routable.
            NoHandlersError: Nothing is bound for it after every fallback.
            StorageUnavailableError: The storage backend failed.
            Exception: Whatever the handler raised.
        """
        chat_id = get_chat_id(update)

        universal = await self._lookup(Kind.ANY, "", chat_id)
        if universal is not None:
            await self._invoke(universal, update, Kind.ANY)
            return

        route = classify(update)
        if route.kind in PREFIX_KINDS:
            command = await self._match_prefix(route)
            kind = route.kind
        elif route.kind is Kind.COMMAND:
            command, kind = await self._match_text(route)
        else:
            command = await self._lookup(route.kind, "", route.chat_id)
            kind = route.kind

        if command is None:
            raise NoHandlersError(kind.value, route.key)
        await self._invoke(command, update, kind)

    async def _lookup(self, kind: Kind, name: str, chat_id: int) -> Optional[Command]:
        try:
            return await self.storage.get(kind.value, name, chat_id)
        except HandlerNotFoundError:
            return None

    async def _match_prefix(self, route: Classification) -> Optional[Command]:
        # First registered prefix with a binding at this scope (or 0) wins.
        for prefix in await self.storage.names(route.kind.value):
            if not route.key.startswith(prefix):
                continue
            command = await self._lookup(route.kind, prefix, route.chat_id)
            if command is not None:
                return command
        return None

    async def _match_text(self, route: Classification) -> tuple[Optional[Command], Kind]:
        if route.command is not None:
            command = await self._lookup(Kind.COMMAND, route.command, route.chat_id)
            if command is not None:
                return command, Kind.COMMAND
        command = await self._lookup(Kind.COMMAND, route.key, route.chat_id)
        if command is not None:
            return command, Kind.COMMAND
        return await self._lookup(Kind.PLAIN_TEXT, "", route.chat_id), Kind.PLAIN_TEXT

    async def _invoke(self, command: Command, update: Update, kind: Kind) -> None:
        logger.debug(
            "Dispatching update",
            extra={
                "update_id": update.update_id,
                "chat_id": get_chat_id(update),
                "kind": kind.value,
                "handler_name": handler_name(command),
            },
        )
        await command.exec(self, update)

    # ── generic registration ─────────────────────────────────────────────

    async def register(self, kind: Kind, handler: Handler, name: str = "", chat_id: int = ANY_CHAT) -> None:
        """Bind *handler* to ``(kind, name, chat_id)``; ``chat_id=0`` means every chat.

        Raises:
            RegistrationError: If *handler* is ``None`` or not callable.
        """
        command = as_command(handler)
        await self.storage.set(Kind(kind).value, name, chat_id, command)
        logger.info(
            "Handler registered",
            extra={"kind": Kind(kind).value, "binding": name, "chat_id": chat_id, "handler_name": handler_name(command)},
        )

    async def unregister(self, kind: Kind, name: str = "", chat_id: int = ANY_CHAT) -> None:
        """Remove the binding at exactly this scope; other scopes are untouched."""
        await self.storage.unset(Kind(kind).value, name, chat_id)
        logger.info("Handler unregistered", extra={"kind": Kind(kind).value, "binding": name, "chat_id": chat_id})

    # ── commands ─────────────────────────────────────────────────────────

    async def register_command(self, name: str, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        """Bind a slash command.

        ``register_command("/start", h)`` also matches ``"/start@my_bot"``
        and ``"/start@my_bot ref42"``.
        """
        if not name.startswith("/"):
            raise RegistrationError("command must start with slash")
        await self.register(Kind.COMMAND, handler, name, chat_id)

    async def unregister_command(self, name: str, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.COMMAND, name, chat_id)

    async def register_keyboard_command(self, text: str, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        """Bind an exact message text, e.g. a reply-keyboard button label ``"🔔 Subscribe"``."""
        if not text:
            raise RegistrationError("keyboard command must not be empty")
        if text.startswith("/"):
            raise RegistrationError("keyboard command must not start with slash")
        await self.register(Kind.COMMAND, handler, text, chat_id)

    async def unregister_keyboard_command(self, text: str, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.COMMAND, text, chat_id)

    # ── queries ──────────────────────────────────────────────────────────

    async def register_callback_query_handler(self, handler: Handler, data_prefix: str = "", chat_id: int = ANY_CHAT) -> None:
        """Bind callback data starting with *data_prefix*.

        When several registered prefixes match, the one registered first
        wins; prefer prefixes that cannot overlap.
        """
        await self.register(Kind.CALLBACK_QUERY, handler, data_prefix, chat_id)

    async def unregister_callback_query_handler(self, data_prefix: str = "", chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.CALLBACK_QUERY, data_prefix, chat_id)

    async def register_inline_query_handler(self, handler: Handler, query_prefix: str = "", user_id: int = ANY_CHAT) -> None:
        """Bind inline queries starting with *query_prefix*, scoped by the querying user."""
        await self.register(Kind.INLINE_QUERY, handler, query_prefix, user_id)

    async def unregister_inline_query_handler(self, query_prefix: str = "", user_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.INLINE_QUERY, query_prefix, user_id)

    # ── single-binding kinds ─────────────────────────────────────────────

    async def register_plain_text_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.PLAIN_TEXT, handler, chat_id=chat_id)

    async def unregister_plain_text_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.PLAIN_TEXT, chat_id=chat_id)

    async def register_photo_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.PHOTO, handler, chat_id=chat_id)

    async def unregister_photo_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.PHOTO, chat_id=chat_id)

    async def register_file_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.FILE, handler, chat_id=chat_id)

    async def unregister_file_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.FILE, chat_id=chat_id)

    async def register_contact_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.CONTACT, handler, chat_id=chat_id)

    async def unregister_contact_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.CONTACT, chat_id=chat_id)

    async def register_sticker_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.STICKER, handler, chat_id=chat_id)

    async def unregister_sticker_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.STICKER, chat_id=chat_id)

    async def register_audio_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.AUDIO, handler, chat_id=chat_id)

    async def unregister_audio_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.AUDIO, chat_id=chat_id)

    async def register_video_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.VIDEO, handler, chat_id=chat_id)

    async def unregister_video_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.VIDEO, chat_id=chat_id)

    async def register_video_note_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.VIDEO_NOTE, handler, chat_id=chat_id)

    async def unregister_video_note_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.VIDEO_NOTE, chat_id=chat_id)

    async def register_voice_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.VOICE, handler, chat_id=chat_id)

    async def unregister_voice_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.VOICE, chat_id=chat_id)

    async def register_location_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.LOCATION, handler, chat_id=chat_id)

    async def unregister_location_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.LOCATION, chat_id=chat_id)

    async def register_venue_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        await self.register(Kind.VENUE, handler, chat_id=chat_id)

    async def unregister_venue_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.VENUE, chat_id=chat_id)

    async def register_universal_handler(self, handler: Handler, chat_id: int = ANY_CHAT) -> None:
        """Bind a catch-all that preempts every other route in *chat_id* (or everywhere)."""
        await self.register(Kind.ANY, handler, chat_id=chat_id)

    async def unregister_universal_handler(self, chat_id: int = ANY_CHAT) -> None:
        await self.unregister(Kind.ANY, chat_id=chat_id)
