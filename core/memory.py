"""In-memory handler storage — the default :class:`~core.storage.Storage`."""

from __future__ import annotations

from core.exceptions import HandlerNotFoundError
from core.locks import ReadWriteLock
from core.logger import BotFrameworkLogger
from core.storage import ANY_CHAT, Command, handler_name

logger = BotFrameworkLogger.get_logger()


class InMemoryStorage:
    """Three-level mapping ``kind -> name -> chat_id -> Command``.

    All levels are created on first write and pruned when they become
    empty, so :meth:`names` only reports live bindings.  One
    :class:`~core.locks.ReadWriteLock` guards the whole mapping: lookups run
    concurrently, writes are exclusive.  Handlers are returned to the
    caller and invoked outside the lock.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, dict[str, dict[int, Command]]] = {}
        self._lock = ReadWriteLock()

    async def set(self, kind: str, name: str, chat_id: int, handler: Command) -> None:
        async with self._lock.writing():
            self._handlers.setdefault(kind, {}).setdefault(name, {})[chat_id] = handler
        logger.debug(
            "Binding set",
            extra={"kind": kind, "binding": name, "chat_id": chat_id, "handler_name": handler_name(handler)},
        )

    async def get(self, kind: str, name: str, chat_id: int) -> Command:
        async with self._lock.reading():
            scopes = self._handlers.get(kind, {}).get(name)
            if scopes:
                if chat_id in scopes:
                    return scopes[chat_id]
                if ANY_CHAT in scopes:
                    return scopes[ANY_CHAT]
        raise HandlerNotFoundError(kind, name, chat_id)

    async def unset(self, kind: str, name: str, chat_id: int) -> None:
        async with self._lock.writing():
            names = self._handlers.get(kind)
            if names is None:
                return
            scopes = names.get(name)
            if scopes is None:
                return
            if chat_id not in scopes:
                return
            del scopes[chat_id]
            if not scopes:
                del names[name]
            if not names:
                del self._handlers[kind]
        logger.debug("Binding unset", extra={"kind": kind, "binding": name, "chat_id": chat_id})

    async def names(self, kind: str) -> list[str]:
        async with self._lock.reading():
            return list(self._handlers.get(kind, {}))

    def __len__(self) -> int:
        """Total number of bindings across all kinds and scopes."""
        return sum(len(scopes) for names in self._handlers.values() for scopes in names.values())
