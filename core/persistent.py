"""Persistent handler storage — bindings rebuilt from serialized descriptors.

A :class:`PersistentStorage` never keeps live handlers.  Each lookup asks
the external :class:`~core.storage.DB` for the ``(command_name, data)``
descriptor stored under ``(kind, name, chat_id)`` and rebuilds a command
through the factory registered under ``command_name``.  Nothing but the
store has to survive a restart; factories are registered again at startup.

:class:`JsonFileDB` is a flat-file store for single-process bots.  Writes
are atomic (temp file + :func:`os.replace`) and serialised by an
:class:`asyncio.Lock`; file I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile

from core.exceptions import (
    HandlerNotFoundError,
    RegistrationError,
    StorageUnavailableError,
    UnknownFactoryError,
)
from core.logger import BotFrameworkLogger
from core.storage import ANY_CHAT, DB, Command, Serializable

logger = BotFrameworkLogger.get_logger()


class PersistentStorage:
    """:class:`~core.storage.Storage` backed by a descriptor :class:`DB`.

    Usage::

        storage = PersistentStorage(JsonFileDB("data/handlers.json"))
        storage.register_factories(ReminderCommand.prototype())
        bot = BotFramework(client, storage)
    """

    def __init__(self, db: DB) -> None:
        self._db = db
        self._factories: dict[str, Serializable] = {}

    def register_factories(self, *factories: Serializable) -> None:
        """Register factories by their ``command_name()``.

        The first factory registered under a name wins; later duplicates
        are ignored with a warning.
        """
        for factory in factories:
            command_name = factory.command_name()
            if command_name in self._factories:
                logger.warning("Factory already registered — ignoring duplicate", extra={"command_name": command_name})
                continue
            self._factories[command_name] = factory
            logger.debug("Factory registered", extra={"command_name": command_name})

    @property
    def factories(self) -> dict[str, Serializable]:
        return dict(self._factories)

    async def set(self, kind: str, name: str, chat_id: int, handler: Command) -> None:
        if not isinstance(handler, Serializable):
            raise RegistrationError(
                f"handler {type(handler).__qualname__} must implement command_name/serialize/deserialize "
                "to be stored persistently"
            )
        command_name = handler.command_name()
        if command_name not in self._factories:
            logger.warning(
                "Persisting a command with no registered factory — lookups will fail until one is registered",
                extra={"kind": kind, "binding": name, "chat_id": chat_id, "command_name": command_name},
            )
        await self._db.save(kind, name, chat_id, command_name, handler.serialize())

    async def get(self, kind: str, name: str, chat_id: int) -> Command:
        descriptor = await self._db.find(kind, name, chat_id)
        if descriptor is None and chat_id != ANY_CHAT:
            descriptor = await self._db.find(kind, name, ANY_CHAT)
        if descriptor is None:
            raise HandlerNotFoundError(kind, name, chat_id)

        command_name, data = descriptor
        factory = self._factories.get(command_name)
        if factory is None:
            logger.error(
                "No factory registered for persisted command",
                extra={"kind": kind, "binding": name, "chat_id": chat_id, "command_name": command_name},
            )
            raise UnknownFactoryError(kind, name, chat_id, command_name)
        return factory.deserialize(data)

    async def unset(self, kind: str, name: str, chat_id: int) -> None:
        await self._db.delete(kind, name, chat_id)

    async def names(self, kind: str) -> list[str]:
        return await self._db.names(kind)


class JsonFileDB:
    """Descriptor store persisted to a single JSON file.

    Layout::

        {"<kind>": {"<name>": {"<chat_id>": {"command": "...", "data": "..."}}}}

    The file is read lazily on first access and rewritten on every change.
    A missing file is an empty store; an unreadable or corrupt file raises
    :class:`StorageUnavailableError`.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._rows: dict[str, dict[str, dict[str, dict[str, str]]]] | None = None
        self._lock = asyncio.Lock()

    async def find(self, kind: str, name: str, chat_id: int) -> tuple[str, str] | None:
        async with self._lock:
            rows = await self._load()
            row = rows.get(kind, {}).get(name, {}).get(str(chat_id))
        if row is None:
            return None
        return row["command"], row["data"]

    async def save(self, kind: str, name: str, chat_id: int, command_name: str, data: str) -> None:
        async with self._lock:
            rows = await self._load()
            rows.setdefault(kind, {}).setdefault(name, {})[str(chat_id)] = {
                "command": command_name,
                "data": data,
            }
            await asyncio.to_thread(self._write_sync, rows)
        logger.info("Descriptor saved", extra={"kind": kind, "binding": name, "chat_id": chat_id, "command_name": command_name})

    async def delete(self, kind: str, name: str, chat_id: int) -> None:
        async with self._lock:
            rows = await self._load()
            scopes = rows.get(kind, {}).get(name)
            if scopes is None or scopes.pop(str(chat_id), None) is None:
                return
            if not scopes:
                del rows[kind][name]
            if not rows[kind]:
                del rows[kind]
            await asyncio.to_thread(self._write_sync, rows)
        logger.info("Descriptor deleted", extra={"kind": kind, "binding": name, "chat_id": chat_id})

    async def names(self, kind: str) -> list[str]:
        async with self._lock:
            rows = await self._load()
            return list(rows.get(kind, {}))

    # ── file I/O (caller holds the lock) ─────────────────────────────────

    async def _load(self) -> dict[str, dict[str, dict[str, dict[str, str]]]]:
        if self._rows is None:
            self._rows = await asyncio.to_thread(self._read_sync)
        return self._rows

    def _read_sync(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                rows = json.load(f)
        except FileNotFoundError:
            logger.info("Handler store not found — starting empty", extra={"db_path": self.path})
            return {}
        except OSError as exc:
            logger.critical("Cannot read handler store", extra={"db_path": self.path, "error": str(exc)})
            raise StorageUnavailableError(f"cannot read handler store '{self.path}': {exc}") from exc
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both land here.
            logger.critical("Invalid JSON in handler store", extra={"db_path": self.path, "error": str(exc)})
            raise StorageUnavailableError(f"invalid JSON in handler store '{self.path}': {exc}") from exc
        problem = self._check_layout(rows)
        if problem is not None:
            logger.critical("Malformed handler store", extra={"db_path": self.path, "error": problem})
            raise StorageUnavailableError(f"malformed handler store '{self.path}': {problem}")
        logger.info("Loaded handler store", extra={"db_path": self.path, "kind_count": len(rows)})
        return rows

    @staticmethod
    def _check_layout(rows: object) -> str | None:
        """Return a description of the first layout violation, or ``None``."""
        if not isinstance(rows, dict):
            return "top level must be a JSON object"
        for kind, names in rows.items():
            if not isinstance(names, dict):
                return f"kind {kind!r} must map to an object"
            for name, scopes in names.items():
                if not isinstance(scopes, dict):
                    return f"binding {kind!r}/{name!r} must map to an object"
                for scope, row in scopes.items():
                    try:
                        int(scope)
                    except ValueError:
                        return f"scope {scope!r} under {kind!r}/{name!r} is not an integer"
                    if not isinstance(row, dict) or not isinstance(row.get("command"), str) or not isinstance(row.get("data"), str):
                        return f"row {kind!r}/{name!r}/{scope} needs string 'command' and 'data'"
        return None

    def _write_sync(self, rows: dict) -> None:
        dir_name = os.path.dirname(self.path) or "."
        try:
            os.makedirs(dir_name, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=dir_name, delete=False, suffix=".tmp", encoding="utf-8"
            ) as tmp:
                json.dump(rows, tmp, indent=2, ensure_ascii=False)
                tmp_path = tmp.name
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Failed to persist handler store", extra={"db_path": self.path, "error": str(exc)})
            raise StorageUnavailableError(f"cannot write handler store '{self.path}': {exc}") from exc
