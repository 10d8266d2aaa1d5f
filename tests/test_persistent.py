"""Tests for the persistent storage adapter and the JSON-file descriptor store."""

import json
from unittest.mock import AsyncMock

import pytest

from bot.commands import HelpCommand, ReplyCommand
from core.exceptions import (
    HandlerNotFoundError,
    RegistrationError,
    StorageUnavailableError,
    UnknownFactoryError,
)
from core.persistent import JsonFileDB, PersistentStorage
from core.storage import FunctionCommand

from conftest import FakeSender, make_text_update


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "handlers.json")


@pytest.fixture()
def storage(db_path):
    store = PersistentStorage(JsonFileDB(db_path))
    store.register_factories(ReplyCommand.prototype(), HelpCommand())
    return store


# ── Round trip ───────────────────────────────────────────────────────────────


class TestRoundTrip:
    """A serialized command comes back with the same observable behaviour."""

    @pytest.mark.asyncio
    async def test_deserialized_command_behaves_the_same(self, storage) -> None:
        original = ReplyCommand(text="pong")
        await storage.set("command", "/ping", 0, original)

        restored = await storage.get("command", "/ping", 42)

        assert isinstance(restored, ReplyCommand)
        assert restored is not original
        original_sender, restored_sender = FakeSender(), FakeSender()
        update = make_text_update("/ping", chat_id=42)
        await original.exec(_Bot(original_sender), update)
        await restored.exec(_Bot(restored_sender), update)
        assert original_sender.sent == restored_sender.sent == [(42, "pong")]

    @pytest.mark.asyncio
    async def test_survives_restart(self, db_path) -> None:
        first = PersistentStorage(JsonFileDB(db_path))
        await first.set("command", "/start", -100, ReplyCommand(text="hi group"))

        # Fresh process: new DB object over the same file, factories re-registered.
        second = PersistentStorage(JsonFileDB(db_path))
        second.register_factories(ReplyCommand.prototype())

        restored = await second.get("command", "/start", -100)
        assert restored == ReplyCommand(text="hi group")

    @pytest.mark.asyncio
    async def test_file_layout(self, storage, db_path) -> None:
        await storage.set("callback_query", "confirm_", 7, ReplyCommand(text="ok"))

        with open(db_path, encoding="utf-8") as f:
            rows = json.load(f)
        row = rows["callback_query"]["confirm_"]["7"]
        assert row["command"] == "reply"
        assert json.loads(row["data"]) == {"text": "ok"}


# ── Resolution policy ────────────────────────────────────────────────────────


class TestResolution:
    """Same scope fallback as the in-memory storage."""

    @pytest.mark.asyncio
    async def test_specific_shadows_wildcard(self, storage) -> None:
        await storage.set("plain", "", 0, ReplyCommand(text="everyone"))
        await storage.set("plain", "", 42, ReplyCommand(text="only 42"))

        assert (await storage.get("plain", "", 42)).text == "only 42"
        assert (await storage.get("plain", "", 7)).text == "everyone"

    @pytest.mark.asyncio
    async def test_missing_descriptor_is_not_found(self, storage) -> None:
        with pytest.raises(HandlerNotFoundError):
            await storage.get("photo", "", 1)

    @pytest.mark.asyncio
    async def test_unset_isolated_per_scope(self, storage) -> None:
        await storage.set("plain", "", 0, ReplyCommand(text="everyone"))
        await storage.set("plain", "", 42, ReplyCommand(text="only 42"))

        await storage.unset("plain", "", 42)
        assert (await storage.get("plain", "", 42)).text == "everyone"

        await storage.unset("plain", "", 0)
        with pytest.raises(HandlerNotFoundError):
            await storage.get("plain", "", 42)

    @pytest.mark.asyncio
    async def test_names_in_registration_order(self, storage) -> None:
        await storage.set("inline_query", "gif ", 0, ReplyCommand(text="g"))
        await storage.set("inline_query", "img ", 0, ReplyCommand(text="i"))

        assert await storage.names("inline_query") == ["gif ", "img "]
        await storage.unset("inline_query", "gif ", 0)
        assert await storage.names("inline_query") == ["img "]


# ── Factories ────────────────────────────────────────────────────────────────


class TestFactories:
    """Unknown command names fail loudly but still count as a routing miss."""

    @pytest.mark.asyncio
    async def test_unknown_factory(self, db_path) -> None:
        writer = PersistentStorage(JsonFileDB(db_path))
        await writer.set("command", "/help", 0, HelpCommand())

        reader = PersistentStorage(JsonFileDB(db_path))
        reader.register_factories(ReplyCommand.prototype())

        with pytest.raises(UnknownFactoryError) as exc_info:
            await reader.get("command", "/help", 0)
        assert exc_info.value.command_name == "help"
        assert isinstance(exc_info.value, HandlerNotFoundError)

    def test_first_factory_wins(self) -> None:
        store = PersistentStorage(JsonFileDB("unused.json"))
        first, second = ReplyCommand(text="first"), ReplyCommand(text="second")
        store.register_factories(first, second)

        assert store.factories == {"reply": first}

    @pytest.mark.asyncio
    async def test_non_serializable_rejected(self, storage) -> None:
        async def handler(bot, update) -> None:
            return None

        with pytest.raises(RegistrationError):
            await storage.set("command", "/x", 0, FunctionCommand(handler))


# ── Failure surfacing ────────────────────────────────────────────────────────


class TestStoreFailures:
    """Infrastructure errors are never masked as routing misses."""

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_unavailable(self, db_path) -> None:
        with open(db_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        store = PersistentStorage(JsonFileDB(db_path))
        with pytest.raises(StorageUnavailableError):
            await store.get("command", "/start", 0)

    @pytest.mark.asyncio
    async def test_non_utf8_file_raises_unavailable(self, db_path) -> None:
        with open(db_path, "wb") as f:
            f.write(b'{"command": "\xff\xfe"}')

        with pytest.raises(StorageUnavailableError):
            await JsonFileDB(db_path).find("command", "/start", 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rows",
        [
            [],
            {"command": []},
            {"command": {"/start": "reply"}},
            {"command": {"/start": {"0": {"cmd": "reply"}}}},
            {"command": {"/start": {"0": {"command": "reply", "data": 5}}}},
            {"command": {"/start": {"everyone": {"command": "reply", "data": "{}"}}}},
        ],
    )
    async def test_malformed_layout_raises_unavailable(self, db_path, rows) -> None:
        with open(db_path, "w", encoding="utf-8") as f:
            json.dump(rows, f)

        store = PersistentStorage(JsonFileDB(db_path))
        store.register_factories(ReplyCommand.prototype())
        with pytest.raises(StorageUnavailableError, match="malformed handler store"):
            await store.get("command", "/start", 0)

    @pytest.mark.asyncio
    async def test_db_errors_propagate(self) -> None:
        db = AsyncMock()
        db.find.side_effect = StorageUnavailableError("db down")
        store = PersistentStorage(db)

        with pytest.raises(StorageUnavailableError, match="db down"):
            await store.get("command", "/start", 5)

    @pytest.mark.asyncio
    async def test_fallback_queries_wildcard_scope(self) -> None:
        db = AsyncMock()
        db.find.side_effect = [None, ("reply", '{"text": "fallback"}')]
        store = PersistentStorage(db)
        store.register_factories(ReplyCommand.prototype())

        command = await store.get("command", "/start", 5)

        assert command == ReplyCommand(text="fallback")
        assert [c.args for c in db.find.call_args_list] == [
            ("command", "/start", 5),
            ("command", "/start", 0),
        ]

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_store(self, db_path) -> None:
        db = JsonFileDB(db_path)
        assert await db.find("command", "/start", 0) is None
        assert await db.names("command") == []


class _Bot:
    """Minimal stand-in exposing ``sender`` the way BotFramework does."""

    def __init__(self, sender) -> None:
        self.sender = sender
