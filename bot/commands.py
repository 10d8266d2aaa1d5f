"""Ready-made serializable commands.

Both commands work with either storage backend: they carry their state as
Pydantic fields, so :class:`~core.persistent.PersistentStorage` can store
them as JSON and rebuild them through a prototype registered with
``register_factories``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel

from core.exceptions import HandlerNotFoundError
from core.kinds import Kind
from core.storage import ANY_CHAT
from bot.classifier import get_chat_id
from sdk.models import Update

if TYPE_CHECKING:
    from bot.framework import BotFramework


class ReplyCommand(BaseModel):
    """Replies with a fixed text to the chat the update came from."""

    COMMAND_NAME: ClassVar[str] = "reply"

    text: str

    async def exec(self, bot: BotFramework, update: Update) -> None:
        chat_id = get_chat_id(update)
        if chat_id == ANY_CHAT:
            return
        await bot.sender.send_message(chat_id, self.text)

    def command_name(self) -> str:
        return self.COMMAND_NAME

    def serialize(self) -> str:
        return self.model_dump_json()

    def deserialize(self, data: str) -> "ReplyCommand":
        return ReplyCommand.model_validate_json(data)

    @classmethod
    def prototype(cls) -> "ReplyCommand":
        """Factory instance for :meth:`PersistentStorage.register_factories`."""
        return cls(text="")


class HelpCommand(BaseModel):
    """Lists the slash commands usable in the chat the update came from."""

    COMMAND_NAME: ClassVar[str] = "help"

    header: str = "Available commands:"

    async def exec(self, bot: BotFramework, update: Update) -> None:
        chat_id = get_chat_id(update)
        if chat_id == ANY_CHAT:
            return
        commands = sorted(await _visible_commands(bot, chat_id))
        lines = [self.header, *commands] if commands else ["No commands registered."]
        await bot.sender.send_message(chat_id, "\n".join(lines))

    def command_name(self) -> str:
        return self.COMMAND_NAME

    def serialize(self) -> str:
        return self.model_dump_json()

    def deserialize(self, data: str) -> "HelpCommand":
        return HelpCommand.model_validate_json(data)


async def _visible_commands(bot: BotFramework, chat_id: int) -> list[str]:
    """Slash commands that resolve in *chat_id*, either bound there or for every chat."""
    visible = []
    for name in await bot.storage.names(Kind.COMMAND.value):
        if not name.startswith("/"):
            continue
        try:
            await bot.storage.get(Kind.COMMAND.value, name, chat_id)
        except HandlerNotFoundError:
            continue
        visible.append(name)
    return visible
