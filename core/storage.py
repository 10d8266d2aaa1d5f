"""Handler and storage contracts shared by every registry implementation.

Design:
- ``Command`` is the unit of behaviour bound to a key.  Anything with an
  ``async exec(bot, update)`` method qualifies; plain coroutine functions
  are adapted by :func:`as_command`.
- ``Serializable`` is the extra capability a command needs to be written
  to an external store and rebuilt later by a factory of the same name.
- ``Storage`` owns the ``(kind, name, chat_id) -> Command`` bindings and
  the two-step scope fallback (exact chat, then ``0``).
- ``DB`` is the narrow external-store contract consumed by
  :class:`core.persistent.PersistentStorage`.

This module is framework-agnostic; updates and the bot are typed as
``Any`` so ``core`` never imports from ``bot/`` or ``sdk/``.
"""

from __future__ import annotations

import dataclasses
import inspect
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from core.exceptions import RegistrationError

# Wildcard scope: a binding at chat 0 applies to every chat.
ANY_CHAT: int = 0


# ── Handler protocols ────────────────────────────────────────────────────────


@runtime_checkable
class Command(Protocol):
    """Behaviour bound to a routing key.  Raise to signal failure."""

    async def exec(self, bot: Any, update: Any) -> None: ...  # noqa: E704


@runtime_checkable
class Serializable(Protocol):
    """A command that can be persisted as ``(command_name, data)``.

    The same object doubles as the factory: ``deserialize`` is called on a
    registered prototype to rebuild a live command from stored data.
    """

    def command_name(self) -> str: ...  # noqa: E704

    def serialize(self) -> str: ...  # noqa: E704

    def deserialize(self, data: str) -> Command: ...  # noqa: E704


HandlerFunc = Callable[[Any, Any], Awaitable[None] | None]


@dataclasses.dataclass(frozen=True, slots=True)
class FunctionCommand:
    """Adapts a ``handler(bot, update)`` function to the :class:`Command` shape."""

    func: HandlerFunc

    async def exec(self, bot: Any, update: Any) -> None:
        result = self.func(bot, update)
        if inspect.isawaitable(result):
            await result

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


def as_command(handler: Command | HandlerFunc | None) -> Command:
    """Normalise *handler* into a :class:`Command` or reject it.

    Raises:
        RegistrationError: If *handler* is ``None`` or not callable.
    """
    if handler is None:
        raise RegistrationError("handler must not be nil")
    if callable(getattr(handler, "exec", None)):
        return handler  # type: ignore[return-value]
    if callable(handler):
        return FunctionCommand(handler)
    raise RegistrationError(f"handler {handler!r} is not callable")


def handler_name(command: Command) -> str:
    """Human-readable identity of *command* for log records."""
    name = getattr(command, "name", None)
    if isinstance(name, str):
        return name
    return type(command).__qualname__


# ── Storage contracts ────────────────────────────────────────────────────────


class Storage(Protocol):
    """Registry of ``(kind, name, chat_id) -> Command`` bindings.

    ``get`` resolves the exact scope first and then the wildcard scope
    ``0``; a chat-specific binding always shadows the wildcard one.
    """

    async def set(self, kind: str, name: str, chat_id: int, handler: Command) -> None: ...  # noqa: E704

    async def get(self, kind: str, name: str, chat_id: int) -> Command:
        """Return the bound command or raise :class:`HandlerNotFoundError`."""
        ...

    async def unset(self, kind: str, name: str, chat_id: int) -> None: ...  # noqa: E704

    async def names(self, kind: str) -> list[str]:
        """Return the names bound under *kind* in registration order."""
        ...


class DB(Protocol):
    """External store of serialized handler descriptors."""

    async def find(self, kind: str, name: str, chat_id: int) -> tuple[str, str] | None:
        """Return ``(command_name, data)`` for the exact key, or ``None``.

        Raises:
            StorageUnavailableError: If the store itself cannot be read.
        """
        ...

    async def save(self, kind: str, name: str, chat_id: int, command_name: str, data: str) -> None: ...  # noqa: E704

    async def delete(self, kind: str, name: str, chat_id: int) -> None: ...  # noqa: E704

    async def names(self, kind: str) -> list[str]: ...  # noqa: E704
