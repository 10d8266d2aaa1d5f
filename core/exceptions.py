"""Exception hierarchy for routing, storage and registration failures."""


class BotFrameworkError(Exception):
    """Base class for every error raised by the framework itself."""


# ── Routing ──────────────────────────────────────────────────────────────────


class RoutingError(BotFrameworkError):
    """An update could not be routed to a handler."""


class NoMessageError(RoutingError):
    """The update carries no message, callback query or inline query."""

    def __init__(self) -> None:
        super().__init__("no message")


class UnclassifiableUpdateError(RoutingError):
    """The message has neither text nor a supported attachment."""

    def __init__(self) -> None:
        super().__init__("unsupported message")


class NoHandlersError(RoutingError):
    """Every lookup in the fallback chain missed.

    Callers that do not care about unrouted updates can catch this one
    class and ignore it silently.
    """

    def __init__(self, kind: str = "", key: str = "") -> None:
        self.kind = kind
        self.key = key
        super().__init__("no handlers")


# ── Storage ──────────────────────────────────────────────────────────────────


class HandlerNotFoundError(BotFrameworkError, LookupError):
    """No binding exists for the key at the requested scope nor at scope 0."""

    def __init__(self, kind: str, name: str, chat_id: int) -> None:
        self.kind = kind
        self.name = name
        self.chat_id = chat_id
        super().__init__("not found")


class UnknownFactoryError(HandlerNotFoundError):
    """A persisted descriptor names a command with no registered factory."""

    def __init__(self, kind: str, name: str, chat_id: int, command_name: str) -> None:
        super().__init__(kind, name, chat_id)
        self.command_name = command_name
        self.args = (f"no factory registered for command {command_name!r}",)


class StorageUnavailableError(BotFrameworkError):
    """The external store failed; never treated as a routing miss."""


# ── Registration ─────────────────────────────────────────────────────────────


class RegistrationError(BotFrameworkError, ValueError):
    """A handler or binding name was rejected at registration time."""
