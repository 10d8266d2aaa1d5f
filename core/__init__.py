"""Routing core — kinds, handler storage contracts and implementations, logging.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``sdk/``.
"""

from core.exceptions import (
    BotFrameworkError,
    HandlerNotFoundError,
    NoHandlersError,
    NoMessageError,
    RegistrationError,
    RoutingError,
    StorageUnavailableError,
    UnclassifiableUpdateError,
    UnknownFactoryError,
)
from core.kinds import Kind
from core.logger import BotFrameworkLogger
from core.memory import InMemoryStorage
from core.persistent import JsonFileDB, PersistentStorage
from core.storage import ANY_CHAT, DB, Command, FunctionCommand, Serializable, Storage

__all__ = [
    "ANY_CHAT",
    "Kind",
    "BotFrameworkLogger",
    # Contracts
    "Command",
    "Serializable",
    "Storage",
    "DB",
    "FunctionCommand",
    # Storage implementations
    "InMemoryStorage",
    "PersistentStorage",
    "JsonFileDB",
    # Errors
    "BotFrameworkError",
    "RoutingError",
    "NoMessageError",
    "UnclassifiableUpdateError",
    "NoHandlersError",
    "HandlerNotFoundError",
    "UnknownFactoryError",
    "StorageUnavailableError",
    "RegistrationError",
]
