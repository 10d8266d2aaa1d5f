"""Update classification — maps a raw update to one kind and a routing key.

The ladder is evaluated top to bottom and the first match wins:
callback query, inline query, missing message, then the attachment kinds
in :data:`core.kinds.MEDIA_KINDS` order, then text.  Attachments outrank
text because captions arrive alongside media.
"""

from __future__ import annotations

import dataclasses
from typing import Optional

from core.exceptions import NoMessageError, UnclassifiableUpdateError
from core.kinds import MEDIA_KINDS, Kind
from core.storage import ANY_CHAT
from sdk.models import Update

COMMAND_MARKER = "/"
MENTION_MARKER = "@"


@dataclasses.dataclass(frozen=True, slots=True)
class Classification:
    """Result of :func:`classify`.

    ``key`` is the string routing is keyed on: callback data, inline query
    text, or the full message text.  ``command`` is the slash command
    extracted from the text (``"/start"``), when there is one.
    """

    kind: Kind
    chat_id: int = ANY_CHAT
    key: str = ""
    command: Optional[str] = None


def get_chat_id(update: Update) -> int:
    """Return the scope an update belongs to, or ``0`` if none applies.

    Messages use their chat, callback queries the chat of the message the
    button was attached to, and inline queries the id of the querying user.
    """
    message = update.effective_message
    if message is not None:
        return message.chat.id
    if update.callback_query is not None:
        if update.callback_query.message is not None:
            return update.callback_query.message.chat.id
        return ANY_CHAT
    if update.inline_query is not None:
        return update.inline_query.from_field.id
    return ANY_CHAT


def extract_command(text: str) -> Optional[str]:
    """Return the slash command at the start of *text*, without mention or arguments.

    ``"/start@my_bot ref42"`` → ``"/start"``; ``"hello"`` → ``None``.
    """
    if not text.startswith(COMMAND_MARKER):
        return None
    token = text.split(maxsplit=1)[0]
    command = token.split(MENTION_MARKER, 1)[0]
    if command == COMMAND_MARKER:
        return None
    return command


def classify(update: Update) -> Classification:
    """Classify *update* into exactly one :class:`~core.kinds.Kind`.

    Raises:
        NoMessageError: If the update has no message, callback or inline query.
        UnclassifiableUpdateError: If the message has no text and no
            supported attachment (polls, service messages, …).
    """
    chat_id = get_chat_id(update)

    if update.callback_query is not None:
        return Classification(Kind.CALLBACK_QUERY, chat_id, update.callback_query.data or "")
    if update.inline_query is not None:
        return Classification(Kind.INLINE_QUERY, chat_id, update.inline_query.query)

    message = update.effective_message
    if message is None:
        raise NoMessageError()

    for attribute, kind in MEDIA_KINDS:
        if getattr(message, attribute) is not None:
            return Classification(kind, chat_id)

    if message.text:
        return Classification(Kind.COMMAND, chat_id, message.text, extract_command(message.text))

    raise UnclassifiableUpdateError()
