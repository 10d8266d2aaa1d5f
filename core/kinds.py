"""Closed set of update kinds the router can bind handlers to."""

from enum import Enum


class Kind(str, Enum):
    """Category of an inbound update.

    Values are the storage keys used by every :class:`~core.storage.Storage`
    implementation, so they must stay stable once descriptors are persisted.
    """

    COMMAND = "command"
    PLAIN_TEXT = "plain"
    PHOTO = "photo"
    FILE = "file"
    CONTACT = "contact"
    STICKER = "sticker"
    AUDIO = "audio"
    VIDEO = "video"
    VIDEO_NOTE = "video_note"
    VOICE = "voice"
    LOCATION = "location"
    VENUE = "venue"
    CALLBACK_QUERY = "callback_query"
    INLINE_QUERY = "inline_query"
    ANY = "any"


# Attachment ladder in precedence order: (message attribute, kind).
# An update carries at most one of these; caption text never outranks them.
MEDIA_KINDS: tuple[tuple[str, Kind], ...] = (
    ("photo", Kind.PHOTO),
    ("document", Kind.FILE),
    ("contact", Kind.CONTACT),
    ("sticker", Kind.STICKER),
    ("audio", Kind.AUDIO),
    ("video", Kind.VIDEO),
    ("video_note", Kind.VIDEO_NOTE),
    ("voice", Kind.VOICE),
    ("location", Kind.LOCATION),
    ("venue", Kind.VENUE),
)

# Kinds whose binding name is a prefix matched against incoming data.
PREFIX_KINDS: frozenset[Kind] = frozenset({Kind.CALLBACK_QUERY, Kind.INLINE_QUERY})
