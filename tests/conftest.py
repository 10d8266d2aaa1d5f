"""Shared fixtures — fake sender, update builders, and import path setup."""

import os
import sys

# Console-only logging while testing; must be set before core.logger is imported.
os.environ.setdefault("BOT_LOG_DIR", "")

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402

from sdk.models import Update  # noqa: E402


class FakeSender:
    """Records every ``send_message`` call instead of talking to Telegram."""

    def __init__(self) -> None:
        self.send_message = AsyncMock(return_value={"ok": True})

    @property
    def sent(self) -> list[tuple[int, str]]:
        return [(c.args[0], c.args[1]) for c in self.send_message.call_args_list]


@pytest.fixture()
def sender() -> FakeSender:
    return FakeSender()


def _user(user_id: int) -> dict:
    return {"id": user_id, "is_bot": False, "first_name": f"User{user_id}"}


def make_message_update(chat_id: int = 1000, update_id: int = 1, user_id: int = 555, **fields) -> Update:
    """Build an update whose message carries *fields* (``text=…``, ``photo=[…]`` …)."""
    message = {
        "message_id": 1,
        "date": 0,
        "chat": {"id": chat_id, "type": "private" if chat_id > 0 else "supergroup"},
        "from": _user(user_id),
        **fields,
    }
    return Update.model_validate({"update_id": update_id, "message": message})


def make_text_update(text: str, chat_id: int = 1000, update_id: int = 1) -> Update:
    return make_message_update(chat_id=chat_id, update_id=update_id, text=text)


def make_callback_update(data: str, chat_id: int | None = 1000, user_id: int = 555, update_id: int = 2) -> Update:
    callback = {
        "id": "cb1",
        "from": _user(user_id),
        "chat_instance": "ci",
        "data": data,
    }
    if chat_id is not None:
        callback["message"] = {"message_id": 10, "date": 0, "chat": {"id": chat_id, "type": "private"}}
    return Update.model_validate({"update_id": update_id, "callback_query": callback})


def make_inline_update(query: str, user_id: int = 555, update_id: int = 3) -> Update:
    return Update.model_validate({
        "update_id": update_id,
        "inline_query": {"id": "iq1", "from": _user(user_id), "query": query, "offset": ""},
    })


PHOTO = [{"file_id": "p1", "file_unique_id": "u1", "width": 90, "height": 90}]
DOCUMENT = {"file_id": "d1", "file_unique_id": "u2", "file_name": "report.pdf"}
CONTACT = {"phone_number": "+100", "first_name": "Ada"}
STICKER = {"file_id": "s1", "file_unique_id": "u3", "width": 512, "height": 512, "is_animated": False}
AUDIO = {"file_id": "a1", "file_unique_id": "u4", "duration": 10}
VIDEO = {"file_id": "v1", "file_unique_id": "u5", "width": 640, "height": 480, "duration": 3}
VIDEO_NOTE = {"file_id": "vn1", "file_unique_id": "u6", "length": 240, "duration": 3}
VOICE = {"file_id": "vo1", "file_unique_id": "u7", "duration": 2}
LOCATION = {"longitude": 13.4, "latitude": 52.5}
VENUE = {"location": LOCATION, "title": "Cafe", "address": "Main St 1"}
POLL = {
    "id": "poll1",
    "question": "?",
    "options": [{"text": "yes", "voter_count": 0}],
    "total_voter_count": 0,
    "is_closed": False,
    "is_anonymous": True,
    "type": "regular",
    "allows_multiple_answers": False,
}
