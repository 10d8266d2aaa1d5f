"""Tests for the Pydantic Bot API models the router consumes."""

import pytest
from pydantic import ValidationError

from sdk.models import CallbackQuery, Chat, InlineQuery, Message, Update, User, Venue


# ── User / Chat ──────────────────────────────────────────────────────────────


class TestUserModel:
    """Validate the User schema."""

    def test_minimal_user(self) -> None:
        u = User(id=42, is_bot=False, first_name="Ada")
        assert u.id == 42
        assert u.last_name is None
        assert u.username is None

    def test_missing_required_raises(self) -> None:
        with pytest.raises(ValidationError):
            User(id=1, is_bot=False)  # missing first_name


class TestChatModel:
    def test_supergroup(self) -> None:
        chat = Chat(id=-1001234567890, type="supergroup", title="Devs")
        assert chat.id == -1001234567890
        assert chat.title == "Devs"


# ── Message ──────────────────────────────────────────────────────────────────


class TestMessageModel:
    """The ``from`` key maps to ``from_field``."""

    def test_from_alias(self) -> None:
        msg = Message.model_validate({
            "message_id": 1,
            "date": 0,
            "chat": {"id": 5, "type": "private"},
            "from": {"id": 7, "is_bot": False, "first_name": "Ada"},
            "text": "hi",
        })
        assert msg.from_field is not None
        assert msg.from_field.id == 7

    def test_populate_by_name(self) -> None:
        msg = Message(
            message_id=1,
            date=0,
            chat=Chat(id=5, type="private"),
            from_field=User(id=7, is_bot=False, first_name="Ada"),
        )
        assert msg.from_field.first_name == "Ada"

    def test_unknown_fields_ignored(self) -> None:
        msg = Message.model_validate({
            "message_id": 1,
            "date": 0,
            "chat": {"id": 5, "type": "private"},
            "story": {"id": 3},
        })
        assert msg.text is None

    def test_venue_requires_location(self) -> None:
        with pytest.raises(ValidationError):
            Venue(title="Cafe", address="Main St 1")


# ── Update ───────────────────────────────────────────────────────────────────


class TestUpdateModel:
    def test_empty_update(self) -> None:
        update = Update(update_id=1)
        assert update.message is None
        assert update.effective_message is None

    @pytest.mark.parametrize("field", ["message", "edited_message", "channel_post", "edited_channel_post"])
    def test_effective_message(self, field: str) -> None:
        update = Update.model_validate({
            "update_id": 1,
            field: {"message_id": 9, "date": 0, "chat": {"id": 5, "type": "channel"}},
        })
        assert update.effective_message is not None
        assert update.effective_message.message_id == 9

    def test_callback_query(self) -> None:
        update = Update.model_validate({
            "update_id": 2,
            "callback_query": {
                "id": "cb",
                "from": {"id": 7, "is_bot": False, "first_name": "Ada"},
                "chat_instance": "ci",
                "data": "confirm_1",
            },
        })
        assert isinstance(update.callback_query, CallbackQuery)
        assert update.callback_query.from_field.id == 7
        assert update.callback_query.message is None

    def test_inline_query_requires_sender(self) -> None:
        with pytest.raises(ValidationError):
            InlineQuery.model_validate({"id": "iq", "query": "gif", "offset": ""})

    def test_missing_update_id_raises(self) -> None:
        with pytest.raises(ValidationError):
            Update.model_validate({"message": None})
