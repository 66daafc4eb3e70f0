"""Tests for the message envelope."""

import time

import pytest
from pydantic import ValidationError

from netsync.messages import Message, MessageType, create_message, is_valid_message


class TestCreateMessage:
    """Tests for create_message."""

    def test_stamps_current_time(self):
        before = int(time.time() * 1000)
        message = create_message(MessageType.STATE_SYNC, {"tick": 1, "timestamp": 0})
        after = int(time.time() * 1000)

        assert message.type is MessageType.STATE_SYNC
        assert before <= message.timestamp <= after
        assert message.payload == {"tick": 1, "timestamp": 0}

    def test_type_from_string(self):
        assert create_message("PING", None).type is MessageType.PING

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_message("TELEPORT", {})

    def test_messages_are_frozen(self):
        message = create_message(MessageType.PONG, {})
        with pytest.raises(ValidationError):
            message.payload = {"changed": True}

    def test_serializes_type_as_string(self):
        data = create_message(MessageType.PLAYER_JOIN, {"playerId": "abc"}).model_dump(mode='json')
        assert data["type"] == "PLAYER_JOIN"


class TestIsValidMessage:
    """Tests for is_valid_message."""

    def test_message_instance(self):
        assert is_valid_message(create_message(MessageType.INPUT, {"keys": []}))

    def test_raw_mapping(self):
        assert is_valid_message({"type": "SCORE_UPDATE", "timestamp": 5, "payload": {"score": 1}})

    def test_null_payload_allowed(self):
        assert is_valid_message({"type": "PING", "timestamp": 5, "payload": None})

    @pytest.mark.parametrize("raw", [
        None,
        "STATE_SYNC",
        {"type": "STATE_SYNC", "timestamp": 5},
        {"type": "STATE_SYNC", "timestamp": 0, "payload": {}},
        {"type": "NOPE", "timestamp": 5, "payload": {}},
        {"timestamp": 5, "payload": {}},
    ])
    def test_invalid(self, raw):
        assert not is_valid_message(raw)

    def test_message_model_validates_raw(self):
        message = Message.model_validate({"type": "EXPLOSION", "timestamp": 9, "payload": {"x": 1}})
        assert message.type is MessageType.EXPLOSION
