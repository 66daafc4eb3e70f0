"""
Session Message Types

The envelope every peer-to-peer message travels in. Delta packets ride
inside STATE_SYNC messages; the other types carry lobby, input and event
traffic that the sync layer only routes.
"""

import time
from enum import Enum
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field


class MessageType(str, Enum):
    # Lobby messages
    PLAYER_JOIN = 'PLAYER_JOIN'
    PLAYER_LEAVE = 'PLAYER_LEAVE'
    PLAYER_READY = 'PLAYER_READY'
    START_GAME = 'START_GAME'

    # Game messages
    INPUT = 'INPUT'
    STATE_SYNC = 'STATE_SYNC'

    # Event messages
    EXPLOSION = 'EXPLOSION'
    SCORE_UPDATE = 'SCORE_UPDATE'

    # Connection messages
    PING = 'PING'
    PONG = 'PONG'


class Message(BaseModel):
    """
    Standard message envelope.

    Messages are immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    type: MessageType = Field(..., description="What the payload means")
    timestamp: int = Field(..., gt=0, description="Send time (epoch milliseconds)")
    payload: Any = Field(..., description="Type-specific content")


def create_message(message_type: Union[MessageType, str], payload: Any) -> Message:
    """Wrap a payload in a Message stamped with the current time."""
    return Message(
        type=MessageType(message_type),
        timestamp=int(time.time() * 1000),
        payload=payload,
    )


def is_valid_message(message: Any) -> bool:
    """Check that an incoming object has the Message envelope shape.

    Accepts Message instances or raw mappings. A raw mapping needs a known
    ``type``, a non-zero ``timestamp`` and a ``payload`` key (which may
    hold None).
    """
    if isinstance(message, Message):
        return True
    if not isinstance(message, Mapping):
        return False
    if 'payload' not in message or not message.get('timestamp'):
        return False
    try:
        MessageType(message.get('type'))
    except ValueError:
        return False
    return True
