"""Where the user and the bot sit in a guild's voice channels."""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from enum import Enum, auto


class ConnectionKind(Enum):
    USER = auto()
    BOT = auto()
    MUTUAL = auto()
    SEPARATE = auto()
    NEITHER = auto()


@dataclass(frozen=True)
class Connection:
    """How the user and the bot are connected, with their channels."""

    kind: ConnectionKind
    bot_channel: Hashable | None = None
    user_channel: Hashable | None = None


def get_voice_channel_for_user(
    voice_states: Mapping[Hashable, Hashable | None], user_id: Hashable
) -> Hashable | None:
    """The voice channel a user is in, or None."""
    return voice_states.get(user_id)


def check_voice_connections(
    voice_states: Mapping[Hashable, Hashable | None],
    user_id: Hashable,
    bot_id: Hashable,
) -> Connection:
    """Classify the user's and the bot's voice connections."""
    user_channel = get_voice_channel_for_user(voice_states, user_id)
    bot_channel = get_voice_channel_for_user(voice_states, bot_id)

    if bot_channel is not None and user_channel is not None:
        kind = ConnectionKind.MUTUAL if bot_channel == user_channel else ConnectionKind.SEPARATE
        return Connection(kind, bot_channel, user_channel)
    if bot_channel is not None:
        return Connection(ConnectionKind.BOT, bot_channel=bot_channel)
    if user_channel is not None:
        return Connection(ConnectionKind.USER, user_channel=user_channel)
    return Connection(ConnectionKind.NEITHER)