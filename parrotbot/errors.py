"""Errors raised by the bot, whose text is sent back as the reply."""

from __future__ import annotations

from typing import Any, TypeVar

from parrotbot.message import (
    FAIL_ANOTHER_CHANNEL,
    FAIL_AUTHOR_DISCONNECTED,
    FAIL_AUTHOR_NOT_FOUND,
    FAIL_NO_VOICE_CONNECTION,
    FAIL_WRONG_CHANNEL,
    NOTHING_IS_PLAYING,
    QUEUE_IS_EMPTY,
    TRACK_INAPPROPRIATE,
    TRACK_NOT_FOUND,
)

T = TypeVar("T")

_AGE_GATE_TEXT = "Sign in to confirm your age"


class ParrotError(Exception):
    """Base error; its string form is the reply shown to the user."""

    def _key(self) -> tuple[Any, ...]:
        return self.args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParrotError):
            return NotImplemented
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self), self._key()))


class OtherError(ParrotError):
    """An error carrying its own message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class QueueEmptyError(ParrotError):
    def __init__(self) -> None:
        super().__init__(QUEUE_IS_EMPTY)


class NotInRangeError(ParrotError):
    """A numeric parameter fell outside its allowed range."""

    def __init__(self, param: str, value: int, lower: int, upper: int) -> None:
        super().__init__(f"`{param}` should be between {lower} and {upper} but was {value}")
        self.param = param
        self.value = value
        self.lower = lower
        self.upper = upper

    def _key(self) -> tuple[Any, ...]:
        return (self.param, self.value, self.lower, self.upper)


class NotConnectedError(ParrotError):
    def __init__(self) -> None:
        super().__init__(FAIL_NO_VOICE_CONNECTION)


class AuthorDisconnectedError(ParrotError):
    """The author is not in the channel the bot is in."""

    def __init__(self, mention: str) -> None:
        super().__init__(f"{FAIL_AUTHOR_DISCONNECTED} {mention}")
        self.mention = mention


class WrongVoiceChannelError(ParrotError):
    def __init__(self) -> None:
        super().__init__(FAIL_WRONG_CHANNEL)


class AuthorNotFoundError(ParrotError):
    def __init__(self) -> None:
        super().__init__(FAIL_AUTHOR_NOT_FOUND)


class NothingPlayingError(ParrotError):
    def __init__(self) -> None:
        super().__init__(NOTHING_IS_PLAYING)


class TrackFailError(ParrotError):
    """A track could not be loaded.

    When ``parsed_text`` is given the failure came from unreadable metadata,
    and the reply depends on whether the video is age restricted.
    """

    def __init__(self, reason: str, parsed_text: str | None = None) -> None:
        if parsed_text is None:
            text = reason
        elif _AGE_GATE_TEXT in parsed_text:
            text = TRACK_INAPPROPRIATE
        else:
            text = TRACK_NOT_FOUND
        super().__init__(text)
        self.reason = reason
        self.parsed_text = parsed_text

    def _key(self) -> tuple[Any, ...]:
        return ()


class AlreadyConnectedError(ParrotError):
    """The bot is already connected to another channel."""

    def __init__(self, mention: str) -> None:
        super().__init__(f"{FAIL_ANOTHER_CHANNEL} {mention}")
        self.mention = mention


def verify(value: T, error: ParrotError) -> T:
    """Return ``value`` unless it is False, None or an exception; then raise ``error``."""
    if value is False or value is None or isinstance(value, BaseException):
        raise error
    return value