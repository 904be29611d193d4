"""The track queue of a guild and the commands and listings built on it."""

from __future__ import annotations

import random
import re
from collections.abc import Iterator, MutableSequence, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum, auto
from typing import Any, Protocol, TypeVar

from parrotbot.errors import (
    NothingPlayingError,
    NotInRangeError,
    OtherError,
    QueueEmptyError,
)
from parrotbot.message import (
    FAIL_MINUTES_PARSING,
    FAIL_SECONDS_PARSING,
    QUEUE_NO_SONGS,
    QUEUE_NOTHING_IS_PLAYING,
    QUEUE_NOW_PLAYING,
    QUEUE_PAGE,
    QUEUE_PAGE_OF,
    QUEUE_UP_NEXT,
    REMOVED_QUEUE,
    MessageKind,
    ParrotMessage,
)
from parrotbot.utils import (
    Embed,
    EmbedField,
    TrackMetadata,
    get_human_readable_timestamp,
    message_embed,
)

EMBED_PAGE_SIZE = 6
EMBED_TIMEOUT = 3600

NAV_BUTTON_LABELS = ("<<", "<", ">", ">>")

_BUTTON_COMPONENT = 2
_ACTION_ROW_COMPONENT = 1
_PRIMARY_STYLE = 1

_UNSIGNED = re.compile(r"\+?[0-9]+")

T = TypeVar("T")


class _RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


class PlayState(Enum):
    PLAY = auto()
    PAUSE = auto()
    STOP = auto()


@dataclass(eq=False)
class Track:
    """A queued track: what it is, where playback is and whether it loops."""

    metadata: TrackMetadata
    source: Any = None
    position: timedelta = field(default_factory=timedelta)
    state: PlayState = PlayState.PAUSE
    looping: bool = False

    def toggle_loop(self) -> ParrotMessage:
        """Switch looping on or off and describe the change."""
        self.looping = not self.looping
        kind = MessageKind.LOOP_ENABLE if self.looping else MessageKind.LOOP_DISABLE
        return ParrotMessage(kind)


class TrackQueue:
    """The tracks of a guild; the first one is the one being played."""

    def __init__(self, tracks: Sequence[Track] = ()) -> None:
        self._tracks: list[Track] = []
        for track in tracks:
            self.enqueue(track)

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))

    def current(self) -> Track | None:
        """The track being played, if any."""
        return self._tracks[0] if self._tracks else None

    def current_queue(self) -> list[Track]:
        """A snapshot of the queue."""
        return list(self._tracks)

    def is_empty(self) -> bool:
        return not self._tracks

    def _start_head(self) -> None:
        head = self.current()
        if head is not None and head.state is not PlayState.STOP:
            head.state = PlayState.PLAY

    def _require_current(self) -> Track:
        head = self.current()
        if head is None:
            raise NothingPlayingError()
        return head

    def enqueue(self, track: Track) -> list[Track]:
        """Add a track at the end; it starts playing if the queue was empty."""
        was_empty = self.is_empty()
        self._tracks.append(track)
        if was_empty:
            self._start_head()
        return self.current_queue()

    def insert(self, index: int, track: Track) -> list[Track]:
        """Put a track at ``index`` among the tracks that are not playing."""
        if len(self._tracks) <= 1:
            return self.enqueue(track)
        if not 1 <= index <= len(self._tracks):
            raise NotInRangeError("index", index, 1, len(self._tracks))
        self._tracks.insert(index, track)
        return self.current_queue()

    def dequeue(self, index: int) -> Track | None:
        """Remove and return the track at ``index``; None if there is none."""
        if not 0 <= index < len(self._tracks):
            return None
        return self._tracks.pop(index)

    def pause(self) -> ParrotMessage:
        self._require_current().state = PlayState.PAUSE
        return ParrotMessage(MessageKind.PAUSE)

    def resume(self) -> ParrotMessage:
        self._require_current().state = PlayState.PLAY
        return ParrotMessage(MessageKind.RESUME)

    def stop(self) -> ParrotMessage:
        """Stop playback and empty the queue."""
        self._require_current()
        for track in self._tracks:
            track.state = PlayState.STOP
        self._tracks.clear()
        return ParrotMessage(MessageKind.STOP)

    def force_skip_top_track(self) -> list[Track]:
        """Stop and drop the playing track, then play the next one."""
        head = self._require_current()
        head.state = PlayState.STOP
        self.dequeue(0)
        self._start_head()
        return self.current_queue()

    def skip(self, to_skip: int = 1) -> ParrotMessage:
        """Skip ``to_skip`` tracks, the playing one included."""
        self._require_current()
        if to_skip < 1:
            raise NotInRangeError("to", to_skip, 1, len(self._tracks))
        tracks_to_skip = min(to_skip, len(self._tracks))
        del self._tracks[1:tracks_to_skip]
        self.force_skip_top_track()
        return skip_response(self, tracks_to_skip)

    def clear(self) -> ParrotMessage:
        """Drop every track but the playing one."""
        if len(self._tracks) <= 1:
            raise QueueEmptyError()
        del self._tracks[1:]
        return ParrotMessage(MessageKind.CLEAR)

    def remove(self, index: int, until: int | None = None) -> Embed:
        """Remove the track at ``index``, or the tracks from ``index`` to ``until``."""
        queue_len = len(self._tracks)
        remove_until = min(index if until is None else until, max(queue_len - 1, 0))

        if queue_len <= 1:
            raise QueueEmptyError()
        if not 1 <= index < queue_len:
            raise NotInRangeError("index", index, 1, queue_len)
        if remove_until < index:
            raise NotInRangeError("until", remove_until, index, queue_len)

        track = self._tracks[index]
        del self._tracks[index : remove_until + 1]

        if remove_until == index:
            return create_remove_enqueued_embed(track)
        return message_embed(ParrotMessage(MessageKind.REMOVE_MULTIPLE))

    def shuffle(self, rng: _RandomSource | None = None) -> ParrotMessage:
        """Shuffle the tracks that are not playing."""
        rest = self._tracks[1:]
        fisher_yates(rest, rng)
        self._tracks[1:] = rest
        return ParrotMessage(MessageKind.SHUFFLE)

    def seek(self, timestamp: str) -> ParrotMessage:
        """Move the playing track to a ``minutes:seconds`` position."""
        position = parse_seek_timestamp(timestamp)
        self._require_current().position = position
        return ParrotMessage(MessageKind.SEEK, timestamp=timestamp)

    def rotate(self, n: int) -> list[Track]:
        """Rotate the tracks that are not playing ``n`` places to the right."""
        if len(self._tracks) <= 2:
            raise OtherError("cannot rotate queues smaller than 3 tracks")
        rest = self._tracks[1:]
        shift = n % len(rest)
        if shift:
            rest = rest[-shift:] + rest[:-shift]
        self._tracks[1:] = rest
        return self.current_queue()


def parse_seek_timestamp(timestamp: str) -> timedelta:
    """Parse ``minutes:seconds``; anything after a second colon is ignored."""
    parts = timestamp.split(":")
    minutes = parts[0]
    if not _UNSIGNED.fullmatch(minutes):
        raise OtherError(FAIL_MINUTES_PARSING)
    seconds = parts[1] if len(parts) > 1 else None
    if seconds is None or not _UNSIGNED.fullmatch(seconds):
        raise OtherError(FAIL_SECONDS_PARSING)
    return timedelta(minutes=int(minutes), seconds=int(seconds))


def fisher_yates(values: MutableSequence[T], rng: _RandomSource | None = None) -> None:
    """Shuffle ``values`` in place."""
    source = random if rng is None else rng
    for index in reversed(range(1, len(values))):
        other = source.randrange(index + 1)
        values[index], values[other] = values[other], values[index]


def calculate_num_pages(tracks: Sequence[Track]) -> int:
    """How many pages the tracks after the playing one fill; at least one."""
    upcoming = len(tracks) - 1
    return max(1, -(-upcoming // EMBED_PAGE_SIZE))


def _link(track: Track) -> str:
    meta = track.metadata
    return f"[{meta.title}]({meta.source_url}) • `{get_human_readable_timestamp(meta.duration)}`"


def build_queue_page(tracks: Sequence[Track], page: int) -> str:
    """The listing of upcoming tracks on ``page``."""
    start_idx = EMBED_PAGE_SIZE * page
    shown = tracks[start_idx + 1 : start_idx + 1 + EMBED_PAGE_SIZE]
    if not shown:
        return QUEUE_NO_SONGS
    return "".join(
        f"`{number}.` {_link(track)}\n"
        for number, track in enumerate(shown, start=start_idx + 1)
    )


def create_queue_embed(tracks: Sequence[Track], page: int) -> Embed:
    """The queue listing: the playing track, a page of upcoming ones and a page footer."""
    embed = Embed()
    if tracks:
        embed.thumbnail = tracks[0].metadata.thumbnail
        description = _link(tracks[0])
    else:
        description = QUEUE_NOTHING_IS_PLAYING

    embed.fields.append(EmbedField(QUEUE_NOW_PLAYING, description, False))
    embed.fields.append(EmbedField(QUEUE_UP_NEXT, build_queue_page(tracks, page), False))
    embed.footer_text = (
        f"{QUEUE_PAGE} {page + 1} {QUEUE_PAGE_OF} {calculate_num_pages(tracks)}"
    )
    return embed


def build_nav_buttons(page: int, num_pages: int) -> dict[str, Any]:
    """An action row of page navigation buttons, as a message component."""
    cant_left = page < 1
    cant_right = page >= num_pages - 1
    disabled = (cant_left, cant_left, cant_right, cant_right)
    return {
        "type": _ACTION_ROW_COMPONENT,
        "components": [
            {
                "type": _BUTTON_COMPONENT,
                "style": _PRIMARY_STYLE,
                "label": label,
                "custom_id": label.lower(),
                "disabled": is_disabled,
            }
            for label, is_disabled in zip(NAV_BUTTON_LABELS, disabled)
        ],
    }


def next_page(button: str, page: int, num_pages: int) -> int | None:
    """The page a navigation button leads to; None for an unknown button."""
    last = num_pages - 1
    if button == "<<":
        return 0
    if button == "<":
        return min(max(page - 1, 0), last)
    if button == ">":
        return min(page + 1, last)
    if button == ">>":
        return last
    return None


def create_remove_enqueued_embed(track: Track) -> Embed:
    """The reply telling which track was removed."""
    meta = track.metadata
    return Embed(
        thumbnail=meta.thumbnail,
        fields=[EmbedField(REMOVED_QUEUE, f"[**{meta.title}**]({meta.source_url})", False)],
    )


def skip_response(queue: TrackQueue, tracks_to_skip: int) -> ParrotMessage:
    """The reply after skipping: the new track, or that nothing is left."""
    track = queue.current()
    if track is not None:
        return ParrotMessage(
            MessageKind.SKIP_TO,
            title=track.metadata.title,
            url=track.metadata.source_url,
        )
    if tracks_to_skip > 1:
        return ParrotMessage(MessageKind.SKIP_ALL)
    return ParrotMessage(MessageKind.SKIP)