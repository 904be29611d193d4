"""Resolving play requests, queueing their tracks and voting to skip."""

from __future__ import annotations

import re
from collections.abc import Callable, Hashable, Mapping, Sequence
from datetime import timedelta
from typing import Protocol
from urllib.parse import urlsplit

from parrotbot.errors import NothingPlayingError, OtherError, ParrotError
from parrotbot.message import (
    PLAY_QUEUE,
    PLAY_TOP,
    SPOTIFY_AUTH_FAILED,
    TRACK_DURATION,
    TRACK_TIME_TO_PLAY,
    MessageKind,
    ParrotMessage,
)
from parrotbot.query import Mode, QueryKind, QueryType
from parrotbot.queue import Track, TrackQueue, skip_response
from parrotbot.settings import GuildCache, GuildSettings
from parrotbot.utils import (
    Embed,
    EmbedField,
    compare_domains,
    create_now_playing_embed,
    get_human_readable_timestamp,
    message_embed,
)
from parrotbot import youtube

SPOTIFY_HOST = "open.spotify.com"
KEYWORD_DOMAIN = "youtube.com"
QUERY_PARSE_FAILED = "Something went wrong while parsing your query!"
PLAYLIST_FETCH_FAILED = "failed to fetch playlist"

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*:")

TrackLoader = Callable[[QueryType], Track]
PlaylistLoader = Callable[[str, Mode], "list[str] | None"]


class _Extractor(Protocol):
    def extract(self, query: str) -> QueryType: ...


class DomainBannedError(ParrotError):
    """The requested domain is not allowed in this guild."""

    def __init__(self, domain: str) -> None:
        super().__init__(str(ParrotMessage(MessageKind.PLAY_DOMAIN_BANNED, domain=domain)))
        self.domain = domain


def is_domain_blocked(settings: GuildSettings, domain: str) -> bool:
    """Whether the guild's allowed and banned lists forbid ``domain``."""
    is_allowed = any(compare_domains(d, domain) for d in settings.allowed_domains)
    is_banned = any(compare_domains(d, domain) for d in settings.banned_domains)
    return is_banned or (not settings.banned_domains and not is_allowed)


def resolve_query(
    url: str, settings: GuildSettings, spotify: _Extractor | None = None
) -> QueryType:
    """Work out what a play request asks for, enforcing the guild's domain lists."""
    if not _SCHEME.match(url):
        banned = settings.banned_domains
        if KEYWORD_DOMAIN in banned or (
            not banned and KEYWORD_DOMAIN not in settings.allowed_domains
        ):
            raise DomainBannedError(KEYWORD_DOMAIN)
        return QueryType(QueryKind.KEYWORDS, url)

    try:
        host = urlsplit(url).hostname
    except ValueError as err:
        raise OtherError(QUERY_PARSE_FAILED) from err
    if not host:
        raise OtherError(QUERY_PARSE_FAILED)
    if host == SPOTIFY_HOST:
        if spotify is None:
            raise OtherError(SPOTIFY_AUTH_FAILED)
        return spotify.extract(url)
    if is_domain_blocked(settings, host):
        raise DomainBannedError(host)
    return youtube.extract(url)


def calculate_time_until_play(queue: Sequence[Track], mode: Mode) -> timedelta | None:
    """How long until the newly queued track plays; timedelta.max if never."""
    if not queue:
        return None
    top = queue[0]
    if top.metadata.duration is None:
        return timedelta.max
    remaining = max(top.metadata.duration - top.position, timedelta(0))

    if mode is Mode.NEXT:
        return remaining

    center = queue[1:-1]
    durations = [track.metadata.duration for track in center]
    # a livestream ahead of the new track means it will never play
    if any(duration is None for duration in durations):
        return timedelta.max
    return sum(durations, timedelta(0)) + remaining


def create_queued_embed(title: str, track: Track, estimated_time: timedelta | None) -> Embed:
    """The reply telling where a track was queued and when it will play."""
    meta = track.metadata
    footer = (
        f"{TRACK_DURATION}{get_human_readable_timestamp(meta.duration)}\n"
        f"{TRACK_TIME_TO_PLAY}{get_human_readable_timestamp(estimated_time)}"
    )
    return Embed(
        thumbnail=meta.thumbnail,
        fields=[EmbedField(title, f"[**{meta.title}**]({meta.source_url})", False)],
        footer_text=footer,
    )


def insert_track(queue: TrackQueue, track: Track, idx: int) -> list[Track]:
    """Put a track at ``idx``, or at the end if nothing else is queued."""
    return queue.insert(idx, track)


def _load_track(query: QueryType) -> Track:
    if query.kind is QueryKind.VIDEO_LINK:
        source = youtube.YouTubeRestartable.ytdl(query.value)
    elif query.kind is QueryKind.KEYWORDS:
        source = youtube.YouTubeRestartable.ytdl_search(query.value)
    else:
        raise ValueError(f"cannot load a single track from {query.kind.name}")
    return Track(metadata=source.metadata(), source=source)


def _playlist_urls(playlist_loader: PlaylistLoader, url: str, mode: Mode) -> list[str]:
    urls = playlist_loader(url, mode)
    if urls is None:
        raise OtherError(PLAYLIST_FETCH_FAILED)
    return urls


def _video(url: str) -> QueryType:
    return QueryType(QueryKind.VIDEO_LINK, url)


def _keywords(text: str) -> QueryType:
    return QueryType(QueryKind.KEYWORDS, text)


def play(
    queue: TrackQueue,
    query: QueryType,
    mode: Mode,
    loader: TrackLoader = _load_track,
    playlist_loader: PlaylistLoader = youtube.ytdl_playlist,
) -> Embed | None:
    """Queue what ``query`` refers to as ``mode`` asks and return the reply."""
    queue_was_empty = queue.is_empty()
    single = query.kind in (QueryKind.KEYWORDS, QueryKind.VIDEO_LINK)

    if mode is Mode.END:
        if single:
            queue.enqueue(loader(query))
        elif query.kind is QueryKind.PLAYLIST_LINK:
            for url in _playlist_urls(playlist_loader, query.value, mode):
                try:
                    queue.enqueue(loader(_video(url)))
                except ParrotError:
                    continue
        else:
            for keywords in query.value:
                queue.enqueue(loader(_keywords(keywords)))

    elif mode is Mode.NEXT:
        if single:
            insert_track(queue, loader(query), 1)
        elif query.kind is QueryKind.PLAYLIST_LINK:
            for idx, url in enumerate(_playlist_urls(playlist_loader, query.value, mode)):
                try:
                    insert_track(queue, loader(_video(url)), idx + 1)
                except ParrotError:
                    continue
        else:
            for idx, keywords in enumerate(query.value):
                insert_track(queue, loader(_keywords(keywords)), idx + 1)

    elif mode is Mode.JUMP:
        if single:
            queue.enqueue(loader(query))
            if not queue_was_empty:
                try:
                    queue.rotate(1)
                except OtherError:
                    pass
                queue.force_skip_top_track()
        else:
            from_playlist = query.kind is QueryKind.PLAYLIST_LINK
            items = (
                [_video(url) for url in _playlist_urls(playlist_loader, query.value, mode)]
                if from_playlist
                else [_keywords(keywords) for keywords in query.value]
            )
            insert_idx = 1
            for i, item in enumerate(items):
                try:
                    insert_track(queue, loader(item), insert_idx)
                except ParrotError:
                    if from_playlist:
                        continue
                    raise
                if i == 0 and not queue_was_empty:
                    queue.force_skip_top_track()
                else:
                    insert_idx += 1

    else:
        if query.kind in (QueryKind.VIDEO_LINK, QueryKind.PLAYLIST_LINK):
            for url in _playlist_urls(playlist_loader, query.value, mode):
                try:
                    queue.enqueue(loader(_video(url)))
                except ParrotError:
                    continue
        elif query.kind is QueryKind.KEYWORD_LIST:
            for keywords in query.value:
                queue.enqueue(loader(_keywords(keywords)))
        else:
            return message_embed(ParrotMessage(MessageKind.PLAY_ALL_FAILED))

    return play_response(queue, query, mode)


def play_response(queue: TrackQueue, query: QueryType, mode: Mode) -> Embed | None:
    """The reply once tracks are queued; None when the search notice should stay."""
    tracks = queue.current_queue()
    if not tracks:
        raise NothingPlayingError()
    if len(tracks) == 1:
        return create_now_playing_embed(tracks[0].metadata, tracks[0].position)

    estimated_time = calculate_time_until_play(tracks, mode)
    single = query.kind in (QueryKind.KEYWORDS, QueryKind.VIDEO_LINK)
    if single and mode is Mode.NEXT:
        return create_queued_embed(PLAY_TOP, tracks[1], estimated_time)
    if single and mode is Mode.END:
        return create_queued_embed(PLAY_QUEUE, tracks[-1], estimated_time)
    if not single:
        return message_embed(ParrotMessage(MessageKind.PLAYLIST_QUEUED))
    return None


def skip_threshold(
    voice_states: Mapping[Hashable, Hashable | None], channel_id: Hashable
) -> int:
    """Votes needed to skip: half of the users in the bot's channel."""
    return sum(1 for channel in voice_states.values() if channel == channel_id) // 2


def voteskip(
    queue: TrackQueue,
    cache: GuildCache,
    voice_states: Mapping[Hashable, Hashable | None],
    bot_channel_id: Hashable,
    user_id: Hashable,
) -> ParrotMessage:
    """Record a vote to skip and skip once enough users have voted."""
    if queue.is_empty():
        raise NothingPlayingError()
    cache.current_skip_votes.add(user_id)
    threshold = skip_threshold(voice_states, bot_channel_id)
    votes = len(cache.current_skip_votes)
    if votes >= threshold:
        queue.force_skip_top_track()
        return skip_response(queue, 1)
    return ParrotMessage(
        MessageKind.VOTE_SKIP, mention=f"<@{user_id}>", missing=threshold - votes
    )