from datetime import timedelta

import pytest

from parrotbot.errors import NothingPlayingError, NotInRangeError, OtherError, ParrotError
from parrotbot.message import (
    PLAY_ALL_FAILED,
    PLAY_PLAYLIST,
    PLAY_QUEUE,
    PLAY_TOP,
    SPOTIFY_AUTH_FAILED,
    TRACK_DURATION,
    TRACK_TIME_TO_PLAY,
    MessageKind,
    ParrotMessage,
)
from parrotbot.play import (
    DomainBannedError,
    calculate_time_until_play,
    create_queued_embed,
    insert_track,
    is_domain_blocked,
    play,
    play_response,
    resolve_query,
    skip_threshold,
    voteskip,
)
from parrotbot.query import Mode, QueryKind, QueryType
from parrotbot.queue import Track, TrackQueue
from parrotbot.settings import GuildCache, GuildSettings
from parrotbot.utils import TrackMetadata


def make_track(title, seconds=60, position=0):
    duration = timedelta(seconds=seconds) if seconds is not None else None
    return Track(
        TrackMetadata(
            title=title,
            source_url=f"https://www.youtube.com/watch?v={title}",
            duration=duration,
        ),
        position=timedelta(seconds=position),
    )


def loader(query):
    if "broken" in query.value:
        raise ParrotError("cannot load")
    return make_track(query.value)


def titles(queue):
    return [track.metadata.title for track in queue]


class FakeSpotify:
    def extract(self, query):
        return QueryType(QueryKind.KEYWORDS, query)


def test_default_settings_allow_youtube_only():
    settings = GuildSettings(1)
    assert not is_domain_blocked(settings, "youtube.com")
    assert not is_domain_blocked(settings, "music.youtube.com")
    assert is_domain_blocked(settings, "example.com")


def test_banned_list_allows_everything_else():
    settings = GuildSettings(1, allowed_domains=set(), banned_domains={"example.com"})
    assert is_domain_blocked(settings, "example.com")
    assert not is_domain_blocked(settings, "example.org")


def test_resolve_keywords():
    query = resolve_query("never gonna", GuildSettings(1))
    assert query == QueryType(QueryKind.KEYWORDS, "never gonna")


def test_resolve_keywords_blocked_when_youtube_banned():
    settings = GuildSettings(1, banned_domains={"youtube.com"})
    with pytest.raises(DomainBannedError) as info:
        resolve_query("never gonna", settings)
    assert info.value.domain == "youtube.com"
    assert str(info.value) == str(
        ParrotMessage(MessageKind.PLAY_DOMAIN_BANNED, domain="youtube.com")
    )


def test_resolve_playlist_link():
    url = "https://www.youtube.com/watch?v=x&list=y"
    assert resolve_query(url, GuildSettings(1)) == QueryType(QueryKind.PLAYLIST_LINK, url)


def test_resolve_blocked_host():
    with pytest.raises(DomainBannedError) as info:
        resolve_query("https://example.com/video", GuildSettings(1))
    assert info.value.domain == "example.com"


def test_resolve_spotify_without_auth():
    with pytest.raises(OtherError) as info:
        resolve_query("https://open.spotify.com/track/abc", GuildSettings(1))
    assert str(info.value) == SPOTIFY_AUTH_FAILED


def test_resolve_spotify_uses_client():
    url = "https://open.spotify.com/track/abc"
    assert resolve_query(url, GuildSettings(1), FakeSpotify()) == QueryType(
        QueryKind.KEYWORDS, url
    )


def test_resolve_url_without_host():
    with pytest.raises(OtherError) as info:
        resolve_query("mailto:someone", GuildSettings(1))
    assert info.value == OtherError("Something went wrong while parsing your query!")


def test_time_until_play_empty_and_livestream():
    assert calculate_time_until_play([], Mode.END) is None
    assert calculate_time_until_play([make_track("a", None)], Mode.END) == timedelta.max
    queue = [make_track("a"), make_track("live", None), make_track("new")]
    assert calculate_time_until_play(queue, Mode.END) == timedelta.max


def test_time_until_play_next():
    queue = [make_track("a", 100, 30), make_track("b", 60)]
    assert calculate_time_until_play(queue, Mode.NEXT) == timedelta(seconds=70)


def test_time_until_play_end():
    queue = [make_track("a", 100, 30), make_track("b", 60), make_track("new", 45)]
    assert calculate_time_until_play(queue, Mode.END) == timedelta(seconds=130)


def test_create_queued_embed():
    track = make_track("song")
    embed = create_queued_embed(PLAY_QUEUE, track, timedelta(seconds=5))
    assert embed.fields[0].name == PLAY_QUEUE
    assert "song" in embed.fields[0].value
    assert track.metadata.source_url in embed.fields[0].value
    assert embed.footer_text.startswith(TRACK_DURATION)
    assert TRACK_TIME_TO_PLAY in embed.footer_text


def test_insert_track_out_of_range():
    queue = TrackQueue([make_track("a"), make_track("b")])
    with pytest.raises(NotInRangeError):
        insert_track(queue, make_track("c"), 5)


def test_play_on_empty_queue_shows_now_playing():
    queue = TrackQueue()
    embed = play(queue, QueryType(QueryKind.KEYWORDS, "song"), Mode.END, loader)
    assert titles(queue) == ["song"]
    assert embed.title == "song"


def test_play_end_appends():
    queue = TrackQueue([make_track("a"), make_track("b")])
    embed = play(queue, QueryType(QueryKind.KEYWORDS, "song"), Mode.END, loader)
    assert titles(queue) == ["a", "b", "song"]
    assert embed.fields[0].name == PLAY_QUEUE


def test_play_next_inserts_after_current():
    queue = TrackQueue([make_track("a"), make_track("b")])
    embed = play(queue, QueryType(QueryKind.KEYWORDS, "song"), Mode.NEXT, loader)
    assert titles(queue) == ["a", "song", "b"]
    assert embed.fields[0].name == PLAY_TOP


def test_play_jump_replaces_current():
    queue = TrackQueue([make_track("a"), make_track("b"), make_track("c")])
    result = play(queue, QueryType(QueryKind.KEYWORDS, "x"), Mode.JUMP, loader)
    assert titles(queue) == ["x", "b", "c"]
    assert result is None


def test_play_playlist_skips_failures():
    queue = TrackQueue()

    def playlist_loader(url, mode):
        return ["one", "broken", "two"]

    query = QueryType(QueryKind.PLAYLIST_LINK, "https://www.youtube.com/playlist?list=p")
    embed = play(queue, query, Mode.END, loader, playlist_loader)
    assert titles(queue) == ["one", "two"]
    assert embed.description == PLAY_PLAYLIST


def test_play_playlist_fetch_failure():
    query = QueryType(QueryKind.PLAYLIST_LINK, "https://www.youtube.com/playlist?list=p")
    with pytest.raises(OtherError) as info:
        play(TrackQueue(), query, Mode.END, loader, lambda url, mode: None)
    assert info.value == OtherError("failed to fetch playlist")


def test_play_reverse_passes_mode():
    seen = []

    def playlist_loader(url, mode):
        seen.append(mode)
        return ["one"]

    queue = TrackQueue()
    play(queue, QueryType(QueryKind.VIDEO_LINK, "https://youtu.be/v"), Mode.REVERSE,
         loader, playlist_loader)
    assert seen == [Mode.REVERSE]
    assert titles(queue) == ["one"]


def test_play_all_with_keywords_fails():
    queue = TrackQueue([make_track("a")])
    embed = play(queue, QueryType(QueryKind.KEYWORDS, "song"), Mode.ALL, loader)
    assert embed.description == PLAY_ALL_FAILED
    assert titles(queue) == ["a"]


def test_play_keyword_list_error_propagates():
    query = QueryType(QueryKind.KEYWORD_LIST, ("fine", "broken"))
    queue = TrackQueue()
    with pytest.raises(ParrotError):
        play(queue, query, Mode.END, loader)
    assert titles(queue) == ["fine"]


def test_play_response_empty_queue():
    with pytest.raises(NothingPlayingError):
        play_response(TrackQueue(), QueryType(QueryKind.KEYWORDS, "x"), Mode.END)


def test_skip_threshold_counts_channel_members():
    states = {1: "a", 2: "a", 3: "a", 4: "b", 5: None}
    assert skip_threshold(states, "a") == 1


def test_voteskip_skips_when_enough_votes():
    queue = TrackQueue([make_track("a"), make_track("b")])
    cache = GuildCache()
    message = voteskip(queue, cache, {1: "c", 2: "c"}, "c", 1)
    assert message.kind is MessageKind.SKIP_TO
    assert message.title == "b"
    assert titles(queue) == ["b"]


def test_voteskip_counts_missing_votes():
    queue = TrackQueue([make_track("a"), make_track("b")])
    cache = GuildCache()
    states = {n: "c" for n in range(1, 7)}
    message = voteskip(queue, cache, states, "c", 1)
    assert message.kind is MessageKind.VOTE_SKIP
    assert message.missing == skip_threshold(states, "c") - 1
    assert message.mention == "<@1>"
    assert titles(queue) == ["a", "b"]


def test_voteskip_nothing_playing():
    with pytest.raises(NothingPlayingError):
        voteskip(TrackQueue(), GuildCache(), {}, "c", 1)