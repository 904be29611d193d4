import pytest

from parrotbot import message as m
from parrotbot.message import MessageKind, ParrotMessage


@pytest.mark.parametrize(
    ("kind", "text"),
    [
        (MessageKind.AUTOPAUSE_OFF, m.AUTOPAUSE_OFF),
        (MessageKind.AUTOPAUSE_ON, m.AUTOPAUSE_ON),
        (MessageKind.CLEAR, m.CLEARED),
        (MessageKind.ERROR, m.ERROR),
        (MessageKind.LEAVING, m.LEAVING),
        (MessageKind.LOOP_DISABLE, m.LOOP_DISABLED),
        (MessageKind.LOOP_ENABLE, m.LOOP_ENABLED),
        (MessageKind.NOW_PLAYING, m.QUEUE_NOW_PLAYING),
        (MessageKind.PAUSE, m.PAUSED),
        (MessageKind.PLAYLIST_QUEUED, m.PLAY_PLAYLIST),
        (MessageKind.PLAY_ALL_FAILED, m.PLAY_ALL_FAILED),
        (MessageKind.SEARCH, m.SEARCHING),
        (MessageKind.REMOVE_MULTIPLE, m.REMOVED_QUEUE_MULTIPLE),
        (MessageKind.RESUME, m.RESUMED),
        (MessageKind.SHUFFLE, m.SHUFFLED_SUCCESS),
        (MessageKind.STOP, m.STOPPED),
        (MessageKind.SKIP, m.SKIPPED),
        (MessageKind.SKIP_ALL, m.SKIPPED_ALL),
    ],
)
def test_static_messages(kind, text):
    assert str(ParrotMessage(kind)) == text


def test_domain_banned_message():
    text = str(ParrotMessage(MessageKind.PLAY_DOMAIN_BANNED, domain="example.org"))
    assert text.startswith("⚠️ **example.org** ")
    assert text.endswith(m.PLAY_FAILED_BLOCKED_DOMAIN)


def test_seek_message():
    text = str(ParrotMessage(MessageKind.SEEK, timestamp="01:30"))
    assert text == "⏩ Seeked current track to **01:30**!"


def test_skip_to_message():
    text = str(ParrotMessage(MessageKind.SKIP_TO, title="Song", url="https://example.com/v"))
    assert text.startswith(m.SKIPPED_TO)
    assert "[**Song**](https://example.com/v)" in text


def test_summon_message():
    text = str(ParrotMessage(MessageKind.SUMMON, mention="<#42>"))
    assert text.startswith(m.JOINING)
    assert "**<#42>**" in text


def test_vote_skip_message():
    text = str(ParrotMessage(MessageKind.VOTE_SKIP, mention="<@7>", missing=3))
    assert text.startswith(m.SKIP_VOTE_EMOJI + "<@7>")
    assert m.SKIP_VOTE_USER in text
    assert text.endswith(f"3 {m.SKIP_VOTE_MISSING}")


def test_version_message():
    text = str(ParrotMessage(MessageKind.VERSION, current="1.2.3"))
    first, second = text.split("\n")
    assert first.startswith(f"{m.VERSION} [1.2.3](")
    assert first.endswith("/tag/v1.2.3)")
    assert second.startswith(m.VERSION_LATEST)
    assert second.endswith("/latest)")


@pytest.mark.parametrize(
    "kind",
    [
        MessageKind.PLAY_DOMAIN_BANNED,
        MessageKind.SEEK,
        MessageKind.SKIP_TO,
        MessageKind.SUMMON,
        MessageKind.VERSION,
        MessageKind.VOTE_SKIP,
    ],
)
def test_missing_fields_raise(kind):
    with pytest.raises(ValueError):
        ParrotMessage(kind)


def test_skip_to_requires_url():
    with pytest.raises(ValueError, match="url"):
        ParrotMessage(MessageKind.SKIP_TO, title="Song")