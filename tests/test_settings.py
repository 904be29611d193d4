import json

import pytest

from parrotbot.settings import (
    DEFAULT_ALLOWED_DOMAINS,
    DEFAULT_SETTINGS_PATH,
    GuildSettings,
    GuildCache,
    QueueMessage,
    settings_path,
)


def test_new_settings_defaults():
    settings = GuildSettings(7)
    assert settings.autopause is False
    assert settings.allowed_domains == {"youtube.com", "youtu.be"}
    assert settings.banned_domains == set()


def test_settings_path_default(monkeypatch):
    monkeypatch.delenv("SETTINGS_PATH", raising=False)
    assert str(settings_path()) == DEFAULT_SETTINGS_PATH


def test_settings_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SETTINGS_PATH", str(tmp_path))
    assert settings_path() == tmp_path
    assert GuildSettings(42).path() == tmp_path / "42.json"


def test_toggle_autopause_twice_restores():
    settings = GuildSettings(1)
    settings.toggle_autopause()
    assert settings.autopause is True
    settings.toggle_autopause()
    assert settings.autopause is False


def test_set_domains_split_and_skip_empty():
    settings = GuildSettings(1)
    settings.set_allowed_domains("a.com;;b.org;")
    settings.set_banned_domains(";c.net")
    assert settings.allowed_domains == {"a.com", "b.org"}
    assert settings.banned_domains == {"c.net"}


def test_set_allowed_empty_string_gives_empty_set():
    settings = GuildSettings(1)
    settings.set_allowed_domains("")
    assert settings.allowed_domains == set()


def test_update_domains_drops_banned_when_both_set():
    settings = GuildSettings(1)
    settings.set_allowed_domains("a.com")
    settings.set_banned_domains("b.com")
    settings.update_domains()
    assert settings.allowed_domains == {"a.com"}
    assert settings.banned_domains == set()


def test_update_domains_restores_defaults_when_both_empty():
    settings = GuildSettings(1)
    settings.set_allowed_domains("")
    settings.set_banned_domains("")
    settings.update_domains()
    assert settings.allowed_domains == set(DEFAULT_ALLOWED_DOMAINS)
    assert settings.banned_domains == set()


def test_update_domains_keeps_only_banned():
    settings = GuildSettings(1)
    settings.set_allowed_domains("")
    settings.set_banned_domains("b.com")
    settings.update_domains()
    assert settings.allowed_domains == set()
    assert settings.banned_domains == {"b.com"}


def test_save_and_load_round_trip(tmp_path):
    settings = GuildSettings(99, autopause=True, allowed_domains=set(), banned_domains={"x.com"})
    settings.save(tmp_path / "nested")
    loaded = GuildSettings(99)
    loaded.load(tmp_path / "nested")
    assert loaded == settings


def test_saved_file_shape(tmp_path):
    GuildSettings(5).save(tmp_path)
    data = json.loads((tmp_path / "5.json").read_text(encoding="utf-8"))
    assert data == {
        "guild_id": 5,
        "autopause": False,
        "allowed_domains": sorted(DEFAULT_ALLOWED_DOMAINS),
        "banned_domains": [],
    }


def test_load_if_exists_without_file_keeps_defaults(tmp_path):
    settings = GuildSettings(3, autopause=True)
    settings.load_if_exists(tmp_path)
    assert settings == GuildSettings(3, autopause=True)


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        GuildSettings(3).load(tmp_path)


def test_load_garbage_raises_value_error(tmp_path):
    (tmp_path / "3.json").write_text("not json", encoding="utf-8")
    with pytest.raises(ValueError):
        GuildSettings(3).load(tmp_path)


def test_dict_round_trip():
    settings = GuildSettings(11, autopause=True, allowed_domains={"a.com"})
    assert GuildSettings.from_dict(settings.to_dict()) == settings


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"guild_id": 1, "autopause": False, "allowed_domains": []},
        {"guild_id": "x", "autopause": False, "allowed_domains": [], "banned_domains": []},
        {"guild_id": 1, "autopause": "no", "allowed_domains": [], "banned_domains": []},
        {"guild_id": 1, "autopause": False, "allowed_domains": [1], "banned_domains": []},
    ],
)
def test_from_dict_rejects_malformed(data):
    with pytest.raises(ValueError):
        GuildSettings.from_dict(data)


def test_forget_skip_votes():
    cache = GuildCache(current_skip_votes={1, 2})
    cache.forget_skip_votes()
    assert cache.current_skip_votes == set()


def test_forget_queue_message_keeps_others():
    cache = GuildCache(queue_messages=[QueueMessage(1), QueueMessage(2, page=3)])
    cache.forget_queue_message(1)
    assert [m.message_id for m in cache.queue_messages] == [2]
    assert cache.queue_messages[0].page == 3