"""Per-guild settings stored as JSON, and per-guild runtime state."""

from __future__ import annotations

import json
import os
from collections.abc import Hashable
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

DEFAULT_SETTINGS_PATH = "data/settings"
DEFAULT_ALLOWED_DOMAINS = ("youtube.com", "youtu.be")


def settings_path() -> Path:
    """The directory settings live in: ``$SETTINGS_PATH`` or the default."""
    return Path(os.environ.get("SETTINGS_PATH", DEFAULT_SETTINGS_PATH))


def _default_allowed() -> set[str]:
    return set(DEFAULT_ALLOWED_DOMAINS)


def _parse_domains(text: str) -> set[str]:
    return {part for part in text.split(";") if part}


def _domain_set(data: dict[str, Any], key: str) -> set[str]:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(d, str) for d in value):
        raise ValueError(f"{key} must be a list of strings")
    return set(value)


@dataclass
class GuildSettings:
    """Settings a guild's moderators can change."""

    guild_id: int
    autopause: bool = False
    allowed_domains: set[str] = field(default_factory=_default_allowed)
    banned_domains: set[str] = field(default_factory=set)

    def path(self, directory: str | os.PathLike[str] | None = None) -> Path:
        """The file these settings are stored in."""
        base = settings_path() if directory is None else Path(directory)
        return base / f"{self.guild_id}.json"

    def load_if_exists(self, directory: str | os.PathLike[str] | None = None) -> None:
        """Load the stored settings if a file for this guild exists."""
        if self.path(directory).exists():
            self.load(directory)

    def load(self, directory: str | os.PathLike[str] | None = None) -> None:
        """Replace these settings with the stored ones."""
        with self.path(directory).open(encoding="utf-8") as handle:
            loaded = GuildSettings.from_dict(json.load(handle))
        for item in fields(self):
            setattr(self, item.name, getattr(loaded, item.name))

    def save(self, directory: str | os.PathLike[str] | None = None) -> None:
        """Write these settings, creating the directory if needed."""
        target = self.path(directory)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle)

    def toggle_autopause(self) -> None:
        self.autopause = not self.autopause

    def set_allowed_domains(self, allowed_str: str) -> None:
        """Set the allowed domains from a ';'-separated list."""
        self.allowed_domains = _parse_domains(allowed_str)

    def set_banned_domains(self, banned_str: str) -> None:
        """Set the banned domains from a ';'-separated list."""
        self.banned_domains = _parse_domains(banned_str)

    def update_domains(self) -> None:
        """Keep only one of the lists; fall back to the defaults when both are empty."""
        if self.allowed_domains and self.banned_domains:
            self.banned_domains.clear()

        if not self.allowed_domains and not self.banned_domains:
            self.allowed_domains = _default_allowed()
            self.banned_domains.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "autopause": self.autopause,
            "allowed_domains": sorted(self.allowed_domains),
            "banned_domains": sorted(self.banned_domains),
        }

    @classmethod
    def from_dict(cls, data: Any) -> GuildSettings:
        """Build settings from their stored form; raise ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError("settings must be a JSON object")
        try:
            raw_id = data["guild_id"]
            autopause = data["autopause"]
            allowed = _domain_set(data, "allowed_domains")
            banned = _domain_set(data, "banned_domains")
        except KeyError as err:
            raise ValueError(f"missing field {err.args[0]!r}") from err

        if isinstance(raw_id, bool):
            raise ValueError("guild_id must be an integer")
        if isinstance(raw_id, str) and raw_id.isdigit():
            raw_id = int(raw_id)
        if not isinstance(raw_id, int):
            raise ValueError("guild_id must be an integer")
        if not isinstance(autopause, bool):
            raise ValueError("autopause must be a boolean")

        return cls(
            guild_id=raw_id,
            autopause=autopause,
            allowed_domains=allowed,
            banned_domains=banned,
        )


@dataclass
class QueueMessage:
    """A posted queue listing and the page it shows."""

    message_id: Hashable
    page: int = 0
    message: Any = None


@dataclass
class GuildCache:
    """Runtime state of a guild that is not stored."""

    queue_messages: list[QueueMessage] = field(default_factory=list)
    current_skip_votes: set[Hashable] = field(default_factory=set)

    def forget_skip_votes(self) -> None:
        self.current_skip_votes = set()

    def forget_queue_message(self, message_id: Hashable) -> None:
        """Stop tracking the queue listing with this id."""
        self.queue_messages = [m for m in self.queue_messages if m.message_id != message_id]