"""Event handlers and the guild-level commands that need no track source."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Hashable, Iterable, MutableMapping, Sequence
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version

from parrotbot.errors import NothingPlayingError
from parrotbot.message import IDLE_ALERT, MessageKind, ParrotMessage
from parrotbot.queue import (
    PlayState,
    Track,
    TrackQueue,
    build_nav_buttons,
    calculate_num_pages,
    create_queue_embed,
)
from parrotbot.settings import GuildCache, GuildSettings, QueueMessage
from parrotbot.utils import Embed, create_now_playing_embed

logger = logging.getLogger(__name__)

IDLE_LIMIT = 60 * 10
UNKNOWN_VERSION = "Unknown"
_DISTRIBUTION = "parrotbot"

PathLike = "str | os.PathLike[str] | None"


@dataclass
class IdleHandler:
    """Counts idle ticks and leaves the voice channel once the limit is passed.

    ``leave`` disconnects and tells whether it succeeded; ``notify`` posts a
    text to the channel the bot was summoned from.
    """

    leave: Callable[[], bool]
    notify: Callable[[str], object]
    limit: int = IDLE_LIMIT
    count: int = 0

    def act(self, tracks: Iterable[Track]) -> str | None:
        """Handle one periodic tick; return the alert sent if the bot left."""
        if any(track.state is PlayState.PLAY for track in tracks):
            self.count = 0
            return None

        previous = self.count
        self.count += 1
        if previous >= self.limit and self.leave():
            self.notify(IDLE_ALERT)
            return IDLE_ALERT
        return None


@dataclass
class TrackEndHandler:
    """Runs when a track ends: pauses if autopause is on and forgets skip votes."""

    guild_id: Hashable
    queue: TrackQueue
    settings_map: MutableMapping[Hashable, GuildSettings] = field(default_factory=dict)
    cache_map: MutableMapping[Hashable, GuildCache] = field(default_factory=dict)

    def act(self) -> None:
        settings = self.settings_map.get(self.guild_id)
        if settings is not None and settings.autopause and not self.queue.is_empty():
            self.queue.pause()

        cache = self.cache_map.get(self.guild_id)
        if cache is not None:
            cache.forget_skip_votes()


def update_queue_messages(cache: GuildCache, tracks: Sequence[Track]) -> list[QueueMessage]:
    """Redraw every posted queue listing; forget those that can no longer be edited.

    A listing's ``message`` object, when present, is edited through its
    ``edit(embed=..., components=...)`` method. Returns the listings kept.
    """
    num_pages = calculate_num_pages(tracks)
    kept = []
    for queue_message in list(cache.queue_messages):
        queue_message.page = min(queue_message.page, num_pages - 1)
        embed = create_queue_embed(tracks, queue_message.page)
        components = [build_nav_buttons(queue_message.page, num_pages)]

        if queue_message.message is not None:
            try:
                queue_message.message.edit(embed=embed, components=components)
            except Exception as err:  # the message may be gone or unreachable
                logger.debug("forgetting queue message %r: %s", queue_message.message_id, err)
                cache.forget_queue_message(queue_message.message_id)
                continue
        kept.append(queue_message)
    return kept


def _guild_settings(
    settings_map: MutableMapping[Hashable, GuildSettings], guild_id: Hashable
) -> GuildSettings:
    settings = settings_map.get(guild_id)
    if settings is None:
        settings = GuildSettings(guild_id)
        settings_map[guild_id] = settings
    return settings


def autopause(
    settings_map: MutableMapping[Hashable, GuildSettings],
    guild_id: Hashable,
    directory: str | os.PathLike[str] | None = None,
) -> ParrotMessage:
    """Toggle pausing after each track, store it and describe the new state."""
    settings = _guild_settings(settings_map, guild_id)
    settings.toggle_autopause()
    settings.save(directory)
    kind = MessageKind.AUTOPAUSE_ON if settings.autopause else MessageKind.AUTOPAUSE_OFF
    return ParrotMessage(kind)


def domain_form_values(settings: GuildSettings) -> tuple[str, str]:
    """The allowed and banned domains as the ';'-separated texts the form shows."""
    return ";".join(sorted(settings.allowed_domains)), ";".join(sorted(settings.banned_domains))


def manage_sources(
    settings_map: MutableMapping[Hashable, GuildSettings],
    guild_id: Hashable,
    allowed: str | None,
    banned: str | None,
    directory: str | os.PathLike[str] | None = None,
) -> GuildSettings:
    """Apply a submitted domain form, store the result and return the settings."""
    settings = _guild_settings(settings_map, guild_id)
    if allowed is not None:
        settings.set_allowed_domains(allowed)
    if banned is not None:
        settings.set_banned_domains(banned)
    settings.update_domains()
    settings.save(directory)
    return settings


def now_playing(queue: TrackQueue) -> Embed:
    """The description of the track being played."""
    track = queue.current()
    if track is None:
        raise NothingPlayingError()
    return create_now_playing_embed(track.metadata, track.position)


def summon_message(channel_mention: str) -> ParrotMessage:
    """The reply after joining a voice channel."""
    return ParrotMessage(MessageKind.SUMMON, mention=channel_mention)


def version_message() -> ParrotMessage:
    """The reply naming the installed version."""
    try:
        current = version(_DISTRIBUTION)
    except PackageNotFoundError:
        current = UNKNOWN_VERSION
    return ParrotMessage(MessageKind.VERSION, current=current)


def load_guilds_settings(
    settings_map: MutableMapping[Hashable, GuildSettings],
    guild_ids: Iterable[Hashable],
    directory: str | os.PathLike[str] | None = None,
) -> list[Hashable]:
    """Load the stored settings of each guild; return the guilds that failed to load."""
    logger.info("Loading guilds' settings")
    failed = []
    for guild_id in guild_ids:
        logger.debug("Loading guild settings for %r", guild_id)
        settings = _guild_settings(settings_map, guild_id)
        try:
            settings.load_if_exists(directory)
        except (OSError, ValueError) as err:
            logger.error("Failed to load guild %s settings due to %s", guild_id, err)
            failed.append(guild_id)
    return failed