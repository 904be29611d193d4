"""Embeds, timestamps and domain helpers shared by the commands."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from urllib.parse import urlsplit

from parrotbot.message import QUEUE_NOW_PLAYING, ParrotMessage

INFINITY = "∞"


@dataclass
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass
class Embed:
    """A rich reply: description, links, fields and footer."""

    description: str | None = None
    title: str | None = None
    url: str | None = None
    author: str | None = None
    thumbnail: str | None = None
    fields: list[EmbedField] = field(default_factory=list)
    footer_text: str | None = None
    footer_icon_url: str | None = None


@dataclass
class TrackMetadata:
    """What is known about a track from its source."""

    title: str
    source_url: str
    duration: timedelta | None = None
    channel: str | None = None
    thumbnail: str | None = None


def get_human_readable_timestamp(duration: timedelta | float | None) -> str:
    """Format a duration as MM:SS or H:MM:SS; an unknown or endless one as ∞."""
    if duration is None:
        return INFINITY
    if isinstance(duration, timedelta):
        if duration == timedelta.max:
            return INFINITY
        total = int(duration.total_seconds())
    else:
        if math.isinf(duration):
            return INFINITY
        total = int(duration)
    if total < 0:
        raise ValueError(f"negative duration: {duration!r}")

    seconds = total % 60
    minutes = (total // 60) % 60
    hours = total // 3600
    if hours < 1:
        return f"{minutes:02}:{seconds:02}"
    return f"{hours}:{minutes:02}:{seconds:02}"


def get_footer_info(url: str) -> tuple[str, str]:
    """Return the footer text and icon URL naming the site a track streams from."""
    host = urlsplit(url).hostname
    if not host:
        raise ValueError(f"URL has no host: {url!r}")
    domain = host.replace("www.", "")
    return f"Streaming via {domain}", f"https://{domain}/favicon.ico"


def compare_domains(domain: str, subdomain: str) -> bool:
    """Whether ``subdomain`` is ``domain`` or ends with it."""
    return subdomain == domain or subdomain.endswith(domain)


def create_now_playing_embed(
    metadata: TrackMetadata, position: timedelta | float | None
) -> Embed:
    """Build the embed describing the track being played."""
    progress = (
        f">>> {get_human_readable_timestamp(position)} / "
        f"{get_human_readable_timestamp(metadata.duration)}"
    )
    channel = f">>> {metadata.channel}" if metadata.channel is not None else ">>> N/A"
    footer_text, footer_icon_url = get_footer_info(metadata.source_url)
    return Embed(
        author=QUEUE_NOW_PLAYING,
        title=metadata.title,
        url=metadata.source_url,
        thumbnail=metadata.thumbnail,
        fields=[
            EmbedField("Progress", progress, True),
            EmbedField("Channel", channel, True),
        ],
        footer_text=footer_text,
        footer_icon_url=footer_icon_url,
    )


def message_embed(message: ParrotMessage | str) -> Embed:
    """An embed whose description is the given message."""
    return Embed(description=str(message))