"""Tracks fetched with yt-dlp and decoded to PCM with ffmpeg."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Iterable, Mapping, Sequence
from datetime import timedelta
from typing import IO, Any

from parrotbot.errors import TrackFailError
from parrotbot.query import Mode, QueryKind, QueryType
from parrotbot.utils import TrackMetadata

YTDL = "yt-dlp"
FFMPEG = "ffmpeg"
_NEWLINE = b"\n"


def extract(query: str) -> QueryType:
    """Classify a link as a playlist or a single video."""
    kind = QueryKind.PLAYLIST_LINK if "list=" in query else QueryKind.VIDEO_LINK
    return QueryType(kind, query)


def playlist_args(uri: str, mode: Mode) -> list[str]:
    """yt-dlp arguments listing a playlist's entries in the order the mode asks."""
    args = [uri, "--flat-playlist", "-j"]
    if mode is Mode.REVERSE:
        args.append("--playlist-reverse")
    elif mode is Mode.SHUFFLE:
        args.append("--playlist-random")
    return args


def parse_playlist_output(lines: Iterable[str]) -> list[str]:
    """The page URLs from yt-dlp's one-JSON-object-per-line playlist listing."""
    urls = []
    for line in lines:
        if not line.strip():
            continue
        entry = json.loads(line)
        url = entry.get("webpage_url") if isinstance(entry, dict) else None
        if not isinstance(url, str):
            raise ValueError(f"playlist entry has no webpage_url: {line!r}")
        urls.append(url)
    return urls


def ytdl_playlist(uri: str, mode: Mode) -> list[str] | None:
    """The URLs of a playlist's entries, or None if yt-dlp cannot be started."""
    try:
        result = subprocess.run(
            [YTDL, *playlist_args(uri, mode)],
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError:
        return None
    return parse_playlist_output(result.stdout.splitlines())


def stream_args(uri: str) -> list[str]:
    """yt-dlp arguments that print metadata to stderr and stream audio to stdout."""
    return [
        "-j",
        "-q",
        "--no-simulate",
        "-f",
        "webm[abr>0]/bestaudio/best",
        "-R",
        "infinite",
        "--no-playlist",
        "--ignore-config",
        "--no-warnings",
        uri,
        "-o",
        "-",
    ]


def metadata_args(uri: str) -> list[str]:
    """yt-dlp arguments that only print a track's metadata."""
    return [
        "-j",
        "-R",
        "infinite",
        "--no-playlist",
        "--ignore-config",
        "--no-warnings",
        uri,
        "-o",
        "-",
    ]


def ffmpeg_args(pre_args: Sequence[str] = ()) -> list[str]:
    """ffmpeg arguments decoding stdin to 48 kHz stereo float PCM on stdout."""
    return [
        *pre_args,
        "-i",
        "-",
        "-f",
        "s16le",
        "-ac",
        "2",
        "-ar",
        "48000",
        "-acodec",
        "pcm_f32le",
        "-",
    ]


def seek_args(position: timedelta | float | None) -> list[str]:
    """ffmpeg arguments that start decoding at ``position``."""
    if position is None:
        return []
    seconds = position.total_seconds() if isinstance(position, timedelta) else float(position)
    return ["-ss", f"{seconds:.3f}"]


def metadata_from_ytdl(data: Mapping[str, Any]) -> TrackMetadata:
    """Track metadata from a yt-dlp JSON object."""
    title = data.get("title")
    source_url = data.get("webpage_url")
    if not isinstance(title, str) or not isinstance(source_url, str):
        raise ValueError("metadata lacks a title or a webpage_url")
    duration = data.get("duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        duration = None
    channel = data.get("channel")
    thumbnail = data.get("thumbnail")
    return TrackMetadata(
        title=title,
        source_url=source_url,
        duration=timedelta(seconds=duration) if duration is not None else None,
        channel=channel if isinstance(channel, str) else None,
        thumbnail=thumbnail if isinstance(thumbnail, str) else None,
    )


def _decode(output: bytes) -> str:
    try:
        return output.decode("utf-8")
    except UnicodeDecodeError:
        return ""


def parse_metadata_output(output: bytes) -> TrackMetadata:
    """Metadata from the first line of yt-dlp's output; TrackFailError if unreadable."""
    first_line = output.split(_NEWLINE, 1)[0]
    try:
        value = json.loads(first_line)
        if not isinstance(value, dict):
            raise ValueError("metadata is not a JSON object")
    except ValueError as err:
        raise TrackFailError(str(err), parsed_text=_decode(output)) from err
    try:
        return metadata_from_ytdl(value)
    except ValueError as err:
        raise TrackFailError(str(err)) from err


def fetch_metadata(uri: str) -> TrackMetadata:
    """Ask yt-dlp for a track's metadata without downloading it."""
    try:
        result = subprocess.run(
            [YTDL, *metadata_args(uri)],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except OSError as err:
        raise TrackFailError(str(err)) from err
    return parse_metadata_output(result.stderr)


class _AudioStream:
    """Decoded audio from a yt-dlp | ffmpeg pipeline."""

    def __init__(
        self, ytdl: subprocess.Popen, ffmpeg: subprocess.Popen, metadata: TrackMetadata
    ) -> None:
        self._ytdl = ytdl
        self._ffmpeg = ffmpeg
        self.metadata = metadata

    @property
    def stdout(self) -> IO[bytes]:
        return self._ffmpeg.stdout

    def read(self, size: int = -1) -> bytes:
        return self._ffmpeg.stdout.read(size)

    def close(self) -> None:
        for process in (self._ffmpeg, self._ytdl):
            if process.poll() is None:
                process.kill()
            process.wait()

    def __enter__(self) -> _AudioStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class YouTubeRestartable:
    """A track that can be (re)opened from any position."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        self._metadata: TrackMetadata | None = None

    @classmethod
    def ytdl(cls, uri: str) -> YouTubeRestartable:
        """A source for a link; its metadata is fetched at once."""
        source = cls(uri)
        source.metadata()
        return source

    @classmethod
    def ytdl_search(cls, query: str) -> YouTubeRestartable:
        """A source for the first search result of ``query``."""
        return cls.ytdl(f"ytsearch:{query}")

    def metadata(self) -> TrackMetadata:
        if self._metadata is None:
            self._metadata = fetch_metadata(self.uri)
        return self._metadata

    def open(self, position: timedelta | float | None = None) -> _AudioStream:
        """Start streaming the track, decoded from ``position`` on."""
        try:
            ytdl = subprocess.Popen(
                [YTDL, *stream_args(self.uri)],
                stdin=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                stdout=subprocess.PIPE,
            )
        except OSError as err:
            raise TrackFailError(str(err)) from err

        try:
            # yt-dlp writes the metadata JSON to stderr and the media to stdout
            metadata = parse_metadata_output(ytdl.stderr.readline())
            ffmpeg = subprocess.Popen(
                [FFMPEG, *ffmpeg_args(seek_args(position))],
                stdin=ytdl.stdout,
                stderr=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except BaseException as err:
            ytdl.kill()
            ytdl.wait()
            if isinstance(err, OSError):
                raise TrackFailError(str(err)) from err
            raise

        ytdl.stdout.close()
        self._metadata = metadata
        return _AudioStream(ytdl, ffmpeg, metadata)