# parrotbot

This package holds the parts of a voice-channel music bot that do not depend
on a chat platform. That means the track queue and its commands, working out
what a user asked to play, per-guild settings, checks on voice connections,
and the texts and embeds the bot replies with.

It uses only the standard library. Playback runs the `yt-dlp` and `ffmpeg`
executables, so both must be on `PATH`.

## Modules

- `parrotbot.message` holds every reply text. A `ParrotMessage` has a
  `MessageKind` and the values its text needs, and `str()` renders it. A kind
  that needs values raises `ValueError` when they are missing. The releases
  link in the version reply comes from the `RELEASES_LINK` environment
  variable.
- `parrotbot.errors` defines `ParrotError` and its subclasses:
  `OtherError`, `QueueEmptyError`, `NotInRangeError`, `NotConnectedError`,
  `AuthorDisconnectedError`, `WrongVoiceChannelError`,
  `AuthorNotFoundError`, `NothingPlayingError`, `TrackFailError` and
  `AlreadyConnectedError`. The string form of each error is the reply the
  user sees. `verify(value, error)` returns `value`. It raises `error`
  instead when the value is `False`, `None` or an exception.
- `parrotbot.utils` provides:
  - `get_human_readable_timestamp`, which gives `MM:SS` or `H:MM:SS`, and `∞`
    for an unknown or endless duration;
  - `compare_domains` and `get_footer_info`;
  - the `Embed`, `EmbedField` and `TrackMetadata` dataclasses;
  - `create_now_playing_embed` and `message_embed`.
- `parrotbot.connection` has `check_voice_connections(voice_states, user_id, bot_id)`.
  It takes a mapping from user to voice channel and returns a `Connection`
  whose `kind` is a `ConnectionKind`: `USER`, `BOT`, `MUTUAL`, `SEPARATE` or
  `NEITHER`.
- `parrotbot.query` defines the play modes in `Mode`. `Mode.from_option`
  maps an option name to a mode and falls back to `END`. Queries are a
  `QueryType` with a `QueryKind`.
- `parrotbot.settings` has `GuildSettings`, which holds autopause and the
  allowed and banned domains, and is stored as one JSON file per guild.
  - The directory defaults to `data/settings`. `SETTINGS_PATH` overrides it,
    and so does an explicit `directory` argument.
  - `set_allowed_domains` and `set_banned_domains` take `;`-separated text.
  - `update_domains` keeps only one of the two lists. When both are empty it
    falls back to `youtube.com` and `youtu.be`.

  `GuildCache` holds skip votes and posted queue listings (`QueueMessage`).
- `parrotbot.youtube` builds the `yt-dlp` and `ffmpeg` argument lists and
  parses `yt-dlp` output:
  - `extract` tells a playlist link from a video link;
  - `ytdl_playlist` lists a playlist's URLs;
  - `fetch_metadata` reads a track's metadata.

  `YouTubeRestartable.ytdl` and `YouTubeRestartable.ytdl_search` create a
  source. `open(position)` returns a stream of 48 kHz stereo float PCM that
  starts at the given position.
- `parrotbot.queue` has `TrackQueue` with `enqueue`, `insert`, `dequeue`,
  `skip`, `remove`, `clear`, `shuffle`, `seek`, `rotate`, `pause`, `resume`,
  `stop` and `force_skip_top_track`. `Track.toggle_loop` switches looping
  for one track. The module also builds the paged queue listing:
  - `create_queue_embed` and `calculate_num_pages`;
  - `build_nav_buttons` and `next_page` for the navigation buttons.
- `parrotbot.play` resolves and queues play requests:
  - `resolve_query` works out what a request asks for and enforces the
    guild's domain lists. It raises `DomainBannedError` for a blocked domain.
  - `play(queue, query, mode)` queues the tracks the way the mode asks and
    returns the reply embed.
  - `calculate_time_until_play` estimates when a new track will play.
  - `voteskip` and `skip_threshold` handle vote skipping. A skip needs the
    votes of half the users in the bot's channel.
- `parrotbot.handlers` provides:
  - `IdleHandler`, which leaves after a number of idle ticks;
  - `TrackEndHandler`, which pauses when autopause is on and forgets skip
    votes;
  - `update_queue_messages`;
  - the `autopause`, `manage_sources`, `now_playing`, `summon_message`,
    `version_message` and `load_guilds_settings` commands.

## Example

```python
from datetime import timedelta

from parrotbot.queue import Track, TrackQueue
from parrotbot.settings import GuildSettings
from parrotbot.utils import TrackMetadata, compare_domains

compare_domains("youtube.com", "music.youtube.com")  # True

settings = GuildSettings(guild_id=1234)
settings.set_allowed_domains("youtube.com;soundcloud.com")
settings.update_domains()
settings.toggle_autopause()
settings.save("data/settings")

queue = TrackQueue()
for title in ("First", "Second"):
    meta = TrackMetadata(
        title=title,
        source_url=f"https://example.com/{title}",
        duration=timedelta(minutes=3),
    )
    queue.enqueue(Track(meta))
print(queue.skip())  # ⏭️ Skipped to [**Second**](https://example.com/Second)!
```

## What it does not do

The package does not connect to a chat platform, so it has no bot process,
gateway connection or command-line program. It does not register slash
commands or decide which connection each command needs. The caller passes in
voice states, message objects and callbacks.

It does not play audio into a voice channel. `YouTubeRestartable.open`
returns the decoded stream, and sending it on is up to the caller.

It has no Spotify client. `resolve_query` accepts any object with an
`extract(query)` method that returns a `QueryType`. Without one, Spotify
links are rejected with the Spotify authentication message.