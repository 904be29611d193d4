"""How a play request is queued and what kind of query it carries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Mode(Enum):
    """Where and in which order new tracks are added to the queue."""

    END = "end"
    NEXT = "next"
    ALL = "all"
    REVERSE = "reverse"
    SHUFFLE = "shuffle"
    JUMP = "jump"

    @classmethod
    def from_option(cls, name: str) -> Mode:
        """The mode named by a command option; anything unknown queues at the end."""
        try:
            return cls(name)
        except ValueError:
            return cls.END


class QueryKind(Enum):
    KEYWORDS = auto()
    KEYWORD_LIST = auto()
    VIDEO_LINK = auto()
    PLAYLIST_LINK = auto()


@dataclass(frozen=True)
class QueryType:
    """A query: search keywords, a list of them, a video link or a playlist link.

    ``value`` is a string, except for ``KEYWORD_LIST`` where it is a tuple of strings.
    """

    kind: QueryKind
    value: str | tuple[str, ...]

    def __post_init__(self) -> None:
        if self.kind is QueryKind.KEYWORD_LIST:
            if isinstance(self.value, str):
                raise TypeError("a keyword list needs a sequence of strings, not a string")
            try:
                items = tuple(self.value)
            except TypeError as err:
                raise TypeError("a keyword list needs a sequence of strings") from err
            if not all(isinstance(item, str) for item in items):
                raise TypeError("every entry of a keyword list must be a string")
            object.__setattr__(self, "value", items)
        elif not isinstance(self.value, str):
            raise TypeError(f"{self.kind.name} query needs a string")