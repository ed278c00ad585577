"""Episode-level domain types and the watch-entry normalizer.

Raw watch logs are unordered and may contain several entries for the same
(season, episode) pair: re-watches, or the same click stored twice. Every
consumer works on a :class:`NormalizedWatchSet` built by :func:`normalize`,
which keeps the latest watch per pair.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from bingetrack.errors import InvalidTimestamp, InvalidWatchEntry

# Lenient mode sorts unparseable timestamps before every real watch
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class Category(str, Enum):
    NEXT = "next"
    STALE = "stale"
    NOT_STARTED = "not_started"
    COMPLETE = "complete"


@dataclass
class WatchedEntry:
    """One watch event. ``watched_at`` is an ISO-8601 string or a datetime."""
    season: int
    episode: int
    watched_at: Union[str, datetime]

    @property
    def key(self) -> tuple[int, int]:
        return (self.season, self.episode)

    def to_dict(self) -> dict:
        watched_at = self.watched_at
        if isinstance(watched_at, datetime):
            watched_at = watched_at.isoformat()
        return {
            "season": self.season,
            "episode": self.episode,
            "watched_at": watched_at
        }


@dataclass(frozen=True, order=True)
class EpisodeRef:
    show_id: int
    season: int
    episode: int

    @property
    def label(self) -> str:
        return episode_label(self.season, self.episode)

    def to_dict(self) -> dict:
        return {"show_id": self.show_id, "season": self.season, "episode": self.episode}


@dataclass
class EpisodeInfo:
    """An episode enriched with show and catalog metadata, ready for display."""
    show_id: int
    season: int
    episode: int
    show_name: str = ""
    poster_path: Optional[str] = None
    title: str = ""
    overview: str = ""
    air_date: str = ""
    still_path: Optional[str] = None
    vote_average: float = 0.0
    label: str = ""
    watched_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.label:
            self.label = episode_label(self.season, self.episode)

    @property
    def ref(self) -> EpisodeRef:
        return EpisodeRef(self.show_id, self.season, self.episode)

    def to_dict(self, image_base_url: str = "") -> dict:
        return {
            "show_id": self.show_id,
            "show_name": self.show_name,
            "season": self.season,
            "episode": self.episode,
            "label": self.label,
            "title": self.title,
            "overview": self.overview,
            "air_date": self.air_date,
            "vote_average": self.vote_average,
            "poster_path": self.poster_path,
            "still_path": self.still_path,
            "poster_url": f"{image_base_url}{self.poster_path}" if self.poster_path else None,
            "still_url": f"{image_base_url}{self.still_path}" if self.still_path else None,
            "watched_at": self.watched_at.isoformat() if self.watched_at else None
        }


@dataclass
class ShowProgression:
    show_id: int
    category: Category
    next_episode: Optional[EpisodeRef] = None
    last_watched_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "show_id": self.show_id,
            "category": self.category.value,
            "next_episode": self.next_episode.to_dict() if self.next_episode else None,
            "last_watched_at": self.last_watched_at.isoformat() if self.last_watched_at else None
        }


@dataclass
class NormalizedWatchSet:
    """Watched entries unique by (season, episode), holding parsed timestamps."""
    _entries: dict[tuple[int, int], WatchedEntry] = field(default_factory=dict)

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WatchedEntry]:
        return iter(self.entries())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def get(self, season: int, episode: int) -> Optional[WatchedEntry]:
        return self._entries.get((season, episode))

    def entries(self) -> list[WatchedEntry]:
        return [self._entries[key] for key in sorted(self._entries)]

    def most_recent(self) -> Optional[WatchedEntry]:
        if not self._entries:
            return None
        return max(self._entries.values(), key=lambda e: e.watched_at)


def episode_label(season: int, episode: int) -> str:
    return f"S{season} E{episode}"


def watched_label(watched_at: datetime) -> str:
    return f"Watched on {watched_at.date().isoformat()}"


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime (naive values are UTC)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidTimestamp(f"Cannot parse timestamp: {value!r}")
    else:
        raise InvalidTimestamp(f"Cannot parse timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize(raw_entries: Iterable[WatchedEntry], *, lenient: bool = False) -> NormalizedWatchSet:
    """
    Deduplicate raw entries into one entry per (season, episode).

    The entry with the latest ``watched_at`` wins; on equal timestamps the
    last one seen wins. In strict mode a malformed entry raises
    :class:`InvalidWatchEntry` (or :class:`InvalidTimestamp`). In lenient
    mode unparseable timestamps become :data:`EARLIEST` and entries with
    impossible numbers are dropped.
    """
    kept: dict[tuple[int, int], WatchedEntry] = {}

    for raw in raw_entries:
        if raw.season < 1 or raw.episode < 1:
            if lenient:
                continue
            raise InvalidWatchEntry(f"Invalid episode S{raw.season} E{raw.episode}")

        try:
            watched_at = parse_timestamp(raw.watched_at)
        except InvalidTimestamp:
            if not lenient:
                raise
            watched_at = EARLIEST

        current = kept.get(raw.key)
        if current is None or watched_at >= current.watched_at:
            kept[raw.key] = WatchedEntry(raw.season, raw.episode, watched_at)

    return NormalizedWatchSet(kept)


def take_first_n(sorted_list: list, n: int) -> list:
    """Return the first ``n`` items of an already sorted list."""
    if n <= 0:
        return []
    return sorted_list[:n]
