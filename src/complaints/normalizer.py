"""Raw spreadsheet row -> NormalizedRecord.

Spreadsheets exported from different social listening tools name the same
column differently ("Tweet" vs "text", "Author" vs "User"), so every field
is read from an ordered list of accepted column aliases. Normalization
never fails: each field has a default used when the column is missing or
its value cannot be coerced.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any

import pandas as pd

from complaints.record_types import NormalizedRecord, RawRecord
from complaints.sentiment import (
    DEFAULT_NEGATIVE_THRESHOLD,
    DEFAULT_POSITIVE_THRESHOLD,
    SentimentScorer,
    default_scorer,
    sentiment_label,
)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "text": ("Tweet", "text", "tweets", "Text"),
    "author": ("Author", "User", "Username", "user"),
    "date": ("Date", "date"),
    "likes": ("Likes", "likes"),
    "replies": ("Replies", "replies"),
    "views": ("Views", "views"),
    "followers": ("Followers", "User Followers", "Author Followers", "followers_count"),
    "retweets": ("Retweets", "retweets"),
    "engagement": ("Engagement", "engagement"),
    "location": ("Location", "City", "Country"),
    "url": ("URL", "url"),
    "topic": ("Topic Name", "Topic", "topic"),
    "subtopic": ("Subtopic Name", "Subtopic", "subtopic"),
}

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%a %b %d %H:%M:%S %z %Y",
)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _is_populated(value: Any) -> bool:
    """False for None, pandas missing values (NaN, NaT, NA) and blank strings."""
    if value is None:
        return False
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_present(record: Mapping[str, Any], aliases: Sequence[str], default: Any = None) -> Any:
    """Return the value of the first populated column among aliases."""
    for alias in aliases:
        value = record.get(alias)
        if _is_populated(value):
            return value
    return default


def parse_int(value: Any) -> int:
    """Coerce a cell to a non-negative integer, 0 when unparsable.

    Strings contribute their leading integer ("42 likes" -> 42,
    "3.7" -> 3); floats are truncated.
    """
    if not _is_populated(value) or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return 0
        result = int(value)
    else:
        match = _LEADING_INT_RE.match(str(value))
        if not match:
            return 0
        result = int(match.group(1))
    return max(result, 0)


def _naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value: Any, now: Callable[[], datetime] = datetime.now) -> datetime:
    """Parse a date cell, falling back to now() when absent or unparsable.

    Numbers are read as Unix epoch milliseconds; Excel serial dates get
    no special treatment.
    """
    if not _is_populated(value):
        return now()

    if isinstance(value, datetime):
        to_py = getattr(value, "to_pydatetime", None)
        dt = to_py() if to_py is not None else value
        return _naive(dt)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return _naive(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return now()

    text = str(value).strip()
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return _naive(datetime.fromisoformat(iso_text))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return _naive(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return now()


def clean_location(value: Any) -> str:
    """Trim a location cell; blank and "unknown" become ""."""
    if not _is_populated(value):
        return ""
    loc = str(value).strip()
    if loc.lower() == "unknown":
        return ""
    return loc


def _as_text(value: Any) -> str:
    if not _is_populated(value):
        return ""
    return str(value).strip() if not isinstance(value, str) else value


class RecordNormalizer:
    """Reusable normalizer bound to a scorer, alias table and thresholds."""

    def __init__(
        self,
        scorer: SentimentScorer | None = None,
        aliases: Mapping[str, Sequence[str]] | None = None,
        positive_threshold: int = DEFAULT_POSITIVE_THRESHOLD,
        negative_threshold: int = DEFAULT_NEGATIVE_THRESHOLD,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.scorer = scorer or default_scorer()
        self.aliases: dict[str, tuple[str, ...]] = dict(FIELD_ALIASES)
        for field_name, names in (aliases or {}).items():
            self.aliases[field_name] = tuple(names)
        self.positive_threshold = positive_threshold
        self.negative_threshold = negative_threshold
        self.now = now

    def _get(self, raw: RawRecord, field_name: str) -> Any:
        return first_present(raw, self.aliases.get(field_name, ()))

    def normalize(self, raw: RawRecord, record_id: int = 0) -> NormalizedRecord:
        """Convert one raw row. Never raises."""
        text = _as_text(self._get(raw, "text"))
        score = self.scorer.score(text)

        return NormalizedRecord(
            text=text,
            author=_as_text(self._get(raw, "author")),
            timestamp=parse_timestamp(self._get(raw, "date"), self.now),
            like_count=parse_int(self._get(raw, "likes")),
            reply_count=parse_int(self._get(raw, "replies")),
            view_count=parse_int(self._get(raw, "views")),
            follower_count=parse_int(self._get(raw, "followers")),
            retweet_count=parse_int(self._get(raw, "retweets")),
            engagement=parse_int(self._get(raw, "engagement")),
            sentiment_score=score,
            sentiment_label=sentiment_label(
                score, self.positive_threshold, self.negative_threshold
            ),
            location=clean_location(self._get(raw, "location")),
            url=_as_text(self._get(raw, "url")),
            record_id=record_id,
            source_topic=_as_text(self._get(raw, "topic")).strip(),
            source_subtopic=_as_text(self._get(raw, "subtopic")).strip(),
        )

    def normalize_all(self, rows: Sequence[RawRecord]) -> list[NormalizedRecord]:
        return [self.normalize(row, record_id=i) for i, row in enumerate(rows)]


def normalize(
    raw: RawRecord,
    scorer: SentimentScorer | None = None,
    *,
    aliases: Mapping[str, Sequence[str]] | None = None,
    thresholds: tuple[int, int] = (DEFAULT_POSITIVE_THRESHOLD, DEFAULT_NEGATIVE_THRESHOLD),
    now: Callable[[], datetime] | None = None,
    record_id: int = 0,
) -> NormalizedRecord:
    """Normalize a single row.

    Builds a throwaway RecordNormalizer; use the class directly when
    normalizing many rows.
    """
    normalizer = RecordNormalizer(
        scorer=scorer,
        aliases=aliases,
        positive_threshold=thresholds[0],
        negative_threshold=thresholds[1],
        now=now or datetime.now,
    )
    return normalizer.normalize(raw, record_id=record_id)
