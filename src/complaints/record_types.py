"""Record type definitions for each stage of the pipeline.

Raw spreadsheet rows stay plain dicts; after normalization every row is
a NormalizedRecord whose topic and subtopic are filled in by a
ClassificationSession.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

# One decoded spreadsheet row: column name -> cell value.
RawRecord = dict[str, Any]

SentimentLabel = Literal["positive", "neutral", "negative"]

SENTIMENT_LABELS: tuple[str, ...] = ("positive", "neutral", "negative")


@dataclass
class NormalizedRecord:
    """A spreadsheet row with canonical field names and coerced values."""

    text: str = ""
    author: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    like_count: int = 0
    reply_count: int = 0
    view_count: int = 0
    follower_count: int = 0
    retweet_count: int = 0
    engagement: int = 0
    sentiment_score: int = 0
    sentiment_label: SentimentLabel = "neutral"
    location: str = ""
    url: str = ""
    record_id: int = 0
    source_topic: str = ""
    source_subtopic: str = ""
    topic: str | None = None
    subtopic: str | None = None

    @property
    def is_classified(self) -> bool:
        return self.topic is not None and self.subtopic is not None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d
