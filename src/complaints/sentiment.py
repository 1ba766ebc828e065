"""Lexical sentiment scoring.

Sums the valence of every lexicon word found in a post and rounds the
total to an integer. The default lexicon is VADER's word list; a word
directly preceded by a negator has its valence flipped. Any object with a
``score(text) -> int`` method can stand in for the default scorer.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Protocol

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from complaints.record_types import SentimentLabel

DEFAULT_POSITIVE_THRESHOLD = 1
DEFAULT_NEGATIVE_THRESHOLD = -1

NEGATORS = frozenset([
    "not", "no", "never", "none", "nobody", "nothing", "neither", "nor",
    "cannot", "cant", "can't", "dont", "don't", "doesnt", "doesn't",
    "didnt", "didn't", "isnt", "isn't", "wasnt", "wasn't", "arent", "aren't",
    "wont", "won't", "wouldnt", "wouldn't", "shouldnt", "shouldn't",
    "havent", "haven't", "hasnt", "hasn't", "without",
])

_TOKEN_RE = re.compile(r"[a-z0-9']+")


class SentimentScorer(Protocol):
    def score(self, text: str) -> int: ...


class LexiconScorer:
    """Bag-of-words valence summation over a word lexicon."""

    def __init__(self, lexicon: dict[str, float] | None = None) -> None:
        if lexicon is None:
            lexicon = SentimentIntensityAnalyzer().lexicon
        self.lexicon = {word.lower(): float(v) for word, v in lexicon.items()}

    def tokenize(self, text: str) -> list[str]:
        return _TOKEN_RE.findall(text.lower())

    def score(self, text: str) -> int:
        """Return the rounded valence sum of the words in text."""
        if not text:
            return 0
        total = 0.0
        previous = ""
        for token in self.tokenize(text):
            valence = self.lexicon.get(token)
            if valence is not None:
                total += -valence if previous in NEGATORS else valence
            previous = token
        return int(round(total))


@lru_cache(maxsize=1)
def default_scorer() -> LexiconScorer:
    """Shared scorer over the bundled VADER lexicon (loaded once)."""
    return LexiconScorer()


def sentiment_label(
    score: int,
    positive_threshold: int = DEFAULT_POSITIVE_THRESHOLD,
    negative_threshold: int = DEFAULT_NEGATIVE_THRESHOLD,
) -> SentimentLabel:
    """Map a lexical score to positive / neutral / negative.

    Scores strictly above the positive threshold are positive, strictly
    below the negative threshold negative, everything else neutral.
    """
    if score > positive_threshold:
        return "positive"
    if score < negative_threshold:
        return "negative"
    return "neutral"
