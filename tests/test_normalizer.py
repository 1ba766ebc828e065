"""Tests for raw row normalization."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pandas as pd

from complaints.normalizer import (
    RecordNormalizer,
    clean_location,
    first_present,
    normalize,
    parse_int,
    parse_timestamp,
)
from complaints.sentiment import LexiconScorer


def _clock(value: datetime):
    return lambda: value


class TestFirstPresent:
    def test_first_alias_wins(self) -> None:
        row = {"Tweet": "a", "text": "b"}
        assert first_present(row, ("Tweet", "text")) == "a"

    def test_skips_blank_and_nan(self) -> None:
        row = {"Tweet": "  ", "text": float("nan"), "tweets": "c"}
        assert first_present(row, ("Tweet", "text", "tweets")) == "c"

    def test_default(self) -> None:
        assert first_present({}, ("Tweet",), default="x") == "x"

    def test_skips_pandas_missing_values(self) -> None:
        row = {"Tweet": pd.NA, "text": pd.NaT, "tweets": "c"}
        assert first_present(row, ("Tweet", "text", "tweets")) == "c"

    def test_zero_is_populated(self) -> None:
        assert first_present({"Likes": 0, "likes": 5}, ("Likes", "likes")) == 0


class TestParseInt:
    def test_int(self) -> None:
        assert parse_int(42) == 42

    def test_float_truncates(self) -> None:
        assert parse_int(3.7) == 3

    def test_leading_integer_of_string(self) -> None:
        assert parse_int("42 likes") == 42
        assert parse_int(" 12.9") == 12

    def test_unparsable(self) -> None:
        assert parse_int("abc") == 0
        assert parse_int(None) == 0
        assert parse_int(float("nan")) == 0
        assert parse_int(float("inf")) == 0

    def test_pandas_missing(self) -> None:
        assert parse_int(pd.NA) == 0

    def test_bool_is_not_a_count(self) -> None:
        assert parse_int(True) == 0

    def test_negative_clamped(self) -> None:
        assert parse_int(-5) == 0
        assert parse_int("-12") == 0


class TestParseTimestamp:
    def test_missing_uses_now(self, fixed_now: datetime) -> None:
        assert parse_timestamp(None, _clock(fixed_now)) == fixed_now
        assert parse_timestamp("", _clock(fixed_now)) == fixed_now

    def test_pandas_missing_uses_now(self, fixed_now: datetime) -> None:
        assert parse_timestamp(pd.NaT, _clock(fixed_now)) == fixed_now
        assert parse_timestamp(pd.NA, _clock(fixed_now)) == fixed_now

    def test_unparsable_uses_now(self, fixed_now: datetime) -> None:
        assert parse_timestamp("not a date", _clock(fixed_now)) == fixed_now

    def test_iso_string(self) -> None:
        assert parse_timestamp("2024-03-01T10:00:00") == datetime(2024, 3, 1, 10, 0)

    def test_iso_zulu_converted_to_naive_utc(self) -> None:
        assert parse_timestamp("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0)

    def test_offset_converted_to_utc(self) -> None:
        assert parse_timestamp("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0)

    def test_day_first_format(self) -> None:
        assert parse_timestamp("15/03/2024") == datetime(2024, 3, 15)

    def test_long_month_format(self) -> None:
        assert parse_timestamp("March 5, 2024") == datetime(2024, 3, 5)

    def test_numbers_are_epoch_milliseconds(self) -> None:
        assert parse_timestamp(1700000000000) == datetime(2023, 11, 14, 22, 13, 20)

    def test_datetime_passthrough(self) -> None:
        value = datetime(2024, 1, 2, 3, 4, 5)
        assert parse_timestamp(value) == value

    def test_aware_datetime(self) -> None:
        value = datetime(2024, 1, 2, 5, 0, tzinfo=timezone(timedelta(hours=2)))
        assert parse_timestamp(value) == datetime(2024, 1, 2, 3, 0)

    def test_date(self) -> None:
        assert parse_timestamp(date(2024, 1, 2)) == datetime(2024, 1, 2)

    def test_pandas_timestamp(self) -> None:
        result = parse_timestamp(pd.Timestamp("2024-06-01 08:30"))
        assert result == datetime(2024, 6, 1, 8, 30)
        assert type(result) is datetime


class TestCleanLocation:
    def test_trimmed(self) -> None:
        assert clean_location("  London ") == "London"

    def test_unknown_is_empty(self) -> None:
        assert clean_location("Unknown") == ""
        assert clean_location(" UNKNOWN ") == ""

    def test_missing(self) -> None:
        assert clean_location(None) == ""
        assert clean_location("   ") == ""


class TestRecordNormalizer:
    def test_full_row(self, small_scorer: LexiconScorer, fixed_now: datetime) -> None:
        row = {
            "Tweet": "Love the coat, thanks!",
            "Author": "shopper1",
            "Date": "2024-03-01 10:00:00",
            "Likes": "42 likes",
            "Replies": 3,
            "Views": 120.9,
            "User Followers": "1500",
            "Retweets": 2,
            "Location": "  Leeds ",
            "URL": "https://x.com/shopper1/status/1",
            "Topic Name": "Delivery & Shipping",
            "Subtopic Name": "Late Delivery",
        }
        record = RecordNormalizer(scorer=small_scorer, now=_clock(fixed_now)).normalize(
            row, record_id=7
        )
        assert record.text == "Love the coat, thanks!"
        assert record.author == "shopper1"
        assert record.timestamp == datetime(2024, 3, 1, 10, 0)
        assert record.like_count == 42
        assert record.reply_count == 3
        assert record.view_count == 120
        assert record.follower_count == 1500
        assert record.retweet_count == 2
        assert record.location == "Leeds"
        assert record.url == "https://x.com/shopper1/status/1"
        assert record.record_id == 7
        assert record.sentiment_score == 5
        assert record.sentiment_label == "positive"
        assert record.source_topic == "Delivery & Shipping"
        assert record.source_subtopic == "Late Delivery"
        assert not record.is_classified

    def test_empty_row_defaults(self, small_scorer: LexiconScorer, fixed_now: datetime) -> None:
        record = RecordNormalizer(scorer=small_scorer, now=_clock(fixed_now)).normalize({})
        assert record.text == ""
        assert record.author == ""
        assert record.timestamp == fixed_now
        assert record.like_count == 0
        assert record.follower_count == 0
        assert record.sentiment_label == "neutral"
        assert record.location == ""
        assert record.topic is None
        assert record.subtopic is None

    def test_pandas_missing_cells(self, small_scorer: LexiconScorer, fixed_now: datetime) -> None:
        row = {
            "Tweet": pd.NA,
            "text": "refund pending",
            "Author": pd.NA,
            "Date": pd.NaT,
            "Likes": pd.NA,
            "Location": pd.NA,
        }
        record = RecordNormalizer(scorer=small_scorer, now=_clock(fixed_now)).normalize(row)
        assert record.text == "refund pending"
        assert record.author == ""
        assert record.timestamp == fixed_now
        assert record.like_count == 0
        assert record.location == ""

    def test_alias_fallbacks(self, small_scorer: LexiconScorer) -> None:
        row = {"text": "awful", "User": "bob", "likes": 4, "followers_count": 9, "City": "York"}
        record = RecordNormalizer(scorer=small_scorer).normalize(row)
        assert record.text == "awful"
        assert record.author == "bob"
        assert record.like_count == 4
        assert record.follower_count == 9
        assert record.location == "York"

    def test_location_prefers_location_column(self, small_scorer: LexiconScorer) -> None:
        row = {"Location": "unknown", "City": "York", "Country": "UK"}
        record = RecordNormalizer(scorer=small_scorer).normalize(row)
        # "unknown" is populated, so the later aliases are not consulted
        assert record.location == ""

    def test_negative_sentiment(self, small_scorer: LexiconScorer) -> None:
        record = RecordNormalizer(scorer=small_scorer).normalize({"Tweet": "faulty and broken"})
        assert record.sentiment_score == -4
        assert record.sentiment_label == "negative"

    def test_thresholds(self, small_scorer: LexiconScorer) -> None:
        normalizer = RecordNormalizer(
            scorer=small_scorer, positive_threshold=5, negative_threshold=-5
        )
        assert normalizer.normalize({"Tweet": "love it"}).sentiment_label == "neutral"

    def test_custom_aliases_replace_builtin(self, small_scorer: LexiconScorer) -> None:
        normalizer = RecordNormalizer(scorer=small_scorer, aliases={"text": ["Post"]})
        record = normalizer.normalize({"Tweet": "ignored", "Post": "used"})
        assert record.text == "used"
        # other fields keep the built-in aliases
        assert normalizer.normalize({"Author": "ann"}).author == "ann"

    def test_numeric_text_becomes_string(self, small_scorer: LexiconScorer) -> None:
        record = RecordNormalizer(scorer=small_scorer).normalize({"Tweet": 12345})
        assert record.text == "12345"

    def test_normalize_all_numbers_rows(self, small_scorer: LexiconScorer) -> None:
        rows = [{"Tweet": "a"}, {"Tweet": "b"}, {"Tweet": "c"}]
        records = RecordNormalizer(scorer=small_scorer).normalize_all(rows)
        assert [r.record_id for r in records] == [0, 1, 2]
        assert [r.text for r in records] == ["a", "b", "c"]

    def test_to_dict_serializes_timestamp(self, small_scorer: LexiconScorer) -> None:
        record = RecordNormalizer(scorer=small_scorer).normalize(
            {"Tweet": "a", "Date": "2024-03-01T10:00:00"}
        )
        assert record.to_dict()["timestamp"] == "2024-03-01T10:00:00"


class TestNormalizeFunction:
    def test_module_level_normalize(self, small_scorer: LexiconScorer, fixed_now: datetime) -> None:
        record = normalize({"Tweet": "great"}, small_scorer, record_id=3, now=_clock(fixed_now))
        assert record.record_id == 3
        assert record.sentiment_label == "positive"
        assert record.timestamp == fixed_now

    def test_aliases_and_thresholds(self, small_scorer: LexiconScorer) -> None:
        record = normalize(
            {"Body": "great"}, small_scorer, aliases={"text": ["Body"]}, thresholds=(5, -5)
        )
        assert record.text == "great"
        assert record.sentiment_label == "neutral"
