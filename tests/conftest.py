"""Shared fixtures for complaint-topics tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from complaints.record_types import NormalizedRecord
from complaints.sentiment import LexiconScorer
from complaints.taxonomy import Taxonomy, build_taxonomy, load_taxonomy

FIXED_NOW = datetime(2025, 1, 30, 12, 0, 0)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the config directory."""
    return project_root / "config"


@pytest.fixture
def schemas_dir(config_dir: Path) -> Path:
    """Return the schemas directory."""
    return config_dir / "schemas"


@pytest.fixture
def retail_taxonomy(config_dir: Path) -> Taxonomy:
    """Load the bundled retail taxonomy."""
    return load_taxonomy(config_dir / "taxonomies" / "retail_v3.yaml")


@pytest.fixture
def two_topic_raw() -> dict[str, Any]:
    """A minimal taxonomy: two keyword topics plus a catch-all."""
    return {
        "name": "two-topic",
        "version": "1",
        "topics": [
            {
                "name": "Topic A",
                "keywords": ["late delivery"],
                "subtopics": [
                    {"name": "S1", "keywords": ["lost parcel"]},
                    {"name": "S2"},
                ],
            },
            {
                "name": "Topic B",
                "keywords": ["faulty"],
                "subtopics": [
                    {"name": "S3", "keywords": ["broken"]},
                    {"name": "S4"},
                ],
            },
            {
                "name": "Miscellaneous",
                "subtopics": [{"name": "Catch-all"}],
            },
        ],
    }


@pytest.fixture
def two_topic_taxonomy(two_topic_raw: dict[str, Any]) -> Taxonomy:
    """The two-topic taxonomy, built and validated."""
    return build_taxonomy(two_topic_raw)


@pytest.fixture
def small_scorer() -> LexiconScorer:
    """A scorer over a tiny hand-made lexicon."""
    return LexiconScorer({
        "love": 3,
        "great": 3,
        "thanks": 2,
        "awful": -3,
        "broken": -2,
        "faulty": -2,
        "late": -1,
    })


@pytest.fixture
def fixed_now() -> datetime:
    """Clock value used when a record has no usable date."""
    return FIXED_NOW


def make_record(text: str, **kwargs: Any) -> NormalizedRecord:
    """Build a NormalizedRecord with a fixed timestamp unless given one."""
    kwargs.setdefault("timestamp", FIXED_NOW)
    return NormalizedRecord(text=text, **kwargs)
