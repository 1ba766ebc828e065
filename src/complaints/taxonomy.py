"""Topic taxonomy: types, YAML loading and validation.

A taxonomy is an ordered list of topics, each with an ordered list of
subtopics. Declaration order is the classification tie-break, so it is
preserved exactly as configured. Every topic designates a general
subtopic, and the taxonomy designates one miscellaneous topic that
receives every record no topic keyword matches.

All structural problems are reported as TaxonomyError when the taxonomy
is built, never during classification.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

GENERAL_PREFIXES = ("general", "other")
MISCELLANEOUS_PREFIXES = ("miscellaneous", "other", "uncategorized")


class TaxonomyError(ValueError):
    """Raised when a taxonomy definition is structurally invalid."""


@dataclass(frozen=True)
class Subtopic:
    """A second-level category with its trigger keywords."""

    name: str
    keywords: tuple[str, ...] = ()

    def matches(self, text_lower: str) -> bool:
        """True if any keyword occurs in the already lower-cased text."""
        return any(kw in text_lower for kw in self.keywords)


@dataclass(frozen=True)
class Topic:
    """A top-level category with its keywords and subtopics."""

    name: str
    keywords: tuple[str, ...]
    subtopics: tuple[Subtopic, ...]
    general_index: int

    @property
    def general_subtopic(self) -> Subtopic:
        return self.subtopics[self.general_index]

    def matches(self, text_lower: str) -> bool:
        """True if any keyword occurs in the already lower-cased text."""
        return any(kw in text_lower for kw in self.keywords)

    def subtopic(self, name: str) -> Subtopic | None:
        for sub in self.subtopics:
            if sub.name == name:
                return sub
        return None


@dataclass(frozen=True)
class Taxonomy:
    """An ordered, validated set of topics."""

    name: str
    version: str
    topics: tuple[Topic, ...]
    miscellaneous_index: int

    @property
    def miscellaneous_topic(self) -> Topic:
        return self.topics[self.miscellaneous_index]

    @property
    def catch_all_subtopic(self) -> Subtopic:
        return self.miscellaneous_topic.general_subtopic

    def topic(self, name: str) -> Topic | None:
        for topic in self.topics:
            if topic.name == name:
                return topic
        return None

    def summary(self) -> dict[str, Any]:
        """Counts used by the CLI and logs."""
        return {
            "name": self.name,
            "version": self.version,
            "topics": len(self.topics),
            "subtopics": sum(len(t.subtopics) for t in self.topics),
            "miscellaneous_topic": self.miscellaneous_topic.name,
            "catch_all_subtopic": self.catch_all_subtopic.name,
        }


def _clean_keywords(raw: Any, owner: str) -> tuple[str, ...]:
    """Lower-case and strip a keyword list, dropping blanks."""
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise TaxonomyError(f"Keywords for '{owner}' must be a list, got {type(raw).__name__}")
    cleaned: list[str] = []
    for kw in raw:
        kw_lower = str(kw).strip().lower()
        if kw_lower:
            cleaned.append(kw_lower)
    return tuple(cleaned)


def _resolve_general_index(
    topic_name: str,
    subtopics: tuple[Subtopic, ...],
    declared: str | None,
) -> int:
    """Find the fallback subtopic of a topic.

    Explicit declaration wins, then a name starting with General/Other,
    then the last declared subtopic.
    """
    if declared:
        for i, sub in enumerate(subtopics):
            if sub.name == declared:
                return i
        raise TaxonomyError(
            f"Topic '{topic_name}' declares general subtopic '{declared}' which does not exist"
        )
    for i, sub in enumerate(subtopics):
        if sub.name.lower().startswith(GENERAL_PREFIXES):
            return i
    return len(subtopics) - 1


def _resolve_miscellaneous_index(topics: tuple[Topic, ...], declared: str | None) -> int:
    if declared:
        for i, topic in enumerate(topics):
            if topic.name == declared:
                return i
        raise TaxonomyError(f"Miscellaneous topic '{declared}' is not defined in the taxonomy")
    for i, topic in enumerate(topics):
        if topic.name.lower().startswith(MISCELLANEOUS_PREFIXES):
            return i
    raise TaxonomyError(
        "Taxonomy has no miscellaneous topic; declare 'miscellaneous_topic' "
        "or name a topic 'Miscellaneous ...'"
    )


def _build_topic(raw: dict[str, Any], position: int) -> Topic:
    if not isinstance(raw, dict):
        raise TaxonomyError(f"Topic #{position + 1} must be a mapping")

    name = str(raw.get("name") or "").strip()
    if not name:
        raise TaxonomyError(f"Topic #{position + 1} has no name")

    raw_subtopics = raw.get("subtopics") or []
    if not raw_subtopics:
        raise TaxonomyError(f"Topic '{name}' has no subtopics")

    subtopics: list[Subtopic] = []
    seen: set[str] = set()
    for j, raw_sub in enumerate(raw_subtopics):
        if isinstance(raw_sub, str):
            raw_sub = {"name": raw_sub}
        if not isinstance(raw_sub, dict):
            raise TaxonomyError(f"Subtopic #{j + 1} of '{name}' must be a mapping")
        sub_name = str(raw_sub.get("name") or "").strip()
        if not sub_name:
            raise TaxonomyError(f"Subtopic #{j + 1} of '{name}' has no name")
        if sub_name in seen:
            raise TaxonomyError(f"Duplicate subtopic '{sub_name}' in topic '{name}'")
        seen.add(sub_name)
        subtopics.append(
            Subtopic(name=sub_name, keywords=_clean_keywords(raw_sub.get("keywords"), sub_name))
        )

    subtopic_tuple = tuple(subtopics)
    general_index = _resolve_general_index(name, subtopic_tuple, raw.get("general_subtopic"))

    for j, sub in enumerate(subtopic_tuple):
        if j != general_index and not sub.keywords:
            raise TaxonomyError(f"Subtopic '{sub.name}' of '{name}' has no keywords")

    topic = Topic(
        name=name,
        keywords=_clean_keywords(raw.get("keywords"), name),
        subtopics=subtopic_tuple,
        general_index=general_index,
    )
    return topic


def build_taxonomy(raw: dict[str, Any]) -> Taxonomy:
    """Build and validate a Taxonomy from its mapping form.

    Args:
        raw: Mapping with ``topics`` (list of topic mappings) and the
            optional ``name``, ``version`` and ``miscellaneous_topic``.

    Returns:
        Validated, immutable Taxonomy.

    Raises:
        TaxonomyError: On any structural problem.
    """
    if not isinstance(raw, dict):
        raise TaxonomyError("Taxonomy definition must be a mapping")

    raw_topics = raw.get("topics") or []
    if not raw_topics:
        raise TaxonomyError("Taxonomy defines no topics")

    topics: list[Topic] = []
    seen: set[str] = set()
    for i, raw_topic in enumerate(raw_topics):
        topic = _build_topic(raw_topic, i)
        if topic.name in seen:
            raise TaxonomyError(f"Duplicate topic '{topic.name}'")
        seen.add(topic.name)
        topics.append(topic)

    topic_tuple = tuple(topics)
    misc_index = _resolve_miscellaneous_index(topic_tuple, raw.get("miscellaneous_topic"))

    for i, topic in enumerate(topic_tuple):
        if i != misc_index and not topic.keywords:
            raise TaxonomyError(f"Topic '{topic.name}' has no keywords")

    return Taxonomy(
        name=str(raw.get("name") or "unnamed"),
        version=str(raw.get("version") or "1"),
        topics=topic_tuple,
        miscellaneous_index=misc_index,
    )


def load_taxonomy(path: Path) -> Taxonomy:
    """Load and validate a taxonomy YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Taxonomy file not found: {path}")
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    try:
        return build_taxonomy(raw)
    except TaxonomyError as exc:
        raise TaxonomyError(f"{path.name}: {exc}") from exc
