"""Ordered keyword classification into topic and subtopic.

Walks the taxonomy in declaration order and assigns the first topic that
has any keyword occurring in the text, then the first subtopic of that
topic with a keyword hit. Matching is a case-insensitive substring test
with no tokenization, so "cat" also matches inside "category".

Fallbacks:
  - topic matched but no subtopic keyword -> the topic's general subtopic
  - no topic matched -> the miscellaneous topic and its catch-all subtopic

The taxonomy is validated when it is built, so every call returns a pair.
"""

from __future__ import annotations

from complaints.record_types import NormalizedRecord
from complaints.taxonomy import Taxonomy, Topic


def _match_subtopic(topic: Topic, text_lower: str) -> str:
    for subtopic in topic.subtopics:
        if subtopic.matches(text_lower):
            return subtopic.name
    return topic.general_subtopic.name


def classify_text(text: str, taxonomy: Taxonomy) -> tuple[str, str]:
    """Classify free text into (topic name, subtopic name).

    Args:
        text: Post text, possibly empty.
        taxonomy: A validated taxonomy.

    Returns:
        Topic and subtopic names, both drawn from the taxonomy.
    """
    text_lower = (text or "").lower()

    for topic in taxonomy.topics:
        if topic.matches(text_lower):
            return topic.name, _match_subtopic(topic, text_lower)

    return taxonomy.miscellaneous_topic.name, taxonomy.catch_all_subtopic.name


def classify(record: NormalizedRecord, taxonomy: Taxonomy) -> tuple[str, str]:
    """Classify a normalized record by its text."""
    return classify_text(record.text, taxonomy)


def _find_topic(taxonomy: Taxonomy, name: str) -> Topic | None:
    topic = taxonomy.topic(name)
    if topic is not None:
        return topic
    folded = name.casefold()
    for candidate in taxonomy.topics:
        if candidate.name.casefold() == folded:
            return candidate
    return None


def resolve_labels(
    taxonomy: Taxonomy,
    topic_name: str | None,
    subtopic_name: str | None,
) -> tuple[str, str]:
    """Map labels supplied by the spreadsheet onto the taxonomy.

    Unknown or blank topics go to the miscellaneous topic's catch-all;
    unknown or blank subtopics go to the topic's general subtopic.
    """
    topic = _find_topic(taxonomy, (topic_name or "").strip())
    if topic is None:
        return taxonomy.miscellaneous_topic.name, taxonomy.catch_all_subtopic.name

    wanted = (subtopic_name or "").strip()
    if wanted:
        sub = topic.subtopic(wanted)
        if sub is not None:
            return topic.name, sub.name
        folded = wanted.casefold()
        for candidate in topic.subtopics:
            if candidate.name.casefold() == folded:
                return topic.name, candidate.name

    return topic.name, topic.general_subtopic.name
