"""Classification tree accumulation and batch sessions.

A ClassificationSession is created per batch run. It holds the taxonomy
and a ClassificationTree that starts with every topic and subtopic of the
taxonomy at zero, then grows by accumulation only (count +1, member
append). Large batches are split into chunks classified in worker
processes; each worker returns only the label pairs, and the parent
stamps them onto its own records in chunk order, so serial and parallel
runs yield the same tree, member order and identity included.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from itertools import repeat
from typing import Any

from complaints.classifiers.topic import classify, resolve_labels
from complaints.record_types import NormalizedRecord
from complaints.taxonomy import Taxonomy

logger = logging.getLogger(__name__)


@dataclass
class SubtopicNode:
    """Members classified into one subtopic."""

    name: str
    member_count: int = 0
    members: list[NormalizedRecord] = field(default_factory=list)

    def to_dict(self, include_members: bool = True) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "member_count": self.member_count}
        if include_members:
            d["members"] = [m.to_dict() for m in self.members]
        return d


@dataclass
class TopicNode:
    """A topic's running count and its subtopic nodes."""

    name: str
    subtopics: list[SubtopicNode] = field(default_factory=list)
    member_count: int = 0

    def subtopic(self, name: str) -> SubtopicNode | None:
        for node in self.subtopics:
            if node.name == name:
                return node
        return None

    def to_dict(
        self,
        include_members: bool = True,
        include_empty: bool = True,
        sort_by_count: bool = False,
    ) -> dict[str, Any]:
        subs = [s for s in self.subtopics if include_empty or s.member_count > 0]
        if sort_by_count:
            subs = sorted(subs, key=lambda s: s.member_count, reverse=True)
        return {
            "name": self.name,
            "member_count": self.member_count,
            "subtopics": [s.to_dict(include_members) for s in subs],
        }


class ClassificationTree:
    """Taxonomy root -> topics -> subtopics -> member records."""

    def __init__(self, taxonomy: Taxonomy) -> None:
        self.taxonomy_name = taxonomy.name
        self.topics: list[TopicNode] = []
        self._index: dict[tuple[str, str], tuple[int, int]] = {}
        for ti, topic in enumerate(taxonomy.topics):
            node = TopicNode(name=topic.name)
            for si, sub in enumerate(topic.subtopics):
                node.subtopics.append(SubtopicNode(name=sub.name))
                self._index[(topic.name, sub.name)] = (ti, si)
            self.topics.append(node)

    @property
    def total(self) -> int:
        return sum(t.member_count for t in self.topics)

    def topic(self, name: str) -> TopicNode | None:
        for node in self.topics:
            if node.name == name:
                return node
        return None

    def add(self, record: NormalizedRecord, topic: str, subtopic: str) -> None:
        """Append a record under topic/subtopic and bump both counts."""
        try:
            ti, si = self._index[(topic, subtopic)]
        except KeyError:
            raise ValueError(
                f"'{topic}' / '{subtopic}' is not part of taxonomy '{self.taxonomy_name}'"
            ) from None
        topic_node = self.topics[ti]
        sub_node = topic_node.subtopics[si]
        topic_node.member_count += 1
        sub_node.member_count += 1
        sub_node.members.append(record)

    def merge(self, other: ClassificationTree) -> None:
        """Fold another tree built from the same taxonomy into this one."""
        if other._index.keys() != self._index.keys():
            raise ValueError("Cannot merge trees built from different taxonomies")
        for mine, theirs in zip(self.topics, other.topics):
            mine.member_count += theirs.member_count
            for my_sub, their_sub in zip(mine.subtopics, theirs.subtopics):
                my_sub.member_count += their_sub.member_count
                my_sub.members.extend(their_sub.members)

    def iter_members(self) -> Iterator[tuple[str, str, NormalizedRecord]]:
        for topic in self.topics:
            for sub in topic.subtopics:
                for record in sub.members:
                    yield topic.name, sub.name, record

    def to_dict(
        self,
        include_members: bool = True,
        include_empty: bool = True,
        sort_by_count: bool = False,
    ) -> list[dict[str, Any]]:
        """Serialize as the ordered topic list the dashboard consumes."""
        topics = [t for t in self.topics if include_empty or t.member_count > 0]
        if sort_by_count:
            topics = sorted(topics, key=lambda t: t.member_count, reverse=True)
        return [t.to_dict(include_members, include_empty, sort_by_count) for t in topics]


def _chunks(records: Sequence[NormalizedRecord], size: int) -> list[Sequence[NormalizedRecord]]:
    return [records[i:i + size] for i in range(0, len(records), size)]


def _labels_for(
    taxonomy: Taxonomy,
    record: NormalizedRecord,
    use_sheet_labels: bool,
) -> tuple[str, str]:
    if use_sheet_labels and record.source_topic:
        return resolve_labels(taxonomy, record.source_topic, record.source_subtopic)
    return classify(record, taxonomy)


def _classify_chunk(
    taxonomy: Taxonomy,
    records: Sequence[NormalizedRecord],
    use_sheet_labels: bool,
) -> list[tuple[str, str]]:
    """Worker entry point: the (topic, subtopic) pair of each record, in order."""
    return [_labels_for(taxonomy, record, use_sheet_labels) for record in records]


class ClassificationSession:
    """Per-batch context: the taxonomy plus the tree being accumulated."""

    def __init__(self, taxonomy: Taxonomy) -> None:
        self.taxonomy = taxonomy
        self.tree = ClassificationTree(taxonomy)

    def _record(self, record: NormalizedRecord, topic: str, subtopic: str) -> tuple[str, str]:
        record.topic = topic
        record.subtopic = subtopic
        self.tree.add(record, topic, subtopic)
        return topic, subtopic

    def classify(self, record: NormalizedRecord) -> tuple[str, str]:
        """Classify by keywords, stamp the record and add it to the tree."""
        topic, subtopic = classify(record, self.taxonomy)
        return self._record(record, topic, subtopic)

    def assign(
        self,
        record: NormalizedRecord,
        topic_name: str | None,
        subtopic_name: str | None,
    ) -> tuple[str, str]:
        """Add a record under pre-assigned labels, with taxonomy fallbacks."""
        topic, subtopic = resolve_labels(self.taxonomy, topic_name, subtopic_name)
        return self._record(record, topic, subtopic)

    def add(self, record: NormalizedRecord, use_sheet_labels: bool = False) -> tuple[str, str]:
        """Use the row's own labels when asked and present, else keywords."""
        topic, subtopic = _labels_for(self.taxonomy, record, use_sheet_labels)
        return self._record(record, topic, subtopic)

    def classify_batch(
        self,
        records: Sequence[NormalizedRecord],
        *,
        workers: int = 1,
        chunk_size: int = 500,
        use_sheet_labels: bool = False,
    ) -> ClassificationTree:
        """Classify a batch into this session's tree.

        Runs in-process when workers <= 1 or the batch fits in one chunk;
        otherwise chunks are classified in a process pool and the returned
        labels are stamped onto the given records in order, so both paths
        label the caller's records and build the same tree.

        Args:
            records: Normalized records.
            workers: Maximum worker processes.
            chunk_size: Records per worker task.
            use_sheet_labels: Prefer labels already present in the rows.

        Returns:
            The session's tree.
        """
        chunk_size = max(chunk_size, 1)
        if workers <= 1 or len(records) <= chunk_size:
            for record in records:
                self.add(record, use_sheet_labels=use_sheet_labels)
            logger.info("Classified %d records in-process", len(records))
            return self.tree

        chunks = _chunks(records, chunk_size)
        logger.info(
            "Classifying %d records in %d chunks across %d workers",
            len(records), len(chunks), workers,
        )
        with ProcessPoolExecutor(max_workers=workers) as executor:
            labelled = executor.map(
                _classify_chunk, repeat(self.taxonomy), chunks, repeat(use_sheet_labels)
            )
            for chunk, labels in zip(chunks, labelled):
                for record, (topic, subtopic) in zip(chunk, labels):
                    self._record(record, topic, subtopic)
        return self.tree
