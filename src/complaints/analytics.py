"""Dashboard aggregates computed from a classification tree.

Each function is pure and reads the tree only; the dashboard layer turns
these lists and dicts into charts, tables and the recommendation panel.
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from typing import Any

from complaints.record_types import SENTIMENT_LABELS
from complaints.session import ClassificationTree

STOPWORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "is", "are", "was", "were", "be", "been", "being",
    "in", "on", "at", "to", "for", "with", "by", "about", "against", "between", "into",
    "through", "during", "before", "after", "above", "below", "from", "up", "down", "of",
    "off", "over", "under", "again", "further", "then", "once", "here", "there", "when",
    "where", "why", "how", "all", "any", "both", "each", "few", "more", "most", "other",
    "some", "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "can", "will", "just", "should", "now", "i", "me", "my", "myself", "we", "our", "ours",
    "ourselves", "you", "your", "yours", "yourself", "yourselves", "he", "him", "his",
    "himself", "she", "her", "hers", "herself", "it", "its", "itself", "they", "them",
    "their", "theirs", "themselves", "what", "which", "who", "whom", "this", "that",
    "these", "those", "am", "have", "has", "had", "having", "do", "does", "did", "doing",
    "would", "could", "ought", "i'm", "you're", "he's", "she's", "it's", "we're",
    "they're", "i've", "you've", "we've", "they've", "i'd", "you'd", "he'd", "she'd",
    "we'd", "they'd", "i'll", "you'll", "he'll", "she'll", "we'll", "they'll", "isn't",
    "aren't", "wasn't", "weren't", "hasn't", "haven't", "hadn't", "doesn't", "don't",
    "didn't", "won't", "wouldn't", "shan't", "shouldn't", "can't", "cannot", "couldn't",
    "mustn't", "let's", "that's", "who's", "what's", "here's", "there's", "when's",
    "where's", "why's", "how's", "next",
])

HASHTAG_WEIGHT = 2

_HASHTAG_RE = re.compile(r"#\w+")
_STRIP_RE = re.compile(r"[^\w\s#@']")


def topic_distribution(tree: ClassificationTree) -> list[dict[str, Any]]:
    """Member count per topic, in taxonomy order."""
    return [{"name": t.name, "value": t.member_count} for t in tree.topics]


def subtopic_heatmap(tree: ClassificationTree) -> list[dict[str, Any]]:
    """One cell per topic/subtopic pair."""
    return [
        {"topic": t.name, "subtopic": s.name, "value": s.member_count}
        for t in tree.topics
        for s in t.subtopics
    ]


def trends_over_time(tree: ClassificationTree) -> list[dict[str, Any]]:
    """Daily post counts, overall and per topic, sorted by date."""
    by_date: dict[str, dict[str, Any]] = {}
    for topic, _, record in tree.iter_members():
        key = record.timestamp.strftime("%Y-%m-%d")
        bucket = by_date.setdefault(key, {"date": key, "count": 0, "by_topic": {}})
        bucket["count"] += 1
        bucket["by_topic"][topic] = bucket["by_topic"].get(topic, 0) + 1
    return [by_date[k] for k in sorted(by_date)]


def sentiment_breakdown(tree: ClassificationTree) -> dict[str, Any]:
    """Sentiment label counts overall and per topic."""
    overall = {label: 0 for label in SENTIMENT_LABELS}
    by_topic = {t.name: {label: 0 for label in SENTIMENT_LABELS} for t in tree.topics}
    total = 0
    for topic, _, record in tree.iter_members():
        overall[record.sentiment_label] += 1
        by_topic[topic][record.sentiment_label] += 1
        total += 1
    return {"overall": overall, "by_topic": by_topic, "total": total}


def _words(text: str) -> list[str]:
    cleaned = _STRIP_RE.sub("", text.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOPWORDS and not w.startswith("#")]


def top_keywords(tree: ClassificationTree, limit: int = 50) -> dict[str, list[dict[str, Any]]]:
    """Most frequent words per topic; hashtags count double."""
    result: dict[str, list[dict[str, Any]]] = {}
    for topic in tree.topics:
        counts: Counter[str] = Counter()
        for sub in topic.subtopics:
            for record in sub.members:
                counts.update(_words(record.text))
                for tag in _HASHTAG_RE.findall(record.text):
                    counts[tag.lower()] += HASHTAG_WEIGHT
        result[topic.name] = [
            {"text": word, "value": value} for word, value in counts.most_common(limit)
        ]
    return result


def critical_complaints(tree: ClassificationTree, limit: int = 10) -> list[dict[str, Any]]:
    """The most engaged-with posts (likes + replies)."""
    rows = []
    for topic, subtopic, record in tree.iter_members():
        rows.append({
            "record_id": record.record_id,
            "text": record.text,
            "author": record.author,
            "topic": topic,
            "subtopic": subtopic,
            "likes": record.like_count,
            "replies": record.reply_count,
            "engagement": record.like_count + record.reply_count,
        })
    rows.sort(key=lambda r: r["engagement"], reverse=True)
    return rows[:limit]


def influential_users(tree: ClassificationTree, limit: int = 10) -> list[dict[str, Any]]:
    """Authors ranked by total engagement across their posts."""
    users: dict[str, dict[str, Any]] = {}
    user_topics: dict[str, list[str]] = defaultdict(list)
    for topic, _, record in tree.iter_members():
        if not record.author:
            continue
        entry = users.setdefault(record.author, {
            "username": record.author,
            "post_count": 0,
            "total_likes": 0,
            "total_views": 0,
            "engagement": 0,
            "followers": 0,
        })
        entry["post_count"] += 1
        entry["total_likes"] += record.like_count
        entry["total_views"] += record.view_count
        entry["engagement"] += record.like_count + record.reply_count
        entry["followers"] = max(entry["followers"], record.follower_count)
        if topic not in user_topics[record.author]:
            user_topics[record.author].append(topic)

    ranked = []
    for name, entry in users.items():
        entry["topics"] = user_topics[name]
        entry["avg_engagement"] = entry["engagement"] / entry["post_count"]
        ranked.append(entry)
    ranked.sort(key=lambda u: u["engagement"], reverse=True)
    return ranked[:limit]


def recommendations(
    tree: ClassificationTree,
    sentiment: dict[str, Any] | None = None,
    limit: int = 3,
) -> list[dict[str, Any]]:
    """Topics with the highest share of negative posts, worst first."""
    sentiment = sentiment or sentiment_breakdown(tree)
    issues = []
    for topic_name, counts in sentiment["by_topic"].items():
        total = sum(counts.values())
        if total == 0:
            continue
        issues.append({
            "topic": topic_name,
            "negative_count": counts["negative"],
            "percentage": counts["negative"] / total,
        })
    issues.sort(key=lambda i: i["percentage"], reverse=True)

    result = []
    for issue in issues[:limit]:
        node = tree.topic(issue["topic"])
        busiest = max(node.subtopics, key=lambda s: s.member_count) if node else None
        focus = busiest.name if busiest and busiest.member_count else "general issues"
        issue["recommendation"] = (
            f"Address {issue['topic']} issues, particularly around {focus}. "
            f"{issue['negative_count']} negative posts indicate customer dissatisfaction."
        )
        result.append(issue)
    return result


def build_analytics(
    tree: ClassificationTree,
    keyword_limit: int = 50,
    complaint_limit: int = 10,
    user_limit: int = 10,
    recommendation_limit: int = 3,
) -> dict[str, Any]:
    """All dashboard aggregates in one mapping."""
    sentiment = sentiment_breakdown(tree)
    return {
        "topic_distribution": topic_distribution(tree),
        "subtopic_heatmap": subtopic_heatmap(tree),
        "trends": trends_over_time(tree),
        "sentiment": sentiment,
        "top_keywords": top_keywords(tree, keyword_limit),
        "critical_complaints": critical_complaints(tree, complaint_limit),
        "influential_users": influential_users(tree, user_limit),
        "recommendations": recommendations(tree, sentiment, recommendation_limit),
    }
