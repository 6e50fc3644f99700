"""
Mood aggregation over classified posts.

Every function here is pure: it takes a sequence of ClassifiedPost and
returns derived views without touching storage. None of them raise for
empty input, a single post, or duplicate timestamps.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, timezone
from types import MappingProxyType

from .models import (
    AuthorStats,
    ClassifiedPost,
    DailyMood,
    Emotion,
    MoodDistributionEntry,
    MoodTrendPoint,
    color_for,
)

DEFAULT_WINDOW = 100

# Emotions missing from this table score NEUTRAL_SCORE
EMOTION_SCORES = MappingProxyType(
    {
        Emotion.HAPPY: 9,
        Emotion.HOPEFUL: 8,
        Emotion.CALM: 7,
        Emotion.MELANCHOLY: 4,
        Emotion.SAD: 3,
        Emotion.ANXIOUS: 3,
        Emotion.FRUSTRATED: 2,
        Emotion.OVERWHELMED: 1,
    }
)
NEUTRAL_SCORE = 5

_DECLARATION_ORDER = {emotion: index for index, emotion in enumerate(Emotion)}

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


def score_for(emotion: Emotion) -> int:
    return EMOTION_SCORES.get(emotion, NEUTRAL_SCORE)


def _utc_day(post: ClassifiedPost) -> date:
    return post.created_at.astimezone(timezone.utc).date()


def _day_label(day: date) -> str:
    # strftime month names depend on the process locale, so spell them out
    return f"{_MONTHS[day.month - 1]} {day.day:02d}"


# MARK: - Mood ring


def distribution(
    posts: Iterable[ClassifiedPost], window: int = DEFAULT_WINDOW
) -> list[MoodDistributionEntry]:
    """
    Rank emotions over the most recent posts.

    Args:
        posts: Posts in any order
        window: How many of the most recent posts to consider

    Returns:
        Entries ordered by count descending, ties in Emotion declaration order.
        Empty when there are no posts to consider.
    """
    if window < 1:
        return []

    recent = sorted(posts, key=lambda post: post.created_at, reverse=True)[:window]
    if not recent:
        return []

    counts = Counter(post.emotion for post in recent)
    total = len(recent)
    ranked = sorted(
        counts.items(), key=lambda item: (-item[1], _DECLARATION_ORDER[item[0]])
    )
    return [
        MoodDistributionEntry(
            emotion=emotion,
            count=count,
            share=count / total,
            color=color_for(emotion),
        )
        for emotion, count in ranked
    ]


def dominant_emotion(entries: Sequence[MoodDistributionEntry]) -> Emotion:
    """Top emotion of a mood ring, Calm when there is nothing to rank."""
    if not entries:
        return Emotion.CALM
    return entries[0].emotion


# MARK: - Author trend


def trend(posts: Iterable[ClassifiedPost]) -> list[MoodTrendPoint]:
    """
    Plot one author's posts as a chronological mood trend.

    Filtering by author is left to the caller. Posts sharing a timestamp
    keep their input order, and same-day posts remain separate points.
    """
    ordered = sorted(posts, key=lambda post: post.created_at)
    points = []
    for post in ordered:
        day = _utc_day(post)
        points.append(
            MoodTrendPoint(
                date_bucket=day,
                label=_day_label(day),
                score=score_for(post.emotion),
                emotion=post.emotion,
                title=post.title,
            )
        )
    return points


def daily_trend(posts: Iterable[ClassifiedPost]) -> list[DailyMood]:
    """Average the trend per calendar day."""
    buckets: dict[date, list[int]] = {}
    for point in trend(posts):
        buckets.setdefault(point.date_bucket, []).append(point.score)

    return [
        DailyMood(
            date_bucket=day,
            label=_day_label(day),
            score=sum(scores) / len(scores),
            posts=len(scores),
        )
        for day, scores in buckets.items()
    ]


def current_vibe(posts: Iterable[ClassifiedPost]) -> Emotion:
    """
    Emotion of the most recently created post, Neutral if there is none.

    This is the latest mood, not the most frequent one.
    """
    latest = max(posts, key=lambda post: post.created_at, default=None)
    if latest is None:
        return Emotion.NEUTRAL
    return latest.emotion


def author_stats(posts: Iterable[ClassifiedPost]) -> AuthorStats:
    total_posts = 0
    total_hugs = 0
    for post in posts:
        total_posts += 1
        total_hugs += post.hug_count
    return AuthorStats(total_posts=total_posts, total_hugs=total_hugs)
