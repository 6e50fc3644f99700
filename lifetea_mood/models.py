"""
Shared data models for the LifeTea mood service.

This module defines the emotion label set and the domain models exchanged
between the classifier, the aggregator, the post store, the API and the CLI.
"""

from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Emotion(str, Enum):
    """
    Emotion labels attached to stories.

    Declaration order is the mood scale from best to worst, followed by the
    two unscored labels. The mood ring uses it to break count ties.
    """

    HAPPY = "Happy"
    HOPEFUL = "Hopeful"
    CALM = "Calm"
    MELANCHOLY = "Melancholy"
    SAD = "Sad"
    ANXIOUS = "Anxious"
    FRUSTRATED = "Frustrated"
    OVERWHELMED = "Overwhelmed"
    NEUTRAL = "Neutral"
    # UI-only sentinel for unknown or missing labels, never classified
    DEFAULT = "Default"

    @classmethod
    def coerce(cls, value: object) -> "Emotion":
        """Return the matching label, or DEFAULT for anything unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.DEFAULT


EMOTION_COLORS = MappingProxyType(
    {
        Emotion.HAPPY: "#F59E0B",
        Emotion.SAD: "#6366F1",
        Emotion.FRUSTRATED: "#EF4444",
        Emotion.CALM: "#8B5CF6",
        Emotion.ANXIOUS: "#F97316",
        Emotion.MELANCHOLY: "#3B82F6",
        Emotion.HOPEFUL: "#10B981",
        Emotion.OVERWHELMED: "#EC4899",
        Emotion.DEFAULT: "#CBD5E1",
    }
)

EMOTION_EMOJIS = MappingProxyType(
    {
        Emotion.HAPPY: "😊",
        Emotion.HOPEFUL: "✨",
        Emotion.CALM: "😌",
        Emotion.MELANCHOLY: "🌧️",
        Emotion.SAD: "😢",
        Emotion.ANXIOUS: "😰",
        Emotion.FRUSTRATED: "😤",
        Emotion.OVERWHELMED: "😵",
        Emotion.DEFAULT: "😐",
    }
)


def color_for(emotion: Emotion) -> str:
    return EMOTION_COLORS.get(emotion, EMOTION_COLORS[Emotion.DEFAULT])


def emoji_for(emotion: Emotion) -> str:
    return EMOTION_EMOJIS.get(emotion, EMOTION_EMOJIS[Emotion.DEFAULT])


class ClassifiedPost(BaseModel):
    """A story that already carries an emotion label."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique post identifier")
    emotion: Emotion = Field(..., description="Emotion label of the story")
    created_at: datetime = Field(..., description="When the post was created")
    title: str = Field("", description="Story title")
    author_id: str | None = Field(None, description="Author, if known")
    hug_count: int = Field(0, ge=0, description="Number of hugs received")

    @field_validator("emotion", mode="before")
    @classmethod
    def _coerce_emotion(cls, value: object) -> Emotion:
        return Emotion.coerce(value)

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class MoodDistributionEntry(BaseModel):
    """One slice of the mood ring."""

    emotion: Emotion
    count: int = Field(..., ge=1)
    share: float = Field(..., ge=0.0, le=1.0)
    color: str


class MoodTrendPoint(BaseModel):
    """One post plotted on an author's mood trend."""

    date_bucket: date = Field(..., description="UTC calendar day of the post")
    label: str = Field(..., description='Display form of the day, e.g. "Oct 19"')
    score: int = Field(..., ge=1, le=9)
    emotion: Emotion
    title: str


class DailyMood(BaseModel):
    """Mean mood score over all posts of one calendar day."""

    date_bucket: date
    label: str
    score: float = Field(..., ge=1.0, le=9.0)
    posts: int = Field(..., ge=1)


class AuthorStats(BaseModel):
    total_posts: int
    total_hugs: int
