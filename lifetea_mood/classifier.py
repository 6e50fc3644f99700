"""
Emotion classification for LifeTea stories.

The classifier turns story text into one of the nine emotion labels. Short
texts are labelled ``Neutral`` without consulting any model; longer texts are
scored by an external sentiment backend whose winning base sentiment is
remapped through a fixed table. Any failure of the backend degrades to
``Neutral``, so callers never see an error from ``classify``.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from .config import Settings
from .models import Emotion

logger = logging.getLogger(__name__)

DEFAULT_MIN_LENGTH = 20

DEFAULT_LABEL_MAP: Mapping[str, Emotion] = MappingProxyType(
    {
        "joy": Emotion.HAPPY,
        "sadness": Emotion.SAD,
        "anger": Emotion.FRUSTRATED,
        "fear": Emotion.ANXIOUS,
        "surprise": Emotion.HOPEFUL,
        "disgust": Emotion.OVERWHELMED,
        "neutral": Emotion.CALM,
    }
)


class SentimentUnavailable(Exception):
    """Raised by a backend when no usable sentiment scores could be obtained."""


class SentimentScore(BaseModel):
    """Confidence of a single base sentiment."""

    label: str = Field(..., description="Base sentiment name, e.g. 'joy'")
    score: float = Field(
        ..., allow_inf_nan=False, description="Model confidence for the label"
    )


class SentimentBackend(Protocol):
    """Anything that can score text against the base sentiment vocabulary."""

    def predict(self, text: str) -> list[SentimentScore]: ...


# MARK: - Backends


class HuggingFaceSentimentBackend:
    """
    Sentiment backend calling a Hugging Face text-classification endpoint.

    The inference API answers either ``[[{label, score}, ...]]`` or
    ``[{label, score}, ...]``. Every other outcome, including timeouts and
    non-2xx statuses, raises SentimentUnavailable.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._owns_client = client is None
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = client or httpx.Client(timeout=timeout)

    def predict(self, text: str) -> list[SentimentScore]:
        try:
            response = self._client.post(
                self.url, json={"inputs": text}, headers=self._headers
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SentimentUnavailable(
                f"inference returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SentimentUnavailable(f"inference request failed: {e}") from e
        except ValueError as e:
            raise SentimentUnavailable("inference returned invalid JSON") from e

        return _parse_scores(payload)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HuggingFaceSentimentBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class StaticSentimentBackend:
    """Backend returning fixed scores, for offline runs and tests."""

    def __init__(self, scores: list[SentimentScore] | None = None) -> None:
        self.scores = scores or [SentimentScore(label="neutral", score=1.0)]
        self.calls: list[str] = []

    def predict(self, text: str) -> list[SentimentScore]:
        self.calls.append(text)
        return list(self.scores)


def _parse_scores(payload: Any) -> list[SentimentScore]:
    if not isinstance(payload, list) or not payload:
        raise SentimentUnavailable("inference returned no results")

    # Single-input requests come back wrapped in an outer list
    items = payload[0] if isinstance(payload[0], list) else payload
    if not items:
        raise SentimentUnavailable("inference returned an empty result")

    try:
        return [SentimentScore.model_validate(item) for item in items]
    except ValidationError as e:
        raise SentimentUnavailable("inference returned malformed scores") from e


# MARK: - Classifier


class EmotionClassifier:
    """
    Maps story text to an Emotion using a pluggable sentiment backend.

    Output is always one of the nine story labels; ``Emotion.DEFAULT`` is
    never produced.
    """

    def __init__(
        self,
        backend: SentimentBackend,
        min_length: int = DEFAULT_MIN_LENGTH,
        label_map: Mapping[str, Emotion] = DEFAULT_LABEL_MAP,
    ) -> None:
        self.backend = backend
        self.min_length = min_length
        self.label_map = MappingProxyType(
            {label.lower(): emotion for label, emotion in label_map.items()}
        )

    def classify(self, text: str) -> Emotion:
        """
        Classify a story.

        Args:
            text: The raw story content

        Returns:
            The detected emotion, or Neutral when the text is too short or the
            backend could not produce a usable answer
        """
        if len(text) < self.min_length:
            return Emotion.NEUTRAL

        try:
            scores = self.backend.predict(text)
        except SentimentUnavailable as e:
            logger.warning("Emotion classification unavailable: %s", e)
            return Emotion.NEUTRAL
        except Exception:
            logger.warning("Sentiment backend failed", exc_info=True)
            return Emotion.NEUTRAL

        if not scores:
            logger.warning("Sentiment backend returned no scores")
            return Emotion.NEUTRAL

        top = scores[0]
        for candidate in scores[1:]:
            if candidate.score > top.score:
                top = candidate

        emotion = self.label_map.get(top.label.lower(), Emotion.NEUTRAL)
        if emotion is Emotion.DEFAULT:
            return Emotion.NEUTRAL
        logger.debug(
            "Classified story as %s (%s=%.3f)", emotion.value, top.label, top.score
        )
        return emotion


def build_classifier(settings: Settings) -> EmotionClassifier:
    """Create the classifier described by the given settings."""
    backend: SentimentBackend
    if settings.inference_url:
        backend = HuggingFaceSentimentBackend(
            url=settings.inference_url,
            token=settings.inference_token,
            timeout=settings.inference_timeout,
        )
    else:
        logger.info("No inference URL configured, classifying offline")
        backend = StaticSentimentBackend()
    return EmotionClassifier(backend, min_length=settings.min_classify_length)
