"""
Tests for the EmotionClassifier and its sentiment backends.

These tests verify the length gate, the label remap, tie-breaking, and that
every backend failure degrades to Neutral instead of raising.
"""

import json

import httpx
import pytest

from lifetea_mood.classifier import (
    EmotionClassifier,
    HuggingFaceSentimentBackend,
    SentimentScore,
    SentimentUnavailable,
    StaticSentimentBackend,
    build_classifier,
)
from lifetea_mood.config import Settings
from lifetea_mood.models import Emotion

LONG_TEXT = "Today I finally told my family how I have been feeling."


def _scores(**scores: float) -> list[SentimentScore]:
    return [SentimentScore(label=label, score=score) for label, score in scores.items()]


class FailingBackend:
    """Backend that always fails with the given exception."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def predict(self, text: str) -> list[SentimentScore]:
        self.calls += 1
        raise self.error


def _hf_backend(handler) -> HuggingFaceSentimentBackend:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HuggingFaceSentimentBackend(url="https://inference.test/model", client=client)


# MARK: - Classifier


class TestEmotionClassifier:
    """Test suite for the classification rules."""

    def test_short_text_skips_backend(self):
        """Texts under 20 characters are Neutral without calling the model."""
        backend = StaticSentimentBackend(_scores(joy=0.99))
        classifier = EmotionClassifier(backend)

        assert classifier.classify("") == Emotion.NEUTRAL
        assert classifier.classify("so happy today!!") == Emotion.NEUTRAL
        assert classifier.classify("x" * 19) == Emotion.NEUTRAL
        assert backend.calls == []

    def test_twenty_characters_reach_backend(self):
        """The length gate is strictly below 20 characters."""
        backend = StaticSentimentBackend(_scores(joy=0.99))
        classifier = EmotionClassifier(backend)

        assert classifier.classify("x" * 20) == Emotion.HAPPY
        assert backend.calls == ["x" * 20]

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("joy", Emotion.HAPPY),
            ("sadness", Emotion.SAD),
            ("anger", Emotion.FRUSTRATED),
            ("fear", Emotion.ANXIOUS),
            ("surprise", Emotion.HOPEFUL),
            ("disgust", Emotion.OVERWHELMED),
            ("neutral", Emotion.CALM),
        ],
    )
    def test_label_remap(self, label, expected):
        """Each base sentiment maps to its fixed story emotion."""
        scores = _scores(joy=0.1, sadness=0.1, anger=0.1, neutral=0.1)
        scores.append(SentimentScore(label=label, score=0.9))
        classifier = EmotionClassifier(StaticSentimentBackend(scores))

        assert classifier.classify(LONG_TEXT) == expected

    def test_highest_score_wins(self):
        """The base sentiment with the greatest confidence is used."""
        backend = StaticSentimentBackend(
            _scores(joy=0.05, fear=0.71, sadness=0.2, neutral=0.04)
        )
        assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.ANXIOUS

    def test_ties_keep_first_label(self):
        """Equal confidences resolve to the first entry in the response."""
        backend = StaticSentimentBackend(_scores(anger=0.4, joy=0.4, neutral=0.2))
        assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.FRUSTRATED

    def test_unknown_label_is_neutral(self):
        """A winning label outside the remap table falls back to Neutral."""
        backend = StaticSentimentBackend(_scores(love=0.8, joy=0.2))
        assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.NEUTRAL

    def test_labels_are_case_insensitive(self):
        """Upper-case labels from the model still map."""
        backend = StaticSentimentBackend(_scores(JOY=0.8, Sadness=0.2))
        assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.HAPPY

    def test_empty_scores_are_neutral(self):
        """A backend returning nothing degrades to Neutral."""

        class EmptyBackend:
            def predict(self, text):
                return []

        assert EmotionClassifier(EmptyBackend()).classify(LONG_TEXT) == Emotion.NEUTRAL

    @pytest.mark.parametrize(
        "error",
        [
            SentimentUnavailable("down"),
            RuntimeError("unexpected"),
            ValueError("bad payload"),
        ],
    )
    def test_backend_failure_is_neutral(self, error):
        """Any backend failure is folded into Neutral, never raised."""
        backend = FailingBackend(error)
        classifier = EmotionClassifier(backend)

        assert classifier.classify(LONG_TEXT) == Emotion.NEUTRAL
        assert backend.calls == 1

    def test_never_produces_default(self):
        """A remap table pointing at Default still yields Neutral."""
        backend = StaticSentimentBackend(_scores(joy=0.9))
        classifier = EmotionClassifier(backend, label_map={"joy": Emotion.DEFAULT})

        assert classifier.classify(LONG_TEXT) == Emotion.NEUTRAL

    def test_custom_min_length(self):
        """The length gate is configurable."""
        backend = StaticSentimentBackend(_scores(joy=0.9))
        classifier = EmotionClassifier(backend, min_length=5)

        assert classifier.classify("yay!!") == Emotion.HAPPY

    def test_label_map_is_read_only(self):
        """The remap table cannot be changed through the classifier."""
        classifier = EmotionClassifier(StaticSentimentBackend())

        with pytest.raises(TypeError):
            classifier.label_map["joy"] = Emotion.SAD


# MARK: - Hugging Face backend


class TestHuggingFaceSentimentBackend:
    """Tests for the HTTP inference backend using a mock transport."""

    def test_nested_response(self):
        """The usual [[{label, score}]] shape is parsed."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json=[[{"label": "joy", "score": 0.8}, {"label": "fear", "score": 0.2}]],
            )

        backend = _hf_backend(handler)
        scores = backend.predict(LONG_TEXT)

        assert [s.label for s in scores] == ["joy", "fear"]
        assert json.loads(requests[0].content) == {"inputs": LONG_TEXT}
        assert requests[0].method == "POST"

    def test_flat_response(self):
        """A flat list of scores is accepted as well."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"label": "sadness", "score": 0.6}])

        scores = _hf_backend(handler).predict(LONG_TEXT)
        assert scores == [SentimentScore(label="sadness", score=0.6)]

    def test_token_is_sent(self):
        """A configured token is passed as a bearer header."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[[{"label": "joy", "score": 1.0}]])

        client = httpx.Client(transport=httpx.MockTransport(handler))
        backend = HuggingFaceSentimentBackend(
            url="https://inference.test/model", token="secret", client=client
        )
        backend.predict(LONG_TEXT)

        assert seen["auth"] == "Bearer secret"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(503, json={"error": "Model is loading"}),
            httpx.Response(200, content=b"<html>not json</html>"),
            httpx.Response(200, json=[]),
            httpx.Response(200, json=[[]]),
            httpx.Response(200, json={"error": "bad"}),
            httpx.Response(200, json=[[{"label": "joy"}]]),
        ],
    )
    def test_bad_responses_raise_unavailable(self, response):
        """Every malformed or failed response becomes SentimentUnavailable."""
        backend = _hf_backend(lambda request: response)

        with pytest.raises(SentimentUnavailable):
            backend.predict(LONG_TEXT)

    def test_non_finite_scores_raise_unavailable(self):
        """A NaN confidence cannot win the top score."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=b'[[{"label": "joy", "score": NaN}, {"label": "fear", "score": 0.99}]]',
                headers={"Content-Type": "application/json"},
            )

        with pytest.raises(SentimentUnavailable):
            _hf_backend(handler).predict(LONG_TEXT)

        with _hf_backend(handler) as backend:
            assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.NEUTRAL

    def test_timeout_raises_unavailable(self):
        """Timeouts are reported as SentimentUnavailable."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(SentimentUnavailable):
            _hf_backend(handler).predict(LONG_TEXT)

    def test_classifier_over_failing_endpoint(self):
        """End to end, an unreachable model still classifies as Neutral."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with _hf_backend(handler) as backend:
            assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.NEUTRAL

    def test_classifier_over_working_endpoint(self):
        """End to end, the winning sentiment is remapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[
                    [
                        {"label": "sadness", "score": 0.91},
                        {"label": "neutral", "score": 0.05},
                        {"label": "joy", "score": 0.04},
                    ]
                ],
            )

        with _hf_backend(handler) as backend:
            assert EmotionClassifier(backend).classify(LONG_TEXT) == Emotion.SAD


# MARK: - Factory


class TestBuildClassifier:
    def test_offline_without_url(self):
        """An empty inference URL selects the static backend."""
        classifier = build_classifier(Settings(inference_url=""))

        assert isinstance(classifier.backend, StaticSentimentBackend)
        assert classifier.classify(LONG_TEXT) == Emotion.CALM

    def test_remote_with_url(self):
        """A configured URL selects the Hugging Face backend."""
        settings = Settings(
            inference_url="https://inference.test/model", min_classify_length=10
        )
        classifier = build_classifier(settings)

        assert isinstance(classifier.backend, HuggingFaceSentimentBackend)
        assert classifier.min_length == 10
        classifier.backend.close()
