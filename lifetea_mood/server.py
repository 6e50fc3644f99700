"""
FastAPI server for the LifeTea mood service.

This module implements the HTTP API for classifying stories, storing posts,
sending hugs, and reading the derived mood views. The mood ring is also
published over Server-Sent Events and refreshed after every write.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, field_validator

from . import __version__, aggregator
from .classifier import EmotionClassifier, build_classifier
from .config import Settings, get_settings
from .models import (
    AuthorStats,
    ClassifiedPost,
    DailyMood,
    Emotion,
    MoodDistributionEntry,
    MoodTrendPoint,
    emoji_for,
)
from .store import PostStore

logger = logging.getLogger(__name__)


# API Request/Response Schemas
class ClassifyRequest(BaseModel):
    """Payload for classification requests."""

    text: str = Field(..., description="Story text to classify")


class ClassifyResponse(BaseModel):
    emotion: Emotion = Field(..., description="Detected emotion")


class PostCreate(BaseModel):
    """Payload for new posts."""

    title: str = Field(..., min_length=1, description="Story title")
    content: str = Field(..., min_length=1, description="Story content")
    emotion: Emotion | None = Field(
        None, description="Emotion chosen by the author; Neutral defers to detection"
    )
    author_id: str | None = Field(None, description="Author of the story")

    @field_validator("emotion")
    @classmethod
    def _reject_default(cls, value: Emotion | None) -> Emotion | None:
        if value is Emotion.DEFAULT:
            raise ValueError("Default is not a story emotion")
        return value


class PostResponse(BaseModel):
    post: ClassifiedPost
    detected: Emotion = Field(..., description="Emotion detected from the content")


class MoodRingResponse(BaseModel):
    """Response model for the mood ring."""

    entries: list[MoodDistributionEntry]
    dominant: Emotion
    total: int = Field(..., description="Number of posts considered")


class AuthorMoodResponse(BaseModel):
    """Response model for an author's mood dashboard."""

    current_vibe: Emotion
    current_vibe_emoji: str
    trend: list[MoodTrendPoint]
    daily: list[DailyMood]
    stats: AuthorStats


def create_app(
    post_store: PostStore,
    classifier: EmotionClassifier,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create a FastAPI application with the given store and classifier.

    Args:
        post_store: The PostStore instance to use for the application
        classifier: The EmotionClassifier used for new posts
        settings: Service settings, defaults to the environment

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        yield
        close = getattr(classifier.backend, "close", None)
        if close is not None:
            close()

    app = FastAPI(
        title="LifeTea Mood",
        description="Emotion classification and mood aggregation for LifeTea",
        version=__version__,
        lifespan=lifespan,
    )

    async def mood_ring(window: int) -> MoodRingResponse:
        recent = await post_store.query(limit=window)
        entries = aggregator.distribution(recent, window)
        return MoodRingResponse(
            entries=entries,
            dominant=aggregator.dominant_emotion(entries),
            total=sum(entry.count for entry in entries),
        )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "lifetea-mood"}

    @app.post("/classify")
    async def classify(request: ClassifyRequest) -> ClassifyResponse:
        """Detect the emotion of a piece of story text."""
        emotion = await run_in_threadpool(classifier.classify, request.text)
        return ClassifyResponse(emotion=emotion)

    @app.post("/posts", status_code=201)
    async def create_post(payload: PostCreate) -> PostResponse:
        """
        Classify and store a new post.

        A chosen emotion other than Neutral wins over the detected one.
        """
        detected = await run_in_threadpool(classifier.classify, payload.content)
        chosen = payload.emotion
        if chosen is None or chosen is Emotion.NEUTRAL:
            chosen = detected

        post = await post_store.add(
            emotion=chosen, title=payload.title, author_id=payload.author_id
        )
        logger.info("Stored post %s as %s", post.id, post.emotion.value)
        return PostResponse(post=post, detected=detected)

    @app.get("/posts")
    async def list_posts(
        author_id: str | None = None,
        emotion: Emotion | None = None,
        limit: int | None = Query(None, ge=1),
    ) -> list[ClassifiedPost]:
        """List posts, most recent first."""
        return await post_store.query(author_id=author_id, emotion=emotion, limit=limit)

    @app.post("/posts/{post_id}/hug")
    async def hug_post(post_id: str) -> ClassifiedPost:
        """Send a hug to a post."""
        try:
            return await post_store.hug(post_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Post {post_id} not found")

    @app.get("/mood/ring")
    async def get_mood_ring(
        window: int = Query(settings.mood_ring_window, ge=1),
    ) -> MoodRingResponse:
        """Rank emotions over the most recent posts."""
        return await mood_ring(window)

    @app.get("/authors/{author_id}/mood")
    async def get_author_mood(author_id: str) -> AuthorMoodResponse:
        """Mood trend, current vibe and stats for one author."""
        posts = await post_store.query(author_id=author_id)
        chronological = posts[::-1]
        vibe = aggregator.current_vibe(posts)
        return AuthorMoodResponse(
            current_vibe=vibe,
            current_vibe_emoji=emoji_for(vibe),
            trend=aggregator.trend(chronological),
            daily=aggregator.daily_trend(chronological),
            stats=aggregator.author_stats(posts),
        )

    @app.get("/mood/stream")
    async def stream_mood_ring(
        window: int = Query(settings.mood_ring_window, ge=1),
    ) -> StreamingResponse:
        """
        Stream the mood ring via Server-Sent Events.

        The current ring is sent on connection, and a recomputed ring follows
        every write to the post store.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for mood ring updates."""
            try:
                async with post_store.stream() as changes:
                    async for _revision in changes:
                        ring = await mood_ring(window)
                        yield f"data: {ring.model_dump_json()}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Mood ring stream failed")
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


def build_app() -> FastAPI:
    """Application factory used by uvicorn."""
    settings = get_settings()
    return create_app(PostStore(), build_classifier(settings), settings)


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "lifetea_mood.server:build_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
