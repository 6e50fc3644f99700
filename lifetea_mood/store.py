"""
Post storage for the LifeTea mood service.

This module provides an in-memory post store that answers the ordered,
filtered queries the aggregator needs and lets subscribers follow writes in
real time. Subscribers are told *that* something changed and re-query,
mirroring how row-change events trigger a refetch in the hosted backend.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from .models import ClassifiedPost, Emotion


class PostStore:
    """
    In-memory post storage with change streaming.

    Writes bump a revision counter and wake every subscriber through an
    asyncio condition. Posts are immutable, so a hug replaces the stored post.
    """

    def __init__(self) -> None:
        self._posts: dict[str, ClassifiedPost] = {}
        self._condition = asyncio.Condition()
        self._revision = 0

    async def add(
        self,
        emotion: Emotion | str,
        title: str = "",
        author_id: str | None = None,
        created_at: datetime | None = None,
        post_id: str | None = None,
    ) -> ClassifiedPost:
        """
        Store a new post and notify all subscribers.

        Args:
            emotion: Emotion label of the post
            title: Story title
            author_id: Author of the post, if known
            created_at: Creation time, defaults to now
            post_id: Identifier, generated when omitted

        Returns:
            The stored ClassifiedPost

        Raises:
            ValueError: If a post with the given id already exists
        """
        async with self._condition:
            if post_id is not None and post_id in self._posts:
                raise ValueError(f"Post {post_id} already exists")
            post = ClassifiedPost(
                id=post_id or uuid.uuid4().hex,
                emotion=emotion,
                created_at=created_at or datetime.now(timezone.utc),
                title=title,
                author_id=author_id,
            )
            self._posts[post.id] = post
            self._notify()
            return post

    async def hug(self, post_id: str) -> ClassifiedPost:
        """
        Add one hug to a post.

        Raises:
            KeyError: If no post has the given id
        """
        async with self._condition:
            post = self._posts[post_id]
            hugged = post.model_copy(update={"hug_count": post.hug_count + 1})
            self._posts[post_id] = hugged
            self._notify()
            return hugged

    async def get(self, post_id: str) -> ClassifiedPost:
        """
        Raises:
            KeyError: If no post has the given id
        """
        async with self._condition:
            return self._posts[post_id]

    async def query(
        self,
        author_id: str | None = None,
        emotion: Emotion | None = None,
        limit: int | None = None,
    ) -> list[ClassifiedPost]:
        """
        Query posts, most recent first.

        Args:
            author_id: Only posts by this author
            emotion: Only posts with this label
            limit: Maximum number of posts to return

        Returns:
            Matching posts ordered by created_at descending
        """
        async with self._condition:
            posts = [
                post
                for post in self._posts.values()
                if (author_id is None or post.author_id == author_id)
                and (emotion is None or post.emotion == emotion)
            ]

        # Newest insertion first among equal timestamps
        posts.reverse()
        posts.sort(key=lambda post: post.created_at, reverse=True)
        if limit is not None:
            posts = posts[:limit]
        return posts

    def _notify(self) -> None:
        # Caller must hold the condition
        self._revision += 1
        self._condition.notify_all()

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[int, None], None]:
        """
        Stream change notifications to a subscriber.

        This context manager yields an async generator producing the store
        revision once on subscription and again after every write. Several
        writes landing between two reads collapse into a single event.

        Yields:
            An async generator of revision numbers
        """

        async def revision_generator() -> AsyncGenerator[int, None]:
            async with self._condition:
                last_seen = self._revision
            yield last_seen

            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._revision > last_seen
                        )
                        last_seen = self._revision
                    yield last_seen

            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber went away
                return

        yield revision_generator()
