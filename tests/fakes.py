import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from portfolio.domain.models import BlogPost, PostDraft


class InMemoryBlogStore:
    """Stand-in for PostgresBlogStore with the same contract."""

    def __init__(self, view_count: int = 0) -> None:
        self.posts: Dict[str, BlogPost] = {}
        self.views = view_count
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._lock = asyncio.Lock()

    def _now(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    async def list_posts(self) -> List[BlogPost]:
        return list(self.posts.values())

    async def get_post(self, post_id: str) -> Optional[BlogPost]:
        return self.posts.get(post_id)

    async def insert_post(self, draft: PostDraft) -> BlogPost:
        post = BlogPost(id=f"post-{self._next_id}", date=self._now(), **draft.model_dump())
        self._next_id += 1
        self.posts[post.id] = post
        return post

    async def update_post(self, post_id: str, draft: PostDraft) -> Optional[BlogPost]:
        existing = self.posts.get(post_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=draft.model_dump())
        self.posts[post_id] = updated
        return updated

    async def delete_post(self, post_id: str) -> bool:
        return self.posts.pop(post_id, None) is not None

    async def get_view_count(self) -> int:
        return self.views

    async def increment_view_count(self) -> int:
        async with self._lock:
            self.views += 1
            return self.views
