import hmac
import logging
from typing import List, Optional, Protocol

from portfolio.domain.exceptions import AuthError, NotFoundError, ValidationError
from portfolio.domain.models import BlogPost, PostDraft

logger = logging.getLogger(__name__)


class BlogStore(Protocol):
    async def list_posts(self) -> List[BlogPost]: ...
    async def get_post(self, post_id: str) -> Optional[BlogPost]: ...
    async def insert_post(self, draft: PostDraft) -> BlogPost: ...
    async def update_post(self, post_id: str, draft: PostDraft) -> Optional[BlogPost]: ...
    async def delete_post(self, post_id: str) -> bool: ...
    async def get_view_count(self) -> int: ...
    async def increment_view_count(self) -> int: ...


class AdminGate(Protocol):
    def has_admin_capability(self, secret: Optional[str]) -> bool: ...


class SharedSecretGate:
    """
    Grants admin capability to whoever presents the one server-held secret.
    There are no users, hashes or sessions; an unset secret grants nothing.
    """

    def __init__(self, secret: Optional[str]):
        self._secret = secret or None

    def has_admin_capability(self, secret: Optional[str]) -> bool:
        if self._secret is None or not secret:
            return False
        return hmac.compare_digest(secret.encode(), self._secret.encode())


def _clean_draft(draft: PostDraft) -> PostDraft:
    """Trims title and content and rejects the draft if either ends up empty."""
    title = draft.title.strip()
    content = draft.content.strip()

    missing = [name for name, value in (("title", title), ("content", content)) if not value]
    if len(missing) == 2:
        raise ValidationError("Title and content are required")
    if missing:
        raise ValidationError(f"{missing[0].capitalize()} is required")

    return PostDraft(
        title=title,
        content=content,
        images=list(draft.images),
        videos=list(draft.videos),
        tags=list(dict.fromkeys(draft.tags)),
    )


class BlogService:
    """
    Blog posts and the site view counter. Mutating calls need the admin secret
    and are checked before the store is touched.
    """

    def __init__(self, store: BlogStore, gate: AdminGate):
        self.store = store
        self.gate = gate

    def _require_admin(self, secret: Optional[str], action: str) -> None:
        if not self.gate.has_admin_capability(secret):
            logger.warning(f"Rejected unauthorized {action}.")
            raise AuthError()

    async def list_posts(self) -> List[BlogPost]:
        posts = await self.store.list_posts()
        return sorted(posts, key=lambda post: post.date, reverse=True)

    async def get_post(self, post_id: str) -> BlogPost:
        post = await self.store.get_post(post_id)
        if post is None:
            raise NotFoundError()
        return post

    async def create_post(self, draft: PostDraft, secret: Optional[str]) -> BlogPost:
        self._require_admin(secret, "post creation")
        post = await self.store.insert_post(_clean_draft(draft))
        logger.info(f"Created post {post.id}.")
        return post

    async def update_post(self, post_id: str, draft: PostDraft, secret: Optional[str]) -> BlogPost:
        self._require_admin(secret, f"update of post {post_id}")
        post = await self.store.update_post(post_id, _clean_draft(draft))
        if post is None:
            raise NotFoundError()
        logger.info(f"Updated post {post.id}.")
        return post

    async def delete_post(self, post_id: str, secret: Optional[str]) -> None:
        self._require_admin(secret, f"deletion of post {post_id}")
        if not await self.store.delete_post(post_id):
            raise NotFoundError()
        logger.info(f"Deleted post {post_id}.")

    def login(self, secret: Optional[str]) -> bool:
        granted = self.gate.has_admin_capability(secret)
        if not granted:
            logger.warning("Failed admin login attempt.")
        return granted

    async def view_count(self) -> int:
        return await self.store.get_view_count()

    async def increment_view_count(self) -> int:
        return await self.store.increment_view_count()
