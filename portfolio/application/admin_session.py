import aiohttp
import asyncio
import logging
from typing import Dict, Optional

from portfolio.domain.exceptions import BlogException
from portfolio.domain.models import BlogPost, PostDraft
from portfolio.infrastructure.blog_api_client import BlogApiClient

logger = logging.getLogger(__name__)


class AdminSession:
    """
    Client-side admin state: remembers the secret once the server has accepted
    it and attaches it to mutating blog calls. It is a pass-through gate, not
    a cryptographic session; the server re-checks the secret on every call.
    """

    def __init__(self, api: BlogApiClient):
        self.api = api
        self._secret: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self._secret is not None

    async def login(self, secret: str) -> bool:
        try:
            accepted = await self.api.login(secret)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Admin login request failed: {e}")
            accepted = False
        except BlogException as e:
            logger.warning(f"Admin login rejected by the server: {e.message}")
            accepted = False
        self._secret = secret if accepted else None
        return accepted

    def logout(self) -> None:
        self._secret = None

    def auth_headers(self) -> Dict[str, str]:
        if self._secret is None:
            return {}
        return {"Authorization": f"Bearer {self._secret}"}

    async def create_post(self, draft: PostDraft) -> BlogPost:
        return await self.api.create_post(draft, self._secret)

    async def update_post(self, post_id: str, draft: PostDraft) -> BlogPost:
        return await self.api.update_post(post_id, draft, self._secret)

    async def delete_post(self, post_id: str) -> None:
        await self.api.delete_post(post_id, self._secret)
