import aiohttp
import logging
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter

from portfolio.domain.exceptions import (
    AuthError,
    BlogException,
    NotFoundError,
    StoreError,
    ValidationError,
)
from portfolio.domain.models import BlogPost, PostDraft
from portfolio.settings import DEFAULT_API_BASE_URL

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=30, connect=10)

_ERRORS_BY_STATUS = {
    400: ValidationError,
    401: AuthError,
    404: NotFoundError,
}
_post_list = TypeAdapter(List[BlogPost])


class BlogApiClient:
    """Client for the blog HTTP API, mapping error responses back onto BlogException types."""

    def __init__(self, base_url: str = DEFAULT_API_BASE_URL, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=REQUEST_TIMEOUT)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "BlogApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        secret: Optional[str] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {secret}"} if secret else {}
        url = f"{self.base_url}{path}"
        async with self._get_session().request(method, url, json=json, headers=headers) as response:
            try:
                body = await response.json(content_type=None)
            except ValueError:
                body = None

            if response.status >= 400:
                message = body.get("error") if isinstance(body, dict) else None
                error_cls = _ERRORS_BY_STATUS.get(response.status)
                if error_cls is not None:
                    raise error_cls(message) if message else error_cls()
                if response.status >= 500:
                    raise StoreError(message or "Internal server error")
                raise BlogException(message or f"Unexpected status {response.status}")
            return body

    async def list_posts(self) -> List[BlogPost]:
        return _post_list.validate_python(await self._request("GET", "/api/posts"))

    async def get_post(self, post_id: str) -> BlogPost:
        return BlogPost.model_validate(await self._request("GET", f"/api/posts/{post_id}"))

    async def create_post(self, draft: PostDraft, secret: Optional[str]) -> BlogPost:
        body = await self._request("POST", "/api/posts", json=draft.model_dump(), secret=secret)
        return BlogPost.model_validate(body)

    async def update_post(self, post_id: str, draft: PostDraft, secret: Optional[str]) -> BlogPost:
        body = await self._request("PUT", f"/api/posts/{post_id}", json=draft.model_dump(), secret=secret)
        return BlogPost.model_validate(body)

    async def delete_post(self, post_id: str, secret: Optional[str]) -> None:
        await self._request("DELETE", f"/api/posts/{post_id}", secret=secret)

    async def login(self, secret: str) -> bool:
        try:
            body = await self._request("POST", "/api/admin/login", json={"secret": secret})
        except AuthError:
            return False
        return bool(isinstance(body, dict) and body.get("success"))

    async def view_count(self) -> int:
        body = await self._request("GET", "/api/views")
        return int(body["count"])

    async def increment_view_count(self) -> int:
        body = await self._request("POST", "/api/views")
        return int(body["count"])
