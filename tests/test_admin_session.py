from unittest.mock import AsyncMock, MagicMock

import aiohttp
from aiohttp.test_utils import AioHTTPTestCase

from fakes import InMemoryBlogStore
from portfolio.application.admin_session import AdminSession
from portfolio.application.blog_service import BlogService, SharedSecretGate
from portfolio.domain.exceptions import AuthError, NotFoundError, ValidationError
from portfolio.domain.models import PostDraft
from portfolio.infrastructure.blog_api_client import BlogApiClient
from portfolio.infrastructure.web import create_app

SECRET = "s3cret"


class TestAdminSessionAgainstServer(AioHTTPTestCase):
    async def get_application(self):
        self.store = InMemoryBlogStore()
        self.gate = SharedSecretGate(SECRET)
        return create_app(BlogService(self.store, self.gate))

    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.api = BlogApiClient(base_url=str(self.server.make_url("")))
        self.session = AdminSession(self.api)

    async def asyncTearDown(self) -> None:
        await self.api.close()
        await super().asyncTearDown()

    async def test_login_grants_admin_and_headers(self) -> None:
        self.assertFalse(self.session.is_admin)
        self.assertEqual(self.session.auth_headers(), {})

        self.assertTrue(await self.session.login(SECRET))

        self.assertTrue(self.session.is_admin)
        self.assertEqual(self.session.auth_headers(), {"Authorization": f"Bearer {SECRET}"})

    async def test_wrong_secret_is_rejected(self) -> None:
        self.assertFalse(await self.session.login("guess"))
        self.assertFalse(self.session.is_admin)

    async def test_logout_drops_capability(self) -> None:
        await self.session.login(SECRET)
        self.session.logout()

        self.assertFalse(self.session.is_admin)
        with self.assertRaises(AuthError):
            await self.session.create_post(PostDraft(title="t", content="c"))

    async def test_admin_crud_round_trip(self) -> None:
        await self.session.login(SECRET)

        created = await self.session.create_post(PostDraft(title="Hello", content="World", tags=["intro"]))
        updated = await self.session.update_post(created.id, PostDraft(title="Hello again", content="World"))
        listed = await self.api.list_posts()

        self.assertEqual(updated.date, created.date)
        self.assertEqual([post.title for post in listed], ["Hello again"])

        await self.session.delete_post(created.id)
        with self.assertRaises(NotFoundError):
            await self.api.get_post(created.id)

    async def test_validation_error_is_mapped(self) -> None:
        await self.session.login(SECRET)

        with self.assertRaises(ValidationError) as ctx:
            await self.session.create_post(PostDraft(title="", content="body"))

        self.assertEqual(ctx.exception.message, "Title is required")

    async def test_view_counter_via_client(self) -> None:
        self.assertEqual(await self.api.view_count(), 0)
        self.assertEqual(await self.api.increment_view_count(), 1)
        self.assertEqual(await self.api.view_count(), 1)

    async def test_network_failure_during_login_is_false(self) -> None:
        self.api.login = AsyncMock(side_effect=aiohttp.ClientConnectionError("down"))

        self.assertFalse(await self.session.login(SECRET))
        self.assertFalse(self.session.is_admin)

    async def test_server_error_during_login_is_false(self) -> None:
        self.gate.has_admin_capability = MagicMock(side_effect=RuntimeError("boom"))

        self.assertFalse(await self.session.login(SECRET))
        self.assertFalse(self.session.is_admin)
