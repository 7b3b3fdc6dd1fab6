import unittest
from unittest.mock import AsyncMock, MagicMock

from portfolio.application.repo_details import NO_README, RepoDetailsService
from portfolio.domain.exceptions import FetchError, FetchErrorKind
from portfolio.infrastructure.github_client import GitHubClient
from portfolio.infrastructure.session_cache import InMemorySessionCache, ReadThroughCache


def _client(**methods):
    client = MagicMock()
    for name, mock in methods.items():
        setattr(client, name, mock)
    return client


class TestRepoDetailsService(unittest.IsolatedAsyncioTestCase):
    async def test_readme_is_cached(self) -> None:
        get_readme = AsyncMock(return_value="# Hello")
        store = InMemorySessionCache()
        service = RepoDetailsService(_client(get_readme=get_readme), ReadThroughCache(store))

        self.assertEqual(await service.readme("octocat/hello"), "# Hello")
        self.assertEqual(await service.readme("octocat/hello"), "# Hello")

        get_readme.assert_awaited_once_with("octocat/hello")
        self.assertIn("readme:octocat/hello", store)

    async def test_missing_readme_degrades_to_placeholder(self) -> None:
        get_readme = AsyncMock(side_effect=FetchError(FetchErrorKind.NOT_FOUND, "missing", 404))
        service = RepoDetailsService(_client(get_readme=get_readme), ReadThroughCache())

        self.assertEqual(await service.readme("octocat/empty"), NO_README)

    async def test_language_shares(self) -> None:
        get_languages = AsyncMock(return_value={"Python": 900, "HTML": 100})
        service = RepoDetailsService(_client(get_languages=get_languages), ReadThroughCache())

        shares = await service.language_shares("octocat/hello")

        self.assertEqual([s["language"] for s in shares], ["Python", "HTML"])
        self.assertEqual(shares[0]["percent"], 90.0)

    async def test_languages_failure_is_empty(self) -> None:
        get_languages = AsyncMock(side_effect=FetchError(FetchErrorKind.RATE_LIMITED, "slow", 403))
        service = RepoDetailsService(_client(get_languages=get_languages), ReadThroughCache())

        self.assertEqual(await service.languages("octocat/hello"), {})

    async def test_contributors_are_limited_and_degrade(self) -> None:
        raw = [{"login": f"user{i}", "contributions": 10 - i} for i in range(8)]
        ok = RepoDetailsService(_client(list_contributors=AsyncMock(return_value=raw)), ReadThroughCache())
        failing = RepoDetailsService(
            _client(list_contributors=AsyncMock(side_effect=FetchError(FetchErrorKind.NETWORK, "offline"))),
            ReadThroughCache(),
        )

        contributors = await ok.contributors("octocat/hello")

        self.assertEqual([c.login for c in contributors], ["user0", "user1", "user2", "user3", "user4"])
        self.assertEqual(await failing.contributors("octocat/hello"), [])

    async def test_binary_readme_degrades_to_placeholder(self) -> None:
        response = AsyncMock()
        response.status = 200
        response.headers = {}
        response.text = AsyncMock(side_effect=UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte"))
        response.__aenter__ = AsyncMock(return_value=response)
        response.__aexit__ = AsyncMock(return_value=False)
        session = AsyncMock()
        session.get = MagicMock(side_effect=[response])
        service = RepoDetailsService(GitHubClient(session=session), ReadThroughCache())

        self.assertEqual(await service.readme("octocat/binary"), NO_README)
