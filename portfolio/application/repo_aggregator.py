import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import TypeAdapter

from portfolio.domain.exceptions import FetchError
from portfolio.domain.models import FetchResult, Repository
from portfolio.domain.queries import sort_by_popularity
from portfolio.infrastructure.acl import GitHubTranslator
from portfolio.infrastructure.github_client import GitHubClient
from portfolio.infrastructure.session_cache import ReadThroughCache, orgs_key, repos_key

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 2
FEATURED_MIN_STARS = 2
FEATURED_MIN_FORKS = 1
# Topic lookups run one request per repository; keep a bounded number in flight.
MAX_CONCURRENT_TOPIC_REQUESTS = 10

_PLACEHOLDER_TIMESTAMP = datetime(2022, 1, 1, tzinfo=timezone.utc)

# Shown when no repository clears the featured thresholds, so the section is never empty.
FALLBACK_FEATURED = (
    Repository(
        id=1,
        name="DisTrack",
        full_name="JayNightmare/DisTrack-VSCode-Extension",
        owner="JayNightmare",
        description="Track coding time across VS Code and Discord with leaderboards & streaks",
        html_url="https://github.com/JayNightmare/DisTrack-VSCode-Extension",
        language="TypeScript",
        topics=["discord", "bot", "vscode", "extension", "leaderboards", "streaks"],
        stars=1,
        created_at=_PLACEHOLDER_TIMESTAMP,
        updated_at=_PLACEHOLDER_TIMESTAMP,
        pushed_at=_PLACEHOLDER_TIMESTAMP,
        size=1234,
    ),
    Repository(
        id=2,
        name="Augmented Control Center",
        full_name="JayNightmare/Augmented-Control-Center",
        owner="JayNightmare",
        description="A web-based control center for managing augmented reality devices",
        html_url="https://github.com/JayNightmare/Augmented-Control-Center",
        language="JavaScript",
        topics=["augmented-reality", "dashboard-application", "ar", "electron-app"],
        stars=1,
        created_at=_PLACEHOLDER_TIMESTAMP,
        updated_at=_PLACEHOLDER_TIMESTAMP,
        pushed_at=_PLACEHOLDER_TIMESTAMP,
        size=5678,
    ),
)

_repository_list = TypeAdapter(List[Repository])


def select_featured(repos: List[Repository], limit: int = FEATURED_LIMIT) -> List[Repository]:
    """
    Repositories with at least one fork and two stars, most popular first.
    Falls back to FALLBACK_FEATURED when none qualify.
    """
    qualifying = [
        repo for repo in repos
        if repo.forks >= FEATURED_MIN_FORKS and repo.stars >= FEATURED_MIN_STARS
    ]
    if not qualifying:
        return list(FALLBACK_FEATURED[:limit])
    return sort_by_popularity(qualifying)[:limit]


class RepoAggregator:
    """
    Builds the repository list shown on the site: one page of the user's
    repositories, each enriched with its topics, most popular first.
    Results are cached per username for the rest of the session.
    """

    def __init__(self, github_client: GitHubClient, cache: ReadThroughCache):
        self.github_client = github_client
        self.cache = cache

    async def _topics_or_empty(self, semaphore: asyncio.Semaphore, full_name: str) -> List[str]:
        async with semaphore:
            try:
                return await self.github_client.list_repo_topics(full_name)
            except FetchError as e:
                logger.warning(f"Topics for {full_name} unavailable ({e.kind.value}); using none.")
                return []

    async def _fetch_repos(self, username: str) -> List[Dict[str, Any]]:
        raw_repos = await self.github_client.list_user_repos(username)

        # full_name is unique within one fetch; keep the first occurrence.
        unique_raw: Dict[str, Dict[str, Any]] = {}
        for raw in raw_repos:
            full_name = raw.get("full_name") if isinstance(raw, dict) else None
            if isinstance(full_name, str) and full_name and full_name not in unique_raw:
                unique_raw[full_name] = raw

        semaphore = asyncio.Semaphore(MAX_CONCURRENT_TOPIC_REQUESTS)
        topics = await asyncio.gather(
            *(self._topics_or_empty(semaphore, full_name) for full_name in unique_raw)
        )

        repos = [
            GitHubTranslator.to_repository(raw, repo_topics)
            for raw, repo_topics in zip(unique_raw.values(), topics)
        ]
        logger.info(f"Fetched {len(repos)} repositories for {username}.")
        return [repo.model_dump(mode="json") for repo in sort_by_popularity(repos)]

    async def list_repos(self, username: str) -> FetchResult[List[Repository]]:
        """
        Returns the enriched repositories sorted by stars + forks, or an error
        state. Nothing is retried here; a refresh is the caller's decision.
        """
        try:
            raw = await self.cache.read_through(repos_key(username), lambda: self._fetch_repos(username))
        except FetchError as e:
            logger.error(f"Could not list repositories for {username}: {e}")
            return FetchResult.failed(e.message, e.kind)
        return FetchResult.ok(_repository_list.validate_python(raw))

    async def featured(self, username: str, limit: int = FEATURED_LIMIT) -> FetchResult[List[Repository]]:
        result = await self.list_repos(username)
        if result.is_error:
            return result
        return FetchResult.ok(select_featured(result.data, limit))

    async def _fetch_orgs(self, username: str) -> List[Dict[str, Any]]:
        raw_orgs = await self.github_client.list_user_orgs(username)
        orgs = [GitHubTranslator.organization_to_repository(raw) for raw in raw_orgs]
        return [org.model_dump(mode="json") for org in orgs]

    async def organizations(self, username: str) -> FetchResult[List[Repository]]:
        """The user's organizations rendered as pseudo-repositories."""
        try:
            raw = await self.cache.read_through(orgs_key(username), lambda: self._fetch_orgs(username))
        except FetchError as e:
            logger.error(f"Could not list organizations for {username}: {e}")
            return FetchResult.failed(e.message, e.kind)
        return FetchResult.ok(_repository_list.validate_python(raw))

    def refresh(self, username: str) -> None:
        """Drops the cached lists so the next call refetches."""
        self.cache.invalidate(repos_key(username))
        self.cache.invalidate(orgs_key(username))
