from typing import Optional

from portfolio.application.contribution_analyzer import ContributionAnalyzer
from portfolio.application.repo_aggregator import RepoAggregator
from portfolio.application.repo_details import RepoDetailsService
from portfolio.infrastructure.github_client import GitHubClient
from portfolio.infrastructure.session_cache import ReadThroughCache, SessionCache
from portfolio.settings import Settings


class GitHubData:
    """
    Entry point for the site's GitHub-backed data. One client and one session
    cache are shared by the repository list, detail views and contribution
    calendar.
    """

    def __init__(self, github_client: GitHubClient, cache: ReadThroughCache):
        self.github_client = github_client
        self.cache = cache
        self.repos = RepoAggregator(github_client, cache)
        self.details = RepoDetailsService(github_client, cache)
        self.contributions = ContributionAnalyzer(github_client, cache)

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[SessionCache] = None) -> "GitHubData":
        client = GitHubClient(token=settings.github_token, api_url=settings.github_api_url)
        return cls(client, ReadThroughCache(store))

    async def close(self) -> None:
        await self.github_client.close()

    async def __aenter__(self) -> "GitHubData":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
