import logging
from typing import Dict, List

from portfolio.domain.exceptions import FetchError
from portfolio.domain.models import Contributor
from portfolio.domain.queries import language_breakdown
from portfolio.infrastructure.acl import GitHubTranslator
from portfolio.infrastructure.github_client import GitHubClient
from portfolio.infrastructure.session_cache import (
    ReadThroughCache,
    contributors_key,
    languages_key,
    readme_key,
)

logger = logging.getLogger(__name__)

NO_README = "No README found."


class RepoDetailsService:
    """README, language and contributor data for a single repository's detail view."""

    def __init__(self, github_client: GitHubClient, cache: ReadThroughCache):
        self.github_client = github_client
        self.cache = cache

    async def _readme_or_placeholder(self, full_name: str) -> str:
        try:
            return await self.github_client.get_readme(full_name)
        except FetchError as e:
            logger.warning(f"README for {full_name} unavailable ({e.kind.value}).")
            return NO_README

    async def readme(self, full_name: str) -> str:
        return await self.cache.read_through(
            readme_key(full_name), lambda: self._readme_or_placeholder(full_name)
        )

    async def _languages_or_empty(self, full_name: str) -> Dict[str, int]:
        try:
            languages = await self.github_client.get_languages(full_name)
        except FetchError as e:
            logger.warning(f"Languages for {full_name} unavailable ({e.kind.value}).")
            return {}
        return {str(name): int(size) for name, size in languages.items()}

    async def languages(self, full_name: str) -> Dict[str, int]:
        return await self.cache.read_through(
            languages_key(full_name), lambda: self._languages_or_empty(full_name)
        )

    async def language_shares(self, full_name: str) -> List[Dict[str, object]]:
        return language_breakdown(await self.languages(full_name))

    async def _contributors_or_empty(self, full_name: str) -> List[Dict[str, object]]:
        try:
            raw = await self.github_client.list_contributors(full_name)
            contributors = [GitHubTranslator.to_contributor(entry) for entry in raw]
        except FetchError as e:
            logger.warning(f"Contributors for {full_name} unavailable ({e.kind.value}).")
            return []
        return [contributor.model_dump() for contributor in contributors]

    async def contributors(self, full_name: str, limit: int = 5) -> List[Contributor]:
        raw = await self.cache.read_through(
            contributors_key(full_name), lambda: self._contributors_or_empty(full_name)
        )
        return [Contributor(**entry) for entry in raw[:limit]]
