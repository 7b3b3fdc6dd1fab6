import aiohttp
import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from portfolio.domain.exceptions import FetchError, FetchErrorKind
from portfolio.settings import DEFAULT_GITHUB_API_URL

logger = logging.getLogger(__name__)

# Contribution calendar for one user over an explicit date range.
CONTRIBUTIONS_QUERY = """
query ($username: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $username) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""

REST_MEDIA_TYPE = "application/vnd.github.v3+json"
TOPICS_MEDIA_TYPE = "application/vnd.github.mercy-preview+json"
RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"

# A single page; accounts with more repositories are truncated.
REPOS_PER_PAGE = 100
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=30, connect=10)


class GitHubClient:
    """
    Thin client for the GitHub REST and GraphQL APIs.
    Sends a bearer token when one is configured and anonymous requests otherwise.
    It never caches; callers wrap it in a session cache.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_GITHUB_API_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.headers = {
            "Accept": REST_MEDIA_TYPE,
            "User-Agent": "portfolio-site",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.api_url = api_url.rstrip("/")
        self.graphql_url = f"{self.api_url}/graphql"
        self._session = session
        self._owns_session = session is None

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=REQUEST_TIMEOUT)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @staticmethod
    async def _raise_for_status(response: aiohttp.ClientResponse, url: str) -> None:
        """Translate a non-2xx response into a classified FetchError."""
        status = response.status
        if 200 <= status < 300:
            return

        try:
            body = await response.text(errors="replace")
        except aiohttp.ClientError:
            body = ""

        if status == 401:
            raise FetchError(FetchErrorKind.AUTH, f"Authentication failed for {url}", status)

        if status in (403, 429):
            remaining = response.headers.get("X-RateLimit-Remaining")
            if (
                status == 429
                or remaining == "0"
                or "Retry-After" in response.headers
                or "rate limit" in body.lower()
            ):
                reset_at = response.headers.get("X-RateLimit-Reset")
                logger.warning(f"GitHub rate limit hit on {url} (reset: {reset_at}).")
                raise FetchError(FetchErrorKind.RATE_LIMITED, "GitHub API rate limit exceeded", status)
            raise FetchError(FetchErrorKind.AUTH, f"Access to {url} is forbidden", status)

        if status == 404:
            raise FetchError(FetchErrorKind.NOT_FOUND, f"{url} was not found", status)

        raise FetchError(FetchErrorKind.HTTP, f"GitHub returned an error for {url}", status)

    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: str = REST_MEDIA_TYPE,
    ) -> Any:
        """GET a REST resource and return its parsed JSON body (array or object)."""
        url = f"{self.api_url}/{path.lstrip('/')}"
        headers = {**self.headers, "Accept": accept}
        try:
            async with self._get_session().get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT) as response:
                await self._raise_for_status(response, url)
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise FetchError(FetchErrorKind.MALFORMED, f"Invalid JSON from {url}: {e}", response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise FetchError(FetchErrorKind.NETWORK, f"Network error while fetching {url}")

    async def get_text(self, path: str, accept: str = RAW_MEDIA_TYPE) -> str:
        url = f"{self.api_url}/{path.lstrip('/')}"
        headers = {**self.headers, "Accept": accept}
        try:
            async with self._get_session().get(url, headers=headers, timeout=REQUEST_TIMEOUT) as response:
                await self._raise_for_status(response, url)
                try:
                    return await response.text()
                except UnicodeDecodeError as e:
                    raise FetchError(FetchErrorKind.MALFORMED, f"Undecodable text from {url}: {e.reason}", response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise FetchError(FetchErrorKind.NETWORK, f"Network error while fetching {url}")

    async def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a query document to the GraphQL endpoint.

        Returns:
            The raw `{data, errors}` payload. GraphQL-level errors are left for the
            caller to judge; only transport and HTTP failures raise.
        """
        payload = {"query": query, "variables": variables}
        try:
            async with self._get_session().post(
                self.graphql_url, json=payload, headers=self.headers, timeout=REQUEST_TIMEOUT
            ) as response:
                await self._raise_for_status(response, self.graphql_url)
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise FetchError(FetchErrorKind.MALFORMED, f"Invalid GraphQL response: {e}", response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"GraphQL request failed: {e}")
            raise FetchError(FetchErrorKind.NETWORK, "Network error while querying GraphQL")

        if not isinstance(data, dict):
            raise FetchError(FetchErrorKind.MALFORMED, "GraphQL response is not an object")
        return data

    async def list_user_repos(self, username: str) -> List[Dict[str, Any]]:
        data = await self.get_json(
            f"users/{username}/repos",
            params={"sort": "updated", "per_page": REPOS_PER_PAGE},
        )
        if not isinstance(data, list):
            raise FetchError(FetchErrorKind.MALFORMED, f"Expected a list of repositories for {username}")
        return data

    async def list_repo_topics(self, full_name: str) -> List[str]:
        data = await self.get_json(f"repos/{full_name}/topics", accept=TOPICS_MEDIA_TYPE)
        names = data.get("names") if isinstance(data, dict) else None
        if not isinstance(names, list):
            raise FetchError(FetchErrorKind.MALFORMED, f"Unexpected topics payload for {full_name}")
        return [str(name) for name in names]

    async def list_user_orgs(self, username: str) -> List[Dict[str, Any]]:
        data = await self.get_json(f"users/{username}/orgs")
        if not isinstance(data, list):
            raise FetchError(FetchErrorKind.MALFORMED, f"Expected a list of organizations for {username}")
        return data

    async def get_readme(self, full_name: str) -> str:
        return await self.get_text(f"repos/{full_name}/readme")

    async def get_languages(self, full_name: str) -> Dict[str, int]:
        data = await self.get_json(f"repos/{full_name}/languages")
        if not isinstance(data, dict):
            raise FetchError(FetchErrorKind.MALFORMED, f"Unexpected languages payload for {full_name}")
        return data

    async def list_contributors(self, full_name: str) -> List[Dict[str, Any]]:
        data = await self.get_json(f"repos/{full_name}/contributors")
        # An empty repository answers 204 with no body.
        if data is None:
            return []
        if not isinstance(data, list):
            raise FetchError(FetchErrorKind.MALFORMED, f"Unexpected contributors payload for {full_name}")
        return data

    async def fetch_contribution_weeks(
        self, username: str, start: date, end: date
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Fetches the raw calendar weeks between start and end (inclusive).

        Returns:
            The `weeks` array, or None when GitHub answered with GraphQL errors or
            without a user (a soft failure the caller is expected to absorb).
        """
        variables = {
            "username": username,
            "from": f"{start.isoformat()}T00:00:00Z",
            "to": f"{end.isoformat()}T23:59:59Z",
        }
        data = await self.graphql(CONTRIBUTIONS_QUERY, variables)

        if data.get("errors"):
            error_msg = data["errors"][0].get("message", "Unknown GraphQL error")
            logger.warning(f"GraphQL error for {username}: {error_msg}")
            return None

        user = (data.get("data") or {}).get("user")
        if not user:
            logger.warning(f"GraphQL response for {username} carries no user.")
            return None

        calendar = (user.get("contributionsCollection") or {}).get("contributionCalendar") or {}
        weeks = calendar.get("weeks")
        if not isinstance(weeks, list):
            logger.warning(f"GraphQL response for {username} carries no calendar weeks.")
            return None
        return weeks
