from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from portfolio.domain.exceptions import FetchError, FetchErrorKind
from portfolio.domain.models import ContributionDay, Contributor, Repository


def _parse_timestamp(raw: Any, field: str) -> datetime:
    if not raw or not isinstance(raw, str):
        raise FetchError(FetchErrorKind.MALFORMED, f"{field} is required to build a Repository.")
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise FetchError(FetchErrorKind.MALFORMED, f"{field} is not an ISO timestamp: {raw!r}")


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub JSON into domain models.
    Anything with an unexpected shape fails fast with a MALFORMED FetchError.
    """

    @staticmethod
    def to_repository(raw: Dict[str, Any], topics: Optional[List[str]] = None) -> Repository:
        """
        Transforms a REST repository object into a Repository.

        Args:
            raw (Dict[str, Any]): One element of `GET /users/{username}/repos`.
            topics (List[str]): Topic names fetched separately; the list endpoint omits them.

        Returns:
            Repository: The domain model instance representing the repository.
        """
        if not isinstance(raw, dict):
            raise FetchError(FetchErrorKind.MALFORMED, "Repository payload is not an object.")

        owner_data = raw.get("owner") or {}
        full_name = raw.get("full_name")
        if not full_name or not isinstance(full_name, str):
            raise FetchError(FetchErrorKind.MALFORMED, "full_name is required to build a Repository.")
        if not isinstance(owner_data, dict):
            raise FetchError(FetchErrorKind.MALFORMED, f"Owner of {full_name} is not an object.")

        try:
            return Repository(
                id=raw["id"],
                name=raw.get("name") or full_name.split("/")[-1],
                full_name=full_name,
                owner=owner_data.get("login") or full_name.split("/")[0],
                description=raw.get("description"),
                html_url=raw.get("html_url") or "",
                homepage=raw.get("homepage") or None,
                language=raw.get("language"),
                topics=_unique(topics if topics is not None else raw.get("topics") or []),
                stars=raw.get("stargazers_count", 0),
                forks=raw.get("forks_count", 0),
                created_at=_parse_timestamp(raw.get("created_at"), "created_at"),
                updated_at=_parse_timestamp(raw.get("updated_at"), "updated_at"),
                pushed_at=_parse_timestamp(raw.get("pushed_at") or raw.get("updated_at"), "pushed_at"),
                size=raw.get("size", 0),
                archived=bool(raw.get("archived", False)),
                disabled=bool(raw.get("disabled", False)),
                private=bool(raw.get("private", False)),
                fork=bool(raw.get("fork", False)),
            )
        except KeyError as e:
            raise FetchError(FetchErrorKind.MALFORMED, f"{e.args[0]} is required to build a Repository.")
        except ValidationError as e:
            raise FetchError(FetchErrorKind.MALFORMED, f"Invalid repository {full_name}: {e.error_count()} field error(s)")

    @staticmethod
    def organization_to_repository(raw: Dict[str, Any]) -> Repository:
        """Organizations are shown as repositories with no stars, forks or topics."""
        if not isinstance(raw, dict) or not raw.get("login"):
            raise FetchError(FetchErrorKind.MALFORMED, "Organization payload has no login.")

        login = raw["login"]
        now = datetime.now(timezone.utc)
        created = _parse_timestamp(raw["created_at"], "created_at") if raw.get("created_at") else now
        updated = _parse_timestamp(raw["updated_at"], "updated_at") if raw.get("updated_at") else now

        try:
            return Repository(
                id=raw.get("id", 0),
                name=login,
                full_name=login,
                owner=login,
                description=raw.get("description") or f"Organization: {login}",
                html_url=f"https://github.com/{login}",
                homepage=raw.get("blog") or None,
                created_at=created,
                updated_at=updated,
                pushed_at=updated,
                avatar_url=raw.get("avatar_url"),
                is_organization=True,
            )
        except ValidationError as e:
            raise FetchError(FetchErrorKind.MALFORMED, f"Invalid organization {login}: {e.error_count()} field error(s)")

    @staticmethod
    def to_contributor(raw: Dict[str, Any]) -> Contributor:
        if not isinstance(raw, dict) or not raw.get("login"):
            raise FetchError(FetchErrorKind.MALFORMED, "Contributor payload has no login.")
        return Contributor(
            login=raw["login"],
            avatar_url=raw.get("avatar_url") or "",
            html_url=raw.get("html_url") or "",
            contributions=raw.get("contributions", 0),
        )

    @staticmethod
    def to_contribution_days(raw_weeks: List[Dict[str, Any]]) -> List[ContributionDay]:
        """
        Flattens GraphQL `contributionCalendar.weeks` into dated days.
        A date seen twice keeps its last count, so each date appears once.
        """
        by_date: Dict[date, int] = {}
        try:
            for week in raw_weeks:
                for day in week["contributionDays"]:
                    by_date[date.fromisoformat(day["date"])] = int(day["contributionCount"])
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(FetchErrorKind.MALFORMED, f"Unexpected contribution calendar shape: {e}")

        try:
            return [ContributionDay(date=day, count=count) for day, count in sorted(by_date.items())]
        except ValidationError as e:
            raise FetchError(FetchErrorKind.MALFORMED, f"Invalid contribution count: {e.error_count()} field error(s)")
