import logging
import random
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from portfolio.domain.calendar import (
    build_weeks,
    current_streak,
    iter_dates,
    longest_streak,
    total_contributions,
)
from portfolio.domain.exceptions import FetchError
from portfolio.domain.models import ContributionCalendar
from portfolio.infrastructure.acl import GitHubTranslator
from portfolio.infrastructure.github_client import GitHubClient
from portfolio.infrastructure.session_cache import ReadThroughCache, contributions_key

logger = logging.getLogger(__name__)

# Shape of the synthesized calendar: mostly quiet days, some activity, rare bursts.
MOCK_ACTIVE_PROBABILITY = 0.3
MOCK_BURST_PROBABILITY = 0.02
MOCK_ACTIVE_RANGE = (1, 7)
MOCK_BURST_RANGE = (8, 15)


def year_range(year: int, today: date) -> Tuple[date, date]:
    """Jan 1 to Dec 31, or Jan 1 to today for the running year."""
    if year > today.year:
        raise ValueError(f"Cannot build a contribution calendar for future year {year}.")
    end = today if year == today.year else date(year, 12, 31)
    return date(year, 1, 1), end


def mock_counts(username: str, start: date, end: date) -> Dict[date, int]:
    """
    Deterministic stand-in for a real calendar: the same user and range always
    produce the same counts.
    """
    rng = random.Random(f"{username}:{start.isoformat()}:{end.isoformat()}")
    counts: Dict[date, int] = {}
    for day in iter_dates(start, end):
        roll = rng.random()
        if roll < MOCK_BURST_PROBABILITY:
            counts[day] = rng.randint(*MOCK_BURST_RANGE)
        elif roll < MOCK_ACTIVE_PROBABILITY:
            counts[day] = rng.randint(*MOCK_ACTIVE_RANGE)
        else:
            counts[day] = 0
    return counts


class ContributionAnalyzer:
    """
    Turns a user's GitHub contribution calendar into a week grid plus totals
    and streaks. When GitHub cannot provide a calendar, a synthesized one is
    returned instead, tagged with source="mock".
    """

    def __init__(
        self,
        github_client: GitHubClient,
        cache: ReadThroughCache,
        today: Callable[[], date] = date.today,
    ):
        self.github_client = github_client
        self.cache = cache
        self.today = today

    async def _fetch_days(self, username: str, start: date, end: date) -> Optional[List[List]]:
        raw_weeks = await self.github_client.fetch_contribution_weeks(username, start, end)
        if raw_weeks is None:
            return None
        days = GitHubTranslator.to_contribution_days(raw_weeks)
        if not days:
            return None
        return [[day.date.isoformat(), day.count] for day in days]

    async def _real_counts(self, username: str, year: int, start: date, end: date) -> Optional[Dict[date, int]]:
        """Cached date->count mapping for the range, or None when GitHub has no usable calendar."""
        pairs = await self.cache.read_through(
            contributions_key(username, year), lambda: self._fetch_days(username, start, end)
        )
        if pairs is None:
            return None
        counts = {date.fromisoformat(day): count for day, count in pairs}
        return {day: count for day, count in counts.items() if start <= day <= end}

    async def calendar(self, username: str, year: Optional[int] = None) -> ContributionCalendar:
        today = self.today()
        year = year if year is not None else today.year
        start, end = year_range(year, today)

        try:
            counts = await self._real_counts(username, year, start, end)
        except FetchError as e:
            logger.warning(f"Contribution calendar for {username}/{year} failed: {e}")
            counts = None

        source = "github"
        if not counts:
            logger.warning(f"No usable contribution calendar for {username}/{year}; using mock data.")
            counts = mock_counts(username, start, end)
            source = "mock"

        return ContributionCalendar(
            username=username,
            year=year,
            weeks=build_weeks(counts, start, end),
            total=total_contributions(counts, start, end),
            current_streak=current_streak(counts, end),
            longest_streak=longest_streak(counts),
            source=source,
        )
