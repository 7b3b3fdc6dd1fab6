import unittest
from datetime import date, timedelta

from portfolio.application.contribution_analyzer import ContributionAnalyzer, mock_counts, year_range
from portfolio.domain.exceptions import FetchError, FetchErrorKind
from portfolio.infrastructure.session_cache import InMemorySessionCache, ReadThroughCache

TODAY = date(2024, 3, 10)


def _weeks(start: date, counts):
    days = [
        {"date": (start + timedelta(days=i)).isoformat(), "contributionCount": count}
        for i, count in enumerate(counts)
    ]
    return [{"contributionDays": days[i:i + 7]} for i in range(0, len(days), 7)]


class _FakeGitHubClient:
    def __init__(self, weeks=None, error=None) -> None:
        self.weeks = weeks
        self.error = error
        self.calls = []

    async def fetch_contribution_weeks(self, username, start, end):
        self.calls.append((username, start, end))
        if self.error is not None:
            raise self.error
        return self.weeks


class TestYearRange(unittest.TestCase):
    def test_past_year_is_full_year(self) -> None:
        self.assertEqual(year_range(2023, TODAY), (date(2023, 1, 1), date(2023, 12, 31)))

    def test_current_year_ends_today(self) -> None:
        self.assertEqual(year_range(2024, TODAY), (date(2024, 1, 1), TODAY))

    def test_future_year_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            year_range(2025, TODAY)


class TestContributionAnalyzer(unittest.IsolatedAsyncioTestCase):
    async def test_real_calendar_stats(self) -> None:
        start = date(2024, 1, 1)
        counts = [0] * 60 + [1, 1, 0, 1, 1, 1, 0, 2, 3, 4]  # 70 days: Jan 1 .. Mar 10
        client = _FakeGitHubClient(weeks=_weeks(start, counts))
        analyzer = ContributionAnalyzer(client, ReadThroughCache(), today=lambda: TODAY)

        calendar = await analyzer.calendar("octocat", 2024)

        self.assertEqual(calendar.source, "github")
        self.assertEqual(calendar.total, sum(counts))
        self.assertEqual(calendar.longest_streak, 3)
        self.assertEqual(calendar.current_streak, 3)
        self.assertTrue(all(len(week.days) == 7 for week in calendar.weeks))
        self.assertEqual(client.calls, [("octocat", date(2024, 1, 1), TODAY)])

    async def test_defaults_to_current_year(self) -> None:
        client = _FakeGitHubClient(weeks=_weeks(date(2024, 1, 1), [1] * 70))
        analyzer = ContributionAnalyzer(client, ReadThroughCache(), today=lambda: TODAY)

        calendar = await analyzer.calendar("octocat")

        self.assertEqual(calendar.year, 2024)
        self.assertEqual(calendar.current_streak, 70)

    async def test_real_calendar_is_cached_per_user_and_year(self) -> None:
        store = InMemorySessionCache()
        client = _FakeGitHubClient(weeks=_weeks(date(2023, 1, 1), [1] * 365))
        analyzer = ContributionAnalyzer(client, ReadThroughCache(store), today=lambda: TODAY)

        first = await analyzer.calendar("octocat", 2023)
        second = await analyzer.calendar("octocat", 2023)

        self.assertEqual(len(client.calls), 1)
        self.assertEqual(first, second)
        self.assertIn("contributions:octocat:2023", store)

    async def test_network_failure_falls_back_to_mock(self) -> None:
        client = _FakeGitHubClient(error=FetchError(FetchErrorKind.NETWORK, "offline"))
        store = InMemorySessionCache()
        analyzer = ContributionAnalyzer(client, ReadThroughCache(store), today=lambda: TODAY)

        calendar = await analyzer.calendar("octocat", 2023)

        self.assertEqual(calendar.source, "mock")
        self.assertEqual(len(store), 0)
        dated = [day for week in calendar.weeks for day in week.days if not day.is_padding]
        self.assertEqual(len(dated), 365)
        self.assertEqual(calendar.total, sum(day.count for day in dated))

    async def test_soft_graphql_failure_falls_back_to_mock(self) -> None:
        client = _FakeGitHubClient(weeks=None)
        analyzer = ContributionAnalyzer(client, ReadThroughCache(), today=lambda: TODAY)

        calendar = await analyzer.calendar("ghost", 2023)

        self.assertEqual(calendar.source, "mock")

    async def test_mock_is_deterministic(self) -> None:
        client = _FakeGitHubClient(error=FetchError(FetchErrorKind.RATE_LIMITED, "slow down", 403))
        analyzer = ContributionAnalyzer(client, ReadThroughCache(), today=lambda: TODAY)

        first = await analyzer.calendar("octocat", 2022)
        second = await analyzer.calendar("octocat", 2022)

        self.assertEqual(first, second)


class TestMockCounts(unittest.TestCase):
    def test_mostly_zero_with_some_activity(self) -> None:
        counts = mock_counts("octocat", date(2023, 1, 1), date(2023, 12, 31))

        zeros = sum(1 for count in counts.values() if count == 0)
        self.assertEqual(len(counts), 365)
        self.assertGreater(zeros, len(counts) // 2)
        self.assertTrue(any(count > 0 for count in counts.values()))
        self.assertTrue(all(0 <= count <= 15 for count in counts.values()))

    def test_same_seed_same_counts(self) -> None:
        start, end = date(2023, 1, 1), date(2023, 12, 31)

        self.assertEqual(mock_counts("a", start, end), mock_counts("a", start, end))
        self.assertNotEqual(mock_counts("a", start, end), mock_counts("b", start, end))
