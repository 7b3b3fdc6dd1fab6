from datetime import date, timedelta
from typing import Dict, Iterator, List, Mapping

from portfolio.domain.models import ContributionDay, ContributionWeek

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def sunday_index(day: date) -> int:
    """Column of `day` in a Sunday-first week (Sunday=0 ... Saturday=6)."""
    return (day.weekday() + 1) % 7


def build_weeks(counts: Mapping[date, int], start: date, end: date) -> List[ContributionWeek]:
    """
    Lay the range out as Sunday-first weeks. The first and last week are padded
    with undated zero slots so that every week has exactly seven entries.
    """
    weeks: List[ContributionWeek] = []
    week: List[ContributionDay] = []

    for day in iter_dates(start, end):
        if not week:
            week.extend(ContributionDay() for _ in range(sunday_index(day)))
        week.append(ContributionDay(date=day, count=counts.get(day, 0)))
        if len(week) == 7:
            weeks.append(ContributionWeek(days=week))
            week = []

    if week:
        week.extend(ContributionDay() for _ in range(7 - len(week)))
        weeks.append(ContributionWeek(days=week))

    return weeks


def total_contributions(counts: Mapping[date, int], start: date, end: date) -> int:
    return sum(count for day, count in counts.items() if start <= day <= end)


def current_streak(counts: Mapping[date, int], today: date) -> int:
    """
    Length of the run of non-zero days ending on the most recent date (not after
    `today`) that the data covers. The scan walks backward one day at a time and
    stops at the first zero or missing day.
    """
    covered = [day for day in counts if day <= today]
    if not covered:
        return 0

    streak = 0
    day = max(covered)
    while counts.get(day, 0) > 0:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(counts: Mapping[date, int]) -> int:
    """Longest run of consecutive calendar days with a non-zero count."""
    longest = 0
    run = 0
    previous = None

    for day in sorted(counts):
        if counts[day] > 0:
            contiguous = previous is not None and day - previous == timedelta(days=1)
            run = run + 1 if contiguous else 1
            longest = max(longest, run)
            previous = day
        else:
            run = 0
            previous = None

    return longest


def counts_from_days(days: List[ContributionDay]) -> Dict[date, int]:
    """Flatten dated slots into a date->count mapping; padding is dropped."""
    return {day.date: day.count for day in days if not day.is_padding}


def month_labels(weeks: List[ContributionWeek]) -> List[str]:
    """
    One label per week column: the short month name where a new month starts,
    an empty string elsewhere.
    """
    labels: List[str] = []
    last_month = None

    for week in weeks:
        first_dated = next((day.date for day in week.days if not day.is_padding), None)
        if first_dated is None or first_dated.month == last_month:
            labels.append("")
            continue
        labels.append(MONTH_ABBREVIATIONS[first_dated.month - 1])
        last_month = first_dated.month

    return labels


def intensity_level(count: int, max_count: int) -> int:
    """Heatmap shade 0..5 relative to the busiest day in view."""
    if count <= 0:
        return 0
    if max_count <= 0:
        return 1

    share = count / max_count
    if share > 0.8:
        return 5
    if share > 0.6:
        return 4
    if share > 0.4:
        return 3
    if share > 0.2:
        return 2
    return 1
