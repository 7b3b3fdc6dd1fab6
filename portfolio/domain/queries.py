from typing import Dict, Iterable, List, Optional, Sequence

from portfolio.domain.models import BlogPost, Repository

SORT_KEYS = ("stars", "forks", "updated", "name", "popularity")


def sort_by_popularity(repos: Iterable[Repository]) -> List[Repository]:
    # sorted() is stable, so equal stars+forks keep their fetch order.
    return sorted(repos, key=lambda repo: repo.popularity, reverse=True)


def filter_repos(
    repos: Sequence[Repository],
    search: str = "",
    language: str = "all",
    sort_by: str = "popularity",
) -> List[Repository]:
    """
    Search-and-sort used by the project listing. `search` matches the name,
    description or any topic (case-insensitive); `language="all"` disables the
    language filter.
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{sort_by}'. Expected one of {SORT_KEYS}.")

    needle = search.strip().lower()

    def matches(repo: Repository) -> bool:
        if language != "all" and repo.language != language:
            return False
        if not needle:
            return True
        return (
            needle in repo.name.lower()
            or needle in (repo.description or "").lower()
            or any(needle in topic.lower() for topic in repo.topics)
        )

    selected = [repo for repo in repos if matches(repo)]

    if sort_by == "stars":
        return sorted(selected, key=lambda repo: repo.stars, reverse=True)
    if sort_by == "forks":
        return sorted(selected, key=lambda repo: repo.forks, reverse=True)
    if sort_by == "updated":
        return sorted(selected, key=lambda repo: repo.updated_at, reverse=True)
    if sort_by == "name":
        return sorted(selected, key=lambda repo: repo.name.lower())
    return sort_by_popularity(selected)


def group_by_language(repos: Iterable[Repository]) -> Dict[str, List[Repository]]:
    grouped: Dict[str, List[Repository]] = {}
    for repo in repos:
        grouped.setdefault(repo.language or "Other", []).append(repo)
    return grouped


def available_languages(repos: Iterable[Repository]) -> List[str]:
    return sorted({repo.language for repo in repos if repo.language})


def language_breakdown(languages: Dict[str, int]) -> List[Dict[str, object]]:
    """Percent share per language (bytes from the languages endpoint), largest first."""
    total = sum(languages.values())
    if total <= 0:
        return []
    breakdown = [
        {"language": name, "bytes": size, "percent": round(size * 100 / total, 1)}
        for name, size in languages.items()
    ]
    return sorted(breakdown, key=lambda entry: entry["bytes"], reverse=True)


def all_tags(posts: Iterable[BlogPost]) -> List[str]:
    return sorted({tag for post in posts for tag in post.tags})


def filter_posts(
    posts: Iterable[BlogPost],
    query: str = "",
    tags: Optional[Sequence[str]] = None,
) -> List[BlogPost]:
    """Posts whose title or content contains `query` and that carry every tag in `tags`, newest first."""
    needle = query.strip().lower()
    wanted = list(tags or [])

    selected = [
        post for post in posts
        if (not needle or needle in post.title.lower() or needle in post.content.lower())
        and all(tag in post.tags for tag in wanted)
    ]
    return sorted(selected, key=lambda post: post.date, reverse=True)
