from datetime import date as Date, datetime
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio.domain.exceptions import FetchErrorKind

T = TypeVar("T")


class Repository(BaseModel):
    """
    Immutable domain model representing a GitHub repository as shown on the site.
    A refetch builds new instances; nothing mutates one in place.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Numeric repository id from the REST API")
    name: str = Field(..., description="Name of the repository")
    full_name: str = Field(..., description="owner/name pair")
    owner: str = Field(..., description="Login name of the repository owner")
    description: Optional[str] = None
    html_url: str = ""
    homepage: Optional[str] = None
    language: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    stars: int = Field(0, ge=0, description="Total number of stargazers")
    forks: int = Field(0, ge=0, description="Total number of forks")
    created_at: datetime
    updated_at: datetime
    pushed_at: datetime
    size: int = Field(0, ge=0, description="Repository size in KB")
    archived: bool = False
    disabled: bool = False
    private: bool = False
    fork: bool = False
    # Set only for organizations rendered as pseudo-repositories.
    avatar_url: Optional[str] = None
    is_organization: bool = False

    @property
    def popularity(self) -> int:
        return self.stars + self.forks


class Contributor(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str
    avatar_url: str = ""
    html_url: str = ""
    contributions: int = Field(0, ge=0)


class ContributionDay(BaseModel):
    """One heatmap slot. Padding slots carry no date and a zero count."""
    model_config = ConfigDict(frozen=True)

    date: Optional[Date] = None
    count: int = Field(0, ge=0)

    @property
    def is_padding(self) -> bool:
        return self.date is None


class ContributionWeek(BaseModel):
    """Seven slots, Sunday first."""
    model_config = ConfigDict(frozen=True)

    days: List[ContributionDay]

    @field_validator("days")
    @classmethod
    def _seven_days(cls, days: List[ContributionDay]) -> List[ContributionDay]:
        if len(days) != 7:
            raise ValueError(f"a week holds exactly 7 slots, got {len(days)}")
        return days


class ContributionCalendar(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    year: int
    weeks: List[ContributionWeek]
    total: int = Field(..., ge=0)
    current_streak: int = Field(..., ge=0)
    longest_streak: int = Field(..., ge=0)
    source: Literal["github", "mock"] = Field(
        ..., description="'mock' when the calendar was synthesized after a failed fetch"
    )


class BlogPost(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque id assigned by the store")
    title: str
    content: str
    date: datetime = Field(..., description="Creation time, never changed by updates")
    images: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class PostDraft(BaseModel):
    """Incoming create/update payload. Emptiness is checked by the blog service."""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    content: str = ""
    images: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("images", "videos", "tags", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value


class FetchResult(BaseModel, Generic[T]):
    """
    What the presentation layer receives instead of an exception:
    either `data` or an `error` message, never both.

    Awaited service calls always resolve with `loading=False`. `pending()`
    is the placeholder a caller shows while such a call is still in flight.
    """
    model_config = ConfigDict(frozen=True)

    data: Optional[T] = None
    loading: bool = False
    error: Optional[str] = None
    error_kind: Optional[FetchErrorKind] = None

    @classmethod
    def ok(cls, data: T) -> "FetchResult[T]":
        return cls(data=data)

    @classmethod
    def pending(cls) -> "FetchResult[T]":
        return cls(loading=True)

    @classmethod
    def failed(cls, message: str, kind: Optional[FetchErrorKind] = None) -> "FetchResult[T]":
        return cls(error=message, error_kind=kind)

    @property
    def is_error(self) -> bool:
        return self.error is not None
