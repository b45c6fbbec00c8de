from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class IssueRecord:
    """A GitHub issue normalised from the REST listing."""

    number: int
    title: str
    url: str
    created_at: datetime
    closed_at: datetime | None
    comments: int
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> IssueRecord:
        closed = raw.get("closed_at")
        return cls(
            number=raw.get("number", 0),
            title=raw.get("title", ""),
            url=raw.get("html_url", ""),
            created_at=_parse_ts(raw["created_at"]),
            closed_at=_parse_ts(closed) if closed else None,
            comments=raw.get("comments", 0) or 0,
            labels=[lbl.get("name", "") for lbl in raw.get("labels", []) if isinstance(lbl, dict)],
        )


@dataclass
class SocialPost:
    """A Reddit post with its sentiment already scored."""

    title: str
    url: str
    subreddit: str
    score: int
    num_comments: int
    created_utc: float
    selftext: str
    sentiment: float
    category: str | None = None


@dataclass
class FetchResult:
    """Outcome of a single fetcher run."""

    source: str
    success: bool
    data: Any = None
    error: str | None = None
    errors: list[str] = field(default_factory=list)
    details: list[Any] = field(default_factory=list)
    duration_seconds: float = 0.0


def _parse_ts(value: str) -> datetime:
    # GitHub returns "2024-03-01T10:00:00Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
