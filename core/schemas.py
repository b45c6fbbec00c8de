"""Snapshot shapes persisted to the store and served to the dashboard.

Every model is frozen and JSON-serialisable; timestamps are ISO-8601 strings.
Reading a snapshot back goes through ``model_validate`` so malformed data is
rejected at the store boundary.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── GitHub ───────────────────────────────────────────────────────────


class DailyStats(Snapshot):
    date: str
    opened: int = 0
    closed: int = 0


class BucketCount(Snapshot):
    bucket: str
    count: int = 0


class LabelCount(Snapshot):
    name: str
    count: int


class DiscussedIssue(Snapshot):
    title: str
    url: str
    comments: int
    number: int


class RepoData(Snapshot):
    owner: str
    repo: str
    open_issues_count: int
    issues_opened: int
    issues_closed: int
    median_first_response_hours: float | None
    median_close_hours: float | None
    top_labels: list[LabelCount] = Field(default_factory=list)
    daily_stats: list[DailyStats] = Field(default_factory=list)
    most_discussed_issues: list[DiscussedIssue] = Field(default_factory=list)
    first_response_distribution: list[BucketCount] = Field(default_factory=list)
    close_time_distribution: list[BucketCount] = Field(default_factory=list)
    fetched_at: str


class RepoSummary(Snapshot):
    owner: str
    repo: str
    open_issues: int
    opened: int
    closed: int


class IssueOverview(Snapshot):
    available: bool = True
    total_open_issues: int = 0
    total_opened_last_7d: int = 0
    total_closed_last_7d: int = 0
    total_opened: int = 0
    total_closed: int = 0
    overall_median_first_response_hours: float | None = None
    overall_median_close_hours: float | None = None
    repo_summaries: list[RepoSummary] = Field(default_factory=list)
    daily_stats: list[DailyStats] = Field(default_factory=list)
    fetched_at: str
    error: str | None = None


# ── Discourse ────────────────────────────────────────────────────────


class ForumItem(Snapshot):
    title: str
    link: str
    published_at: str
    categories: list[str] = Field(default_factory=list)


class WeeklyCount(Snapshot):
    week: str
    count: int


class ForumOverview(Snapshot):
    available: bool = True
    total_topics: int = 0
    topics_per_week: list[WeeklyCount] = Field(default_factory=list)
    keyword_matches: dict[str, int] = Field(default_factory=dict)
    complaint_category_counts: dict[str, int] = Field(default_factory=dict)
    recent_items: list[ForumItem] = Field(default_factory=list)
    fetched_at: str
    error: str | None = None


# ── Reddit ───────────────────────────────────────────────────────────


class DailySentiment(Snapshot):
    date: str
    avg_sentiment: float
    post_count: int


class NegativeItem(Snapshot):
    title: str
    url: str
    subreddit: str
    sentiment: float
    source: str = "reddit"


class SocialOverview(Snapshot):
    available: bool
    total_posts: int = 0
    average_sentiment: float | None = None
    negative_share_percent: float | None = None
    daily_sentiment: list[DailySentiment] = Field(default_factory=list)
    complaint_category_counts: dict[str, int] = Field(default_factory=dict)
    top_negative_items: list[NegativeItem] = Field(default_factory=list)
    fetched_at: str
    error: str | None = None


# ── Community / score / refresh ──────────────────────────────────────


class CommunityOverview(Snapshot):
    forum: ForumOverview | None = None
    social: SocialOverview | None = None
    combined_complaint_categories: dict[str, int] = Field(default_factory=dict)
    top_complaint_category: str | None = None
    overall_sentiment: float | None = None
    top_negative_items: list[NegativeItem] = Field(default_factory=list)
    fetched_at: str


class HealthScoreComponent(Snapshot):
    score: int
    weight: float = 0.0
    raw_value: float | None = None
    description: str
    available: bool = True


class HealthScore(Snapshot):
    overall: int
    components: dict[str, HealthScoreComponent]
    calculated_at: str


RefreshStatus = Literal["ok", "partial", "fail"]


class RefreshError(Snapshot):
    source: str
    error: str
    timestamp: str


class RefreshRun(Snapshot):
    status: RefreshStatus
    errors: list[RefreshError] = Field(default_factory=list)
    duration_ms: int
    started_at: str
    finished_at: str
    last_attempt: str
    last_success: str | None = None


class RefreshMetadata(Snapshot):
    last_success: str | None = None
    last_attempt: str | None = None
    last_status: RefreshStatus | None = None
    last_errors: list[RefreshError] = Field(default_factory=list)
