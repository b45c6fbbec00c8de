"""GitHub issue-tracker fetcher using httpx (REST API v3)."""

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime, timedelta

import httpx

from config.settings import Settings
from core.models import FetchResult, IssueRecord
from core.schemas import (
    DailyStats,
    DiscussedIssue,
    IssueOverview,
    LabelCount,
    RepoData,
    RepoSummary,
)
from core.stats import (
    CLOSE_BUCKETS,
    RESPONSE_BUCKETS,
    bucketize,
    days_between,
    format_date,
    hours_between,
    isoformat,
    median,
    utcnow,
)
from fetchers.base import BaseFetcher, RateLimiter, fetch_with_retry

log = logging.getLogger(__name__)


class GitHubFetcher(BaseFetcher):
    source_name = "github"

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, transport)
        self._limiter = RateLimiter(delay_seconds=self._cfg.GITHUB_REQUEST_DELAY)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self._cfg.GITHUB_TOKEN:
            headers["Authorization"] = f"token {self._cfg.GITHUB_TOKEN}"
        return headers

    async def fetch(self) -> FetchResult:
        repos: list[RepoData] = []
        errors: list[str] = []
        t0 = time.monotonic()

        async with self._client(self._headers()) as client:
            for owner, name in self._cfg.github_repos:
                try:
                    data = await self._fetch_repo(client, owner, name)
                    repos.append(data)
                    log.info(
                        "%s/%s: %d issues opened, %d closed in window",
                        owner, name, data.issues_opened, data.issues_closed,
                    )
                except Exception as exc:
                    msg = f"{owner}/{name}: {exc}"
                    log.warning("GitHub fetch error: %s", msg)
                    errors.append(msg)

        elapsed = time.monotonic() - t0
        if not repos:
            return FetchResult(
                source=self.source_name,
                success=False,
                error="Failed to fetch any GitHub repositories",
                errors=errors,
                duration_seconds=elapsed,
            )

        return FetchResult(
            source=self.source_name,
            success=True,
            data=aggregate_repos(repos, utcnow()),
            errors=errors,
            details=repos,
            duration_seconds=elapsed,
        )

    async def _get(self, client: httpx.AsyncClient, url: str, **params) -> httpx.Response:
        await self._limiter.wait()
        return await fetch_with_retry(
            client,
            url,
            params=params or None,
            max_retries=self._cfg.GITHUB_MAX_RETRIES,
            delay_seconds=self._cfg.GITHUB_RETRY_DELAY,
        )

    async def _fetch_repo(
        self, client: httpx.AsyncClient, owner: str, name: str
    ) -> RepoData:
        now = utcnow()
        since = now - timedelta(days=self._cfg.GITHUB_LOOKBACK_DAYS)
        base = f"{self._cfg.GITHUB_API_BASE.rstrip('/')}/repos/{owner}/{name}"

        issues = await self._fetch_issues(client, base, since)

        resp = await self._get(client, base)
        if not resp.is_success:
            raise ConnectionError(f"HTTP {resp.status_code} for repo info")
        open_count = resp.json().get("open_issues_count") or 0

        in_range = [i for i in issues if i.created_at >= since]
        sample = [i for i in in_range if i.comments > 0][
            : self._cfg.GITHUB_RESPONSE_SAMPLE_SIZE
        ]
        response_hours: list[float] = []
        for issue in sample:
            first = await self._first_comment_at(client, base, issue.number)
            if first is None:
                continue
            hours = hours_between(issue.created_at, first)
            if hours >= 0:
                response_hours.append(hours)

        return build_repo_data(
            owner,
            name,
            issues,
            open_count,
            response_hours,
            now=now,
            lookback_days=self._cfg.GITHUB_LOOKBACK_DAYS,
            top_n=self._cfg.GITHUB_TOP_N,
        )

    async def _fetch_issues(
        self, client: httpx.AsyncClient, base: str, since: datetime
    ) -> list[IssueRecord]:
        issues: list[IssueRecord] = []
        page = 1
        while True:
            resp = await self._get(
                client,
                f"{base}/issues",
                state="all",
                since=isoformat(since),
                per_page=100,
                page=page,
                sort="created",
                direction="desc",
            )
            if not resp.is_success:
                raise ConnectionError(f"HTTP {resp.status_code} listing issues")

            for raw in resp.json():
                # the issues endpoint also lists pull requests
                if raw.get("pull_request"):
                    continue
                issues.append(IssueRecord.from_api(raw))

            if "next" not in resp.links:
                break
            page += 1
        return issues

    async def _first_comment_at(
        self, client: httpx.AsyncClient, base: str, number: int
    ) -> datetime | None:
        try:
            resp = await self._get(client, f"{base}/issues/{number}/comments", per_page=1)
            if not resp.is_success:
                return None
            comments = resp.json()
            if not comments:
                return None
            created = comments[0]["created_at"]
            return datetime.fromisoformat(created.replace("Z", "+00:00"))
        except Exception as exc:
            log.debug("First comment lookup failed for #%d: %s", number, exc)
            return None


def build_repo_data(
    owner: str,
    repo: str,
    issues: list[IssueRecord],
    open_issues_count: int,
    response_hours: list[float],
    *,
    now: datetime,
    lookback_days: int = 30,
    top_n: int = 10,
) -> RepoData:
    """Derive one repository's statistics from its issues."""
    since = now - timedelta(days=lookback_days)
    in_range = [i for i in issues if i.created_at >= since]

    daily = {day: [0, 0] for day in days_between(since, now)}
    for issue in in_range:
        created = format_date(issue.created_at)
        if created in daily:
            daily[created][0] += 1
        if issue.closed_at:
            closed = format_date(issue.closed_at)
            if closed in daily:
                daily[closed][1] += 1

    labels: Counter[str] = Counter()
    for issue in in_range:
        labels.update(issue.labels)

    discussed = sorted(in_range, key=lambda i: i.comments, reverse=True)[:top_n]

    close_hours = []
    for issue in in_range:
        if issue.closed_at:
            hours = hours_between(issue.created_at, issue.closed_at)
            if hours >= 0:
                close_hours.append(hours)

    return RepoData(
        owner=owner,
        repo=repo,
        open_issues_count=open_issues_count,
        issues_opened=len(in_range),
        issues_closed=sum(1 for i in in_range if i.closed_at),
        median_first_response_hours=median(response_hours),
        median_close_hours=median(close_hours),
        top_labels=[LabelCount(name=n, count=c) for n, c in labels.most_common(top_n)],
        daily_stats=[
            DailyStats(date=d, opened=o, closed=c) for d, (o, c) in sorted(daily.items())
        ],
        most_discussed_issues=[
            DiscussedIssue(title=i.title, url=i.url, comments=i.comments, number=i.number)
            for i in discussed
        ],
        first_response_distribution=bucketize(response_hours, RESPONSE_BUCKETS),
        close_time_distribution=bucketize(close_hours, CLOSE_BUCKETS),
        fetched_at=isoformat(now),
    )


def aggregate_repos(repos: list[RepoData], now: datetime) -> IssueOverview:
    """Merge per-repository data into the cross-repo overview."""
    cutoff = format_date(now - timedelta(days=7))

    daily: dict[str, list[int]] = {}
    for repo in repos:
        for stat in repo.daily_stats:
            entry = daily.setdefault(stat.date, [0, 0])
            entry[0] += stat.opened
            entry[1] += stat.closed

    daily_stats = [
        DailyStats(date=d, opened=o, closed=c) for d, (o, c) in sorted(daily.items())
    ]
    recent = [s for s in daily_stats if s.date >= cutoff]

    return IssueOverview(
        available=True,
        total_open_issues=sum(r.open_issues_count for r in repos),
        total_opened_last_7d=sum(s.opened for s in recent),
        total_closed_last_7d=sum(s.closed for s in recent),
        total_opened=sum(r.issues_opened for r in repos),
        total_closed=sum(r.issues_closed for r in repos),
        # median of each repo's median, not of the pooled raw values
        overall_median_first_response_hours=median(
            r.median_first_response_hours
            for r in repos
            if r.median_first_response_hours is not None
        ),
        overall_median_close_hours=median(
            r.median_close_hours for r in repos if r.median_close_hours is not None
        ),
        repo_summaries=[
            RepoSummary(
                owner=r.owner,
                repo=r.repo,
                open_issues=r.open_issues_count,
                opened=r.issues_opened,
                closed=r.issues_closed,
            )
            for r in repos
        ],
        daily_stats=daily_stats,
        fetched_at=isoformat(now),
    )
