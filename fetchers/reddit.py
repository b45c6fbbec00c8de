"""Reddit fetcher using httpx (JSON API)."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

import httpx

from analysis.sentiment import SentimentAnalyzer
from config.settings import Settings
from core.keywords import categorize_complaint, empty_category_counts
from core.models import FetchResult, SocialPost
from core.schemas import DailySentiment, NegativeItem, SocialOverview
from core.stats import format_date, isoformat, utcnow
from fetchers.base import BaseFetcher, RateLimiter, fetch_with_retry

log = logging.getLogger(__name__)


class RedditFetcher(BaseFetcher):
    source_name = "reddit"

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        analyzer: SentimentAnalyzer | None = None,
    ) -> None:
        super().__init__(config, transport)
        self._analyzer = analyzer or SentimentAnalyzer()
        self._limiter = RateLimiter(delay_seconds=self._cfg.REDDIT_REQUEST_DELAY)

    async def fetch(self) -> FetchResult:
        posts: list[SocialPost] = []
        errors: list[str] = []
        succeeded = 0
        t0 = time.monotonic()
        now = utcnow()
        cutoff = (now - timedelta(days=self._cfg.REDDIT_LOOKBACK_DAYS)).timestamp()

        async with self._client() as client:
            for i, sub in enumerate(self._cfg.subreddits):
                if i:
                    # extra spacing between communities on top of the per-page limiter
                    await asyncio.sleep(self._cfg.REDDIT_REQUEST_DELAY)
                try:
                    sub_posts = await self._fetch_subreddit(client, sub, cutoff)
                    posts.extend(sub_posts)
                    succeeded += 1
                    log.info("r/%s: %d posts in window", sub, len(sub_posts))
                except Exception as exc:
                    msg = f"r/{sub}: {exc}"
                    log.warning(msg)
                    errors.append(msg)

        elapsed = time.monotonic() - t0

        if not succeeded or not posts:
            error = (
                "Failed to fetch any Reddit data"
                if not succeeded
                else "No Reddit posts in lookback window"
            )
            return FetchResult(
                source=self.source_name,
                success=False,
                data=unavailable_overview(error, now),
                error=error,
                errors=errors,
                duration_seconds=elapsed,
            )

        overview = build_social_overview(
            posts, now=now, top_negative=self._cfg.REDDIT_TOP_NEGATIVE,
            analyzer=self._analyzer,
        )
        log.info(
            "Reddit: %d posts, avg sentiment %.2f",
            overview.total_posts, overview.average_sentiment or 0.0,
        )
        return FetchResult(
            source=self.source_name,
            success=True,
            data=overview,
            errors=errors,
            duration_seconds=elapsed,
        )

    async def _fetch_subreddit(
        self, client: httpx.AsyncClient, sub: str, cutoff: float
    ) -> list[SocialPost]:
        posts: list[SocialPost] = []
        after: str | None = None

        for page in range(self._cfg.REDDIT_MAX_PAGES):
            params = {"limit": self._cfg.REDDIT_PAGE_SIZE, "raw_json": 1}
            if after:
                params["after"] = after
            try:
                await self._limiter.wait()
                resp = await fetch_with_retry(
                    client,
                    f"https://www.reddit.com/r/{sub}/new.json",
                    params=params,
                    max_retries=self._cfg.REDDIT_MAX_RETRIES,
                    delay_seconds=self._cfg.REDDIT_REQUEST_DELAY,
                )
                if not resp.is_success:
                    raise ConnectionError(f"HTTP {resp.status_code}")
                listing = resp.json().get("data", {})
            except Exception as exc:
                if page == 0:
                    raise
                log.warning("r/%s page %d failed, keeping %d posts: %s", sub, page, len(posts), exc)
                break

            for child in listing.get("children", []):
                post = child.get("data", {})
                created = float(post.get("created_utc", 0))
                if created < cutoff:
                    # listing is newest first
                    return posts
                if not post.get("title"):
                    continue
                posts.append(self._to_post(post, sub))

            after = listing.get("after")
            if not after:
                break

        return posts

    def _to_post(self, post: dict, sub: str) -> SocialPost:
        title = post.get("title", "")
        body = post.get("selftext") or ""
        text = f"{title} {body}"
        return SocialPost(
            title=title,
            url=f"https://reddit.com{post.get('permalink', '')}",
            subreddit=post.get("subreddit") or sub,
            score=post.get("score", 0),
            num_comments=post.get("num_comments", 0),
            created_utc=float(post.get("created_utc", 0)),
            selftext=body[:500],
            sentiment=self._analyzer.analyze(text).score,
            category=categorize_complaint(text),
        )


def unavailable_overview(error: str, now: datetime) -> SocialOverview:
    return SocialOverview(available=False, fetched_at=isoformat(now), error=error)


def build_social_overview(
    posts: list[SocialPost],
    *,
    now: datetime,
    top_negative: int = 20,
    analyzer: SentimentAnalyzer | None = None,
) -> SocialOverview:
    analyzer = analyzer or SentimentAnalyzer()
    if not posts:
        return unavailable_overview("No Reddit posts in lookback window", now)

    average = sum(p.sentiment for p in posts) / len(posts)
    negatives = [p for p in posts if analyzer.classify(p.sentiment) == "negative"]

    daily: dict[str, list[float]] = {}
    for post in posts:
        day = format_date(datetime.fromtimestamp(post.created_utc, tz=timezone.utc))
        daily.setdefault(day, []).append(post.sentiment)

    complaints = empty_category_counts()
    for post in posts:
        if post.category:
            complaints[post.category] += 1

    worst = sorted(negatives, key=lambda p: p.sentiment)[:top_negative]

    return SocialOverview(
        available=True,
        total_posts=len(posts),
        average_sentiment=average,
        negative_share_percent=len(negatives) / len(posts) * 100,
        daily_sentiment=[
            DailySentiment(date=d, avg_sentiment=sum(v) / len(v), post_count=len(v))
            for d, v in sorted(daily.items())
        ],
        complaint_category_counts=complaints,
        top_negative_items=[
            NegativeItem(title=p.title, url=p.url, subreddit=p.subreddit, sentiment=p.sentiment)
            for p in worst
        ],
        fetched_at=isoformat(now),
    )
