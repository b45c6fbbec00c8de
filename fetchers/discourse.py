"""Discourse forum fetcher: RSS via httpx, parsed with feedparser."""

from __future__ import annotations

import calendar
import logging
import time
from collections import Counter
from datetime import datetime, timedelta, timezone

import feedparser

from core.keywords import count_categories, matches_keyword
from core.models import FetchResult
from core.schemas import ForumItem, ForumOverview, WeeklyCount
from core.stats import isoformat, utcnow, week_start
from fetchers.base import BaseFetcher, fetch_with_retry

log = logging.getLogger(__name__)

_FEED_ACCEPT = "application/rss+xml, application/xml, text/xml"


class DiscourseFetcher(BaseFetcher):
    source_name = "discourse"

    async def fetch(self) -> FetchResult:
        items: list[ForumItem] = []
        errors: list[str] = []
        succeeded = 0
        start = time.monotonic()
        now = utcnow()
        cutoff = now - timedelta(days=self._cfg.DISCOURSE_LOOKBACK_DAYS)

        async with self._client({"Accept": _FEED_ACCEPT}) as client:
            for url in self._cfg.discourse_feeds:
                try:
                    resp = await fetch_with_retry(
                        client, url, max_retries=self._cfg.DISCOURSE_MAX_RETRIES
                    )
                    if not resp.is_success:
                        raise ConnectionError(f"HTTP {resp.status_code}")
                    feed_items = parse_feed(resp.text, now=now)
                    fresh = [
                        i for i in feed_items
                        if _parse_iso(i.published_at) >= cutoff
                    ]
                    items.extend(fresh)
                    succeeded += 1
                    log.info("Feed %s: %d items in window", url, len(fresh))
                except Exception as e:
                    msg = f"{url}: {e}"
                    log.warning("Discourse fetch error: %s", msg)
                    errors.append(msg)

        elapsed = time.monotonic() - start
        if not succeeded:
            return FetchResult(
                source=self.source_name,
                success=False,
                error="Failed to fetch any Discourse feeds",
                errors=errors,
                duration_seconds=elapsed,
            )

        overview = build_forum_overview(
            items,
            self._cfg.tracked_keywords,
            now=now,
            recent_limit=self._cfg.DISCOURSE_RECENT_ITEMS,
        )
        log.info("Discourse: %d unique topics in window", overview.total_topics)
        return FetchResult(
            source=self.source_name,
            success=True,
            data=overview,
            errors=errors,
            duration_seconds=elapsed,
        )


def parse_feed(text: str, *, now: datetime) -> list[ForumItem]:
    """Extract title/link/date/categories from an RSS or Atom document."""
    feed = feedparser.parse(text)
    if feed.bozo and not feed.entries:
        raise ValueError(f"Unparseable feed: {feed.get('bozo_exception')}")

    items = []
    for entry in feed.entries:
        title = (entry.get("title") or "").strip()
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue
        items.append(
            ForumItem(
                title=title,
                link=link,
                published_at=isoformat(_entry_date(entry) or now),
                categories=[
                    t.get("term", "").strip()
                    for t in entry.get("tags", [])
                    if t.get("term")
                ],
            )
        )
    return items


def _entry_date(entry) -> datetime | None:
    for field in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field)
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def dedupe_by_link(items: list[ForumItem]) -> list[ForumItem]:
    """Keep one item per link; the last one seen wins, first position is kept."""
    unique: dict[str, ForumItem] = {}
    for item in items:
        unique[item.link] = item
    return list(unique.values())


def _item_text(item: ForumItem) -> str:
    return f"{item.title} {' '.join(item.categories)}"


def build_forum_overview(
    items: list[ForumItem],
    keywords: list[str],
    *,
    now: datetime,
    recent_limit: int = 20,
) -> ForumOverview:
    unique = dedupe_by_link(items)

    weeks: Counter[str] = Counter(
        week_start(_parse_iso(i.published_at)).isoformat() for i in unique
    )

    keyword_matches = {k: 0 for k in keywords}
    for item in unique:
        text = _item_text(item)
        for keyword in keywords:
            if matches_keyword(text, keyword):
                keyword_matches[keyword] += 1

    return ForumOverview(
        available=True,
        total_topics=len(unique),
        topics_per_week=[WeeklyCount(week=w, count=c) for w, c in sorted(weeks.items())],
        keyword_matches=keyword_matches,
        complaint_category_counts=count_categories(_item_text(i) for i in unique),
        recent_items=unique[:recent_limit],
        fetched_at=isoformat(now),
    )
