"""Tests for the Discourse RSS fetcher."""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from core.schemas import ForumItem
from fetchers.discourse import DiscourseFetcher, build_forum_overview, dedupe_by_link, parse_feed

NOW = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)


def _rss(*items):
    body = "".join(
        f"""
        <item>
          <title>{title}</title>
          <link>{link}</link>
          <pubDate>{format_datetime(published)}</pubDate>
          {''.join(f'<category>{c}</category>' for c in categories)}
        </item>"""
        for title, link, published, categories in items
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Ubuntu Discourse</title>
    <link>https://forum.example</link>
    <description>Latest topics</description>{body}
  </channel>
</rss>"""


def _item(title, link, published, categories=()):
    return ForumItem(
        title=title,
        link=link,
        published_at=published,
        categories=list(categories),
    )


def test_parse_feed_extracts_entries():
    text = _rss(
        ("Snap store broken", "https://forum.example/t/1", NOW - timedelta(days=1), ["Support"]),
        ("Welcome", "https://forum.example/t/2", NOW - timedelta(days=3), []),
    )
    items = parse_feed(text, now=NOW)

    assert [i.title for i in items] == ["Snap store broken", "Welcome"]
    assert items[0].link == "https://forum.example/t/1"
    assert items[0].published_at == "2024-03-13T12:00:00Z"
    assert items[0].categories == ["Support"]
    assert items[1].categories == []


def test_parse_feed_rejects_garbage():
    with pytest.raises(ValueError):
        parse_feed("this is not a feed <<<", now=NOW)


def test_dedupe_keeps_first_position_and_last_value():
    items = [
        _item("old title", "https://forum.example/t/1", "2024-03-10T00:00:00Z"),
        _item("other", "https://forum.example/t/2", "2024-03-11T00:00:00Z"),
        _item("new title", "https://forum.example/t/1", "2024-03-12T00:00:00Z"),
    ]
    unique = dedupe_by_link(items)
    assert [i.link for i in unique] == ["https://forum.example/t/1", "https://forum.example/t/2"]
    assert unique[0].title == "new title"


def test_build_forum_overview():
    items = [
        _item("Snap refresh is slow", "https://forum.example/t/1", "2024-03-13T09:00:00Z", ["Snap"]),
        _item("Ubuntu upgrade failed", "https://forum.example/t/2", "2024-03-10T09:00:00Z"),
        _item("Ubuntu upgrade failed", "https://forum.example/t/2", "2024-03-10T09:00:00Z"),
        _item("Welcome", "https://forum.example/t/3", "2024-03-04T09:00:00Z"),
    ]
    overview = build_forum_overview(items, ["snap", "ubuntu", "lxd"], now=NOW, recent_limit=2)

    assert overview.available
    assert overview.total_topics == 3
    assert overview.keyword_matches == {"snap": 1, "ubuntu": 1, "lxd": 0}
    # 2024-03-10 is a Sunday and belongs to the week starting 03-04
    assert [(w.week, w.count) for w in overview.topics_per_week] == [
        ("2024-03-04", 2),
        ("2024-03-11", 1),
    ]
    assert overview.complaint_category_counts["snaps_security"] == 1
    assert overview.complaint_category_counts["updates_breakage"] == 1
    assert len(overview.recent_items) == 2


@pytest.mark.asyncio
async def test_fetch_merges_feeds_and_drops_stale_items(cfg):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    latest = _rss(
        ("Snap store broken", "https://forum.example/t/1", now - timedelta(days=2), ["Support"]),
        ("Ubuntu upgrade failed", "https://forum.example/t/2", now - timedelta(days=3), []),
        ("Ancient thread", "https://forum.example/t/9", now - timedelta(days=60), []),
    )
    top = _rss(
        ("Snap store broken (edited)", "https://forum.example/t/1", now - timedelta(days=2), ["Support"]),
        ("Welcome", "https://forum.example/t/3", now - timedelta(days=1), []),
    )
    feeds = {"/latest.rss": latest, "/top.rss": top}

    def handler(request):
        return httpx.Response(200, text=feeds[request.url.path])

    cfg = cfg.model_copy(update={
        "DISCOURSE_FEEDS": "https://forum.example/latest.rss,https://forum.example/top.rss",
    })
    result = await DiscourseFetcher(cfg, transport=httpx.MockTransport(handler)).fetch()

    assert result.success
    assert result.errors == []
    overview = result.data
    assert overview.total_topics == 3
    assert [i.link for i in overview.recent_items] == [
        "https://forum.example/t/1",
        "https://forum.example/t/2",
        "https://forum.example/t/3",
    ]
    assert overview.recent_items[0].title == "Snap store broken (edited)"
    assert overview.keyword_matches["snap"] == 1
    assert overview.keyword_matches["ubuntu"] == 1


@pytest.mark.asyncio
async def test_one_failing_feed_is_reported_but_not_fatal(cfg):
    now = datetime.now(timezone.utc)
    good = _rss(("Welcome", "https://forum.example/t/3", now - timedelta(days=1), []))

    def handler(request):
        if request.url.path == "/latest.rss":
            return httpx.Response(500)
        return httpx.Response(200, text=good)

    cfg = cfg.model_copy(update={
        "DISCOURSE_FEEDS": "https://forum.example/latest.rss,https://forum.example/top.rss",
    })
    result = await DiscourseFetcher(cfg, transport=httpx.MockTransport(handler)).fetch()

    assert result.success
    assert len(result.errors) == 1
    assert result.errors[0].startswith("https://forum.example/latest.rss:")
    assert result.data.total_topics == 1


@pytest.mark.asyncio
async def test_all_feeds_failing_is_a_failure(cfg):
    result = await DiscourseFetcher(
        cfg, transport=httpx.MockTransport(lambda request: httpx.Response(503))
    ).fetch()

    assert not result.success
    assert result.error == "Failed to fetch any Discourse feeds"
    assert result.data is None
