"""Refresh orchestration: fetch every source, aggregate, score, persist.

Sources run one after another on purpose, to stay inside third-party rate
limits. A failing source never stops the chain; its last stored overview
is used instead and the failure is reflected in the run status.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any

from analysis.community import aggregate_community
from analysis.health import calculate_health_score
from config.settings import Settings, settings as default_settings
from core.models import FetchResult
from core.schemas import (
    ForumOverview,
    IssueOverview,
    RefreshError,
    RefreshRun,
    RefreshStatus,
    SocialOverview,
)
from core.stats import isoformat, utcnow
from data import store as keys
from data.snapshots import load
from data.store import KeyValueStore
from fetchers.base import BaseFetcher
from fetchers.discourse import DiscourseFetcher
from fetchers.github import GitHubFetcher
from fetchers.reddit import RedditFetcher

log = logging.getLogger(__name__)

CRITICAL_SOURCES = frozenset({"github", "discourse"})

BroadcastFn = Callable[[dict[str, Any]], Awaitable[None]]


def derive_status(errors: Iterable[RefreshError]) -> RefreshStatus:
    """ok with no critical failures, partial with one, fail with two or more.

    Failures of optional sources (reddit) never change the status.
    """
    critical = sum(1 for e in errors if e.source in CRITICAL_SOURCES)
    if critical >= 2:
        return "fail"
    if critical == 1:
        return "partial"
    return "ok"


class RefreshOrchestrator:
    def __init__(
        self,
        store: KeyValueStore,
        fetchers: dict[str, BaseFetcher] | None = None,
        config: Settings | None = None,
        broadcast_fn: BroadcastFn | None = None,
    ) -> None:
        self._store = store
        self._cfg = config or default_settings
        self._fetchers = fetchers or {
            "github": GitHubFetcher(self._cfg),
            "discourse": DiscourseFetcher(self._cfg),
            "reddit": RedditFetcher(self._cfg),
        }
        self._broadcast = broadcast_fn
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> RefreshRun:
        """Run one full refresh. Never raises; failures show up in the status."""
        async with self._lock:
            started = utcnow()
            t0 = time.monotonic()
            errors: list[RefreshError] = []
            try:
                await self._pipeline(started, errors)
                status = derive_status(errors)
            except Exception as exc:
                log.exception("Refresh aborted unexpectedly")
                errors.append(self._error("refresh", str(exc) or type(exc).__name__))
                status = "fail"

            run = await self._finish(started, t0, status, errors)

        if self._broadcast:
            try:
                await self._broadcast(
                    {
                        "event": "refresh_complete",
                        "status": run.status,
                        "errors": len(run.errors),
                        "duration_ms": run.duration_ms,
                    }
                )
            except Exception as e:
                log.warning("Refresh broadcast failed: %s", e)
        return run

    async def _pipeline(self, started: datetime, errors: list[RefreshError]) -> None:
        window = self._cfg.window
        await self._save(keys.REFRESH_LAST_ATTEMPT, isoformat(started))

        log.info("Fetching GitHub data…")
        github_result = await self._fetch("github", errors)
        if github_result.success:
            await self._save(keys.overview_key("github", window), github_result.data)
            for repo in github_result.details:
                await self._save(
                    keys.repo_key(repo.owner, repo.repo, window),
                    repo,
                    ttl_seconds=self._cfg.REPO_DETAIL_TTL_SECONDS or None,
                )
            github = github_result.data
        else:
            github = await self._load(keys.overview_key("github", window), IssueOverview)

        log.info("Fetching Discourse data…")
        forum_result = await self._fetch("discourse", errors)
        if forum_result.success:
            await self._save(keys.overview_key("discourse", window), forum_result.data)
            forum = forum_result.data
        else:
            forum = await self._load(keys.overview_key("discourse", window), ForumOverview)

        log.info("Fetching Reddit data…")
        social_result = await self._fetch("reddit", errors)
        social = social_result.data
        if social is not None:
            # includes the available=False placeholder when reddit failed
            await self._save(keys.overview_key("reddit", window), social)
        else:
            social = await self._load(keys.overview_key("reddit", window), SocialOverview)

        log.info("Aggregating community data…")
        community = aggregate_community(forum, social)
        await self._save(keys.COMMUNITY_NEGATIVE_ITEMS, community.top_negative_items)
        await self._save(keys.overview_key("community", window), community)

        log.info("Calculating health score…")
        score = calculate_health_score(github, community, self._cfg)
        await self._save(keys.HEALTH_SCORE, score)
        log.info("Health score: %d", score.overall)

    async def _fetch(self, source: str, errors: list[RefreshError]) -> FetchResult:
        fetcher = self._fetchers.get(source)
        if fetcher is None:
            result = FetchResult(source=source, success=False, error="No fetcher configured")
        else:
            try:
                result = await fetcher.fetch()
            except Exception as exc:
                log.exception("%s fetcher raised", source)
                result = FetchResult(source=source, success=False, error=str(exc) or type(exc).__name__)

        if not result.success:
            level = logging.WARNING if source in CRITICAL_SOURCES else logging.INFO
            log.log(level, "%s fetch failed: %s", source, result.error)
            errors.append(self._error(source, result.error or "Unknown error"))
        return result

    async def _finish(
        self, started: datetime, t0: float, status: RefreshStatus, errors: list[RefreshError]
    ) -> RefreshRun:
        finished = utcnow()
        last_success = await self._store_get(keys.REFRESH_LAST_SUCCESS)
        if status != "fail":
            last_success = isoformat(finished)

        run = RefreshRun(
            status=status,
            errors=errors,
            duration_ms=int((time.monotonic() - t0) * 1000),
            started_at=isoformat(started),
            finished_at=isoformat(finished),
            last_attempt=isoformat(started),
            last_success=last_success if isinstance(last_success, str) else None,
        )

        await self._save(keys.REFRESH_LAST_STATUS, status)
        await self._save(keys.REFRESH_LAST_ERRORS, errors)
        if status != "fail":
            await self._save(keys.REFRESH_LAST_SUCCESS, run.last_success)
        await self._save(keys.REFRESH_LAST_RUN, run)

        log.info(
            "Refresh completed in %dms with status %s (%d errors)",
            run.duration_ms, status, len(errors),
        )
        return run

    async def _save(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            await self._store.set(key, value, ttl_seconds=ttl_seconds)
        except Exception as e:
            log.error("Failed to persist %s: %s", key, e)

    async def _load(self, key: str, model):
        try:
            return await load(self._store, key, model)
        except Exception as e:
            log.error("Failed to read %s: %s", key, e)
            return None

    async def _store_get(self, key: str) -> Any | None:
        try:
            return await self._store.get(key)
        except Exception as e:
            log.error("Failed to read %s: %s", key, e)
            return None

    @staticmethod
    def _error(source: str, message: str) -> RefreshError:
        return RefreshError(source=source, error=message, timestamp=isoformat(utcnow()))
