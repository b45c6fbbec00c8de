"""Tests for the JSON API."""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from core.models import FetchResult
from core.schemas import ForumOverview, IssueOverview, RepoData, SocialOverview
from data.store import MemoryStore
from fetchers.base import BaseFetcher
from pipeline.refresh import RefreshOrchestrator

TS = "2024-03-14T12:00:00Z"


class StubFetcher(BaseFetcher):
    def __init__(self, result):
        super().__init__()
        self._result = result

    async def fetch(self):
        return self._result


def _fetchers():
    repo = RepoData(
        owner="canonical",
        repo="snapd",
        open_issues_count=5,
        issues_opened=4,
        issues_closed=3,
        median_first_response_hours=12.0,
        median_close_hours=30.0,
        fetched_at=TS,
    )
    return {
        "github": StubFetcher(FetchResult(
            source="github",
            success=True,
            data=IssueOverview(total_opened=4, total_closed=3, fetched_at=TS),
            details=[repo],
        )),
        "discourse": StubFetcher(FetchResult(
            source="discourse", success=True, data=ForumOverview(fetched_at=TS),
        )),
        "reddit": StubFetcher(FetchResult(
            source="reddit",
            success=False,
            error="blocked",
            data=SocialOverview(available=False, fetched_at=TS, error="blocked"),
        )),
    }


@pytest.fixture
def client(cfg):
    cfg = cfg.model_copy(update={"CRON_SECRET": "s3cret"})
    store = MemoryStore()
    app = create_app(
        store=store,
        orchestrator=RefreshOrchestrator(store, _fetchers(), cfg),
        config=cfg,
    )
    with TestClient(app) as c:
        yield c


def test_liveness(client):
    assert client.get("/health").json() == {"status": "ok", "store": "memory"}


def test_metrics_missing_before_first_refresh(client):
    assert client.get("/api/metrics/health").status_code == 404
    assert client.get("/api/metrics/github").status_code == 404
    assert client.get("/api/metrics/community").status_code == 404
    assert client.get("/api/metrics/github/canonical/snapd").status_code == 404

    body = client.get("/api/metrics/overview").json()
    assert body["health_score"] is None
    assert body["refresh"]["last_status"] is None


def test_manual_refresh_populates_metrics(client):
    resp = client.post("/api/refresh")
    assert resp.status_code == 200
    run = resp.json()
    assert run["status"] == "ok"
    assert [e["source"] for e in run["errors"]] == ["reddit"]

    score = client.get("/api/metrics/health").json()
    assert 0 <= score["overall"] <= 100
    assert score["components"]["community_sentiment"]["available"] is False

    assert client.get("/api/metrics/github").json()["total_opened"] == 4
    repo = client.get("/api/metrics/github/canonical/snapd").json()
    assert repo["median_close_hours"] == 30.0
    assert client.get("/api/metrics/community").json()["overall_sentiment"] is None

    overview = client.get("/api/metrics/overview").json()
    assert overview["health_score"]["overall"] == score["overall"]
    assert overview["refresh"]["last_status"] == "ok"
    assert overview["refresh"]["last_success"] == run["last_success"]


def test_refresh_status(client):
    client.post("/api/refresh")
    status = client.get("/api/refresh/status").json()
    assert status["last_status"] == "ok"
    assert status["refresh_in_progress"] is False
    assert status["scheduler"] == {"running": False, "jobs": []}
    assert [e["source"] for e in status["last_errors"]] == ["reddit"]


def test_cron_refresh_requires_secret(client):
    assert client.get("/api/cron/refresh").status_code == 401
    bad = client.get("/api/cron/refresh", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401

    ok = client.get("/api/cron/refresh", headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200
    assert ok.json()["status"] == "ok"


def test_cron_refresh_open_without_secret(cfg):
    store = MemoryStore()
    app = create_app(
        store=store,
        orchestrator=RefreshOrchestrator(store, _fetchers(), cfg),
        config=cfg,
    )
    with TestClient(app) as c:
        assert c.get("/api/cron/refresh").status_code == 200
