"""Tests for the in-process refresh scheduler."""

import pytest

from pipeline.scheduler import RefreshScheduler


class IdleOrchestrator:
    running = False

    def __init__(self):
        self.runs = 0

    async def run(self):
        self.runs += 1


@pytest.mark.asyncio
async def test_interval_job_is_scheduled(cfg):
    cfg = cfg.model_copy(update={"REFRESH_INTERVAL_MINUTES": 5})
    scheduler = RefreshScheduler(IdleOrchestrator(), cfg)
    scheduler.start()
    try:
        status = scheduler.get_status()
        assert status["running"] is True
        assert status["refresh_in_progress"] is False
        assert [j["id"] for j in status["jobs"]] == ["refresh"]
        assert status["jobs"][0]["next_run"] is not None

        job = scheduler._scheduler.get_job("refresh")
        assert job.max_instances == 1
        assert job.coalesce is True
    finally:
        scheduler.stop()

    assert scheduler.get_status()["running"] is False


@pytest.mark.asyncio
async def test_startup_job_is_added_when_enabled(cfg):
    cfg = cfg.model_copy(update={"REFRESH_ON_STARTUP": True})
    scheduler = RefreshScheduler(IdleOrchestrator(), cfg)
    scheduler.start()
    try:
        assert [j["id"] for j in scheduler.get_status()["jobs"]] == ["refresh_init"]
    finally:
        scheduler.stop()


@pytest.mark.asyncio
async def test_no_jobs_when_interval_disabled(cfg):
    scheduler = RefreshScheduler(IdleOrchestrator(), cfg)
    scheduler.start()
    try:
        assert scheduler.get_status()["jobs"] == []
    finally:
        scheduler.stop()
