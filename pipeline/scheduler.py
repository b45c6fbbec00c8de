from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config.settings import Settings, settings as default_settings
from core.schemas import RefreshRun
from pipeline.refresh import RefreshOrchestrator

log = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs the refresh on an in-process interval when one is configured."""

    def __init__(
        self, orchestrator: RefreshOrchestrator, config: Settings | None = None
    ) -> None:
        self._orchestrator = orchestrator
        self._cfg = config or default_settings
        self._scheduler = AsyncIOScheduler()

    def start(self) -> None:
        minutes = self._cfg.REFRESH_INTERVAL_MINUTES
        if minutes > 0:
            self._scheduler.add_job(
                self._run,
                "interval",
                minutes=minutes,
                id="refresh",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        if self._cfg.REFRESH_ON_STARTUP:
            self._scheduler.add_job(
                self._run,
                "date",
                run_date=datetime.now(timezone.utc),
                id="refresh_init",
            )
        self._scheduler.start()
        log.info(
            "Refresh scheduler started (interval: %s)",
            f"{minutes} min" if minutes > 0 else "disabled",
        )

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def get_status(self) -> dict:
        jobs = []
        for job in self._scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run": job.next_run_time.isoformat()
                    if job.next_run_time
                    else None,
                }
            )
        return {
            "running": self._scheduler.running,
            "refresh_in_progress": self._orchestrator.running,
            "jobs": jobs,
        }

    async def _run(self) -> RefreshRun:
        log.info("Scheduled refresh starting")
        return await self._orchestrator.run()
