from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, Request

from data.snapshots import load_refresh_metadata

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["refresh"])


@router.post("/refresh")
async def trigger_refresh(request: Request):
    log.info("Manual refresh triggered")
    run = await request.app.state.orchestrator.run()
    return run.model_dump(mode="json")


@router.get("/cron/refresh")
async def cron_refresh(request: Request, authorization: str | None = Header(default=None)):
    secret = request.app.state.config.CRON_SECRET
    if secret and authorization != f"Bearer {secret}":
        log.warning("Unauthorized cron refresh request")
        raise HTTPException(401, "Unauthorized")

    log.info("Cron refresh triggered")
    run = await request.app.state.orchestrator.run()
    return run.model_dump(mode="json")


@router.get("/refresh/status")
async def refresh_status(request: Request):
    meta = await load_refresh_metadata(request.app.state.store)
    scheduler = request.app.state.scheduler
    return {
        **meta.model_dump(mode="json"),
        "refresh_in_progress": request.app.state.orchestrator.running,
        "scheduler": scheduler.get_status() if scheduler else {"running": False, "jobs": []},
    }
