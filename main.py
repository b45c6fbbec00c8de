"""Ecosystem Health Dashboard: entry point.

    python main.py            serve the JSON API
    python main.py refresh    run one refresh and print the result
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

import uvicorn

from api.app import create_app
from config.settings import settings
from data.store import create_store
from pipeline.refresh import RefreshOrchestrator
from pipeline.scheduler import RefreshScheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger(__name__)

app = create_app()


@app.on_event("startup")
async def on_startup() -> None:
    log.info("Initialising %s store…", app.state.store.backend)
    await app.state.store.init()

    scheduler = RefreshScheduler(app.state.orchestrator)
    app.state.scheduler = scheduler
    scheduler.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
        log.info("Refresh scheduler stopped.")
    await app.state.store.close()


async def run_refresh_once() -> dict:
    store = create_store()
    await store.init()
    try:
        run = await RefreshOrchestrator(store).run()
    finally:
        await store.close()
    return run.model_dump(mode="json")


def main() -> None:
    parser = argparse.ArgumentParser(description="Ecosystem health dashboard")
    parser.add_argument(
        "command",
        nargs="?",
        choices=("serve", "refresh"),
        default="serve",
        help="serve the API (default) or run a single refresh",
    )
    args = parser.parse_args()

    if args.command == "refresh":
        result = asyncio.run(run_refresh_once())
        print(json.dumps(result, indent=2))
        return

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.DASHBOARD_PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()
