from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from core.schemas import CommunityOverview, HealthScore, IssueOverview, RepoData
from data import store as keys
from data.snapshots import load, load_refresh_metadata

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


def _dump(model) -> dict | None:
    return model.model_dump(mode="json") if model is not None else None


@router.get("/overview")
async def overview(request: Request):
    store = request.app.state.store
    window = request.app.state.config.window
    health = await load(store, keys.HEALTH_SCORE, HealthScore)
    github = await load(store, keys.overview_key("github", window), IssueOverview)
    community = await load(store, keys.overview_key("community", window), CommunityOverview)
    meta = await load_refresh_metadata(store)
    return {
        "health_score": _dump(health),
        "github": _dump(github),
        "community": _dump(community),
        "refresh": _dump(meta),
    }


@router.get("/health")
async def health_score(request: Request):
    score = await load(request.app.state.store, keys.HEALTH_SCORE, HealthScore)
    if score is None:
        raise HTTPException(404, "Health score not found. Try refreshing.")
    return _dump(score)


@router.get("/github")
async def github_overview(request: Request):
    window = request.app.state.config.window
    data = await load(request.app.state.store, keys.overview_key("github", window), IssueOverview)
    if data is None:
        raise HTTPException(404, "GitHub data not found. Try refreshing.")
    return _dump(data)


@router.get("/github/{owner}/{repo}")
async def github_repo(owner: str, repo: str, request: Request):
    window = request.app.state.config.window
    data = await load(request.app.state.store, keys.repo_key(owner, repo, window), RepoData)
    if data is None:
        raise HTTPException(404, f"No data for {owner}/{repo}")
    return _dump(data)


@router.get("/community")
async def community_overview(request: Request):
    window = request.app.state.config.window
    data = await load(
        request.app.state.store, keys.overview_key("community", window), CommunityOverview
    )
    if data is None:
        raise HTTPException(404, "Community data not found. Try refreshing.")
    return _dump(data)
