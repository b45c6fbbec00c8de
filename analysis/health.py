"""Composite ecosystem health score.

Four components are each normalised to 0-100 and combined with configurable
weights. When community sentiment is unavailable its weight is split evenly
across the other three rather than counting as a zero.
"""

from __future__ import annotations

from datetime import datetime

from config.settings import Settings, settings as default_settings
from core.schemas import CommunityOverview, HealthScore, HealthScoreComponent, IssueOverview
from core.stats import clamp, isoformat, round_half_up, utcnow

NEUTRAL_RESPONSIVENESS = 50
NEUTRAL_SEVERITY = 70
MAX_NEGATIVE_SHARE = 50.0

COMPONENTS = ("responsiveness", "closure_ratio", "community_sentiment", "complaint_severity")


def _bounded(score: float) -> int:
    return int(clamp(round_half_up(score), 0, 100))


def score_responsiveness(
    median_hours: float | None, max_hours: float = 168.0
) -> HealthScoreComponent:
    if median_hours is None:
        return HealthScoreComponent(
            score=NEUTRAL_RESPONSIVENESS,
            description="No response time data available",
        )
    capped = min(median_hours, max_hours)
    return HealthScoreComponent(
        score=_bounded(100 * (1 - capped / max_hours)),
        raw_value=median_hours,
        description=f"Median first response: {round(median_hours, 1)}h",
    )


def score_closure_ratio(
    opened: int, closed: int, max_ratio: float = 1.2
) -> HealthScoreComponent:
    if opened == 0:
        return HealthScoreComponent(score=100, description="No issues opened in period")
    ratio = closed / opened
    capped = min(ratio, max_ratio)
    return HealthScoreComponent(
        score=_bounded(capped / max_ratio * 100),
        raw_value=ratio,
        description=f"Closure ratio: {round(ratio, 2)} ({closed} closed / {opened} opened)",
    )


def score_sentiment(
    average: float | None, lo: float = -3.0, hi: float = 3.0
) -> HealthScoreComponent:
    if average is None:
        return HealthScoreComponent(
            score=0,
            available=False,
            description="Sentiment data not available",
        )
    normalized = (average - lo) / (hi - lo)
    return HealthScoreComponent(
        score=_bounded(normalized * 100),
        raw_value=average,
        description=f"Average sentiment: {round(average, 2)}",
    )


def score_complaint_severity(
    negative_share: float | None, total_complaints: int
) -> HealthScoreComponent:
    if negative_share is None or total_complaints == 0:
        return HealthScoreComponent(
            score=NEUTRAL_SEVERITY,
            description="Complaint data not available",
        )
    capped = min(negative_share, MAX_NEGATIVE_SHARE)
    return HealthScoreComponent(
        score=_bounded(100 - capped * 2),
        raw_value=negative_share,
        description=f"{round(negative_share, 1)}% of content classified as negative",
    )


def adjusted_weights(weights: dict[str, float], sentiment_available: bool) -> dict[str, float]:
    if sentiment_available:
        return dict(weights)
    share = weights["community_sentiment"] / 3
    return {
        "responsiveness": weights["responsiveness"] + share,
        "closure_ratio": weights["closure_ratio"] + share,
        "community_sentiment": 0.0,
        "complaint_severity": weights["complaint_severity"] + share,
    }


def combine(components: dict[str, HealthScoreComponent]) -> int:
    total = sum(c.score * c.weight for c in components.values())
    return _bounded(total)


def calculate_health_score(
    github: IssueOverview | None,
    community: CommunityOverview | None,
    config: Settings | None = None,
    now: datetime | None = None,
) -> HealthScore:
    cfg = config or default_settings

    github_ok = github is not None and github.available
    raw = {
        "responsiveness": score_responsiveness(
            github.overall_median_first_response_hours if github_ok else None,
            cfg.MAX_FIRST_RESPONSE_HOURS,
        ),
        "closure_ratio": score_closure_ratio(
            github.total_opened if github_ok else 0,
            github.total_closed if github_ok else 0,
            cfg.MAX_CLOSURE_RATIO,
        ),
        "community_sentiment": score_sentiment(
            community.overall_sentiment if community else None,
            cfg.SENTIMENT_MIN,
            cfg.SENTIMENT_MAX,
        ),
        "complaint_severity": score_complaint_severity(
            community.social.negative_share_percent
            if community and community.social
            else None,
            sum(community.combined_complaint_categories.values()) if community else 0,
        ),
    }

    weights = adjusted_weights(cfg.weights, raw["community_sentiment"].available)
    components = {
        name: raw[name].model_copy(update={"weight": weights[name]}) for name in COMPONENTS
    }

    return HealthScore(
        overall=combine(components),
        components=components,
        calculated_at=isoformat(now or utcnow()),
    )
