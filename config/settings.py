from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings


def _split(value: str) -> list[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


class Settings(BaseSettings):
    # Store ("" keeps snapshots in process memory)
    STORE_URL: str = ""
    REPO_DETAIL_TTL_SECONDS: int = 86400

    # Server
    DASHBOARD_PORT: int = 8001
    LOG_LEVEL: str = "INFO"
    CRON_SECRET: str = ""

    # HTTP behaviour
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    USER_AGENT: str = "Ecosystem-Health-Dashboard/1.0 (research project)"

    # GitHub
    GITHUB_API_BASE: str = "https://api.github.com"
    GITHUB_REPOS: str = (
        "canonical/snapd,canonical/multipass,canonical/cloud-init,"
        "ubuntu/ubuntu-make,ubuntu/gnome-shell-extension-appindicator"
    )
    GITHUB_TOKEN: str = ""
    GITHUB_LOOKBACK_DAYS: int = 30
    GITHUB_REQUEST_DELAY: float = 0.1
    GITHUB_MAX_RETRIES: int = 3
    # backoff base for retries; GITHUB_REQUEST_DELAY only spaces requests
    GITHUB_RETRY_DELAY: float = 1.0
    GITHUB_RESPONSE_SAMPLE_SIZE: int = 20
    GITHUB_TOP_N: int = 10

    # Discourse
    DISCOURSE_FEEDS: str = (
        "https://discourse.ubuntu.com/latest.rss,https://discourse.ubuntu.com/top.rss"
    )
    DISCOURSE_LOOKBACK_DAYS: int = 30
    DISCOURSE_MAX_RETRIES: int = 3
    DISCOURSE_RECENT_ITEMS: int = 20

    # Reddit (best effort)
    REDDIT_SUBREDDITS: str = "Ubuntu,linux,linuxquestions"
    REDDIT_PAGE_SIZE: int = 100
    REDDIT_MAX_PAGES: int = 2
    REDDIT_REQUEST_DELAY: float = 2.0
    REDDIT_MAX_RETRIES: int = 2
    REDDIT_LOOKBACK_DAYS: int = 30
    REDDIT_TOP_NEGATIVE: int = 20

    # Keyword tagging
    TRACKED_KEYWORDS: str = (
        "canonical,ubuntu,snap,snapd,apt,lxd,multipass,update,upgrade,security,performance"
    )

    # Health score
    WEIGHT_RESPONSIVENESS: float = 0.35
    WEIGHT_CLOSURE_RATIO: float = 0.25
    WEIGHT_COMMUNITY_SENTIMENT: float = 0.20
    WEIGHT_COMPLAINT_SEVERITY: float = 0.20
    MAX_FIRST_RESPONSE_HOURS: float = 168.0
    MAX_CLOSURE_RATIO: float = 1.2
    SENTIMENT_MIN: float = -3.0
    SENTIMENT_MAX: float = 3.0

    # Scheduling (0 disables the in-process interval job)
    REFRESH_INTERVAL_MINUTES: int = 0
    REFRESH_ON_STARTUP: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @model_validator(mode="after")
    def _check_scoring(self) -> Settings:
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"health score weights must sum to 1.0, got {total}")
        if self.SENTIMENT_MAX <= self.SENTIMENT_MIN:
            raise ValueError("SENTIMENT_MAX must be greater than SENTIMENT_MIN")
        return self

    @property
    def weights(self) -> dict[str, float]:
        return {
            "responsiveness": self.WEIGHT_RESPONSIVENESS,
            "closure_ratio": self.WEIGHT_CLOSURE_RATIO,
            "community_sentiment": self.WEIGHT_COMMUNITY_SENTIMENT,
            "complaint_severity": self.WEIGHT_COMPLAINT_SEVERITY,
        }

    @property
    def github_repos(self) -> list[tuple[str, str]]:
        repos = []
        for entry in _split(self.GITHUB_REPOS):
            owner, _, name = entry.partition("/")
            if owner and name:
                repos.append((owner, name))
        return repos

    @property
    def discourse_feeds(self) -> list[str]:
        return _split(self.DISCOURSE_FEEDS)

    @property
    def subreddits(self) -> list[str]:
        return _split(self.REDDIT_SUBREDDITS)

    @property
    def tracked_keywords(self) -> list[str]:
        return _split(self.TRACKED_KEYWORDS)

    @property
    def window(self) -> str:
        """Label used in snapshot keys, e.g. ``30d``."""
        return f"{self.GITHUB_LOOKBACK_DAYS}d"


settings = Settings()
