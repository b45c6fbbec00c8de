from __future__ import annotations

import pytest

from config.settings import Settings


@pytest.fixture
def cfg() -> Settings:
    """Settings with every delay and retry loop collapsed for fast tests."""
    return Settings(
        STORE_URL="",
        CRON_SECRET="",
        GITHUB_REPOS="canonical/snapd",
        GITHUB_REQUEST_DELAY=0,
        GITHUB_MAX_RETRIES=1,
        GITHUB_RETRY_DELAY=0,
        DISCOURSE_FEEDS="https://forum.example/latest.rss",
        DISCOURSE_MAX_RETRIES=1,
        REDDIT_SUBREDDITS="Ubuntu",
        REDDIT_REQUEST_DELAY=0,
        REDDIT_MAX_RETRIES=1,
        REFRESH_INTERVAL_MINUTES=0,
    )
