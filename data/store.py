"""Best-effort key-value cache for refresh snapshots.

Two backends share one interface: ``SqlStore`` (SQLAlchemy, SQLite by
default) when ``STORE_URL`` is configured, otherwise ``MemoryStore`` which
lives for the process lifetime. Neither backend raises from ``get``/``set``/
``delete``/``keys``; failures are logged and reported as missing data.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from pydantic_core import to_jsonable_python

from config.settings import Settings, settings as default_settings
from data.database import create_engine, create_session_factory, get_session, init_db
from data.repositories import EntryRepository

log = logging.getLogger(__name__)

REFRESH_LAST_SUCCESS = "refresh:last_success"
REFRESH_LAST_ATTEMPT = "refresh:last_attempt"
REFRESH_LAST_STATUS = "refresh:last_status"
REFRESH_LAST_ERRORS = "refresh:last_errors"
REFRESH_LAST_RUN = "refresh:last_run"
COMMUNITY_NEGATIVE_ITEMS = "community:items:negative"
HEALTH_SCORE = "health:score"


def overview_key(source: str, window: str = "30d") -> str:
    return f"{source}:overview:{window}"


def repo_key(owner: str, repo: str, window: str = "30d") -> str:
    return f"github:repo:{owner}_{repo}:{window}"


def _encode(value: Any) -> str:
    # pydantic snapshots (and lists of them) serialise through their json mode
    return json.dumps(value, default=to_jsonable_python)


class KeyValueStore(ABC):
    backend: str

    async def init(self) -> None:
        return None

    async def close(self) -> None:
        return None

    @abstractmethod
    async def get(self, key: str) -> Any | None: ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def keys(self, prefix: str) -> list[str]: ...


class MemoryStore(KeyValueStore):
    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self._clock = clock

    def _expired(self, key: str) -> bool:
        expiry = self._expires.get(key)
        if expiry is None or self._clock() <= expiry:
            return False
        self._data.pop(key, None)
        self._expires.pop(key, None)
        return True

    async def get(self, key: str) -> Any | None:
        if self._expired(key):
            return None
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.error("Corrupt memory entry for %s", key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            self._data[key] = _encode(value)
        except (TypeError, ValueError) as e:
            log.error("Store set error for key %s: %s", key, e)
            return
        if ttl_seconds:
            self._expires[key] = self._clock() + ttl_seconds
        else:
            self._expires.pop(key, None)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._expires.pop(key, None)

    async def keys(self, prefix: str) -> list[str]:
        return sorted(
            k for k in list(self._data)
            if k.startswith(prefix) and not self._expired(k)
        )


class SqlStore(KeyValueStore):
    backend = "sql"

    def __init__(self, url: str, clock: Callable[[], float] = time.time) -> None:
        self._engine = create_engine(url)
        self._clock = clock
        self._factory = create_session_factory(self._engine)

    async def init(self) -> None:
        await init_db(self._engine)
        async with get_session(self._factory) as session:
            purged = await EntryRepository(session, self._clock).purge_expired()
        if purged:
            log.info("Purged %d expired store entries", purged)

    async def close(self) -> None:
        await self._engine.dispose()

    async def get(self, key: str) -> Any | None:
        try:
            async with get_session(self._factory) as session:
                raw = await EntryRepository(session, self._clock).get(key)
            return json.loads(raw) if raw is not None else None
        except Exception as e:
            log.error("Store get error for key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            payload = _encode(value)
            async with get_session(self._factory) as session:
                await EntryRepository(session, self._clock).put(key, payload, ttl_seconds)
        except Exception as e:
            log.error("Store set error for key %s: %s", key, e)

    async def delete(self, key: str) -> None:
        try:
            async with get_session(self._factory) as session:
                await EntryRepository(session, self._clock).delete(key)
        except Exception as e:
            log.error("Store delete error for key %s: %s", key, e)

    async def keys(self, prefix: str) -> list[str]:
        try:
            async with get_session(self._factory) as session:
                return await EntryRepository(session, self._clock).keys(prefix)
        except Exception as e:
            log.error("Store keys error for prefix %s: %s", prefix, e)
            return []


def create_store(config: Settings | None = None) -> KeyValueStore:
    cfg = config or default_settings
    if cfg.STORE_URL:
        log.info("Using SQL store")
        return SqlStore(cfg.STORE_URL)
    log.info("STORE_URL not configured, snapshots will live in process memory")
    return MemoryStore()
