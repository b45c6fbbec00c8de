from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from core.schemas import RefreshError, RefreshMetadata
from data.store import (
    REFRESH_LAST_ATTEMPT,
    REFRESH_LAST_ERRORS,
    REFRESH_LAST_STATUS,
    REFRESH_LAST_SUCCESS,
    KeyValueStore,
)

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_errors_adapter = TypeAdapter(list[RefreshError])


async def load(store: KeyValueStore, key: str, model: type[M]) -> M | None:
    """Read ``key`` and parse it as ``model``; malformed data reads as missing."""
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        log.warning("Discarding malformed snapshot %s: %d errors", key, e.error_count())
        return None


async def load_refresh_metadata(store: KeyValueStore) -> RefreshMetadata:
    raw = {
        "last_success": await store.get(REFRESH_LAST_SUCCESS),
        "last_attempt": await store.get(REFRESH_LAST_ATTEMPT),
        "last_status": await store.get(REFRESH_LAST_STATUS),
    }
    try:
        errors = _errors_adapter.validate_python(await store.get(REFRESH_LAST_ERRORS) or [])
    except ValidationError:
        log.warning("Discarding malformed refresh error list")
        errors = []
    try:
        return RefreshMetadata.model_validate({**raw, "last_errors": errors})
    except ValidationError:
        log.warning("Discarding malformed refresh metadata")
        return RefreshMetadata(last_errors=errors)
