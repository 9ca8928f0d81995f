"""Save and load technical sheets: local cache first, then the remote API.

Persistence never raises into the editing flow. A failed cache write is a
warning, a failed remote sync is an error; both are logged and reported on
the result, and the caller keeps its in-memory document as it is.

Loading tells "nothing stored" (None) apart from "could not read"
(``SheetLoadError``) so a failed read never leads to a fresh template being
saved over a project's data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from h2osheet.config import AppConfig
from h2osheet.models import TableSection
from h2osheet.parameters.library import ParameterLibrary
from h2osheet.sheet.rehydration import rehydrate_fields_from_library
from h2osheet.sheet.serialization import sections_from_payload, sections_to_payload
from h2osheet.storage.local_cache import (
    FileSheetCache,
    NullSheetCache,
    RedisSheetCache,
    SheetCache,
)
from h2osheet.storage.remote import ProjectDataClient, RemoteSyncError

logger = structlog.get_logger(__name__)

REMOTE_SECTIONS_KEY = "technical_sections"


@dataclass(frozen=True)
class SaveResult:
    cached: bool
    synced: bool

    @property
    def ok(self) -> bool:
        return self.cached and self.synced


async def save_technical_sheet_data(
    project_id: str,
    sections: list[TableSection],
    cache: SheetCache,
    remote: ProjectDataClient | None = None,
) -> SaveResult:
    """Write a document to the local cache, then sync it to the remote API.

    Args:
        project_id: Project identifier
        sections: Document to persist (validation rules are not stored)
        cache: Local cache
        remote: Project-data client; None skips the sync

    Returns:
        Which of the two writes succeeded
    """
    payload = sections_to_payload(sections)

    cached = await cache.set(project_id, payload)
    if not cached:
        logger.warning("technical_sheet_cache_failed", project_id=project_id)

    synced = False
    if remote is not None:
        try:
            await remote.update_data(project_id, {REMOTE_SECTIONS_KEY: payload}, merge=True)
            synced = True
        except RemoteSyncError as e:
            logger.error("technical_sheet_sync_failed", project_id=project_id, error=str(e))

    logger.debug("technical_sheet_saved", project_id=project_id, cached=cached, synced=synced)
    return SaveResult(cached=cached, synced=synced)


class SheetLoadError(Exception):
    """Raised when stored sheet data may exist but can't be read.

    Distinct from "nothing stored": callers must not replace a document they
    failed to read.
    """
    pass


def parse_technical_sections(
    project_id: str, payload: Any, origin: str
) -> list[TableSection] | None:
    """Parse a stored ``technical_sections`` payload.

    Returns:
        Sections (not yet rehydrated), or None when the payload is empty

    Raises:
        SheetLoadError: If the payload has the wrong shape
    """
    if payload is None or payload == []:
        return None
    if not isinstance(payload, list):
        logger.error(
            "technical_sheet_payload_invalid",
            project_id=project_id,
            origin=origin,
            payload_type=type(payload).__name__,
        )
        raise SheetLoadError(
            f"Stored technical sheet of {project_id} ({origin}) is a "
            f"{type(payload).__name__}, expected a list of sections"
        )
    try:
        return sections_from_payload(payload)
    except ValidationError as e:
        logger.error(
            "technical_sheet_payload_invalid",
            project_id=project_id,
            origin=origin,
            errors=e.error_count(),
        )
        raise SheetLoadError(
            f"Stored technical sheet of {project_id} ({origin}) is invalid: "
            f"{e.error_count()} validation error(s)"
        ) from e


async def load_technical_sheet_data(
    project_id: str,
    library: ParameterLibrary,
    cache: SheetCache,
    remote: ProjectDataClient | None = None,
) -> list[TableSection] | None:
    """Load and rehydrate a stored document.

    The remote copy is preferred; the local cache is the fallback when the
    API is unavailable or has nothing stored.

    Returns:
        Rehydrated sections, or None when storage holds no document

    Raises:
        SheetLoadError: If the remote API failed and there is no local copy,
            or a stored payload can't be parsed
    """
    sections = None
    remote_failed = False
    if remote is not None:
        try:
            data = await remote.get_data(project_id)
        except RemoteSyncError as e:
            remote_failed = True
            logger.warning("technical_sheet_remote_load_failed", project_id=project_id, error=str(e))
        else:
            sections = parse_technical_sections(project_id, data.get(REMOTE_SECTIONS_KEY), "remote")

    if sections is None:
        sections = parse_technical_sections(project_id, await cache.get(project_id), "cache")

    if sections is None:
        if remote_failed:
            raise SheetLoadError(
                f"Project data API unavailable and no local copy of {project_id}"
            )
        return None
    return rehydrate_fields_from_library(sections, library)


def create_cache(config: AppConfig) -> SheetCache:
    """Local cache for the configured backend."""
    backend = config.storage.cache_backend
    if backend == "redis":
        return RedisSheetCache(config.storage.redis_url, config.storage.cache_ttl_seconds)
    if backend == "none":
        return NullSheetCache()
    return FileSheetCache(config.storage.cache_dir)


def create_remote(config: AppConfig) -> ProjectDataClient | None:
    """Project-data client, or None when no API URL is configured."""
    if not config.remote.enabled:
        return None
    return ProjectDataClient(
        config.remote.api_base_url,
        token=config.remote.api_token,
        timeout=config.remote.timeout_seconds,
    )
