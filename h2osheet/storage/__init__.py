"""Persistence collaborator: local cache plus remote project-data API."""

from h2osheet.storage.local_cache import FileSheetCache, NullSheetCache, RedisSheetCache
from h2osheet.storage.persistence import (
    SaveResult,
    SheetLoadError,
    create_cache,
    create_remote,
    load_technical_sheet_data,
    save_technical_sheet_data,
)
from h2osheet.storage.remote import ProjectDataClient, RemoteSyncError

__all__ = [
    "FileSheetCache",
    "NullSheetCache",
    "RedisSheetCache",
    "ProjectDataClient",
    "RemoteSyncError",
    "SaveResult",
    "SheetLoadError",
    "create_cache",
    "create_remote",
    "load_technical_sheet_data",
    "save_technical_sheet_data",
]
