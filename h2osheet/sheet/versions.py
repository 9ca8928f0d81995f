"""Version snapshots and field-level change tracking."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from h2osheet.models import (
    TableField,
    TableSection,
    TechnicalDataVersion,
    VersionChange,
    VersionSource,
)

logger = structlog.get_logger(__name__)


def _index(sections: list[TableSection]) -> dict[str, tuple[str, TableField]]:
    return {
        f"{section.id}:{field.id}": (section.id, field)
        for section in sections
        for field in section.fields
    }


def _blank(value) -> bool:
    return value is None or value == ""


def compute_version_changes(
    previous: list[TableSection],
    current: list[TableSection],
    changed_by: str | None = None,
    changed_at: datetime | None = None,
) -> list[VersionChange]:
    """Diff the values of two document states.

    A field counts as added when it appears with a value, removed when it
    disappears while holding one, and modified when its value changes.
    Changes are listed in current document order, removals last.
    """
    changed_at = changed_at or datetime.now(timezone.utc)
    before = _index(previous)
    after = _index(current)
    changes: list[VersionChange] = []

    for key, (section_id, field) in after.items():
        old = before.get(key)
        if old is None:
            if _blank(field.value):
                continue
            change_type, previous_value = "added", None
        else:
            previous_value = old[1].value
            if previous_value == field.value:
                continue
            change_type = "modified"

        changes.append(
            VersionChange(
                section_id=section_id,
                field_id=field.id,
                label=field.label,
                previous_value=previous_value,
                new_value=field.value,
                unit=field.unit,
                change_type=change_type,
                changed_by=changed_by,
                changed_at=changed_at,
            )
        )

    for key, (section_id, field) in before.items():
        if key in after or _blank(field.value):
            continue
        changes.append(
            VersionChange(
                section_id=section_id,
                field_id=field.id,
                label=field.label,
                previous_value=field.value,
                new_value=None,
                unit=field.unit,
                change_type="removed",
                changed_by=changed_by,
                changed_at=changed_at,
            )
        )

    return changes


def _snapshot(sections: list[TableSection]) -> list[TableSection]:
    return [section.model_copy(deep=True) for section in sections]


def create_version(
    project_id: str,
    sections: list[TableSection],
    previous: TechnicalDataVersion | None = None,
    label: str | None = None,
    source: VersionSource = VersionSource.MANUAL,
    created_by: str | None = None,
    notes: str | None = None,
) -> TechnicalDataVersion | None:
    """Checkpoint a document.

    Automatic checkpoints (import, ai, rollback) are skipped when nothing
    changed since ``previous``; manual checkpoints are always recorded.

    Returns:
        The new version, or None when the checkpoint was skipped
    """
    created_at = datetime.now(timezone.utc)
    changes = compute_version_changes(
        previous.snapshot if previous else [],
        sections,
        changed_by=created_by,
        changed_at=created_at,
    )
    if previous is not None and not changes and source is not VersionSource.MANUAL:
        logger.debug("version_skipped", project_id=project_id, source=source.value)
        return None

    version = TechnicalDataVersion(
        project_id=project_id,
        version_label=label or created_at.strftime("v%Y%m%d-%H%M%S"),
        created_at=created_at,
        created_by=created_by,
        source=source,
        snapshot=_snapshot(sections),
        changes=changes,
        notes=notes,
    )
    logger.info(
        "version_created",
        project_id=project_id,
        version_id=version.id,
        source=source.value,
        changes=len(changes),
    )
    return version


def revert_to_version(version: TechnicalDataVersion) -> list[TableSection]:
    """Copy of a version's snapshot, safe to edit."""
    return _snapshot(version.snapshot)
