"""Per-project editing session for a technical sheet.

A session owns one project's working document. Every edit replaces the
document with a new section list produced by the pure functions in
``h2osheet.sheet`` and records an automatic version checkpoint; saving hands
the current document to the persistence layer. A failed save never rolls back
the in-memory document.

When stored data exists but can't be read, the session falls back to a fresh
template in memory and refuses to save until a later ``load`` succeeds, so
the unreadable copy is never overwritten.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog

from h2osheet.context import SheetContext, get_context
from h2osheet.models import (
    CompletionStats,
    FieldUpdate,
    TableField,
    TableSection,
    TechnicalDataVersion,
    VersionSource,
)
from h2osheet.sheet import mutation, versions
from h2osheet.sheet.builder import create_initial_technical_sheet_data
from h2osheet.sheet.completion import overall_completion
from h2osheet.sheet.rehydration import rehydrate_fields_from_library
from h2osheet.storage.local_cache import NullSheetCache, SheetCache
from h2osheet.storage.persistence import (
    REMOTE_SECTIONS_KEY,
    SaveResult,
    SheetLoadError,
    load_technical_sheet_data,
    parse_technical_sections,
    save_technical_sheet_data,
)
from h2osheet.storage.remote import ProjectDataClient, RemoteSyncError
from h2osheet.templates.engine import apply_template

logger = structlog.get_logger(__name__)


class TechnicalSheetSession:
    """Owns and edits one project's technical sheet."""

    def __init__(
        self,
        project_id: str,
        context: SheetContext | None = None,
        cache: SheetCache | None = None,
        remote: ProjectDataClient | None = None,
        sector: str | None = None,
        subsector: str | None = None,
        user: str | None = None,
    ):
        """Initialize the session.

        Args:
            project_id: Project identifier
            context: Library and registry (default: the process-wide context)
            cache: Local cache (default: none)
            remote: Project-data client; None keeps the session local
            sector: Project sector, used when a fresh sheet is built
            subsector: Project subsector, used when a fresh sheet is built
            user: Recorded as the author of version checkpoints
        """
        self.project_id = project_id
        self.context = context or get_context()
        self.cache = cache or NullSheetCache()
        self.remote = remote
        self.sector = sector
        self.subsector = subsector
        self.user = user
        self.load_error: str | None = None
        self._sections: list[TableSection] = []
        self._versions: list[TechnicalDataVersion] = []

    @property
    def sections(self) -> list[TableSection]:
        return self._sections

    @property
    def versions(self) -> list[TechnicalDataVersion]:
        return list(self._versions)

    @property
    def completion(self) -> CompletionStats:
        return overall_completion(self._sections)

    def _initial_sections(self) -> list[TableSection]:
        return create_initial_technical_sheet_data(
            self.sector, self.subsector, context=self.context
        )

    async def load(self) -> list[TableSection]:
        """Load the stored sheet, or build and save a fresh one when none exists.

        If stored data can't be read, a fresh sheet is used in memory only and
        ``load_error`` says why.
        """
        try:
            stored = await load_technical_sheet_data(
                self.project_id, self.context.library, self.cache, self.remote
            )
        except SheetLoadError as e:
            self.load_error = str(e)
            self._sections = self._initial_sections()
            logger.error("technical_sheet_load_failed", project_id=self.project_id, error=str(e))
            return self._sections

        self.load_error = None
        if stored is not None:
            self._sections = stored
            logger.info("technical_sheet_loaded", project_id=self.project_id, sections=len(stored))
            return self._sections

        self._sections = self._initial_sections()
        await self.save()
        return self._sections

    async def save(self) -> SaveResult:
        """Persist the document; skipped while the stored copy is unreadable."""
        if self.load_error is not None:
            logger.warning(
                "technical_sheet_save_skipped", project_id=self.project_id, reason=self.load_error
            )
            return SaveResult(cached=False, synced=False)
        return await save_technical_sheet_data(
            self.project_id, self._sections, self.cache, self.remote
        )

    def replace(self, sections: list[TableSection]) -> None:
        self._sections = sections

    def _commit(
        self,
        sections: list[TableSection],
        label: str | None,
        source: VersionSource,
        notes: str | None = None,
    ) -> list[TableSection]:
        # No-op edits hand back the same list and leave no checkpoint
        if sections is self._sections:
            return self._sections
        self._sections = sections
        self.create_snapshot(label=label, source=source, notes=notes)
        return self._sections

    # Edits

    def update_field(
        self, update: FieldUpdate, source: VersionSource = VersionSource.MANUAL
    ) -> list[TableSection]:
        """Set one field value and checkpoint it.

        ``source`` is what triggered the edit; it becomes the field's data
        source unless the update names one.
        """
        if update.source is None:
            update = replace(update, source=source.to_data_source())
        return self._commit(
            mutation.update_field_in_sections(self._sections, update), None, source
        )

    def apply_updates(
        self, updates: Iterable[FieldUpdate], source: VersionSource = VersionSource.IMPORT
    ) -> list[TableSection]:
        return self._commit(
            mutation.apply_field_updates(self._sections, updates), "Data import", source
        )

    def add_field(self, section_id: str, field: TableField) -> list[TableSection]:
        return self._commit(
            mutation.add_field(self._sections, section_id, field),
            f"Field added ({field.label})",
            VersionSource.MANUAL,
        )

    def add_parameter_field(self, section_id: str, parameter_id: str) -> list[TableSection]:
        definition = self.context.library.get(parameter_id)
        return self._commit(
            mutation.add_parameter_field(
                self._sections, section_id, parameter_id, self.context.library
            ),
            f"Field added ({definition.label if definition else parameter_id})",
            VersionSource.MANUAL,
        )

    def remove_field(self, section_id: str, field_id: str) -> list[TableSection]:
        return self._commit(
            mutation.remove_field(self._sections, section_id, field_id),
            f"Field removed ({section_id}:{field_id})",
            VersionSource.MANUAL,
        )

    def duplicate_field(self, section_id: str, field_id: str) -> list[TableSection]:
        field = mutation.find_field(self._sections, section_id, field_id)
        return self._commit(
            mutation.duplicate_field(self._sections, section_id, field_id),
            f"Field duplicated ({field.label if field else field_id})",
            VersionSource.MANUAL,
        )

    def update_field_label(self, section_id: str, field_id: str, label: str) -> list[TableSection]:
        self._sections = mutation.update_field_label(
            self._sections, section_id, field_id, label, self.context.library
        )
        return self._sections

    def add_custom_section(self, title: str, description: str | None = None) -> list[TableSection]:
        return self._commit(
            mutation.add_custom_section(self._sections, title, description),
            title,
            VersionSource.MANUAL,
            notes="Custom section added",
        )

    def remove_section(self, section_id: str) -> list[TableSection]:
        return self._commit(
            mutation.remove_section(self._sections, section_id),
            f"Section removed ({section_id})",
            VersionSource.MANUAL,
        )

    def update_section_notes(self, section_id: str, notes: str | None) -> list[TableSection]:
        self._sections = mutation.update_section_notes(self._sections, section_id, notes)
        return self._sections

    def apply_template(self, template_id: str, label: str | None = None) -> list[TableSection]:
        """Replace the document with a freshly built template.

        An unknown template id leaves the document as it is.
        """
        result = apply_template(template_id, self.context.registry, self.context.library)
        if not result.sections:
            return self._sections
        logger.info("template_applied", project_id=self.project_id, template_id=template_id)
        return self._commit(
            result.sections,
            label or "Template applied",
            VersionSource.IMPORT,
            notes="Template was applied",
        )

    async def copy_from_project(self, from_project_id: str) -> list[TableSection]:
        """Replace the document with another project's sheet and save it.

        Needs the remote API. A source project that can't be read or has no
        sheet leaves the document as it is.
        """
        if self.remote is None:
            logger.warning(
                "copy_from_project_skipped",
                project_id=self.project_id,
                from_project_id=from_project_id,
                reason="remote API not configured",
            )
            return self._sections

        try:
            data = await self.remote.get_data(from_project_id)
            copied = parse_technical_sections(
                from_project_id, data.get(REMOTE_SECTIONS_KEY), "remote"
            )
        except (RemoteSyncError, SheetLoadError) as e:
            logger.error(
                "copy_from_project_failed",
                project_id=self.project_id,
                from_project_id=from_project_id,
                error=str(e),
            )
            return self._sections

        if copied is None:
            logger.warning(
                "copy_from_project_empty", project_id=self.project_id, from_project_id=from_project_id
            )
            return self._sections

        self._commit(
            rehydrate_fields_from_library(copied, self.context.library),
            f"Copied from project {from_project_id}",
            VersionSource.IMPORT,
        )
        await self.save()
        return self._sections

    def reset_to_initial(self) -> list[TableSection]:
        return self._commit(
            self._initial_sections(),
            "Technical sheet restored",
            VersionSource.MANUAL,
            notes="Base template was restored",
        )

    # Versions

    def create_snapshot(
        self,
        label: str | None = None,
        source: VersionSource = VersionSource.MANUAL,
        created_by: str | None = None,
        notes: str | None = None,
    ) -> TechnicalDataVersion | None:
        """Record a version of the current document.

        Returns:
            The new version, or None when an automatic checkpoint found no changes
        """
        previous = self._versions[-1] if self._versions else None
        version = versions.create_version(
            self.project_id,
            self._sections,
            previous=previous,
            label=label,
            source=source,
            created_by=created_by or self.user,
            notes=notes,
        )
        if version is not None:
            self._versions.append(version)
        return version

    async def revert_to_version(
        self, version_id: str, reason: str | None = None
    ) -> list[TableSection]:
        """Restore a recorded version, checkpoint the rollback and save.

        An unknown version id is logged and leaves the document unchanged.
        """
        target = next((v for v in self._versions if v.id == version_id), None)
        if target is None:
            logger.warning("version_not_found", project_id=self.project_id, version_id=version_id)
            return self._sections

        self._sections = versions.revert_to_version(target)
        self.create_snapshot(
            label=f"rollback-{target.version_label}",
            source=VersionSource.ROLLBACK,
            notes=reason,
        )
        await self.save()
        return self._sections
