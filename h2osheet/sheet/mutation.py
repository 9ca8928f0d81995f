"""Pure edits of a technical sheet document.

Every function returns a new list of sections and leaves its input alone;
sections that are not touched are returned as the same objects.

An edit addressed to a section or field id that doesn't exist is a no-op:
the document comes back unchanged and a warning is logged with the offending
ids, so a typo shows up in the logs instead of failing a batch midway.
"""

from __future__ import annotations

from typing import Callable, Iterable
from uuid import uuid4

import structlog

from h2osheet.models import DataSource, FieldUpdate, TableField, TableSection
from h2osheet.parameters.library import ParameterLibrary
from h2osheet.sheet.fields import materialize_field

logger = structlog.get_logger(__name__)

# Present in every template; cannot be removed from a document
CORE_SECTIONS = (
    "project-context",
    "economics-scale",
    "project-constraints",
    "water-quality",
    "field-notes",
)


def is_fixed_section(section_id: str) -> bool:
    return section_id in CORE_SECTIONS


def find_field(
    sections: list[TableSection], section_id: str, field_id: str
) -> TableField | None:
    for section in sections:
        if section.id == section_id:
            return section.get_field(field_id)
    return None


def _map_section(
    sections: list[TableSection],
    section_id: str,
    change: Callable[[TableSection], TableSection | None],
    action: str,
) -> list[TableSection]:
    """Apply ``change`` to one section; ``None`` from ``change`` means no-op."""
    for idx, section in enumerate(sections):
        if section.id != section_id:
            continue
        updated = change(section)
        if updated is None:
            return sections
        return [*sections[:idx], updated, *sections[idx + 1 :]]

    logger.warning("section_not_found", action=action, section_id=section_id)
    return sections


def _map_field(
    sections: list[TableSection],
    section_id: str,
    field_id: str,
    change: Callable[[TableField], TableField],
    action: str,
) -> list[TableSection]:
    def _change(section: TableSection) -> TableSection | None:
        for idx, field in enumerate(section.fields):
            if field.id == field_id:
                fields = [*section.fields[:idx], change(field), *section.fields[idx + 1 :]]
                return section.model_copy(update={"fields": fields})
        logger.warning("field_not_found", action=action, section_id=section_id, field_id=field_id)
        return None

    return _map_section(sections, section_id, _change, action)


def update_field_in_sections(
    sections: list[TableSection], update: FieldUpdate
) -> list[TableSection]:
    """Set one field's value, plus its unit, source or notes when given.

    ``unit`` and ``notes`` apply when not None; ``source`` applies when set.
    An unknown source is treated like an unknown id: a logged no-op.
    """
    source = None
    if update.source:
        try:
            source = DataSource(update.source)
        except ValueError:
            logger.warning(
                "invalid_field_source",
                section_id=update.section_id,
                field_id=update.field_id,
                source=str(update.source),
            )
            return sections

    def _apply(field: TableField) -> TableField:
        changes: dict = {"value": update.value}
        if update.unit is not None:
            changes["unit"] = update.unit
        if source is not None:
            changes["source"] = source
        if update.notes is not None:
            changes["notes"] = update.notes
        return field.model_copy(update=changes)

    return _map_field(sections, update.section_id, update.field_id, _apply, "update_field")


def apply_field_updates(
    sections: list[TableSection], updates: Iterable[FieldUpdate]
) -> list[TableSection]:
    """Apply updates left to right; a later update to the same field wins."""
    for update in updates:
        sections = update_field_in_sections(sections, update)
    return sections


def add_field(
    sections: list[TableSection], section_id: str, field: TableField
) -> list[TableSection]:
    """Append a field to a section; ids already in the section are ignored."""

    def _add(section: TableSection) -> TableSection | None:
        if section.get_field(field.id) is not None:
            logger.warning("duplicate_field_id", section_id=section_id, field_id=field.id)
            return None
        return section.model_copy(update={"fields": [*section.fields, field]})

    return _map_section(sections, section_id, _add, "add_field")


def add_parameter_field(
    sections: list[TableSection],
    section_id: str,
    parameter_id: str,
    library: ParameterLibrary,
) -> list[TableSection]:
    """Add an empty library-backed field to a section."""
    definition = library.get(parameter_id)
    if definition is None:
        logger.warning("parameter_not_found", section_id=section_id, parameter_id=parameter_id)
        return sections
    return add_field(sections, section_id, materialize_field(definition))


def remove_field(
    sections: list[TableSection], section_id: str, field_id: str
) -> list[TableSection]:
    def _remove(section: TableSection) -> TableSection | None:
        fields = [field for field in section.fields if field.id != field_id]
        if len(fields) == len(section.fields):
            logger.warning("field_not_found", action="remove_field", section_id=section_id, field_id=field_id)
            return None
        return section.model_copy(update={"fields": fields})

    return _map_section(sections, section_id, _remove, "remove_field")


def duplicate_field(
    sections: list[TableSection], section_id: str, field_id: str
) -> list[TableSection]:
    """Insert an empty copy of a field right after it.

    The copy gets a fresh id, so it behaves as a custom field from then on.
    """

    def _duplicate(section: TableSection) -> TableSection | None:
        for idx, field in enumerate(section.fields):
            if field.id == field_id:
                copy = field.model_copy(
                    update={
                        "id": str(uuid4()),
                        "label": f"{field.label} (copy)",
                        "value": "",
                        "source": DataSource.MANUAL,
                        "notes": None,
                        "last_updated_at": None,
                        "last_updated_by": None,
                    }
                )
                fields = [*section.fields[: idx + 1], copy, *section.fields[idx + 1 :]]
                return section.model_copy(update={"fields": fields})
        logger.warning("field_not_found", action="duplicate_field", section_id=section_id, field_id=field_id)
        return None

    return _map_section(sections, section_id, _duplicate, "duplicate_field")


def update_field_label(
    sections: list[TableSection],
    section_id: str,
    field_id: str,
    label: str,
    library: ParameterLibrary,
) -> list[TableSection]:
    """Rename a custom field. Library-backed labels are derived and stay as they are."""
    if field_id in library:
        logger.warning("derived_label_not_editable", section_id=section_id, field_id=field_id)
        return sections
    return _map_field(
        sections,
        section_id,
        field_id,
        lambda field: field.model_copy(update={"label": label}),
        "update_field_label",
    )


def add_custom_section(
    sections: list[TableSection],
    title: str,
    description: str | None = None,
    section_id: str | None = None,
) -> list[TableSection]:
    """Append an empty, user-defined section.

    The section is inserted before the field notes section when present so
    notes stay last.
    """
    section_id = section_id or f"custom-{uuid4().hex[:8]}"
    if any(section.id == section_id for section in sections):
        logger.warning("duplicate_section_id", section_id=section_id)
        return sections

    section = TableSection(
        id=section_id,
        title=title,
        description=description,
        fields=[],
        allow_custom_fields=True,
    )
    if sections and sections[-1].id == "field-notes":
        return [*sections[:-1], section, sections[-1]]
    return [*sections, section]


def remove_section(sections: list[TableSection], section_id: str) -> list[TableSection]:
    if is_fixed_section(section_id):
        logger.warning("fixed_section_not_removable", section_id=section_id)
        return sections
    remaining = [section for section in sections if section.id != section_id]
    if len(remaining) == len(sections):
        logger.warning("section_not_found", action="remove_section", section_id=section_id)
        return sections
    return remaining


def update_section_notes(
    sections: list[TableSection], section_id: str, notes: str | None
) -> list[TableSection]:
    return _map_section(
        sections,
        section_id,
        lambda section: section.model_copy(update={"notes": notes}),
        "update_section_notes",
    )
