"""Rehydration: re-attach library metadata to a loaded document.

Stored documents lose their validation rules (functions don't serialize) and
may carry stale labels or options from an older library. Rehydration joins
every stored value record against the current parameter definition. Fields
whose id the library doesn't know are custom or legacy and pass through
untouched.
"""

from __future__ import annotations

import structlog

from h2osheet.models import TableField, TableSection
from h2osheet.parameters.library import ParameterLibrary
from h2osheet.sheet.fields import FieldState, join_definition

logger = structlog.get_logger(__name__)


def rehydrate_field(field: TableField, library: ParameterLibrary) -> TableField:
    definition = library.get(field.id)
    if definition is None:
        return field
    return join_definition(definition, FieldState.of(field))


def rehydrate_fields_from_library(
    sections: list[TableSection], library: ParameterLibrary
) -> list[TableSection]:
    """Rebuild derived metadata for every library-backed field.

    Idempotent: rehydrating an already rehydrated document returns an equal
    document. Section order, section attributes and field order are kept.

    Args:
        sections: Document as loaded from storage
        library: Parameter library to join against

    Returns:
        New list of sections; the input is not modified
    """
    rehydrated = []
    custom = 0
    for section in sections:
        fields = []
        for field in section.fields:
            if field.id not in library:
                custom += 1
            fields.append(rehydrate_field(field, library))
        rehydrated.append(section.model_copy(update={"fields": fields}))

    if custom:
        logger.debug("custom_fields_passed_through", count=custom)
    return rehydrated
