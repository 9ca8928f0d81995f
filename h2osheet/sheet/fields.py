"""Value records and their join against parameter definitions.

A stored field is split into two layers: the user-owned ``FieldState`` (value,
provenance, notes...) and the metadata a ``ParameterDefinition`` derives from
the field id alone. Building and rehydrating a field are both the same join.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from h2osheet.models import (
    DataSource,
    FieldCondition,
    FieldImportance,
    FieldValue,
    TableField,
)
from h2osheet.parameters.definitions import ParameterDefinition
from h2osheet.templates.types import FieldOverride


@dataclass(frozen=True)
class FieldState:
    """The user-owned part of a field, carried through storage verbatim."""

    value: FieldValue | None = ""
    source: DataSource = DataSource.MANUAL
    unit: str | None = None
    notes: str | None = None
    last_updated_at: str | None = None
    last_updated_by: str | None = None
    suggested_value: FieldValue | None = None
    conditional: FieldCondition | None = None
    importance: FieldImportance | None = None
    # Keys this version doesn't model, written back untouched
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, field: TableField) -> FieldState:
        return cls(
            value=field.value,
            source=field.source,
            unit=field.unit,
            notes=field.notes,
            last_updated_at=field.last_updated_at,
            last_updated_by=field.last_updated_by,
            suggested_value=field.suggested_value,
            conditional=field.conditional,
            importance=field.importance,
            extra=dict(field.model_extra or {}),
        )


def join_definition(definition: ParameterDefinition, state: FieldState) -> TableField:
    """Combine a definition with a value record into a complete field.

    Metadata comes from the definition; importance falls back to the stored
    value when the definition has none. The stored unit wins over the default
    unit; the unit list is always the definition's. Unknown stored keys are
    carried over as they are.
    """
    return TableField(
        id=definition.id,
        label=definition.label,
        type=definition.type,
        value=state.value,
        unit=state.unit or definition.default_unit,
        units=list(definition.available_units) or None,
        source=state.source,
        options=list(definition.options) or None,
        required=definition.required,
        importance=definition.importance or state.importance,
        validation_rule=definition.validation_rule,
        validation_message=definition.validation_message,
        description=definition.description,
        multiline=definition.multiline,
        placeholder=definition.placeholder,
        suggested_value=state.suggested_value,
        notes=state.notes,
        last_updated_at=state.last_updated_at,
        last_updated_by=state.last_updated_by,
        conditional=state.conditional,
        **state.extra,
    )


def materialize_field(
    definition: ParameterDefinition, override: FieldOverride | None = None
) -> TableField:
    """Create a fresh, empty field for a template.

    The template or library default is offered as ``suggested_value`` rather
    than filled in, so a new sheet starts at zero completion.
    """
    override = override or FieldOverride()
    suggested = override.default_value
    if suggested is None:
        suggested = definition.default_value
    if suggested == "" or suggested == []:
        suggested = None

    field = join_definition(definition, FieldState(suggested_value=suggested))

    updates = {}
    if override.importance is not None:
        updates["importance"] = override.importance
    if override.required is not None:
        updates["required"] = override.required
    if override.description is not None:
        updates["description"] = override.description
    if override.placeholder is not None:
        updates["placeholder"] = override.placeholder
    return field.model_copy(update=updates) if updates else field
