"""Template configuration types.

Templates only reference parameter ids; every piece of field metadata comes
from the parameter library when a template is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from h2osheet.models import FieldImportance, FieldValue

BASE_TEMPLATE_ID = "base"


class SectionOperation(str, Enum):
    """How a section config combines with the same section of a parent template."""

    EXTEND = "extend"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True)
class FieldOverride:
    """Template-level adjustments applied on top of a parameter definition."""

    importance: FieldImportance | None = None
    required: bool | None = None
    default_value: FieldValue | None = None
    description: str | None = None
    placeholder: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldOverride:
        importance = data.get("importance")
        return cls(
            importance=FieldImportance(importance) if importance else None,
            required=data.get("required"),
            default_value=data.get("default_value"),
            description=data.get("description"),
            placeholder=data.get("placeholder"),
        )

    def merged_with(self, other: FieldOverride) -> FieldOverride:
        """Combine two overrides; values set on ``other`` win."""
        return FieldOverride(
            importance=other.importance if other.importance is not None else self.importance,
            required=other.required if other.required is not None else self.required,
            default_value=(
                other.default_value if other.default_value is not None else self.default_value
            ),
            description=other.description if other.description is not None else self.description,
            placeholder=other.placeholder if other.placeholder is not None else self.placeholder,
        )


@dataclass(frozen=True)
class SectionConfig:
    """Section definition or modification within a template.

    Attributes:
        id: Section identifier, unique within a template
        operation: Merge behaviour against the parent template's section
        add_fields: Parameter ids to include, in display order
        remove_fields: Parameter ids to drop from the inherited section
        field_overrides: Per-parameter adjustments keyed by parameter id
        title: Required for sections the parent template doesn't define
    """

    id: str
    operation: SectionOperation = SectionOperation.EXTEND
    add_fields: tuple[str, ...] = ()
    remove_fields: tuple[str, ...] = ()
    field_overrides: Mapping[str, FieldOverride] = field(
        default_factory=lambda: MappingProxyType({})
    )
    title: str | None = None
    description: str | None = None
    allow_custom_fields: bool | None = None


@dataclass(frozen=True)
class TemplateConfig:
    """A named bundle of section configs, selectable by sector/subsector."""

    id: str
    name: str
    description: str = ""
    sector: str | None = None
    subsector: str | None = None
    extends: str | None = None
    sections: tuple[SectionConfig, ...] = ()
    tags: tuple[str, ...] = ()
    icon: str | None = None
    complexity: str = "standard"
    estimated_time: int | None = None

    @property
    def field_ids(self) -> list[str]:
        """Parameter ids this template references directly (not inherited)."""
        ids: list[str] = []
        for section in self.sections:
            ids.extend(section.add_fields)
            ids.extend(section.field_overrides)
        return list(dict.fromkeys(ids))
