"""Parameter definitions: the immutable metadata behind library-backed fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from h2osheet.models import FieldImportance, FieldType, FieldValue


class ParameterCategory(str, Enum):
    DESIGN = "design"
    PHYSICAL = "physical"
    CHEMICAL_INORGANIC = "chemical_inorganic"
    CHEMICAL_ORGANIC = "chemical_organic"
    BACTERIOLOGICAL = "bacteriological"
    OPERATIONAL = "operational"
    REGULATORY = "regulatory"


@dataclass(frozen=True)
class RangeRule:
    """Numeric range predicate used as a field validation rule.

    Instances are callable and compare by value, so two fields rehydrated from
    the same definition carry equal rules.

    Attributes:
        minimum: Lower bound, inclusive unless ``exclusive_minimum``
        maximum: Upper bound, inclusive unless ``exclusive_maximum``
        allow_empty: Accept ``None`` and ``""`` (optional numeric fields)
    """

    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    allow_empty: bool = False

    def __call__(self, value: Any) -> bool:
        if value is None or value == "":
            return self.allow_empty
        if isinstance(value, bool):
            return False
        try:
            number = float(value)
        except (TypeError, ValueError):
            return False

        if self.minimum is not None:
            if self.exclusive_minimum and number <= self.minimum:
                return False
            if not self.exclusive_minimum and number < self.minimum:
                return False
        if self.maximum is not None:
            if self.exclusive_maximum and number >= self.maximum:
                return False
            if not self.exclusive_maximum and number > self.maximum:
                return False
        return True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RangeRule:
        """Build a rule from its YAML form (``min``, ``max``, ``exclusive_min``...)."""
        return cls(
            minimum=_optional_float(data.get("min")),
            maximum=_optional_float(data.get("max")),
            exclusive_minimum=bool(data.get("exclusive_min", False)),
            exclusive_maximum=bool(data.get("exclusive_max", False)),
            allow_empty=bool(data.get("allow_empty", False)),
        )


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


@dataclass(frozen=True)
class TypicalRange:
    min: float | None = None
    max: float | None = None

    def describe(self) -> str:
        """Human-readable range, e.g. "0 - 14" or "≥ 0.5"."""
        if self.min is None and self.max is None:
            return ""
        if self.min is None:
            return f"≤ {self.max:g}"
        if self.max is None:
            return f"≥ {self.min:g}"
        return f"{self.min:g} - {self.max:g}"


@dataclass(frozen=True)
class ParameterDefinition:
    """Canonical definition of a technical sheet parameter.

    Attributes:
        id: Stable identifier, equal to the id of every field built from it
        target_section: Section the parameter is offered in by default
        relevant_sectors: Sectors where the parameter applies
        relevant_subsectors: Optional narrower relevance filter
        validation_rule: Predicate over a raw field value
    """

    id: str
    label: str
    category: ParameterCategory
    type: FieldType
    target_section: str
    importance: FieldImportance | None = None
    relevant_sectors: tuple[str, ...] = ()
    relevant_subsectors: tuple[str, ...] = ()
    default_unit: str | None = None
    available_units: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    default_value: FieldValue | None = None
    typical_range: TypicalRange | None = None
    required: bool = False
    validation_rule: Callable[[Any], bool] | None = None
    validation_message: str | None = None
    description: str | None = None
    placeholder: str | None = None
    multiline: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)

    def applies_to(self, sector: str | None = None, subsector: str | None = None) -> bool:
        """Check whether the parameter is relevant for a sector/subsector."""
        if sector and self.relevant_sectors:
            if sector.strip().lower() not in self.relevant_sectors:
                return False
        if subsector and self.relevant_subsectors:
            if subsector.strip().lower() not in self.relevant_subsectors:
                return False
        return True

    def matches_term(self, term: str) -> bool:
        needle = term.strip().lower()
        if not needle:
            return False
        if needle in self.label.lower():
            return True
        if self.description and needle in self.description.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags)
