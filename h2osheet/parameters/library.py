"""Parameter library loader.

Loads the canonical catalogue of parameter definitions from YAML files. Each
file holds a list of parameters; the library is read-only once built and is
shared by every project in the process.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator

import yaml

from h2osheet.models import FieldImportance, FieldType
from h2osheet.parameters.definitions import (
    ParameterCategory,
    ParameterDefinition,
    RangeRule,
    TypicalRange,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS_DIR = Path(__file__).parent.parent / "data" / "parameters"

REQUIRED_KEYS = ("id", "label", "type", "category", "target_section")


class ParameterLibraryError(ValueError):
    """Raised when parameter data files are missing or malformed."""


class ParameterLibrary:
    """Immutable catalogue of parameter definitions keyed by id."""

    def __init__(self, definitions: Iterable[ParameterDefinition]):
        """Build the library.

        Args:
            definitions: Parameter definitions in display order

        Raises:
            ParameterLibraryError: If two definitions share an id
        """
        by_id: dict[str, ParameterDefinition] = {}
        for definition in definitions:
            if definition.id in by_id:
                raise ParameterLibraryError(f"Duplicate parameter id: {definition.id}")
            by_id[definition.id] = definition
        self._definitions = MappingProxyType(by_id)

    def __contains__(self, parameter_id: object) -> bool:
        return parameter_id in self._definitions

    def __iter__(self) -> Iterator[ParameterDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def ids(self) -> list[str]:
        return list(self._definitions)

    def get(self, parameter_id: str) -> ParameterDefinition | None:
        """Look up a parameter by id, returning None when absent."""
        return self._definitions.get(parameter_id)

    def for_section(
        self,
        section_id: str,
        sector: str | None = None,
        subsector: str | None = None,
    ) -> list[ParameterDefinition]:
        """Parameters offered for a section, filtered by sector relevance.

        Args:
            section_id: Target section id (e.g. "water-quality")
            sector: Optional project sector
            subsector: Optional project subsector

        Returns:
            Matching definitions in library order
        """
        return [
            definition
            for definition in self
            if definition.target_section == section_id
            and definition.applies_to(sector, subsector)
        ]

    def search(self, term: str) -> list[ParameterDefinition]:
        """Find parameters whose label, description or tags contain ``term``."""
        return [definition for definition in self if definition.matches_term(term)]

    @staticmethod
    def filter_out_existing(
        definitions: Iterable[ParameterDefinition], existing_ids: Iterable[str]
    ) -> list[ParameterDefinition]:
        """Drop definitions already present in a section."""
        existing = set(existing_ids)
        return [definition for definition in definitions if definition.id not in existing]

    def count_by_category(self) -> dict[str, int]:
        counts = Counter(definition.category.value for definition in self)
        return dict(sorted(counts.items()))


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


def _parse_definition(item: dict[str, Any], source: Path) -> ParameterDefinition:
    try:
        field_type = FieldType(item["type"])
        category = ParameterCategory(item["category"])
        importance = FieldImportance(item["importance"]) if item.get("importance") else None
    except ValueError as e:
        raise ParameterLibraryError(f"Invalid parameter {item['id']!r} in {source}: {e}") from e

    validation = item.get("validation")
    rule = None
    message = None
    if validation:
        if not isinstance(validation, dict):
            raise ParameterLibraryError(
                f"Invalid validation block for {item['id']!r} in {source}: expected a mapping"
            )
        rule = RangeRule.from_dict(validation)
        message = validation.get("message")

    typical = item.get("typical_range")
    typical_range = TypicalRange(min=typical.get("min"), max=typical.get("max")) if typical else None

    return ParameterDefinition(
        id=str(item["id"]),
        label=str(item["label"]),
        category=category,
        type=field_type,
        target_section=str(item["target_section"]),
        importance=importance,
        relevant_sectors=tuple(s.lower() for s in _as_tuple(item.get("relevant_sectors"))),
        relevant_subsectors=tuple(s.lower() for s in _as_tuple(item.get("relevant_subsectors"))),
        default_unit=item.get("default_unit"),
        available_units=_as_tuple(item.get("available_units")),
        options=_as_tuple(item.get("options")),
        default_value=item.get("default_value"),
        typical_range=typical_range,
        required=bool(item.get("required", False)),
        validation_rule=rule,
        validation_message=message,
        description=item.get("description"),
        placeholder=item.get("placeholder"),
        multiline=bool(item.get("multiline", False)),
        tags=_as_tuple(item.get("tags")),
    )


def load_parameter_file(path: Path) -> list[ParameterDefinition]:
    """Load parameter definitions from one YAML file.

    Args:
        path: YAML file containing a list of parameter mappings

    Returns:
        Parsed definitions in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ParameterLibraryError: If the YAML is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParameterLibraryError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, list):
        raise ParameterLibraryError(f"Expected list of parameters in {path}, got {type(data)}")

    definitions = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping invalid parameter at index {idx} in {path.name}: not a dict")
            continue

        missing = [key for key in REQUIRED_KEYS if not item.get(key)]
        if missing:
            logger.warning(
                f"Skipping parameter at index {idx} in {path.name}: missing {', '.join(missing)}"
            )
            continue

        definitions.append(_parse_definition(item, path))

    return definitions


def load_parameter_library(directory: Path | None = None) -> ParameterLibrary:
    """Load every ``*.yaml`` file of a directory into a library.

    Files are read in sorted name order so library order is stable.

    Args:
        directory: Directory of parameter files (default: packaged data)

    Raises:
        FileNotFoundError: If the directory doesn't exist
        ParameterLibraryError: If any file is malformed or ids collide
    """
    directory = directory or DEFAULT_PARAMETERS_DIR
    if not directory.is_dir():
        raise FileNotFoundError(f"Parameter directory not found: {directory}")

    definitions: list[ParameterDefinition] = []
    for path in sorted(directory.glob("*.yaml")):
        definitions.extend(load_parameter_file(path))

    library = ParameterLibrary(definitions)
    logger.info(f"Loaded {len(library)} parameters from {directory}")
    return library
