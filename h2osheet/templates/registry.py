"""Template registry and YAML template loader."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator

import yaml

from h2osheet.templates.types import (
    BASE_TEMPLATE_ID,
    FieldOverride,
    SectionConfig,
    SectionOperation,
    TemplateConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent.parent / "data" / "templates"


class TemplateConfigError(ValueError):
    """Raised when template data is missing, malformed or inconsistent."""


class TemplateRegistry:
    """Ordered collection of templates keyed by id.

    Registration order is significant: resolution falls back to the first
    template registered for a sector.
    """

    def __init__(self, templates: Iterable[TemplateConfig] = ()):
        self._templates: dict[str, TemplateConfig] = {}
        for template in templates:
            self.register(template)

    def register(self, template: TemplateConfig) -> None:
        """Add a template.

        Raises:
            TemplateConfigError: If a template with the same id is registered
        """
        if template.id in self._templates:
            raise TemplateConfigError(f"Duplicate template id: {template.id}")
        self._templates[template.id] = template

    def get(self, template_id: str) -> TemplateConfig | None:
        return self._templates.get(template_id)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __iter__(self) -> Iterator[TemplateConfig]:
        return iter(list(self._templates.values()))

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def ids(self) -> list[str]:
        return list(self._templates)

    @property
    def base(self) -> TemplateConfig:
        """The terminal fallback template.

        Raises:
            TemplateConfigError: If no base template is registered
        """
        template = self._templates.get(BASE_TEMPLATE_ID)
        if template is None:
            raise TemplateConfigError(f"Registry has no '{BASE_TEMPLATE_ID}' template")
        return template


def _parse_section(item: dict[str, Any], source: Path) -> SectionConfig:
    try:
        operation = SectionOperation(item.get("operation", "extend"))
    except ValueError as e:
        raise TemplateConfigError(f"Invalid operation in section {item['id']!r} of {source}") from e

    overrides = item.get("field_overrides") or {}
    if not isinstance(overrides, dict):
        raise TemplateConfigError(
            f"field_overrides of section {item['id']!r} in {source} must be a mapping"
        )

    return SectionConfig(
        id=str(item["id"]),
        operation=operation,
        add_fields=tuple(item.get("add_fields") or ()),
        remove_fields=tuple(item.get("remove_fields") or ()),
        field_overrides=MappingProxyType(
            {key: FieldOverride.from_dict(value or {}) for key, value in overrides.items()}
        ),
        title=item.get("title"),
        description=item.get("description"),
        allow_custom_fields=item.get("allow_custom_fields"),
    )


def load_template_file(path: Path) -> TemplateConfig:
    """Load one template from a YAML file.

    Args:
        path: YAML file containing a single template mapping

    Raises:
        FileNotFoundError: If the file doesn't exist
        TemplateConfigError: If the YAML is malformed or required keys are missing
    """
    if not path.exists():
        raise FileNotFoundError(f"Template file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise TemplateConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise TemplateConfigError(f"Expected a template mapping in {path}, got {type(data)}")

    for key in ("id", "name"):
        if not data.get(key):
            raise TemplateConfigError(f"Template in {path} is missing '{key}'")

    sections = []
    for idx, item in enumerate(data.get("sections") or []):
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning(f"Skipping section at index {idx} in {path.name}: missing 'id'")
            continue
        sections.append(_parse_section(item, path))

    return TemplateConfig(
        id=str(data["id"]),
        name=str(data["name"]),
        description=data.get("description", ""),
        sector=data.get("sector"),
        subsector=data.get("subsector"),
        extends=data.get("extends"),
        sections=tuple(sections),
        tags=tuple(data.get("tags") or ()),
        icon=data.get("icon"),
        complexity=data.get("complexity", "standard"),
        estimated_time=data.get("estimated_time"),
    )


def load_templates(directory: Path) -> list[TemplateConfig]:
    """Load every ``*.yaml`` template of a directory in sorted filename order."""
    if not directory.is_dir():
        raise FileNotFoundError(f"Template directory not found: {directory}")
    return [load_template_file(path) for path in sorted(directory.glob("*.yaml"))]


def create_registry(templates_dir: Path | None = None) -> TemplateRegistry:
    """Build the template registry.

    Args:
        templates_dir: Directory of template files (default: packaged data)

    Returns:
        Registry guaranteed to contain the base template

    Raises:
        TemplateConfigError: If no base template is defined or ids collide
    """
    directory = templates_dir or DEFAULT_TEMPLATES_DIR
    registry = TemplateRegistry(load_templates(directory))

    if BASE_TEMPLATE_ID not in registry:
        raise TemplateConfigError(
            f"No '{BASE_TEMPLATE_ID}' template found in {directory}. "
            "The base template is the fallback for every project."
        )

    logger.info(f"Loaded {len(registry)} templates from {directory}")
    return registry
