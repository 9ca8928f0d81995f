"""Template engine: inheritance, section merging and materialization.

Building a template walks its ``extends`` chain root-first, folds the section
configs together and turns every referenced parameter id into an empty
``TableField``. Problems (unknown parents, cycles, parameter ids missing from
the library) are reported as diagnostics on the result instead of raising, so
a drifted template still produces the sections it can.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import structlog

from h2osheet.models import TableField, TableSection
from h2osheet.parameters.library import ParameterLibrary
from h2osheet.sheet.fields import materialize_field
from h2osheet.templates.registry import TemplateRegistry
from h2osheet.templates.types import SectionConfig, SectionOperation, TemplateConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BuildDiagnostic:
    """Something a template build could not honour.

    Codes:
        missing_parameter: a referenced parameter id is not in the library
        missing_parent: ``extends`` names an unregistered template
        circular_inheritance: the ``extends`` chain loops
        template_not_found: the requested template id is not registered
    """

    code: str
    template_id: str
    message: str
    section_id: str | None = None
    parameter_id: str | None = None


@dataclass
class BuildResult:
    template_id: str
    sections: list[TableSection] = field(default_factory=list)
    diagnostics: list[BuildDiagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def field_count(self) -> int:
        return sum(len(section.fields) for section in self.sections)

    @property
    def missing_parameters(self) -> list[str]:
        return [d.parameter_id for d in self.diagnostics if d.code == "missing_parameter"]


def resolve_template_chain(
    template: TemplateConfig, registry: TemplateRegistry
) -> tuple[list[TemplateConfig], list[BuildDiagnostic]]:
    """Walk ``extends`` up to the root.

    Returns:
        Templates ordered root-first (e.g. [base, industrial, industrial-food])
        and any diagnostics raised along the way
    """
    chain: list[TemplateConfig] = []
    diagnostics: list[BuildDiagnostic] = []
    visited: set[str] = set()

    current: TemplateConfig | None = template
    while current is not None:
        if current.id in visited:
            diagnostics.append(
                BuildDiagnostic(
                    code="circular_inheritance",
                    template_id=template.id,
                    message=f"Circular inheritance detected at '{current.id}'",
                )
            )
            break
        visited.add(current.id)
        chain.insert(0, current)

        if not current.extends:
            break
        parent = registry.get(current.extends)
        if parent is None:
            diagnostics.append(
                BuildDiagnostic(
                    code="missing_parent",
                    template_id=template.id,
                    message=f"Template '{current.id}' extends unknown template '{current.extends}'",
                )
            )
        current = parent

    return chain, diagnostics


def _dedupe(ids) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def _merge_into(existing: SectionConfig, section: SectionConfig) -> SectionConfig:
    removed = set(section.remove_fields)
    add_fields = _dedupe(existing.add_fields + section.add_fields)
    add_fields = tuple(field_id for field_id in add_fields if field_id not in removed)

    overrides = dict(existing.field_overrides)
    for field_id, override in section.field_overrides.items():
        previous = overrides.get(field_id)
        overrides[field_id] = previous.merged_with(override) if previous else override

    return replace(
        existing,
        operation=SectionOperation.EXTEND,
        add_fields=add_fields,
        remove_fields=(),
        field_overrides=overrides,
        title=section.title if section.title is not None else existing.title,
        description=section.description if section.description is not None else existing.description,
        allow_custom_fields=(
            section.allow_custom_fields
            if section.allow_custom_fields is not None
            else existing.allow_custom_fields
        ),
    )


def merge_section_configs(chain: list[TemplateConfig]) -> dict[str, SectionConfig]:
    """Fold the section configs of a template chain, root first.

    Section order is first appearance; a replaced section keeps its position,
    a removed and re-added section moves to the end.
    """
    merged: dict[str, SectionConfig] = {}

    for template in chain:
        for section in template.sections:
            if section.operation is SectionOperation.REMOVE:
                merged.pop(section.id, None)
                continue

            existing = merged.get(section.id)
            if section.operation is SectionOperation.REPLACE or existing is None:
                removed = set(section.remove_fields)
                merged[section.id] = replace(
                    section,
                    add_fields=tuple(
                        f for f in _dedupe(section.add_fields) if f not in removed
                    ),
                    remove_fields=(),
                )
            else:
                merged[section.id] = _merge_into(existing, section)

    return merged


def materialize_sections(
    merged: dict[str, SectionConfig],
    library: ParameterLibrary,
    template_id: str,
) -> tuple[list[TableSection], list[BuildDiagnostic]]:
    """Turn merged section configs into document sections."""
    sections: list[TableSection] = []
    diagnostics: list[BuildDiagnostic] = []

    for config in merged.values():
        fields: list[TableField] = []
        for parameter_id in config.add_fields:
            definition = library.get(parameter_id)
            if definition is None:
                diagnostics.append(
                    BuildDiagnostic(
                        code="missing_parameter",
                        template_id=template_id,
                        section_id=config.id,
                        parameter_id=parameter_id,
                        message=(
                            f"Section '{config.id}' references parameter "
                            f"'{parameter_id}' which is not in the library"
                        ),
                    )
                )
                continue
            fields.append(materialize_field(definition, config.field_overrides.get(parameter_id)))

        if not fields and not config.title:
            continue

        sections.append(
            TableSection(
                id=config.id,
                title=config.title or config.id,
                description=config.description,
                fields=fields,
                allow_custom_fields=(
                    True if config.allow_custom_fields is None else config.allow_custom_fields
                ),
            )
        )

    return sections, diagnostics


def build_sections(
    template: TemplateConfig,
    registry: TemplateRegistry,
    library: ParameterLibrary,
) -> BuildResult:
    """Build the document sections for a template, inheritance included."""
    chain, diagnostics = resolve_template_chain(template, registry)
    merged = merge_section_configs(chain)
    sections, missing = materialize_sections(merged, library, template.id)

    result = BuildResult(template_id=template.id, sections=sections, diagnostics=diagnostics + missing)
    for diagnostic in result.diagnostics:
        logger.warning(
            "template_build_diagnostic",
            code=diagnostic.code,
            template_id=diagnostic.template_id,
            section_id=diagnostic.section_id,
            parameter_id=diagnostic.parameter_id,
        )
    return result


def apply_template(
    template_id: str,
    registry: TemplateRegistry,
    library: ParameterLibrary,
) -> BuildResult:
    """Build a template by id; an unknown id yields an empty result with a diagnostic."""
    template = registry.get(template_id)
    if template is None:
        logger.warning("template_not_found", template_id=template_id)
        return BuildResult(
            template_id=template_id,
            diagnostics=[
                BuildDiagnostic(
                    code="template_not_found",
                    template_id=template_id,
                    message=f"Template '{template_id}' is not registered",
                )
            ],
        )
    return build_sections(template, registry, library)
