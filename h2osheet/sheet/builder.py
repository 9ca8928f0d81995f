"""Initial technical sheet for a new project."""

from __future__ import annotations

import structlog

from h2osheet.context import SheetContext, get_context
from h2osheet.models import TableSection
from h2osheet.templates.engine import BuildResult, build_sections
from h2osheet.templates.resolution import resolve_template

logger = structlog.get_logger(__name__)


def build_initial_sheet(
    context: SheetContext,
    sector: str | None = None,
    subsector: str | None = None,
) -> BuildResult:
    """Resolve the project's template and build it, diagnostics included."""
    template = resolve_template(context.registry, sector, subsector)
    result = build_sections(template, context.registry, context.library)
    logger.info(
        "technical_sheet_built",
        template_id=template.id,
        sections=len(result.sections),
        fields=result.field_count,
        diagnostics=len(result.diagnostics),
    )
    return result


def create_initial_technical_sheet_data(
    sector: str | None = None,
    subsector: str | None = None,
    context: SheetContext | None = None,
) -> list[TableSection]:
    """Build the starting sections for a project's technical sheet.

    Library drift (a template referencing an unknown parameter) is logged at
    error level; use ``build_initial_sheet`` to inspect the diagnostics.

    Args:
        sector: Project sector, e.g. "industrial"
        subsector: Project subsector, e.g. "food_processing"
        context: Library and registry (default: the process-wide context)

    Returns:
        Ordered sections with empty values
    """
    result = build_initial_sheet(context or get_context(), sector, subsector)
    for diagnostic in result.diagnostics:
        logger.error(
            "template_library_drift",
            code=diagnostic.code,
            template_id=diagnostic.template_id,
            section_id=diagnostic.section_id,
            parameter_id=diagnostic.parameter_id,
            message=diagnostic.message,
        )
    return result.sections
