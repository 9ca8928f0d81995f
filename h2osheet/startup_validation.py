"""Startup validation for h2osheet.

Validates the parameter library and template registry once at startup so
drift between them fails fast and loud instead of surfacing as missing
fields in a project's sheet.
"""

from __future__ import annotations

import logging

from h2osheet.context import SheetContext
from h2osheet.templates.engine import BuildDiagnostic, build_sections
from h2osheet.templates.registry import TemplateConfigError

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when startup validation fails."""
    pass


def validate_base_template(context: SheetContext) -> None:
    """Validate that the fallback template is registered.

    Raises:
        StartupValidationError: If no base template exists
    """
    try:
        base = context.registry.base
    except TemplateConfigError as e:
        raise StartupValidationError(str(e)) from e

    logger.info(f"✓ Base template '{base.id}' registered ({len(base.field_ids)} fields)")


def validate_template_library_consistency(context: SheetContext) -> list[BuildDiagnostic]:
    """Build every registered template and collect its diagnostics.

    Args:
        context: Library and registry to check

    Returns:
        Diagnostics across all templates (empty when consistent)
    """
    diagnostics: list[BuildDiagnostic] = []
    for template in context.registry:
        result = build_sections(template, context.registry, context.library)
        diagnostics.extend(result.diagnostics)
        if result.ok:
            logger.info(f"✓ Template '{template.id}': {result.field_count} fields")
        else:
            logger.warning(
                f"⚠ Template '{template.id}': {len(result.diagnostics)} issue(s)"
            )
    return diagnostics


def run_startup_validation(context: SheetContext) -> None:
    """Run all startup validations.

    Args:
        context: Library and registry to check

    Raises:
        StartupValidationError: If any critical validation fails
    """
    logger.info("Running startup validations...")
    logger.info(f"✓ Parameter library: {len(context.library)} definitions")

    validate_base_template(context)

    diagnostics = validate_template_library_consistency(context)
    if diagnostics:
        details = "; ".join(
            f"{d.template_id}: {d.message}" for d in diagnostics
        )
        raise StartupValidationError(
            f"{len(diagnostics)} template/library inconsistencies: {details}"
        )

    logger.info("✓ All startup validations passed")
