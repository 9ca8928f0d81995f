"""Tests for startup validation of templates against the parameter library."""

from __future__ import annotations

import pytest

from h2osheet.context import SheetContext
from h2osheet.startup_validation import (
    StartupValidationError,
    run_startup_validation,
    validate_base_template,
    validate_template_library_consistency,
)
from h2osheet.templates.registry import TemplateRegistry
from h2osheet.templates.types import SectionConfig, TemplateConfig


class TestStartupValidation:
    def test_bundled_data_is_consistent(self, context):
        assert validate_template_library_consistency(context) == []
        run_startup_validation(context)

    def test_drift_fails_startup(self, library):
        registry = TemplateRegistry(
            [
                TemplateConfig(
                    id="base",
                    name="Base",
                    sections=(SectionConfig(id="water-quality", title="WQ", add_fields=("ph", "ghost")),),
                )
            ]
        )
        context = SheetContext(library=library, registry=registry)

        diagnostics = validate_template_library_consistency(context)
        assert [d.parameter_id for d in diagnostics] == ["ghost"]

        with pytest.raises(StartupValidationError, match="ghost"):
            run_startup_validation(context)

    def test_missing_base_template(self, library):
        context = SheetContext(
            library=library,
            registry=TemplateRegistry([TemplateConfig(id="industrial", name="Industrial")]),
        )

        with pytest.raises(StartupValidationError, match="base"):
            validate_base_template(context)
