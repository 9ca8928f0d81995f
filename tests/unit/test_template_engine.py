"""Tests for template inheritance, section merging and library drift diagnostics."""

from __future__ import annotations

from types import MappingProxyType

import pytest
from structlog.testing import capture_logs

from h2osheet.context import SheetContext
from h2osheet.models import FieldImportance
from h2osheet.sheet.builder import build_initial_sheet, create_initial_technical_sheet_data
from h2osheet.templates.engine import (
    apply_template,
    build_sections,
    merge_section_configs,
    resolve_template_chain,
)
from h2osheet.templates.registry import TemplateRegistry
from h2osheet.templates.types import (
    FieldOverride,
    SectionConfig,
    SectionOperation,
    TemplateConfig,
)

BASE_SECTIONS = [
    "project-context",
    "economics-scale",
    "project-constraints",
    "water-quality",
    "field-notes",
]


def field_ids(sections, section_id):
    for section in sections:
        if section.id == section_id:
            return [field.id for field in section.fields]
    raise AssertionError(f"section {section_id} not found")


def get_field(sections, section_id, field_id):
    for section in sections:
        if section.id == section_id:
            return section.get_field(field_id)
    return None


@pytest.fixture
def drift_registry() -> TemplateRegistry:
    """Small registry whose base template references an unknown parameter."""
    base = TemplateConfig(
        id="base",
        name="Base",
        sections=(
            SectionConfig(id="water-quality", title="Water Quality", add_fields=("ph", "ghost-param")),
            SectionConfig(id="field-notes", title="Field Notes", add_fields=("field-notes",)),
        ),
    )
    orphan = TemplateConfig(id="orphan", name="Orphan", extends="nowhere")
    loop_a = TemplateConfig(id="loop-a", name="Loop A", extends="loop-b")
    loop_b = TemplateConfig(id="loop-b", name="Loop B", extends="loop-a")
    return TemplateRegistry([base, orphan, loop_a, loop_b])


class TestBundledTemplates:
    """Test documents built from the templates shipped with the package."""

    def test_base_template(self, registry, library):
        result = build_sections(registry.base, registry, library)

        assert result.ok
        assert [s.id for s in result.sections] == BASE_SECTIONS
        assert result.field_count == 20
        assert all(f.value == "" for s in result.sections for f in s.fields)
        assert result.sections[0].allow_custom_fields is False
        assert result.sections[1].allow_custom_fields is True

    def test_defaults_become_suggestions(self, registry, library):
        result = build_sections(registry.base, registry, library)

        ph = get_field(result.sections, "water-quality", "ph")
        assert ph.value == ""
        assert ph.suggested_value == 7.2
        assert ph.validation_rule is not None
        assert ph.label == "pH"

    def test_industrial_extends_base(self, registry, library):
        result = build_sections(registry.get("industrial"), registry, library)

        assert result.ok
        assert [s.id for s in result.sections] == BASE_SECTIONS
        assert field_ids(result.sections, "economics-scale")[-1] == "operating-hours"
        assert field_ids(result.sections, "water-quality") == [
            "ph", "turbidity", "tds", "hardness", "temperature", "bod5", "cod", "tss",
        ]

        peak = get_field(result.sections, "economics-scale", "peak-factor")
        assert peak.suggested_value == 2.0
        assert peak.importance is FieldImportance.CRITICAL

        regulatory = get_field(result.sections, "project-constraints", "regulatory-requirements")
        assert regulatory.required is True
        assert "NOM-001" in regulatory.placeholder

    def test_food_processing_inherits_through_industrial(self, registry, library):
        result = build_sections(registry.get("industrial-food"), registry, library)

        assert result.ok
        assert field_ids(result.sections, "water-quality") == [
            "ph",
            "bod5",
            "cod",
            "tss",
            "fats-oils-greases",
            "nitrogen-total",
            "phosphorus-total",
        ]
        # Overrides from both levels are kept
        assert get_field(result.sections, "economics-scale", "peak-factor").suggested_value == 2.0
        bod5 = get_field(result.sections, "water-quality", "bod5")
        assert bod5.suggested_value == 2500
        assert bod5.required is True

    def test_oil_gas_extends_base_directly(self, registry, library):
        result = build_sections(registry.get("industrial-oil-gas"), registry, library)

        assert result.ok
        assert "operating-hours" not in field_ids(result.sections, "economics-scale")
        assert field_ids(result.sections, "water-quality") == [
            "ph", "tds", "tss", "tph", "cadmium", "chromium", "lead", "mercury",
        ]

    def test_hotel_keeps_field_notes_last(self, registry, library):
        result = build_sections(registry.get("commercial-hotel"), registry, library)

        assert result.ok
        assert result.sections[-1].id == "field-notes"
        assert field_ids(result.sections, "economics-scale")[-2:] == [
            "people-served-exact",
            "operating-hours",
        ]

    def test_chain_is_root_first(self, registry):
        chain, diagnostics = resolve_template_chain(registry.get("industrial-food"), registry)

        assert [t.id for t in chain] == ["base", "industrial", "industrial-food"]
        assert diagnostics == []


class TestSectionOperations:
    """Test extend, replace and remove merges."""

    def make_chain(self, child_sections):
        parent = TemplateConfig(
            id="parent",
            name="Parent",
            sections=(
                SectionConfig(id="a", title="A", add_fields=("ph", "tds")),
                SectionConfig(id="b", title="B", add_fields=("cod",)),
            ),
        )
        child = TemplateConfig(id="child", name="Child", extends="parent", sections=child_sections)
        return [parent, child]

    def test_extend_appends_and_removes(self):
        merged = merge_section_configs(
            self.make_chain(
                (SectionConfig(id="a", add_fields=("tss", "ph"), remove_fields=("tds",)),)
            )
        )

        assert merged["a"].add_fields == ("ph", "tss")
        assert merged["a"].title == "A"

    def test_replace_discards_parent_fields(self):
        merged = merge_section_configs(
            self.make_chain(
                (SectionConfig(id="a", operation=SectionOperation.REPLACE, title="New A", add_fields=("tss",)),)
            )
        )

        assert merged["a"].add_fields == ("tss",)
        assert merged["a"].title == "New A"
        assert list(merged) == ["a", "b"]

    def test_remove_drops_section(self):
        merged = merge_section_configs(
            self.make_chain((SectionConfig(id="b", operation=SectionOperation.REMOVE),))
        )

        assert list(merged) == ["a"]

    def test_overrides_merge_field_by_field(self):
        chain = self.make_chain(
            (
                SectionConfig(
                    id="a",
                    field_overrides=MappingProxyType({"ph": FieldOverride(required=True)}),
                ),
            )
        )
        parent_section = SectionConfig(
            id="a",
            title="A",
            add_fields=("ph",),
            field_overrides=MappingProxyType(
                {"ph": FieldOverride(importance=FieldImportance.CRITICAL, default_value=7)}
            ),
        )
        chain[0] = TemplateConfig(id="parent", name="Parent", sections=(parent_section,))

        merged = merge_section_configs(chain)

        override = merged["a"].field_overrides["ph"]
        assert override.importance is FieldImportance.CRITICAL
        assert override.default_value == 7
        assert override.required is True


class TestDriftDiagnostics:
    """Test that template/library mismatches are reported, not raised."""

    def test_missing_parameter(self, drift_registry, library):
        result = build_sections(drift_registry.base, drift_registry, library)

        assert not result.ok
        assert result.missing_parameters == ["ghost-param"]
        diagnostic = result.diagnostics[0]
        assert diagnostic.code == "missing_parameter"
        assert diagnostic.section_id == "water-quality"
        # The rest of the document is still built
        assert field_ids(result.sections, "water-quality") == ["ph"]

    def test_missing_parent(self, drift_registry, library):
        result = build_sections(drift_registry.get("orphan"), drift_registry, library)

        assert [d.code for d in result.diagnostics] == ["missing_parent"]
        assert result.sections == []

    def test_circular_inheritance(self, drift_registry, library):
        result = build_sections(drift_registry.get("loop-a"), drift_registry, library)

        assert [d.code for d in result.diagnostics] == ["circular_inheritance"]

    def test_apply_unknown_template(self, registry, library):
        result = apply_template("no-such-template", registry, library)

        assert result.sections == []
        assert [d.code for d in result.diagnostics] == ["template_not_found"]

    def test_initial_sheet_logs_drift_as_error(self, drift_registry, library):
        context = SheetContext(library=library, registry=drift_registry)

        with capture_logs() as logs:
            sections = create_initial_technical_sheet_data(context=context)

        assert [s.id for s in sections] == ["water-quality", "field-notes"]
        drift = [log for log in logs if log["event"] == "template_library_drift"]
        assert len(drift) == 1
        assert drift[0]["log_level"] == "error"
        assert drift[0]["parameter_id"] == "ghost-param"

    def test_build_initial_sheet_exposes_diagnostics(self, drift_registry, library):
        context = SheetContext(library=library, registry=drift_registry)

        result = build_initial_sheet(context, "industrial", None)

        assert result.template_id == "base"
        assert result.missing_parameters == ["ghost-param"]
