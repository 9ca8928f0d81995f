"""Tests for completion metrics, projections and field validation."""

from __future__ import annotations

import pytest

from h2osheet.models import DataSource, FieldUpdate, TableField, TableSection
from h2osheet.sheet.completion import overall_completion, section_completion, source_breakdown
from h2osheet.sheet.mutation import apply_field_updates, update_field_in_sections
from h2osheet.sheet.projections import (
    DEFAULT_PEAK_FACTOR,
    calculate_derived_values,
    map_sections_to_summary_rows,
    map_sections_to_target_fields,
)
from h2osheet.sheet.validation import validate_sections


def section_with_values(*values) -> TableSection:
    return TableSection(
        id="s",
        title="S",
        fields=[TableField(id=f"f{i}", label=f"F{i}", value=v) for i, v in enumerate(values)],
    )


class TestCompletion:
    """Test completion percentages."""

    def test_empty_document(self):
        assert overall_completion([]).percentage == 0
        assert section_completion(TableSection(id="s", title="S")).percentage == 0

    def test_base_sheet_starts_at_zero(self, base_sections):
        stats = overall_completion(base_sections)

        assert stats.total == 20
        assert stats.completed == 0
        assert stats.percentage == 0

    def test_five_of_twenty(self, filled_sections):
        stats = overall_completion(filled_sections)

        assert stats.completed == 5
        assert stats.percentage == 25

    def test_falsy_values_count_as_completed(self):
        stats = section_completion(section_with_values(0, False, [], None, ""))

        assert stats.completed == 3
        assert stats.total == 5
        assert stats.percentage == 60

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [(1, 8, 13), (3, 8, 38), (1, 3, 33), (2, 3, 67), (3, 3, 100)],
    )
    def test_rounds_half_up(self, completed, total, expected):
        values = ["x"] * completed + [""] * (total - completed)

        assert section_completion(section_with_values(*values)).percentage == expected

    def test_sections_weighted_by_size(self):
        small = section_with_values("x")
        large = section_with_values(*([""] * 9))

        assert overall_completion([small, large]).percentage == 10

    def test_monotonic_when_filling(self, base_sections):
        sections = base_sections
        previous = overall_completion(sections).percentage
        for section in base_sections:
            for field in section.fields:
                sections = update_field_in_sections(
                    sections, FieldUpdate(section.id, field.id, "filled")
                )
                current = overall_completion(sections).percentage
                assert current >= previous
                previous = current
        assert previous == 100

    def test_source_breakdown(self, base_sections):
        sections = apply_field_updates(
            base_sections,
            [
                FieldUpdate("water-quality", "ph", 7, source=DataSource.AGENT),
                FieldUpdate("water-quality", "tds", 300, source=DataSource.IMPORTED),
                FieldUpdate("water-quality", "hardness", 120),
            ],
        )

        assert source_breakdown(sections) == {
            "manual": 1,
            "agent": 1,
            "calculated": 0,
            "imported": 1,
        }


class TestProjections:
    """Test summary rows, agent targets and derived values."""

    def test_summary_rows(self, filled_sections):
        rows = map_sections_to_summary_rows(filled_sections)

        assert len(rows) == 20
        cost = next(row for row in rows if row.field_id == "water-cost")
        assert cost.section_id == "economics-scale"
        assert cost.current_value == 1.25
        assert cost.unit == "USD/m³"
        assert cost.source == "manual"

    def test_target_fields(self, base_sections):
        targets = map_sections_to_target_fields(base_sections)

        ph = next(t for t in targets if t.id == "ph")
        assert ph.section == "Water Quality"
        assert ph.type == "number"

    def design_document(self, **values) -> list[TableSection]:
        return [
            TableSection(
                id="general-data",
                title="General Data",
                fields=[TableField(id=key, label=key, value=value) for key, value in values.items()],
            )
        ]

    def test_derived_values(self):
        sections = self.design_document(
            **{"design-flow": 10, "operating-hours": 24, "population-served": 1000, "peak-factor": 2.0}
        )

        derived = calculate_derived_values(sections)

        assert derived.daily_volume_m3 == pytest.approx(864.0)
        assert derived.per_capita_lpd == pytest.approx(864.0)
        assert derived.peak_factor == 2.0
        assert derived.average_flow_lps == pytest.approx(5.0)

    def test_missing_inputs(self):
        derived = calculate_derived_values(self.design_document(**{"design-flow": ""}))

        assert derived.daily_volume_m3 is None
        assert derived.per_capita_lpd is None
        assert derived.average_flow_lps is None
        assert derived.peak_factor == DEFAULT_PEAK_FACTOR

    def test_zero_population(self):
        derived = calculate_derived_values(
            self.design_document(**{"design-flow": 5, "population-served": 0})
        )

        assert derived.per_capita_lpd == 0.0

    def test_invalid_peak_factor_uses_default(self):
        derived = calculate_derived_values(
            self.design_document(**{"design-flow": 9, "peak-factor": "high"})
        )

        assert derived.peak_factor == DEFAULT_PEAK_FACTOR
        assert derived.average_flow_lps == pytest.approx(5.0)


class TestValidation:
    """Test required and range checks."""

    def test_required_fields_reported(self, base_sections):
        issues = validate_sections(base_sections)

        required = {issue.field_id for issue in issues if issue.code == "required"}
        assert "water-source" in required
        assert "ph" in required
        assert all(issue.code == "required" for issue in issues)

    def test_out_of_range_value(self, base_sections):
        sections = update_field_in_sections(base_sections, FieldUpdate("water-quality", "ph", 15))

        invalid = [issue for issue in validate_sections(sections) if issue.code == "invalid"]

        assert len(invalid) == 1
        assert invalid[0].field_id == "ph"
        assert invalid[0].message == "pH must be between 0 and 14"

    def test_negative_cost(self, base_sections):
        sections = update_field_in_sections(
            base_sections, FieldUpdate("economics-scale", "water-cost", -1)
        )

        invalid = [issue.field_id for issue in validate_sections(sections) if issue.code == "invalid"]

        assert invalid == ["water-cost"]
