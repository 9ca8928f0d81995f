"""Tests for rehydrating stored documents against the parameter library."""

from __future__ import annotations

import json

from h2osheet.models import DataSource, FieldImportance, FieldType, TableField, TableSection
from h2osheet.sheet.fields import FieldState, join_definition, materialize_field
from h2osheet.sheet.rehydration import rehydrate_field, rehydrate_fields_from_library
from h2osheet.sheet.serialization import dumps_sections, loads_sections


class TestRehydration:
    """Test the value/definition join on load."""

    def test_restores_validation_rules(self, filled_sections, library):
        stored = loads_sections(dumps_sections(filled_sections))
        assert all(f.validation_rule is None for s in stored for f in s.fields)

        rehydrated = rehydrate_fields_from_library(stored, library)

        ph = rehydrated[3].get_field("ph")
        assert ph.validation_rule is not None
        assert ph.validation_rule(ph.value) is True
        assert ph.validation_message == "pH must be between 0 and 14"

    def test_preserves_values(self, filled_sections, library):
        stored = loads_sections(dumps_sections(filled_sections))

        rehydrated = rehydrate_fields_from_library(stored, library)

        before = {(s.id, f.id): (f.value, f.unit, f.source) for s in filled_sections for f in s.fields}
        after = {(s.id, f.id): (f.value, f.unit, f.source) for s in rehydrated for f in s.fields}
        assert after == before

    def test_idempotent(self, filled_sections, library):
        once = rehydrate_fields_from_library(filled_sections, library)
        twice = rehydrate_fields_from_library(once, library)

        assert twice == once

    def test_keeps_order(self, filled_sections, library):
        rehydrated = rehydrate_fields_from_library(filled_sections, library)

        assert [s.id for s in rehydrated] == [s.id for s in filled_sections]
        for original, restored in zip(filled_sections, rehydrated):
            assert [f.id for f in restored.fields] == [f.id for f in original.fields]

    def test_does_not_modify_input(self, library):
        stale = TableField(id="ph", label="Old pH label", type=FieldType.TEXT, value=6.5)
        sections = [TableSection(id="water-quality", title="Water Quality", fields=[stale])]

        rehydrated = rehydrate_fields_from_library(sections, library)

        assert sections[0].fields[0].label == "Old pH label"
        assert rehydrated[0].fields[0].label == "pH"
        assert rehydrated[0].fields[0].type is FieldType.NUMBER
        assert rehydrated[0].fields[0].value == 6.5

    def test_custom_fields_pass_through(self, library):
        custom = TableField(
            id="custom-3f2a",
            label="Cooling tower blowdown",
            type=FieldType.UNIT,
            value=12,
            unit="m³/day",
            source=DataSource.AGENT,
            description="Added on site",
        )
        sections = [TableSection(id="economics-scale", title="Economics & Scale", fields=[custom])]

        rehydrated = rehydrate_fields_from_library(sections, library)

        assert rehydrated[0].fields[0] is custom
        assert rehydrate_field(custom, library) is custom

    def test_unknown_keys_survive(self, filled_sections, library):
        payload = json.loads(dumps_sections(filled_sections))
        payload[3]["fields"][0]["labNote"] = "Sampled at inlet"

        rehydrated = rehydrate_fields_from_library(loads_sections(json.dumps(payload)), library)

        ph = rehydrated[3].get_field("ph")
        assert ph.validation_rule is not None
        assert json.loads(dumps_sections(rehydrated))[3]["fields"][0]["labNote"] == "Sampled at inlet"

    def test_stored_unit_wins_over_default(self, library):
        stored = TableField(id="water-cost", label="Water cost", value=0.9, unit="EUR/m³")

        field = rehydrate_field(stored, library)

        assert field.unit == "EUR/m³"
        assert "EUR/m³" in field.units

    def test_missing_unit_takes_default(self, library):
        field = rehydrate_field(TableField(id="water-cost", label="x", value=1), library)

        assert field.unit == "USD/m³"

    def test_legacy_enum_values(self, library):
        stored = loads_sections(
            '[{"id": "water-quality", "title": "WQ", "fields": ['
            '{"id": "ph", "label": "pH", "value": 7, "source": "ai", "importance": "recommended"},'
            '{"id": "custom-1", "label": "Odor", "value": "none", "importance": "recommended"}'
            "]}]"
        )

        rehydrated = rehydrate_fields_from_library(stored, library)

        assert rehydrated[0].fields[0].source is DataSource.AGENT
        assert rehydrated[0].fields[0].importance is FieldImportance.CRITICAL
        assert rehydrated[0].fields[1].importance is FieldImportance.IMPORTANT


class TestFieldJoin:
    """Test building fields from definitions."""

    def test_materialize_is_empty(self, library):
        field = materialize_field(library.get("design-flow"))

        assert field.value == ""
        assert field.suggested_value == 50
        assert field.unit == "L/s"
        assert field.source is DataSource.MANUAL

    def test_join_keeps_user_state(self, library):
        state = FieldState(value=7.8, source=DataSource.IMPORTED, notes="Lab report", last_updated_by="ana")

        field = join_definition(library.get("ph"), state)

        assert field.value == 7.8
        assert field.source is DataSource.IMPORTED
        assert field.notes == "Lab report"
        assert field.last_updated_by == "ana"
