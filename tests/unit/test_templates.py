"""Tests for the template registry and template resolution."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from h2osheet.models import FieldImportance
from h2osheet.templates.registry import (
    TemplateConfigError,
    TemplateRegistry,
    create_registry,
    load_template_file,
)
from h2osheet.templates.resolution import (
    base_fallback,
    exact_match,
    get_template_for_project,
    resolve_template,
)
from h2osheet.templates.types import SectionOperation, TemplateConfig


def write_template(directory: Path, data: dict) -> Path:
    path = directory / f"{data['id']}.yaml"
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


class TestTemplateRegistry:
    """Test loading and registering templates."""

    def test_bundled_templates(self, registry: TemplateRegistry):
        assert registry.ids == [
            "base",
            "commercial-hotel",
            "industrial",
            "industrial-food",
            "industrial-oil-gas",
        ]
        assert registry.base.id == "base"

    def test_duplicate_id_rejected(self):
        registry = TemplateRegistry([TemplateConfig(id="base", name="Base")])

        with pytest.raises(TemplateConfigError):
            registry.register(TemplateConfig(id="base", name="Other"))

    def test_missing_base_template(self, tmp_path: Path):
        write_template(tmp_path, {"id": "industrial", "name": "Industrial", "sector": "industrial"})

        with pytest.raises(TemplateConfigError, match="base"):
            create_registry(tmp_path)

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            create_registry(tmp_path / "missing")

    def test_load_template_file(self, tmp_path: Path):
        path = write_template(
            tmp_path,
            {
                "id": "custom",
                "name": "Custom",
                "extends": "base",
                "sections": [
                    {
                        "id": "water-quality",
                        "operation": "replace",
                        "add_fields": ["ph"],
                        "field_overrides": {"ph": {"importance": "critical", "default_value": 7}},
                    },
                    {"title": "No id"},
                ],
            },
        )

        template = load_template_file(path)

        assert template.extends == "base"
        assert len(template.sections) == 1
        section = template.sections[0]
        assert section.operation is SectionOperation.REPLACE
        assert section.add_fields == ("ph",)
        assert section.field_overrides["ph"].importance is FieldImportance.CRITICAL
        assert section.field_overrides["ph"].default_value == 7
        assert template.field_ids == ["ph"]

    def test_template_requires_name(self, tmp_path: Path):
        path = write_template(tmp_path, {"id": "nameless"})

        with pytest.raises(TemplateConfigError, match="name"):
            load_template_file(path)

    def test_invalid_operation(self, tmp_path: Path):
        path = write_template(
            tmp_path,
            {"id": "bad", "name": "Bad", "sections": [{"id": "s", "operation": "merge"}]},
        )

        with pytest.raises(TemplateConfigError):
            load_template_file(path)


class TestTemplateResolution:
    """Test the priority order of template matching."""

    @pytest.mark.parametrize(
        ("sector", "subsector", "expected"),
        [
            ("industrial", "food_processing", "industrial-food"),
            ("industrial", "oil_gas", "industrial-oil-gas"),
            ("industrial", None, "industrial"),
            ("industrial", "pharmaceutical", "industrial"),
            ("commercial", "hotel", "commercial-hotel"),
            ("commercial", "office", "commercial-hotel"),
            ("municipal", None, "base"),
            (None, None, "base"),
            (None, "food_processing", "base"),
        ],
    )
    def test_fallback_order(self, registry, sector, subsector, expected):
        assert resolve_template(registry, sector, subsector).id == expected

    def test_matching_ignores_case_and_whitespace(self, registry):
        template = resolve_template(registry, " Industrial ", "FOOD_PROCESSING")

        assert template.id == "industrial-food"

    def test_custom_strategies(self, registry):
        template = resolve_template(
            registry, "industrial", None, strategies=[exact_match, base_fallback]
        )

        assert template.id == "base"

    def test_empty_registry_raises(self):
        with pytest.raises(TemplateConfigError):
            resolve_template(TemplateRegistry(), "industrial", None)

    def test_get_template_for_project(self, registry):
        assert get_template_for_project("industrial", "oil_gas", registry).id == "industrial-oil-gas"
        assert get_template_for_project(None, None, registry).id == "base"
        assert get_template_for_project("industrial", None, TemplateRegistry()) is None
