"""Pytest configuration and fixtures for h2osheet tests.

Provides the bundled parameter library and template registry, plus freshly
built documents.
"""

from __future__ import annotations

import json

import httpx
import pytest

from h2osheet.context import SheetContext
from h2osheet.models import FieldUpdate, TableSection
from h2osheet.parameters.library import ParameterLibrary, load_parameter_library
from h2osheet.sheet.builder import create_initial_technical_sheet_data
from h2osheet.sheet.mutation import apply_field_updates
from h2osheet.storage.remote import ProjectDataClient
from h2osheet.templates.registry import TemplateRegistry, create_registry


@pytest.fixture(scope="session")
def library() -> ParameterLibrary:
    """Bundled parameter library."""
    return load_parameter_library()


@pytest.fixture(scope="session")
def registry() -> TemplateRegistry:
    """Bundled template registry."""
    return create_registry()


@pytest.fixture(scope="session")
def context(library: ParameterLibrary, registry: TemplateRegistry) -> SheetContext:
    return SheetContext(library=library, registry=registry)


@pytest.fixture
def test_project_id() -> str:
    """Test project ID."""
    return "test-project"


@pytest.fixture
def base_sections(context: SheetContext) -> list[TableSection]:
    """Empty document built from the base template."""
    return create_initial_technical_sheet_data(context=context)


@pytest.fixture
def filled_sections(base_sections: list[TableSection]) -> list[TableSection]:
    """Base document with five fields filled in (25% complete)."""
    return apply_field_updates(
        base_sections,
        [
            FieldUpdate("project-context", "water-source", "Municipal network"),
            FieldUpdate("economics-scale", "water-cost", 1.25, unit="USD/m³"),
            FieldUpdate("economics-scale", "water-consumption", 300),
            FieldUpdate("water-quality", "ph", 7.4),
            FieldUpdate("field-notes", "field-notes", "Site visit pending"),
        ],
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove h2osheet settings inherited from the shell or a .env file."""
    for name in (
        "H2OSHEET_CACHE_BACKEND",
        "H2OSHEET_CACHE_DIR",
        "H2OSHEET_CACHE_TTL",
        "H2OSHEET_API_URL",
        "H2OSHEET_API_TOKEN",
        "H2OSHEET_API_TIMEOUT",
        "H2OSHEET_PARAMETERS_DIR",
        "H2OSHEET_TEMPLATES_DIR",
        "REDIS_URL",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeProjectApi:
    """In-memory stand-in for the project-data endpoints."""

    def __init__(self, status: int | None = None):
        self.status = status
        self.documents: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []

    @property
    def patches(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PATCH"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status is not None:
            return httpx.Response(self.status, json={"error": "unavailable"})
        project_id = request.url.path.split("/")[-2]
        if request.method == "PATCH":
            document = self.documents.setdefault(project_id, {})
            document.update(json.loads(request.content))
            return httpx.Response(200, json={"data": document})
        return httpx.Response(200, json={"data": self.documents.get(project_id, {})})

    def client(self) -> ProjectDataClient:
        return ProjectDataClient("https://api.example.com", transport=httpx.MockTransport(self))


@pytest.fixture
def project_api() -> FakeProjectApi:
    """Project-data API that answers from memory."""
    return FakeProjectApi()
