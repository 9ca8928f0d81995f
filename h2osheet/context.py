"""Process-scoped, read-only context shared by every project.

The parameter library and template registry are loaded once and handed to
the builder and rehydration functions explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass

from h2osheet.config import AppConfig, get_config
from h2osheet.parameters.library import ParameterLibrary, load_parameter_library
from h2osheet.templates.registry import TemplateRegistry, create_registry


@dataclass(frozen=True)
class SheetContext:
    library: ParameterLibrary
    registry: TemplateRegistry


def build_context(config: AppConfig | None = None) -> SheetContext:
    """Load the parameter library and template registry.

    Raises:
        FileNotFoundError: If a configured data directory doesn't exist
        ParameterLibraryError: If parameter data is malformed
        TemplateConfigError: If template data is malformed or has no base template
    """
    config = config or get_config()
    return SheetContext(
        library=load_parameter_library(config.library.parameters_dir),
        registry=create_registry(config.library.templates_dir),
    )


_context: SheetContext | None = None


def get_context() -> SheetContext:
    """Get or create the process-wide SheetContext."""
    global _context
    if _context is None:
        _context = build_context()
    return _context
