"""Canonical parameter library."""

from h2osheet.parameters.definitions import ParameterCategory, ParameterDefinition, RangeRule, TypicalRange
from h2osheet.parameters.library import (
    ParameterLibrary,
    ParameterLibraryError,
    load_parameter_file,
    load_parameter_library,
)

__all__ = [
    "ParameterCategory",
    "ParameterDefinition",
    "RangeRule",
    "TypicalRange",
    "ParameterLibrary",
    "ParameterLibraryError",
    "load_parameter_file",
    "load_parameter_library",
]
