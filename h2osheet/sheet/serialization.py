"""Conversion between documents and their stored JSON shape.

Stored documents use camelCase keys and never contain validation rules;
``sections_from_payload`` returns sections that still need rehydration.
"""

from __future__ import annotations

import json
from typing import Any

from h2osheet.models import TableSection


def sections_to_payload(sections: list[TableSection]) -> list[dict[str, Any]]:
    """JSON-ready list of section dicts (validation rules dropped)."""
    return [
        section.model_dump(mode="json", by_alias=True, exclude_none=True)
        for section in sections
    ]


def sections_from_payload(payload: list[dict[str, Any]]) -> list[TableSection]:
    """Parse stored sections.

    Raises:
        pydantic.ValidationError: If an entry doesn't have the section shape
    """
    return [TableSection.model_validate(item) for item in payload]


def dumps_sections(sections: list[TableSection]) -> str:
    return json.dumps(sections_to_payload(sections), ensure_ascii=False)


def loads_sections(data: str | bytes) -> list[TableSection]:
    payload = json.loads(data)
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of sections, got {type(payload).__name__}")
    return sections_from_payload(payload)
