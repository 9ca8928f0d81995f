"""Field-level checks against the rules attached by rehydration."""

from __future__ import annotations

from dataclasses import dataclass

from h2osheet.models import TableSection


@dataclass(frozen=True)
class FieldIssue:
    section_id: str
    field_id: str
    label: str
    code: str  # "required" or "invalid"
    message: str


def validate_sections(sections: list[TableSection]) -> list[FieldIssue]:
    """List required fields left empty and values their rule rejects.

    Only fields carrying a validation rule are range-checked, so run this on a
    rehydrated document.
    """
    issues = []
    for section in sections:
        for field in section.fields:
            if not field.is_completed:
                if field.required:
                    issues.append(
                        FieldIssue(
                            section_id=section.id,
                            field_id=field.id,
                            label=field.label,
                            code="required",
                            message=f"{field.label} is required",
                        )
                    )
                continue

            if field.validation_rule is not None and not field.validation_rule(field.value):
                issues.append(
                    FieldIssue(
                        section_id=section.id,
                        field_id=field.id,
                        label=field.label,
                        code="invalid",
                        message=field.validation_message or f"Invalid value for {field.label}",
                    )
                )
    return issues
