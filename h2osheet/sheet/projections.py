"""Read-only projections of a technical sheet: flat rows and derived values."""

from __future__ import annotations

from dataclasses import dataclass

from h2osheet.models import FieldValue, SummaryRow, TableSection, TargetField

DESIGN_FLOW_FIELD = "design-flow"
OPERATING_HOURS_FIELD = "operating-hours"
POPULATION_FIELD = "population-served"
PEAK_FACTOR_FIELD = "peak-factor"

DEFAULT_PEAK_FACTOR = 1.8
# 1 L/s over one hour is 3.6 m³
LPS_HOUR_TO_M3 = 3.6
SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class DerivedValues:
    """Hydraulic figures computed from the sheet.

    Attributes:
        daily_volume_m3: Volume treated per day (design flow x operating hours)
        per_capita_lpd: Litres per person per day; 0 when population is unknown
        peak_factor: Sheet value when numeric, otherwise 1.8
        average_flow_lps: Design flow divided by the peak factor
    """

    daily_volume_m3: float | None
    per_capita_lpd: float | None
    peak_factor: float
    average_flow_lps: float | None


def map_sections_to_summary_rows(sections: list[TableSection]) -> list[SummaryRow]:
    rows = []
    for section in sections:
        for field in section.fields:
            rows.append(
                SummaryRow(
                    section_id=section.id,
                    section_title=section.title,
                    field_id=field.id,
                    field_label=field.label,
                    field_type=field.type.value,
                    current_value=field.value,
                    unit=field.unit,
                    description=field.description,
                    source=field.source.value if field.source else None,
                )
            )
    return rows


def map_sections_to_target_fields(sections: list[TableSection]) -> list[TargetField]:
    """Describe every field for the proposal agent, tagged with its section title."""
    return [
        TargetField(
            id=field.id,
            label=field.label,
            section=section.title,
            type=field.type.value,
            current_value=field.value,
            unit=field.unit,
            description=field.description,
        )
        for section in sections
        for field in section.fields
    ]


def _find_value(sections: list[TableSection], field_id: str) -> FieldValue | None:
    for section in sections:
        field = section.get_field(field_id)
        if field is not None:
            return field.value
    return None


def _as_number(value: FieldValue | None) -> float | None:
    if value is None or value == "" or isinstance(value, (bool, list)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def calculate_derived_values(sections: list[TableSection]) -> DerivedValues:
    """Compute daily volume, per-capita demand and average flow.

    Inputs are looked up by field id anywhere in the document: design flow
    (L/s), operating hours (h/day) and population served. Missing or
    non-numeric inputs yield None for the figures that need them.
    """
    flow = _as_number(_find_value(sections, DESIGN_FLOW_FIELD))
    hours = _as_number(_find_value(sections, OPERATING_HOURS_FIELD))
    population = _as_number(_find_value(sections, POPULATION_FIELD))
    peak = _as_number(_find_value(sections, PEAK_FACTOR_FIELD))
    if peak is None or peak <= 0:
        peak = DEFAULT_PEAK_FACTOR

    daily_volume = None
    per_capita = None
    average_flow = None
    if flow is not None:
        if hours is not None:
            daily_volume = flow * hours * LPS_HOUR_TO_M3
        if population is not None:
            per_capita = flow * SECONDS_PER_DAY / population if population > 0 else 0.0
        average_flow = flow / peak

    return DerivedValues(
        daily_volume_m3=daily_volume,
        per_capita_lpd=per_capita,
        peak_factor=peak,
        average_flow_lps=average_flow,
    )
