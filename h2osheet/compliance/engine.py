"""Compliance of agent-proposed effluent values against target values.

Both inputs come from the proposal agent, never from the technical sheet.
Proposals are plain JSON mappings with camelCase keys as the agent emits
them; missing branches are treated as "no data".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from h2osheet.compliance.normalize import normalize_parameter_name


@dataclass(frozen=True)
class ParameterTarget:
    target_value: float
    unit: str | None = None


@dataclass(frozen=True)
class EffluentValue:
    effluent_value: float
    unit: str | None = None
    removal_percent: float | None = None


@dataclass(frozen=True)
class ComplianceCheck:
    parameter: str
    effluent_value: float
    target_value: float
    unit: str | None
    passes: bool
    removal_percent: float | None = None


@dataclass(frozen=True)
class ComplianceResult:
    """Outcome of a compliance check.

    ``overall_compliance`` is None (indeterminate) when no parameter has both
    a target and an effluent value; otherwise it's True only if every check passes.
    """

    checks: list[ComplianceCheck] = field(default_factory=list)
    overall_compliance: bool | None = None

    @property
    def is_indeterminate(self) -> bool:
        return self.overall_compliance is None

    @property
    def failing(self) -> list[ComplianceCheck]:
        return [check for check in self.checks if not check.passes]


def calculate_compliance(
    targets: Mapping[str, ParameterTarget],
    effluents: Mapping[str, EffluentValue],
) -> ComplianceResult:
    """Check each targeted parameter: it passes when effluent <= target.

    Keys are normalized on the way in, so callers may pass raw names. Names
    that fold onto the same key keep the last value given, one check per key.
    """
    normalized_targets = {normalize_parameter_name(k): v for k, v in targets.items()}
    normalized_effluents = {normalize_parameter_name(k): v for k, v in effluents.items()}

    checks = []
    for key, target in normalized_targets.items():
        effluent = normalized_effluents.get(key)
        if effluent is None:
            continue
        checks.append(
            ComplianceCheck(
                parameter=key,
                effluent_value=effluent.effluent_value,
                target_value=target.target_value,
                unit=effluent.unit,
                passes=effluent.effluent_value <= target.target_value,
                removal_percent=effluent.removal_percent,
            )
        )

    if not checks:
        return ComplianceResult()
    return ComplianceResult(checks=checks, overall_compliance=all(c.passes for c in checks))


def _get(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def get_parameter_targets(proposal: Mapping[str, Any]) -> dict[str, ParameterTarget]:
    """Target values from ``aiMetadata.problemAnalysis.influentCharacteristics.parameters``."""
    parameters = _get(proposal, "aiMetadata", "problemAnalysis", "influentCharacteristics", "parameters")
    targets: dict[str, ParameterTarget] = {}
    for param in parameters or []:
        if not isinstance(param, Mapping) or not param.get("parameter"):
            continue
        value = _number(param.get("targetValue"))
        if value is None:
            continue
        targets[normalize_parameter_name(param["parameter"])] = ParameterTarget(
            target_value=value, unit=param.get("unit")
        )
    return targets


def get_effluent_values(proposal: Mapping[str, Any]) -> dict[str, EffluentValue]:
    """Effluent concentrations from ``treatmentEfficiency.parameters``."""
    parameters = _get(proposal, "treatmentEfficiency", "parameters")
    effluents: dict[str, EffluentValue] = {}
    for param in parameters or []:
        if not isinstance(param, Mapping) or not param.get("parameterName"):
            continue
        value = _number(param.get("effluentConcentration"))
        if value is None:
            continue
        effluents[normalize_parameter_name(param["parameterName"])] = EffluentValue(
            effluent_value=value,
            unit=param.get("unit"),
            removal_percent=_number(param.get("removalEfficiencyPercent")),
        )
    return effluents


def check_proposal_compliance(proposal: Mapping[str, Any]) -> ComplianceResult:
    return calculate_compliance(get_parameter_targets(proposal), get_effluent_values(proposal))


def get_design_flow_rate(proposal: Mapping[str, Any]) -> float | None:
    """Design flow (m³/day) the agent sized equipment for.

    Priority: technical data, then influent characteristics, then
    operational data (which may include recirculation).
    """
    candidates = (
        _get(proposal, "aiMetadata", "technicalData", "flowRateM3Day"),
        _get(proposal, "aiMetadata", "problemAnalysis", "influentCharacteristics", "flowRateM3Day"),
        _get(proposal, "operationalData", "flowRateM3Day"),
    )
    for candidate in candidates:
        flow = _number(candidate)
        if flow is not None and flow > 0:
            return flow
    return None


def calculate_equipment_utilization(
    equipment: Mapping[str, Any], design_flow_m3_day: float | None
) -> float | None:
    """Design flow as a percentage of an equipment item's capacity."""
    if not design_flow_m3_day or design_flow_m3_day <= 0:
        return None
    capacity = _number(equipment.get("capacityM3Day"))
    if capacity is None or capacity <= 0:
        return None
    return design_flow_m3_day / capacity * 100


def validate_proposal_data(proposal: Mapping[str, Any]) -> tuple[bool, list[str]]:
    """Check the agent output has what the proposal views need.

    Returns:
        (is_valid, warnings)
    """
    warnings = []
    if get_design_flow_rate(proposal) is None:
        warnings.append("Missing design flow rate from agent")
    if not proposal.get("equipmentList"):
        warnings.append("No equipment list provided by agent")
    if not get_parameter_targets(proposal):
        warnings.append("No target values for water parameters")
    if not get_effluent_values(proposal):
        warnings.append("No treatment efficiency data")
    return not warnings, warnings
