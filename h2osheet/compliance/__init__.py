"""Effluent compliance checks over proposal agent output."""

from h2osheet.compliance.engine import (
    ComplianceCheck,
    ComplianceResult,
    EffluentValue,
    ParameterTarget,
    calculate_compliance,
    calculate_equipment_utilization,
    check_proposal_compliance,
    get_design_flow_rate,
    get_effluent_values,
    get_parameter_targets,
    validate_proposal_data,
)
from h2osheet.compliance.normalize import normalize_parameter_name

__all__ = [
    "ComplianceCheck",
    "ComplianceResult",
    "EffluentValue",
    "ParameterTarget",
    "calculate_compliance",
    "calculate_equipment_utilization",
    "check_proposal_compliance",
    "get_design_flow_rate",
    "get_effluent_values",
    "get_parameter_targets",
    "normalize_parameter_name",
    "validate_proposal_data",
]
