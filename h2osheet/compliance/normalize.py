"""Parameter name normalization for compliance matching.

Agent output mixes English and Spanish abbreviations (BOD5, DBO5, SST...).
Names are folded onto one canonical key per synonym family before targets
and effluents are matched.
"""

from __future__ import annotations

# Checked in order; the first family with a matching token wins
SYNONYM_FAMILIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("BOD", ("BOD", "DBO")),
    ("TSS", ("TSS", "SST")),
    ("COD", ("COD", "DQO")),
)


def normalize_parameter_name(name: str) -> str:
    """Canonical key for a water parameter name.

    Examples:
        >>> normalize_parameter_name("DBO5")
        'BOD'
        >>> normalize_parameter_name(" sst ")
        'TSS'
        >>> normalize_parameter_name("Nitrogen")
        'NITROGEN'
    """
    upper = name.strip().upper()
    for canonical, tokens in SYNONYM_FAMILIES:
        if any(token in upper for token in tokens):
            return canonical
    return upper
