"""Template selection for a project.

Resolution tries an ordered list of match strategies and stops at the first
hit. The base template closes the chain, so resolution never comes back empty
for a registry built with ``create_registry``.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import structlog

from h2osheet.templates.registry import TemplateRegistry
from h2osheet.templates.types import BASE_TEMPLATE_ID, TemplateConfig

logger = structlog.get_logger(__name__)

MatchStrategy = Callable[[TemplateRegistry, Optional[str], Optional[str]], Optional[TemplateConfig]]


def _norm(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def exact_match(
    registry: TemplateRegistry, sector: str | None, subsector: str | None
) -> TemplateConfig | None:
    """Template registered for exactly this sector and subsector."""
    sector, subsector = _norm(sector), _norm(subsector)
    if sector is None or subsector is None:
        return None
    for template in registry:
        if _norm(template.sector) == sector and _norm(template.subsector) == subsector:
            return template
    return None


def sector_match(
    registry: TemplateRegistry, sector: str | None, subsector: str | None
) -> TemplateConfig | None:
    """Generic template for the sector (one without a subsector constraint)."""
    sector = _norm(sector)
    if sector is None:
        return None
    for template in registry:
        if _norm(template.sector) == sector and _norm(template.subsector) is None:
            return template
    return None


def first_for_sector(
    registry: TemplateRegistry, sector: str | None, subsector: str | None
) -> TemplateConfig | None:
    """First template registered for the sector, whatever its subsector."""
    sector = _norm(sector)
    if sector is None:
        return None
    for template in registry:
        if _norm(template.sector) == sector:
            return template
    return None


def base_fallback(
    registry: TemplateRegistry, sector: str | None, subsector: str | None
) -> TemplateConfig | None:
    return registry.base


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    exact_match,
    sector_match,
    first_for_sector,
    base_fallback,
)


def resolve_template(
    registry: TemplateRegistry,
    sector: str | None = None,
    subsector: str | None = None,
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> TemplateConfig:
    """Select the template for a project.

    Args:
        registry: Template registry
        sector: Project sector (e.g. "industrial"), optional
        subsector: Project subsector (e.g. "oil_gas"), optional
        strategies: Match strategies in priority order

    Returns:
        The first template any strategy matches

    Raises:
        TemplateConfigError: If nothing matches and the registry has no base template
    """
    for strategy in strategies:
        template = strategy(registry, sector, subsector)
        if template is not None:
            logger.debug(
                "template_resolved",
                template_id=template.id,
                strategy=strategy.__name__,
                sector=sector,
                subsector=subsector,
            )
            return template
    return registry.base


def get_template_for_project(
    sector: str | None, subsector: str | None, registry: TemplateRegistry
) -> TemplateConfig | None:
    """Lookup variant of ``resolve_template`` that returns None instead of raising."""
    for strategy in DEFAULT_STRATEGIES[:-1]:
        template = strategy(registry, sector, subsector)
        if template is not None:
            return template
    return registry.get(BASE_TEMPLATE_ID)
