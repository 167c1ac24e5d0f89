"""Sample catalog: role/user schema and the scenarios that seed it."""

from scenariolab.catalog.scenarios import ALL_SCENARIOS
from scenariolab.catalog.unit_of_work import CatalogUnitOfWork
from scenariolab.scenarios import ScenarioRegistry


def build_registry() -> ScenarioRegistry:
    """Build the sealed registry of catalog scenarios."""
    return ScenarioRegistry(ALL_SCENARIOS).seal()


__all__ = ["CatalogUnitOfWork", "build_registry"]
