"""Scenario abstraction and descriptors."""

from __future__ import annotations

import hashlib
import inspect
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scenariolab.scenarios.unit_of_work import UnitOfWork

SCENARIO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class Scenario(ABC):
    """A unit of test-data seeding logic.

    Implementations perform all writes through the unit of work they receive;
    they never begin, commit or roll back themselves.
    """

    @abstractmethod
    async def seed(self, uow: UnitOfWork) -> None:
        """Write this scenario's data."""

    def definition(self) -> dict[str, Any]:
        """Configuration that shapes what ``seed`` writes.

        Defaults to the public instance attributes. Override to leave out
        runtime state (counters, events) or to add settings held elsewhere.
        Changes to helpers or repositories that ``seed`` calls are not
        detected; bump the descriptor ``version`` for those.
        """
        return {key: value for key, value in vars(self).items() if not key.startswith("_")}

    def definition_source(self) -> str:
        """Text identifying the seed implementation for fingerprinting.

        Falls back to the qualified class name when the source is unavailable
        (e.g. scenarios defined in a REPL).
        """
        seed = type(self).seed
        try:
            return inspect.getsource(seed)
        except (OSError, TypeError):
            return f"{type(self).__module__}.{type(self).__qualname__}"


@dataclass(frozen=True)
class ScenarioDescriptor:
    """Registration record for a scenario.

    Attributes:
        name: Unique, stable identifier; also the snapshot file name.
        scenario: Object implementing the seed capability.
        preload: Name of the immediate prerequisite scenario, if any.
        version: Bumped by authors to invalidate cached snapshots on purpose.
        description: Human-readable summary for listings.
    """

    name: str
    scenario: Scenario = field(compare=False)
    preload: str | None = None
    version: int = 1
    description: str = ""

    def __post_init__(self) -> None:
        if not SCENARIO_NAME_PATTERN.match(self.name):
            raise ValueError(
                f"Invalid scenario name '{self.name}'. "
                "Use letters, digits, '_', '-' or '.', starting with a letter or digit."
            )
        if self.version < 1:
            raise ValueError(f"Scenario version must be >= 1, got {self.version}")

    @cached_property
    def fingerprint(self) -> str:
        """SHA-256 over the descriptor's own definition (ancestors excluded).

        Covers name, preload, version, the ``seed`` source and the scenario's
        :meth:`Scenario.definition`.
        """
        payload = json.dumps(
            {
                "name": self.name,
                "preload": self.preload,
                "version": self.version,
                "seed": self.scenario.definition_source(),
                "config": self.scenario.definition(),
            },
            sort_keys=True,
            default=repr,
        )
        return hashlib.sha256(payload.encode()).hexdigest()
