"""Registry of known scenario descriptors."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from scenariolab.core.logging import get_logger
from scenariolab.scenarios.descriptors import ScenarioDescriptor
from scenariolab.scenarios.exceptions import (
    DuplicateScenarioError,
    RegistrySealedError,
    UnknownScenarioError,
)

logger = get_logger(__name__)


class ScenarioRegistry:
    """Holds scenario descriptors keyed by unique name.

    Built once per process: descriptors are registered, then ``seal()`` checks
    every preload reference and freezes the registry. A sealed registry is
    read-only and safe to share between concurrent resolutions.
    """

    def __init__(self, descriptors: Iterable[ScenarioDescriptor] = ()) -> None:
        self._descriptors: dict[str, ScenarioDescriptor] = {}
        self._sealed = False
        for descriptor in descriptors:
            self.register(descriptor)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, descriptor: ScenarioDescriptor) -> ScenarioDescriptor:
        """Add a descriptor.

        Raises:
            RegistrySealedError: If the registry was already sealed.
            DuplicateScenarioError: If the name is already taken.
        """
        if self._sealed:
            raise RegistrySealedError(descriptor.name)
        if descriptor.name in self._descriptors:
            raise DuplicateScenarioError(descriptor.name)
        self._descriptors[descriptor.name] = descriptor
        logger.debug(
            "scenario.registered",
            scenario=descriptor.name,
            preload=descriptor.preload,
            version=descriptor.version,
        )
        return descriptor

    def lookup(self, name: str) -> ScenarioDescriptor:
        """Return the descriptor registered under ``name``.

        Raises:
            UnknownScenarioError: If no such descriptor exists.
        """
        try:
            return self._descriptors[name]
        except KeyError:
            raise UnknownScenarioError(name) from None

    def seal(self) -> ScenarioRegistry:
        """End the registration phase.

        Returns:
            The registry itself, for chaining.

        Raises:
            UnknownScenarioError: If a preload names an unregistered scenario.
        """
        for descriptor in self._descriptors.values():
            if descriptor.preload is not None and descriptor.preload not in self._descriptors:
                raise UnknownScenarioError(descriptor.preload, referenced_by=descriptor.name)
        self._sealed = True
        logger.debug("scenario.registry_sealed", count=len(self._descriptors))
        return self

    def names(self) -> list[str]:
        return sorted(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[ScenarioDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)
