"""Preload-chain resolution into ordered execution plans."""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from dataclasses import dataclass

from scenariolab.core.logging import get_logger
from scenariolab.scenarios.descriptors import ScenarioDescriptor
from scenariolab.scenarios.exceptions import CycleDetectedError, UnknownScenarioError
from scenariolab.scenarios.registry import ScenarioRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlanStep:
    """One descriptor of a plan with its chain fingerprint.

    Attributes:
        descriptor: The scenario descriptor.
        fingerprint: Hash of this descriptor's definition and of every ancestor's.
    """

    descriptor: ScenarioDescriptor
    fingerprint: str

    @property
    def name(self) -> str:
        return self.descriptor.name


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered descriptors, root first and target last, each exactly once."""

    target: str
    steps: tuple[PlanStep, ...]

    @property
    def names(self) -> list[str]:
        return [step.name for step in self.steps]

    def fingerprint(self, name: str) -> str:
        for step in self.steps:
            if step.name == name:
                return step.fingerprint
        raise KeyError(name)

    def __iter__(self) -> Iterator[PlanStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


def chain_fingerprint(parent: str, descriptor: ScenarioDescriptor) -> str:
    """Fold a descriptor's definition fingerprint into its parent's chain."""
    return hashlib.sha256(f"{parent}:{descriptor.fingerprint}".encode()).hexdigest()


class DependencyResolver:
    """Turns a target scenario into an ancestor-first execution plan.

    Plans are memoized per target once the registry is sealed, since
    descriptors can no longer change.
    """

    def __init__(self, registry: ScenarioRegistry) -> None:
        self.registry = registry
        self._plans: dict[str, ExecutionPlan] = {}

    def resolve(self, target: str) -> ExecutionPlan:
        """Resolve ``target`` into an execution plan.

        Raises:
            UnknownScenarioError: If the target or a preload is not registered.
            CycleDetectedError: If the preload chain loops.
        """
        cached = self._plans.get(target)
        if cached is not None:
            return cached

        stack: list[ScenarioDescriptor] = []
        visiting: set[str] = set()
        current: ScenarioDescriptor | None = self.registry.lookup(target)

        while current is not None:
            if current.name in visiting:
                walked = [d.name for d in stack]
                cycle = walked[walked.index(current.name) :] + [current.name]
                logger.warning("scenario.cycle_detected", target=target, cycle=cycle)
                raise CycleDetectedError(cycle)
            visiting.add(current.name)
            stack.append(current)

            if current.preload is None:
                current = None
            else:
                try:
                    current = self.registry.lookup(current.preload)
                except UnknownScenarioError:
                    raise UnknownScenarioError(
                        current.preload, referenced_by=current.name
                    ) from None

        steps: list[PlanStep] = []
        parent = ""
        for descriptor in reversed(stack):
            parent = chain_fingerprint(parent, descriptor)
            steps.append(PlanStep(descriptor=descriptor, fingerprint=parent))

        plan = ExecutionPlan(target=target, steps=tuple(steps))
        if self.registry.sealed:
            self._plans[target] = plan

        logger.debug("scenario.plan_resolved", target=target, plan=plan.names)
        return plan
