"""Scenario-based test-data builder.

Builds database fixtures by resolving a chain of named scenarios, seeding each
inside a transaction and caching the resulting state as a snapshot so later
runs restore it instead of seeding again.

Provides:
- Scenario descriptors and the registry they are declared in
- Preload-chain resolution with cycle detection and chain fingerprints
- Checksummed, atomically written snapshot files with per-scenario locks
- The executor tying resolution, cache lookup, seeding and capture together
"""

from scenariolab.scenarios.dataset import DatabaseDataSet
from scenariolab.scenarios.descriptors import Scenario, ScenarioDescriptor
from scenariolab.scenarios.exceptions import (
    CorruptSnapshotError,
    CycleDetectedError,
    DuplicateScenarioError,
    LockTimeoutError,
    RegistrySealedError,
    SeedFailureError,
    SnapshotError,
    SnapshotNotFoundError,
    SnapshotRestoreError,
    StaleSnapshotError,
    UnknownScenarioError,
)
from scenariolab.scenarios.executor import (
    ExecutionResult,
    ScenarioExecutor,
    StepResult,
    StepState,
)
from scenariolab.scenarios.registry import ScenarioRegistry
from scenariolab.scenarios.resolver import DependencyResolver, ExecutionPlan, PlanStep
from scenariolab.scenarios.snapshots import Snapshot, SnapshotHeader, SnapshotStore, TableSection
from scenariolab.scenarios.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

__all__ = [
    "CorruptSnapshotError",
    "CycleDetectedError",
    "DatabaseDataSet",
    "DependencyResolver",
    "DuplicateScenarioError",
    "ExecutionPlan",
    "ExecutionResult",
    "LockTimeoutError",
    "PlanStep",
    "RegistrySealedError",
    "Scenario",
    "ScenarioDescriptor",
    "ScenarioExecutor",
    "ScenarioRegistry",
    "SeedFailureError",
    "Snapshot",
    "SnapshotError",
    "SnapshotHeader",
    "SnapshotNotFoundError",
    "SnapshotRestoreError",
    "SnapshotStore",
    "SqlAlchemyUnitOfWork",
    "StaleSnapshotError",
    "StepResult",
    "StepState",
    "TableSection",
    "UnitOfWork",
    "UnknownScenarioError",
]
