"""Scenario registry, resolution, seeding and snapshot errors."""

from __future__ import annotations

from collections.abc import Sequence

from scenariolab.core.exceptions import EXIT_CYCLE, EXIT_FAILURE, ScenarioLabError

# =============================================================================
# Registry / resolution (fatal, raised before any database mutation)
# =============================================================================


class DuplicateScenarioError(ScenarioLabError):
    """A descriptor with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"Scenario '{name}' is already registered",
            code="DUPLICATE_SCENARIO",
            exit_code=EXIT_FAILURE,
            details={"scenario": name},
        )
        self.name = name


class UnknownScenarioError(ScenarioLabError):
    """No descriptor is registered under the requested name."""

    def __init__(self, name: str, referenced_by: str | None = None) -> None:
        message = f"Unknown scenario '{name}'"
        if referenced_by is not None:
            message += f" (preloaded by '{referenced_by}')"
        super().__init__(
            message=message,
            code="UNKNOWN_SCENARIO",
            exit_code=EXIT_FAILURE,
            details={"scenario": name, "referenced_by": referenced_by},
        )
        self.name = name
        self.referenced_by = referenced_by


class RegistrySealedError(ScenarioLabError):
    """Registration attempted after the registry was sealed."""

    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"Cannot register '{name}': the scenario registry is sealed",
            code="REGISTRY_SEALED",
            exit_code=EXIT_FAILURE,
            details={"scenario": name},
        )
        self.name = name


class CycleDetectedError(ScenarioLabError):
    """The preload relation loops back on itself."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            message=f"Preload cycle detected: {' -> '.join(self.cycle)}",
            code="CYCLE_DETECTED",
            exit_code=EXIT_CYCLE,
            details={"cycle": self.cycle},
        )


# =============================================================================
# Seeding
# =============================================================================


class SeedFailureError(ScenarioLabError):
    """A scenario's seed operation failed; its transaction was rolled back."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(
            message=f"Seeding scenario '{name}' failed: {cause}",
            code="SEED_FAILURE",
            exit_code=EXIT_FAILURE,
            details={"scenario": name, "cause": type(cause).__name__},
        )
        self.name = name
        self.cause = cause


# =============================================================================
# Snapshots
# =============================================================================


class SnapshotError(ScenarioLabError):
    """Base exception for snapshot storage operations."""

    def __init__(self, message: str, name: str, code: str = "SNAPSHOT_ERROR") -> None:
        super().__init__(
            message=message,
            code=code,
            exit_code=EXIT_FAILURE,
            details={"scenario": name},
        )
        self.name = name


class SnapshotNotFoundError(SnapshotError):
    """No snapshot file exists for the scenario."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No snapshot found for scenario '{name}'", name, "SNAPSHOT_NOT_FOUND")


class CorruptSnapshotError(SnapshotError):
    """Snapshot content failed checksum, version or format validation."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Snapshot for scenario '{name}' is corrupt: {reason}", name, "CORRUPT_SNAPSHOT"
        )
        self.reason = reason


class StaleSnapshotError(SnapshotError):
    """Snapshot was produced by a different definition of the scenario chain."""

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Snapshot for scenario '{name}' is stale: "
            f"expected fingerprint {expected[:12]}, found {actual[:12]}",
            name,
            "STALE_SNAPSHOT",
        )
        self.expected = expected
        self.actual = actual


class SnapshotRestoreError(SnapshotError):
    """A valid snapshot could not be written back into the database."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(
            f"Restoring snapshot for scenario '{name}' failed: {cause}",
            name,
            "SNAPSHOT_RESTORE_FAILED",
        )
        self.cause = cause


class LockTimeoutError(SnapshotError):
    """The per-scenario snapshot lock could not be acquired in time."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(
            f"Timed out after {timeout:g}s waiting for the snapshot lock of '{name}'",
            name,
            "LOCK_TIMEOUT",
        )
        self.timeout = timeout
