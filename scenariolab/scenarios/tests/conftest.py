"""Test fixtures for the scenarios module."""

import asyncio
import uuid

import pytest

from scenariolab.catalog.models import Role
from scenariolab.catalog.repositories import SEEDED_AT
from scenariolab.scenarios import (
    DatabaseDataSet,
    Scenario,
    ScenarioDescriptor,
    ScenarioExecutor,
    ScenarioRegistry,
    SnapshotStore,
    TableSection,
)


def role_id(name: str) -> uuid.UUID:
    return uuid.uuid5(uuid.NAMESPACE_DNS, f"{name}.scenariolab.test")


# =============================================================================
# Scenario doubles
# =============================================================================


class RecordingScenario(Scenario):
    """Inserts one role and counts how often it was seeded."""

    def __init__(self, role_name: str) -> None:
        self.role_name = role_name
        self.calls = 0

    def definition(self) -> dict:
        return {"role_name": self.role_name}

    async def seed(self, uow) -> None:
        self.calls += 1
        uow.session.add(Role(id=role_id(self.role_name), name=self.role_name))
        await uow.session.flush()


class FailingScenario(Scenario):
    """Writes a row, then fails."""

    def __init__(self) -> None:
        self.calls = 0

    def definition(self) -> dict:
        return {}

    async def seed(self, uow) -> None:
        self.calls += 1
        uow.session.add(Role(id=role_id("doomed"), name="doomed"))
        await uow.session.flush()
        raise RuntimeError("constraint violated")


class HangingScenario(Scenario):
    """Writes a row, then blocks until cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()

    def definition(self) -> dict:
        return {}

    async def seed(self, uow) -> None:
        uow.session.add(Role(id=role_id("hanging"), name="hanging"))
        await uow.session.flush()
        self.started.set()
        await asyncio.Event().wait()


class CountedRoles(Scenario):
    """Inserts `count` numbered roles."""

    def __init__(self, count: int) -> None:
        self.count = count

    async def seed(self, uow) -> None:
        for index in range(self.count):
            name = f"counted-{index}"
            uow.session.add(Role(id=role_id(name), name=name))
        await uow.session.flush()


class NoopScenario(Scenario):
    async def seed(self, uow) -> None:
        return None


@pytest.fixture
def noop() -> NoopScenario:
    return NoopScenario()


@pytest.fixture
def failing() -> FailingScenario:
    return FailingScenario()


@pytest.fixture
def hanging() -> HangingScenario:
    return HangingScenario()


@pytest.fixture
def make_counted():
    """Factory for CountedRoles instances."""
    return CountedRoles


@pytest.fixture
def make_recording():
    """Factory for RecordingScenario instances."""
    return RecordingScenario


# =============================================================================
# Registry / executor fixtures
# =============================================================================


@pytest.fixture
def chain() -> dict[str, RecordingScenario]:
    """Recording scenarios for the chain A <- B <- C."""
    return {name: RecordingScenario(f"role-{name.lower()}") for name in ("A", "B", "C")}


@pytest.fixture
def chain_descriptors(chain: dict[str, RecordingScenario]) -> list[ScenarioDescriptor]:
    return [
        ScenarioDescriptor(name="A", scenario=chain["A"]),
        ScenarioDescriptor(name="B", scenario=chain["B"], preload="A"),
        ScenarioDescriptor(name="C", scenario=chain["C"], preload="B"),
    ]


@pytest.fixture
def chain_registry(chain_descriptors: list[ScenarioDescriptor]) -> ScenarioRegistry:
    """Sealed registry with A (root), B preloading A and C preloading B."""
    return ScenarioRegistry(chain_descriptors).seal()


@pytest.fixture
def chain_executor(
    chain_registry: ScenarioRegistry, store: SnapshotStore, dataset: DatabaseDataSet
) -> ScenarioExecutor:
    return ScenarioExecutor(chain_registry, store, dataset)


# =============================================================================
# Snapshot fixtures
# =============================================================================


@pytest.fixture
def sample_tables() -> list[TableSection]:
    """Role and user sections with non-JSON-native values."""
    return [
        TableSection(
            "role",
            ("id", "name", "description"),
            [(uuid.UUID(int=1), "admin", None), (uuid.UUID(int=2), "member", "Members")],
        ),
        TableSection(
            "app_user",
            ("id", "email", "full_name", "role_id", "created_at"),
            [(uuid.UUID(int=3), "a@example.com", "Ann", uuid.UUID(int=1), SEEDED_AT)],
        ),
    ]


@pytest.fixture
def fingerprint() -> str:
    return "f" * 64
