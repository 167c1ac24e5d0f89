"""Scenario execution: cache lookup, transactional seeding, snapshot capture."""

from __future__ import annotations

import hashlib
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from scenariolab.core.logging import get_logger, run_context
from scenariolab.scenarios.dataset import DatabaseDataSet
from scenariolab.scenarios.exceptions import (
    CorruptSnapshotError,
    SeedFailureError,
    SnapshotNotFoundError,
    SnapshotRestoreError,
    StaleSnapshotError,
)
from scenariolab.scenarios.registry import ScenarioRegistry
from scenariolab.scenarios.resolver import DependencyResolver, ExecutionPlan, PlanStep
from scenariolab.scenarios.snapshots import (
    Snapshot,
    SnapshotStore,
    TableSection,
    encode_sections,
)
from scenariolab.scenarios.unit_of_work import SqlAlchemyUnitOfWork

logger = get_logger(__name__)


class StepState(str, Enum):
    """Per-descriptor execution state.

    ``CACHED`` and ``FAILED`` are terminal for one invocation.
    """

    PENDING = "pending"
    RESOLVING = "resolving"
    CACHE_HIT = "cache_hit"
    SEEDING = "seeding"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CACHED = "cached"
    FAILED = "failed"


@dataclass
class StepResult:
    """Outcome of one plan step.

    Attributes:
        name: Scenario name.
        state: Current (terminal once run returns) state.
        seeded: Whether the seed operation ran.
        restored: Whether this step's snapshot was written back to the database.
        duration_ms: Time spent on the step.
    """

    name: str
    state: StepState = StepState.PENDING
    seeded: bool = False
    restored: bool = False
    duration_ms: float = 0.0


@dataclass
class ExecutionContext:
    """State scoped to one executor invocation."""

    uow: SqlAlchemyUnitOfWork
    cache_dir: Path
    run_id: str
    force_rebuild: bool = False


@dataclass
class ExecutionResult:
    """Result of building a target scenario."""

    target: str
    run_id: str
    steps: list[StepResult] = field(default_factory=list)

    @property
    def plan(self) -> list[str]:
        return [step.name for step in self.steps]

    @property
    def seeded(self) -> list[str]:
        return [step.name for step in self.steps if step.seeded]

    @property
    def restored(self) -> list[str]:
        return [step.name for step in self.steps if step.restored]

    def step(self, name: str) -> StepResult:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)


class ScenarioExecutor:
    """Builds scenarios, reusing cached snapshots wherever they are still valid.

    Execution of one plan is strictly sequential. A descriptor is seeded while
    holding its snapshot lock so concurrent processes building overlapping
    plans either wait or pick up the snapshot the other one wrote.
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        store: SnapshotStore,
        dataset: DatabaseDataSet,
        resolver: DependencyResolver | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.dataset = dataset
        self.resolver = resolver or DependencyResolver(registry)
        self._schema_signature = dataset.schema_signature()

    def cache_key(self, step: PlanStep) -> str:
        """Snapshot fingerprint: the chain fingerprint salted with the schema."""
        return hashlib.sha256(
            f"{self._schema_signature}:{step.fingerprint}".encode()
        ).hexdigest()

    async def run(
        self,
        target: str,
        *,
        uow: SqlAlchemyUnitOfWork,
        force_rebuild: bool = False,
    ) -> ExecutionResult:
        """Build ``target`` and every scenario it preloads.

        Args:
            target: Name of the scenario to build.
            uow: Unit of work bound to the database being seeded.
            force_rebuild: Ignore and replace every cached snapshot in the plan.

        Returns:
            ExecutionResult with the terminal state of every plan step.

        Raises:
            UnknownScenarioError: If the target or a preload is unknown.
            CycleDetectedError: If the preload chain loops.
            SeedFailureError: If a seed operation fails (after rollback).
            SnapshotRestoreError: If a valid snapshot cannot be restored.
            LockTimeoutError: If a snapshot lock cannot be acquired.
        """
        ctx = ExecutionContext(
            uow=uow,
            cache_dir=self.store.root_dir,
            run_id=uuid.uuid4().hex[:12],
            force_rebuild=force_rebuild,
        )
        with run_context(ctx.run_id):
            return await self._run(ctx, target)

    async def _run(self, ctx: ExecutionContext, target: str) -> ExecutionResult:
        # Resolution errors surface here, before any database mutation.
        plan = self.resolver.resolve(target)
        result = ExecutionResult(
            target=target,
            run_id=ctx.run_id,
            steps=[StepResult(name=step.name) for step in plan],
        )

        logger.info(
            "scenario.run.started",
            target=target,
            plan=plan.names,
            force_rebuild=ctx.force_rebuild,
            cache_dir=str(ctx.cache_dir),
        )

        if ctx.force_rebuild:
            for step in plan:
                self.store.invalidate(step.name)
            start = 0
        else:
            start = await self._restore_deepest(ctx, plan, result)

        if start == 0:
            await self._reset(ctx, plan.steps[0].name)

        for index in range(start, len(plan)):
            await self._execute_step(ctx, plan.steps[index], result.steps[index])

        logger.info(
            "scenario.run.completed",
            target=target,
            seeded=result.seeded,
            restored=result.restored,
        )
        return result

    def _try_load(self, step: PlanStep) -> Snapshot | None:
        """Load a valid snapshot for ``step``; any invalid one counts as a miss."""
        try:
            return self.store.load(step.name, expected_fingerprint=self.cache_key(step))
        except SnapshotNotFoundError:
            return None
        except (CorruptSnapshotError, StaleSnapshotError) as e:
            logger.warning(
                "scenario.cache.invalid",
                scenario=step.name,
                reason=e.code,
                error=e.message,
            )
            self.store.invalidate(step.name)
            return None

    async def _restore_deepest(
        self, ctx: ExecutionContext, plan: ExecutionPlan, result: ExecutionResult
    ) -> int:
        """Restore the deepest valid snapshot in the plan.

        Returns:
            Index of the first step that still needs seeding.
        """
        for index in range(len(plan) - 1, -1, -1):
            step = plan.steps[index]
            result.steps[index].state = StepState.RESOLVING
            snapshot = self._try_load(step)
            if snapshot is None:
                result.steps[index].state = StepState.PENDING
                continue

            started = time.perf_counter()
            result.steps[index].state = StepState.CACHE_HIT
            await self._restore(ctx, snapshot)
            result.steps[index].restored = True
            result.steps[index].duration_ms = (time.perf_counter() - started) * 1000
            for skipped in result.steps[: index + 1]:
                skipped.state = StepState.CACHED

            logger.info(
                "scenario.cache.hit",
                scenario=step.name,
                skipped=[s.name for s in result.steps[:index]],
            )
            return index + 1

        logger.info("scenario.cache.miss", target=plan.target)
        return 0

    async def _restore(self, ctx: ExecutionContext, snapshot: Snapshot) -> None:
        uow = ctx.uow
        await uow.begin_transaction()
        try:
            await self.dataset.restore(uow.session, snapshot.tables)
            await uow.commit()
        except Exception as e:
            await uow.rollback()
            raise SnapshotRestoreError(snapshot.name, e) from e
        except BaseException:
            await uow.rollback()
            raise

    async def _reset(self, ctx: ExecutionContext, root: str) -> None:
        """Empty the tracked tables before seeding a plan from its root.

        A failure here is reported as a seed failure of the root step.
        """
        uow = ctx.uow
        await uow.begin_transaction()
        try:
            await self.dataset.clear(uow.session)
            await uow.commit()
        except Exception as e:
            await uow.rollback()
            logger.error("scenario.reset.failed", scenario=root, error=str(e))
            raise SeedFailureError(root, e) from e
        except BaseException:
            await uow.rollback()
            raise

    async def _execute_step(
        self, ctx: ExecutionContext, step: PlanStep, outcome: StepResult
    ) -> None:
        started = time.perf_counter()
        async with self.store.lock(step.name):
            outcome.state = StepState.RESOLVING
            # Another process may have built this step while we waited for the lock.
            snapshot = None if ctx.force_rebuild else self._try_load(step)
            if snapshot is not None:
                outcome.state = StepState.CACHE_HIT
                await self._restore(ctx, snapshot)
                outcome.restored = True
                outcome.state = StepState.CACHED
                outcome.duration_ms = (time.perf_counter() - started) * 1000
                logger.info("scenario.cache.hit", scenario=step.name, concurrent=True)
                return

            tables, lines = await self._seed(ctx, step, outcome)
            self.store.save(step.name, tables, self.cache_key(step), lines=lines)

        outcome.state = StepState.CACHED
        outcome.duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "scenario.seed.completed",
            scenario=step.name,
            duration_ms=round(outcome.duration_ms, 2),
        )

    async def _seed(
        self, ctx: ExecutionContext, step: PlanStep, outcome: StepResult
    ) -> tuple[list[TableSection], list[str]]:
        """Seed one descriptor inside its own transaction and capture the result.

        The capture is encoded before commit, so a value with no snapshot
        encoding fails the step like any other seed error. Cancellation and
        interrupts roll back too, then propagate unchanged.

        Returns:
            The captured sections and their encoded snapshot lines.
        """
        uow = ctx.uow
        outcome.state = StepState.SEEDING
        logger.info("scenario.seed.started", scenario=step.name)

        await uow.begin_transaction()
        try:
            await step.descriptor.scenario.seed(uow)
            tables = await self.dataset.capture(uow.session)
            lines = encode_sections(tables)
            await uow.commit()
        except BaseException as e:
            if uow.is_active_transaction():
                await uow.rollback()
            outcome.state = StepState.ROLLED_BACK
            logger.error(
                "scenario.seed.failed",
                scenario=step.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            outcome.state = StepState.FAILED
            if isinstance(e, Exception):
                raise SeedFailureError(step.name, e) from e
            raise

        outcome.seeded = True
        outcome.state = StepState.COMMITTED
        return tables, lines

    async def load(self, name: str, *, uow: SqlAlchemyUnitOfWork) -> Snapshot:
        """Restore an existing snapshot without resolving or seeding anything.

        Intended for test suites that only consume scenarios built earlier.

        Raises:
            SnapshotNotFoundError: If the scenario was never built.
            CorruptSnapshotError: If the snapshot fails verification.
            SnapshotRestoreError: If the restore fails.
        """
        snapshot = self.store.load(name)
        ctx = ExecutionContext(
            uow=uow,
            cache_dir=self.store.root_dir,
            run_id=uuid.uuid4().hex[:12],
        )
        await self._restore(ctx, snapshot)
        logger.info("scenario.loaded", scenario=name)
        return snapshot
