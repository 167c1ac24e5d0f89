"""Scenario builder CLI.

Build a scenario (and its preload chain), reusing cached snapshots.

Usage:
    # Build the Users scenario, restoring whatever is already cached
    build-scenario --name Users

    # Rebuild from scratch, replacing every snapshot in the chain
    build-scenario --name Users --force

    # Create missing tables first
    build-scenario --name Users --create-schema

    # Inspect registered scenarios and cached snapshots
    build-scenario --list
    build-scenario --status

    # Drop one snapshot, or all of them
    build-scenario --invalidate --name Roles
    build-scenario --invalidate

Exit codes: 0 success, 1 seed/resolution failure, 2 preload cycle, 130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import sys
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from scenariolab.core.config import get_settings
from scenariolab.core.database import Base, create_schema, get_engine, get_session_maker
from scenariolab.core.exceptions import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    ScenarioLabError,
    report_error,
)
from scenariolab.core.logging import configure_logging, get_logger
from scenariolab.scenarios import (
    DatabaseDataSet,
    DependencyResolver,
    ExecutionResult,
    ScenarioExecutor,
    ScenarioRegistry,
    SnapshotStore,
    SqlAlchemyUnitOfWork,
)

logger = get_logger(__name__)


def import_object(path: str) -> Any:
    """Import ``package.module:attribute``.

    Raises:
        ValueError: If the path is malformed or the attribute is missing.
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected 'package.module:attribute', got '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'") from None


def load_registry() -> ScenarioRegistry:
    """Build the process-wide registry from the configured factory."""
    settings = get_settings()
    factory = import_object(settings.scenario_registry)
    registry = factory()
    if not isinstance(registry, ScenarioRegistry):
        raise ValueError(f"'{settings.scenario_registry}' did not return a ScenarioRegistry")
    if not registry.sealed:
        registry.seal()
    return registry


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="build-scenario",
        description="Build database scenarios and cache them as snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  build-scenario --name Users
  build-scenario --name Users --force
  build-scenario --list
  build-scenario --invalidate --name Roles
        """,
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--list",
        action="store_true",
        help="List registered scenarios and their preload chains",
    )
    mode_group.add_argument(
        "--status",
        action="store_true",
        help="Show cached snapshots",
    )
    mode_group.add_argument(
        "--invalidate",
        action="store_true",
        help="Delete the snapshot of --name, or every snapshot without --name",
    )

    parser.add_argument(
        "--name",
        help="Scenario to build (required unless --list/--status/--invalidate)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore cached snapshots and reseed the whole chain",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before building",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def print_result(result: ExecutionResult) -> None:
    """Print per-step outcome of a build."""
    print(f"\nScenario '{result.target}' ready (run {result.run_id}):")
    print("-" * 50)
    for step in result.steps:
        if step.seeded:
            action = "seeded"
        elif step.restored:
            action = "restored"
        else:
            action = "skipped"
        print(f"  {step.name:<24} {step.state.value:<10} {action:<9} {step.duration_ms:>7.1f}ms")
    print("-" * 50)
    print()


def run_list(registry: ScenarioRegistry) -> int:
    """List registered scenarios."""
    resolver = DependencyResolver(registry)
    print("\nRegistered scenarios:")
    print("-" * 50)
    exit_code = EXIT_OK
    for name in registry.names():
        descriptor = registry.lookup(name)
        try:
            chain = " -> ".join(resolver.resolve(name).names)
        except ScenarioLabError as e:
            chain = f"ERROR: {e.message}"
            exit_code = e.exit_code
        print(f"  {name:<24} v{descriptor.version}  {chain}")
        if descriptor.description:
            print(f"  {'':<24}      {descriptor.description}")
    print()
    return exit_code


def run_status(store: SnapshotStore) -> int:
    """Show cached snapshots."""
    headers = store.list_headers()
    print(f"\nSnapshots in {store.root_dir}:")
    print("-" * 50)
    if not headers:
        print("  (none)")
    for header in headers:
        created = header.created_at.isoformat(timespec="seconds")
        print(f"  {header.scenario:<24} {header.checksum[:12]}  {created}")
    print()
    return EXIT_OK


def run_invalidate(
    args: argparse.Namespace,
    registry: ScenarioRegistry,
    store: SnapshotStore,
) -> int:
    """Delete one or all snapshots."""
    if args.name:
        names = [args.name]
    else:
        names = sorted(set(registry.names()) | {h.scenario for h in store.list_headers()})

    deleted = [name for name in names if store.invalidate(name)]
    print(f"Invalidated {len(deleted)} snapshot(s): {', '.join(deleted) or '-'}")
    return EXIT_OK


async def run_build(
    args: argparse.Namespace,
    registry: ScenarioRegistry,
    store: SnapshotStore,
) -> int:
    """Build the requested scenario."""
    settings = get_settings()
    engine = get_engine()
    try:
        if args.create_schema:
            await create_schema(engine)

        uow_class = import_object(settings.scenario_unit_of_work)
        executor = ScenarioExecutor(registry, store, DatabaseDataSet(Base.metadata))
        session_maker = get_session_maker(engine)

        async with session_maker() as session:
            uow: SqlAlchemyUnitOfWork = uow_class(session)
            try:
                result = await executor.run(args.name, uow=uow, force_rebuild=args.force)
            finally:
                await uow.close()
    finally:
        await engine.dispose()

    print_result(result)
    return EXIT_OK


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)

    if not (args.list or args.status or args.invalidate) and not args.name:
        # Not parser.error(): exit status 2 is reserved for preload cycles
        parser.print_usage(sys.stderr)
        print("ERROR: --name is required to build a scenario", file=sys.stderr)
        return EXIT_FAILURE

    try:
        registry = load_registry()
        store = SnapshotStore()

        if args.list:
            return run_list(registry)
        if args.status:
            return run_status(store)
        if args.invalidate:
            return run_invalidate(args, registry, store)
        return await run_build(args, registry, store)
    except ScenarioLabError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return report_error(e)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        logger.error("app.configuration_error", error=str(e))
        return EXIT_FAILURE
    except (SQLAlchemyError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        logger.error("app.environment_error", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE


def run() -> None:
    """Console-script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.warning("app.interrupted")
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
