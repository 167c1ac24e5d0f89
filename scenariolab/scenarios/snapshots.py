"""Snapshot persistence for scenario database state.

A snapshot file is JSON Lines:

- line 1: header (format version, scenario name, chain fingerprint, checksum,
  creation time, table names);
- one line per tracked table: ``{"table", "columns", "rows"}`` with values
  encoded by :mod:`scenariolab.scenarios.codec`.

The checksum is the SHA-256 of the exact table-line bytes. Writes go to a
temporary file in the cache directory and are renamed into place, so readers
only ever see complete snapshots.

CRITICAL: Scenario names are validated to stay inside the cache root.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from scenariolab.core.config import get_settings
from scenariolab.core.logging import get_logger
from scenariolab.scenarios.codec import decode_row, encode_row
from scenariolab.scenarios.exceptions import (
    CorruptSnapshotError,
    SnapshotError,
    SnapshotNotFoundError,
    StaleSnapshotError,
)
from scenariolab.scenarios.locks import FileLock

logger = get_logger(__name__)

FORMAT_VERSION = 1
SNAPSHOT_SUFFIX = ".snapshot.jsonl"
LOCK_DIR = ".locks"


@dataclass(frozen=True)
class TableSection:
    """Content of one table: column names and rows in primary-key order."""

    name: str
    columns: tuple[str, ...]
    rows: list[tuple[Any, ...]] = field(default_factory=list)


class SnapshotHeader(BaseModel):
    """First line of every snapshot file."""

    format_version: int
    scenario: str
    fingerprint: str
    checksum: str = Field(min_length=64, max_length=64)
    created_at: datetime
    tables: list[str]


class _SectionRecord(BaseModel):
    table: str
    columns: list[str]
    rows: list[list[Any]]


@dataclass(frozen=True)
class Snapshot:
    """A loaded (verified) snapshot."""

    header: SnapshotHeader
    tables: list[TableSection]

    @property
    def name(self) -> str:
        return self.header.scenario

    @property
    def fingerprint(self) -> str:
        return self.header.fingerprint

    def table(self, name: str) -> TableSection:
        for section in self.tables:
            if section.name == name:
                return section
        raise KeyError(name)


def _encode_section(section: TableSection) -> str:
    record = {
        "table": section.name,
        "columns": list(section.columns),
        "rows": [encode_row(row) for row in section.rows],
    }
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def encode_sections(tables: Sequence[TableSection]) -> list[str]:
    """Serialize table sections to snapshot lines.

    Raises:
        TypeError: If a column value cannot be encoded.
    """
    return [_encode_section(section) for section in tables]


def compute_checksum(lines: Sequence[str]) -> str:
    """SHA-256 over the table lines exactly as they are stored."""
    sha256 = hashlib.sha256()
    for line in lines:
        sha256.update(line.encode("utf-8"))
        sha256.update(b"\n")
    return sha256.hexdigest()


class SnapshotStore:
    """Filesystem store of scenario snapshots keyed by scenario name."""

    def __init__(
        self,
        root_dir: Path | str | None = None,
        lock_timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        """Initialize with root directory.

        Args:
            root_dir: Snapshot directory. Defaults to ``SCENARIO_CACHE_DIR``.
            lock_timeout: Seconds to wait for a per-scenario lock.
            poll_interval: Seconds between lock attempts.
        """
        settings = get_settings()
        if root_dir is None:
            root_dir = settings.scenario_cache_dir
        self.root_dir = Path(root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        if lock_timeout is None:
            lock_timeout = settings.scenario_lock_timeout_seconds
        if poll_interval is None:
            poll_interval = settings.scenario_lock_poll_interval_seconds
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval
        self._locks: dict[str, FileLock] = {}

    def _resolve_path(self, relative: str, name: str) -> Path:
        """Resolve a file name under the root.

        Raises:
            SnapshotError: If the path escapes the cache root.
        """
        full_path = (self.root_dir / relative).resolve()
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(
                "snapshot.path_traversal_attempt",
                scenario=name,
                root_dir=str(self.root_dir),
            )
            raise SnapshotError(f"Invalid snapshot name: {name}", name) from None
        return full_path

    def path_for(self, name: str) -> Path:
        return self._resolve_path(f"{name}{SNAPSHOT_SUFFIX}", name)

    def lock(self, name: str) -> FileLock:
        """Per-scenario advisory lock (sync or async context manager)."""
        lock = self._locks.get(name)
        if lock is None:
            lock = FileLock(
                self._resolve_path(f"{LOCK_DIR}/{name}.lock", name),
                name=name,
                timeout=self.lock_timeout,
                poll_interval=self.poll_interval,
            )
            self._locks[name] = lock
        return lock

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def save(
        self,
        name: str,
        tables: Sequence[TableSection],
        fingerprint: str,
        lines: Sequence[str] | None = None,
    ) -> Snapshot:
        """Atomically write a snapshot.

        Args:
            name: Scenario name.
            tables: Captured table content.
            fingerprint: Chain fingerprint of the plan that produced the state.
            lines: ``tables`` already passed through :func:`encode_sections`.

        Returns:
            The snapshot as written.

        Raises:
            LockTimeoutError: If another writer holds the lock too long.
            TypeError: If a column value cannot be encoded.
        """
        dest_path = self.path_for(name)
        if lines is None:
            lines = encode_sections(tables)
        header = SnapshotHeader(
            format_version=FORMAT_VERSION,
            scenario=name,
            fingerprint=fingerprint,
            checksum=compute_checksum(lines),
            created_at=datetime.now(UTC),
            tables=[section.name for section in tables],
        )
        payload = "\n".join([header.model_dump_json(), *lines]) + "\n"

        with self.lock(name):
            fd, tmp_name = tempfile.mkstemp(dir=self.root_dir, prefix=f".{name}.", suffix=".tmp")
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, dest_path)
            except BaseException:
                tmp_path.unlink(missing_ok=True)
                raise

        logger.info(
            "snapshot.saved",
            scenario=name,
            checksum=header.checksum,
            tables=len(tables),
            rows=sum(len(section.rows) for section in tables),
            size_bytes=dest_path.stat().st_size,
        )
        return Snapshot(header=header, tables=list(tables))

    def load(self, name: str, expected_fingerprint: str | None = None) -> Snapshot:
        """Load and verify a snapshot.

        Args:
            name: Scenario name.
            expected_fingerprint: If provided, the snapshot must match it.

        Raises:
            SnapshotNotFoundError: If no snapshot exists.
            CorruptSnapshotError: If checksum, version or format validation fails.
            StaleSnapshotError: If the snapshot was built from another definition.
        """
        path = self.path_for(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            raise SnapshotNotFoundError(name) from None

        try:
            header, lines = self._parse_header(name, raw)
            actual = compute_checksum(lines)
            if actual != header.checksum:
                logger.warning(
                    "snapshot.checksum_mismatch",
                    scenario=name,
                    expected=header.checksum,
                    actual=actual,
                )
                raise CorruptSnapshotError(name, "checksum mismatch")
            tables = self._parse_sections(name, header, lines)
        except (ValueError, TypeError) as e:
            raise CorruptSnapshotError(name, str(e)) from e

        if expected_fingerprint is not None and header.fingerprint != expected_fingerprint:
            raise StaleSnapshotError(name, expected_fingerprint, header.fingerprint)

        logger.debug("snapshot.loaded", scenario=name, tables=len(tables))
        return Snapshot(header=header, tables=tables)

    def _parse_header(self, name: str, raw: bytes) -> tuple[SnapshotHeader, list[str]]:
        text = raw.decode("utf-8")
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        if not lines:
            raise CorruptSnapshotError(name, "empty file")

        data = json.loads(lines[0])
        if not isinstance(data, dict):
            raise CorruptSnapshotError(name, "header is not an object")
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise CorruptSnapshotError(name, f"unrecognized format version {version!r}")
        try:
            header = SnapshotHeader.model_validate(data)
        except ValidationError as e:
            raise CorruptSnapshotError(name, f"invalid header: {e.error_count()} error(s)") from e
        if header.scenario != name:
            raise CorruptSnapshotError(name, f"header names scenario '{header.scenario}'")
        return header, lines[1:]

    def _parse_sections(
        self, name: str, header: SnapshotHeader, lines: list[str]
    ) -> list[TableSection]:
        tables: list[TableSection] = []
        for line in lines:
            record = _SectionRecord.model_validate_json(line)
            rows = [decode_row(row) for row in record.rows]
            if any(len(row) != len(record.columns) for row in rows):
                raise CorruptSnapshotError(name, f"row width mismatch in table '{record.table}'")
            tables.append(TableSection(record.table, tuple(record.columns), rows))
        if [t.name for t in tables] != header.tables:
            raise CorruptSnapshotError(name, "table sections do not match header")
        return tables

    def invalidate(self, name: str) -> bool:
        """Delete a snapshot.

        Returns:
            True if deleted, False if not found.
        """
        path = self.path_for(name)
        with self.lock(name):
            if not path.exists():
                return False
            path.unlink()
        logger.info("snapshot.invalidated", scenario=name)
        return True

    def list_headers(self) -> list[SnapshotHeader]:
        """Headers of every readable snapshot, sorted by scenario name."""
        headers: list[SnapshotHeader] = []
        for path in sorted(self.root_dir.glob(f"*{SNAPSHOT_SUFFIX}")):
            name = path.name.removesuffix(SNAPSHOT_SUFFIX)
            try:
                header, _ = self._parse_header(name, path.read_bytes())
            except (CorruptSnapshotError, ValueError, TypeError, OSError) as e:
                logger.warning("snapshot.unreadable_header", path=str(path), error=str(e))
                continue
            headers.append(header)
        return headers
