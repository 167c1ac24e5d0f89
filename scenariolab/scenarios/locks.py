"""Advisory per-scenario lock files.

Uses ``fcntl.flock`` so the lock is released by the kernel if the holding
process dies. A lock is re-entrant for the task (or thread, outside an event
loop) that holds it; other tasks sharing the instance wait like separate
instances and separate processes do.
"""

from __future__ import annotations

import asyncio
import fcntl
import os
import threading
import time
from pathlib import Path
from types import TracebackType
from typing import Any

from scenariolab.scenarios.exceptions import LockTimeoutError


def _current_owner() -> tuple[int, Any]:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return threading.get_ident(), task


class FileLock:
    """Exclusive advisory lock on a lock file.

    Usable as a sync (``with``) or async (``async with``) context manager. The
    async form polls with ``asyncio.sleep`` so the event loop is never blocked.
    """

    def __init__(self, path: Path, name: str, timeout: float, poll_interval: float) -> None:
        self.path = path
        self.name = name
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._fd: int | None = None
        self._depth = 0
        self._owner: tuple[int, Any] | None = None

    @property
    def is_held(self) -> bool:
        return self._depth > 0

    def _try_acquire(self) -> bool:
        owner = _current_owner()
        if self._depth:
            if owner != self._owner:
                return False
            self._depth += 1
            return True
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd
        self._depth = 1
        self._owner = owner
        return True

    def acquire(self) -> None:
        """Block until the lock is held.

        Raises:
            LockTimeoutError: If the lock is still busy after ``timeout`` seconds.
        """
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() >= deadline:
                raise LockTimeoutError(self.name, self.timeout)
            time.sleep(self.poll_interval)

    async def acquire_async(self) -> None:
        """Async variant of :meth:`acquire`."""
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() >= deadline:
                raise LockTimeoutError(self.name, self.timeout)
            await asyncio.sleep(self.poll_interval)

    def release(self) -> None:
        """Release one level of the lock; a no-op when it is not held.

        Raises:
            RuntimeError: If another task or thread holds the lock.
        """
        if not self._depth:
            return
        if _current_owner() != self._owner:
            raise RuntimeError(f"Lock '{self.name}' is held by another task")
        self._depth -= 1
        if self._depth == 0 and self._fd is not None:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            os.close(self._fd)
            self._fd = None
            self._owner = None

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    async def __aenter__(self) -> FileLock:
        await self.acquire_async()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
