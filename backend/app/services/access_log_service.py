"""
TaskTrack Backend — Access Log Service
========================================

What:  Owns the process-wide, append-only access-log file.
Why:   A single owner makes the file's lifecycle explicit: opened once at
       startup, shared by every request completion, closed at shutdown.
How:   aiofiles handle opened in append mode. Each completed request submits
       one pre-formatted line; the write runs as a detached asyncio task whose
       failure is reported on the tasktrack.access logger and then dropped.
Who:   Constructed by create_app(), injected into AccessLogMiddleware,
       opened/closed by the lifespan handler.

Lifecycle:
    AccessLogService(path)          → nothing touched yet
    await open()                    → mkdir -p <dir>, open <file> for append
    submit(line)  (many, concurrent)→ fire-and-forget append
    await close()                   → wait for in-flight appends, close handle

Concurrency:
    aiofiles runs each write on a worker thread, so two writes to the same
    handle could otherwise overlap. _write_lock admits one write+flush at a
    time, which keeps every line whole. Nothing on the request path ever
    awaits the lock; only the detached tasks do.

Not handled here: rotation, size limits, reading the file back.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Set, Union

import aiofiles

from app.exceptions import LogDirectoryError

logger = logging.getLogger("tasktrack.access")


def ensure_log_directory(path: Union[str, Path]) -> Path:
    """
    Create the log directory (and missing parents) if absent.

    Idempotent: an existing directory is fine.
    Raises:  LogDirectoryError for anything else (permissions, a regular file
             at that path, read-only volume).
    """
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LogDirectoryError(path=str(directory), reason=e.strerror or str(e)) from e
    return directory


class AccessLogService:
    """Append-only writer for the shared access log."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file = None
        self._write_lock: Optional[asyncio.Lock] = None
        self._pending: Set["asyncio.Task[None]"] = set()

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def pending(self) -> int:
        """Number of appends submitted but not yet finished."""
        return len(self._pending)

    async def open(self) -> None:
        """
        Prepare the directory and open the file for appending.

        Raises:
            LogDirectoryError: directory could not be created (startup-fatal)
            OSError: the file itself could not be opened
        """
        if self._file is not None:
            return
        ensure_log_directory(self.path.parent)
        self._file = await aiofiles.open(self.path, mode="a", encoding="utf-8")
        self._write_lock = asyncio.Lock()
        logger.info("Access log opened: %s", self.path.resolve())

    def submit(self, line: str) -> None:
        """
        Schedule one append without waiting for it.

        Must be called from the event loop thread. Returns immediately.
        """
        if self._file is None:
            logger.error("access log write failed: %s is not open", self.path)
            return
        # Bind the current handle so a late task hits a closed file, not None
        task = asyncio.get_running_loop().create_task(
            self._append(self._file, self._write_lock, line)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _append(self, handle, lock: asyncio.Lock, line: str) -> None:
        try:
            async with lock:
                await handle.write(line)
                await handle.flush()
        except Exception as e:
            # Detached task: this log line is its only error channel
            logger.error("access log write failed: %s", e)

    async def close(self) -> None:
        """Drain in-flight appends, then release the file handle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self._file is not None:
            handle, self._file = self._file, None
            await handle.close()
            logger.info("Access log closed: %s", self.path)
