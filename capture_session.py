from __future__ import annotations

import enum
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from capture_logging import get_logger

Clock = Callable[[], datetime]

MANIFEST_NAME = "run_info"
FRAME_SUFFIX = ".png"
SESSION_TIME_FORMAT = "%Y%m%dT%H%M%S"
FRAME_TIME_FORMAT = "%Y%m%dT%H%M%S.%f"

log = get_logger("capture_session")


class DirectoryState(enum.Enum):
    CREATED = "created"
    EXISTS = "exists"
    NOT_A_DIRECTORY = "not_a_directory"
    CREATE_FAILED = "create_failed"


class DirectoryError(enum.Enum):
    CONFIGURATION = "configuration"
    IO = "io"


class ManifestWriteError(RuntimeError):
    """Raised when the run manifest cannot be written."""


@dataclass(frozen=True)
class DirectoryStatus:
    path: Path
    state: DirectoryState
    message: str
    error: DirectoryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Session:
    """Directories and manifest produced when a capture run starts."""

    base: DirectoryStatus
    directory: DirectoryStatus
    manifest_path: Path
    started_at: datetime

    @property
    def session_dir(self) -> Path:
        return self.directory.path

    @property
    def ok(self) -> bool:
        return self.base.ok and self.directory.ok


def format_timestamp(moment: datetime) -> str:
    """Format a session start time, e.g. 20240102T030405."""
    return moment.strftime(SESSION_TIME_FORMAT)


def format_frame_timestamp(moment: datetime) -> str:
    """Format a frame capture time with microseconds, e.g. 20240102T030405.000123."""
    return moment.strftime(FRAME_TIME_FORMAT)


def _io_failure(path: Path, exc: OSError) -> DirectoryStatus:
    message = f"Unable to create directory: {path} ({exc.strerror or exc})"
    log.error(message)
    return DirectoryStatus(path, DirectoryState.CREATE_FAILED, message, DirectoryError.IO)


def ensure_directory(path: Path) -> DirectoryStatus:
    """Create a single directory level if missing and report what happened.

    Never raises for an unusable path: a non-directory in the way is a
    configuration error, while a path that cannot be inspected or created is
    an I/O error. Both are returned in the status so the caller can decide
    whether to carry on.
    """
    path = Path(path)
    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        mode = None
    except OSError as exc:
        return _io_failure(path, exc)

    if mode is None:
        try:
            path.mkdir()
        except OSError as exc:
            return _io_failure(path, exc)
        message = f"Created directory: {path}"
        log.info(message)
        return DirectoryStatus(path, DirectoryState.CREATED, message)

    if stat.S_ISDIR(mode):
        message = f"Directory exists: {path}"
        log.info(message)
        return DirectoryStatus(path, DirectoryState.EXISTS, message)

    message = f"Error! {path} exists, but is not a directory!"
    log.error(message)
    return DirectoryStatus(
        path, DirectoryState.NOT_A_DIRECTORY, message, DirectoryError.CONFIGURATION
    )


def write_manifest(manifest_path: Path, session_dir: Path) -> None:
    """Overwrite the manifest with the session directory path."""
    try:
        manifest_path.write_text(f"{session_dir}\n", encoding="utf-8")
    except OSError as exc:
        raise ManifestWriteError(f"Failed to write run manifest {manifest_path}: {exc}") from exc


def read_manifest(manifest_path: Path) -> Path:
    """Return the session directory recorded by the last run."""
    text = Path(manifest_path).read_text(encoding="utf-8")
    lines = text.splitlines()
    if len(lines) != 1 or not lines[0]:
        raise ValueError(f"Manifest {manifest_path} must contain exactly one path line.")
    return Path(lines[0])


def start_session(base_path: Path, *, clock: Clock = datetime.now) -> Session:
    """Prepare the dated session directory and record it in the manifest."""
    base_path = Path(base_path)
    base = ensure_directory(base_path)

    started_at = clock()
    directory = ensure_directory(base_path / format_timestamp(started_at))

    manifest_path = base_path / MANIFEST_NAME
    if base.ok and directory.ok:
        write_manifest(manifest_path, directory.path)
        log.info("Run info written to %s", manifest_path)
    else:
        log.warning("Run info not written; session directory %s is unusable", directory.path)

    return Session(
        base=base,
        directory=directory,
        manifest_path=manifest_path,
        started_at=started_at,
    )


def next_frame_path(session_dir: Path, *, clock: Clock = datetime.now) -> Path:
    """Return the destination path for a frame captured now."""
    return Path(session_dir) / f"{format_frame_timestamp(clock())}{FRAME_SUFFIX}"


def count_regular_files(directory: Path) -> int:
    """Count regular files directly inside a directory.

    Symlinks are followed; dangling ones are not counted. Entries that cannot
    be stat'ed for any other reason are logged and skipped.
    """
    count = 0
    for entry in Path(directory).iterdir():
        try:
            mode = entry.stat().st_mode
        except FileNotFoundError:
            continue
        except OSError as exc:
            log.warning("%s %s", entry.name, exc)
            continue
        if stat.S_ISREG(mode):
            count += 1
    return count


def images_per_second(count: int, elapsed_seconds: float) -> float | None:
    """Return the capture throughput, or None when no time has elapsed."""
    if count < 0:
        raise ValueError("count must be >= 0.")
    if elapsed_seconds <= 0:
        return None
    return count / elapsed_seconds
