"""Path utilities for reading, writing and backing up migrated files.

This module provides path validation, retrying file I/O and backup path
computation. Reads and writes are retried on ``OSError`` so a transient
failure (for example a file briefly locked by an editor) does not fail a
file that would otherwise migrate cleanly.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import logging
import platform
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from ..exceptions import ValidationError

T = TypeVar("T")

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 0.05


class PathValidationError(ValidationError):
    """Raised when path validation fails."""

    def __init__(self, message: str, path: str, validation_type: str = "path"):
        self.path = path
        super().__init__(message, validation_type, field=path)


def validate_source_path(source_path: str | Path) -> Path:
    """Validate and normalize a source file path.

    Raises:
        PathValidationError: If path validation fails
    """
    path = Path(source_path)
    path_str = str(source_path)

    if not path_str.strip():
        raise PathValidationError("Source path cannot be empty", path_str, "empty_path")

    if len(path_str) > 260 and platform.system() == "Windows":
        raise PathValidationError(
            f"Path length exceeds Windows limit of 260 characters: {len(path_str)}", path_str, "path_length"
        )

    if not path.exists():
        raise PathValidationError(f"Source file not found: {path_str}", path_str, "missing")

    if not path.is_file():
        raise PathValidationError(f"Source path is not a file: {path_str}", path_str, "not_a_file")

    return path


def ensure_parent_dir(target_path: str | Path, exist_ok: bool = True) -> None:
    """Side-effect: ensure the parent directory of target_path exists."""
    path = Path(target_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=exist_ok)
    except OSError as e:
        raise PathValidationError(f"Cannot create parent directory: {e}", str(path.parent), "parent_creation") from e


def normalize_path_for_display(path: str | Path, force_posix: bool = False) -> str:
    path_obj = Path(path)

    if force_posix or platform.system() != "Windows":
        return path_obj.as_posix()
    return str(path_obj)


def with_retries(operation_name: str, path: str | Path, operation_func: Callable[[], T], retries: int) -> T:
    """Run ``operation_func``, retrying up to ``retries`` extra times on ``OSError``.

    ``FileNotFoundError`` is not retried since a missing file will not
    reappear on its own.

    Raises:
        OSError: The last error once every attempt has failed.
    """
    attempt = 0
    while True:
        try:
            return operation_func()
        except FileNotFoundError:
            raise
        except OSError as e:
            if attempt >= retries:
                logger.error(f"{operation_name} failed for {path} after {attempt + 1} attempts: {e}")
                raise
            attempt += 1
            logger.warning(f"{operation_name} failed for {path} ({e}); retry {attempt}/{retries}")
            time.sleep(RETRY_DELAY_SECONDS * attempt)


def read_source(path: str | Path, retries: int = 0) -> str:
    """Read a source file as UTF-8, keeping its newlines exactly as stored."""

    def _read() -> str:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    return with_retries("read", path, _read, retries)


def write_source(path: str | Path, code: str, retries: int = 0) -> None:
    """Write ``code`` as UTF-8 without newline translation."""

    def _write() -> None:
        ensure_parent_dir(path)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(code)

    with_retries("write", path, _write, retries)


def backup_path_for(source_file: str | Path, backup_root: str | None = None) -> Path:
    """Return where the backup of ``source_file`` goes.

    Backups sit beside the source with a ``.backup`` suffix appended, or
    inside ``backup_root`` when one is configured.
    """
    source_path = Path(source_file)
    name = f"{source_path.name}.backup"
    if backup_root:
        return Path(backup_root) / name
    return source_path.with_name(name)


def create_backup(source_file: str | Path, backup_root: str | None = None, retries: int = 0) -> Path | None:
    """Copy ``source_file`` to its backup location unless a backup already exists.

    Returns:
        The backup path, or None when an existing backup was kept.
    """
    backup_path = backup_path_for(source_file, backup_root)
    if backup_path.exists():
        logger.info(f"Backup already exists, skipping: {backup_path}")
        return None

    def _copy() -> None:
        ensure_parent_dir(backup_path)
        shutil.copy2(source_file, backup_path)

    with_retries("backup", source_file, _copy, retries)
    logger.info(f"Created backup: {backup_path}")
    return backup_path
