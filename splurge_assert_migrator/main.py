"""Programmatic API for splurge_assert_migrator.

This module exposes two entry points: ``migrate`` for files and
directories on disk, delegating to ``MigrationOrchestrator``, and
``migrate_source`` for source text held in memory.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .context import MigrationConfig
from .events import EventBus
from .migration_orchestrator import MigrationOrchestrator
from .result import Result
from .transformers.assert_equals_transformer import migrate_source
from .type_oracle import OracleFactory

__all__ = ["migrate", "migrate_source"]


def migrate(
    source_files: Iterable[str] | str,
    config: MigrationConfig | None = None,
    oracle_factory: OracleFactory | None = None,
    event_bus: EventBus | None = None,
) -> Result[list[str]]:
    """Migrate one or more files or directories.

    Args:
        source_files: Iterable of paths (or a single path string).
            Directories are searched with the configured file patterns.
        config: Optional ``MigrationConfig`` to control migration behavior.
        oracle_factory: Optional type oracle factory.
        event_bus: Optional event bus for observing the run.

    Returns:
        ``Result`` containing the list of target paths. Dry runs also
        carry ``generated_code``, a mapping of target path to code.
    """
    files = [source_files] if isinstance(source_files, str) else list(source_files)

    if config is None:
        config = MigrationConfig()

    logging.getLogger(__package__).setLevel(config.log_level)

    orchestrator = MigrationOrchestrator(event_bus, oracle_factory)

    expanded: list[str] = []
    for src in files:
        if Path(src).is_dir():
            expanded.extend(orchestrator.discover_files(src, config))
        else:
            expanded.append(src)

    result = orchestrator.migrate_files(expanded, config)
    if not result.is_ok() or not config.dry_run:
        return result

    generated: dict[str, str] = {}
    for file_result in (result.metadata or {}).get("file_results", {}).values():
        code = (file_result.metadata or {}).get("generated_code")
        if code is not None and file_result.data is not None:
            generated[str(file_result.data)] = code
    return Result(
        status=result.status,
        data=result.data,
        warnings=result.warnings,
        metadata={**(result.metadata or {}), "generated_code": generated},
    )
