"""Main migration orchestrator that coordinates all jobs.

This module provides the high-level orchestration of the migration:
file discovery, per-file pipelines (collector, formatter, output) and
batch handling. Files are independent units of work; with
``max_concurrent_files`` above one they are migrated on a thread pool.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from .context import MigrationConfig, PipelineContext
from .detectors import LegacyCallDetector
from .events import EventBus, LoggingSubscriber
from .helpers.path_utils import PathValidationError, read_source, validate_source_path
from .jobs import CollectorJob, FormatterJob, OutputJob
from .pipeline import Pipeline
from .result import Result
from .type_oracle import OracleFactory


class MigrationOrchestrator:
    """Main orchestrator for legacy assertion migration.

    The orchestrator wires together jobs and pipelines, exposes file,
    batch and directory migration helpers, and publishes lifecycle events
    on the event bus.

    Args:
        event_bus: Optional external event bus to use. If None, creates a new one.
        oracle_factory: Optional type oracle factory used for every file.
    """

    def __init__(self, event_bus: EventBus | None = None, oracle_factory: OracleFactory | None = None) -> None:
        self.event_bus = event_bus or EventBus()
        self.logger_subscriber = LoggingSubscriber(self.event_bus)
        self._logger = logging.getLogger(__name__)

        self.collector_job = CollectorJob(self.event_bus, oracle_factory)
        self.formatter_job = FormatterJob(self.event_bus)
        self.output_job = OutputJob(self.event_bus)

        self._logger.debug("Migration orchestrator initialized")

    def migrate_file(self, source_file: str, config: MigrationConfig | None = None) -> Result[str]:
        """Migrate a single file.

        Args:
            source_file: Path to the source file.
            config: Optional ``MigrationConfig`` to control behavior.

        Returns:
            ``Result`` containing the target path on success, or a failure
            ``Result`` with diagnostic details. The metadata carries the
            ``migration_report`` and, in dry-run mode, ``generated_code``.
        """
        if config is None:
            config = MigrationConfig()

        self._logger.debug(f"Starting migration of {source_file}")

        try:
            validated_source = validate_source_path(source_file)
        except PathValidationError as e:
            return Result.failure(e, {"source_file": source_file})

        size_mb = validated_source.stat().st_size / (1024 * 1024)
        if size_mb > config.max_file_size_mb:
            return Result.skipped(
                f"File is {size_mb:.1f}MB, larger than max_file_size_mb={config.max_file_size_mb}",
                {"source_file": source_file},
            )

        try:
            source_code = read_source(validated_source, config.io_retries)
        except (OSError, UnicodeDecodeError) as e:
            self._logger.error(f"Cannot read {source_file}: {e}")
            return Result.failure(e, {"source_file": source_file})

        context = PipelineContext.create(source_file=str(validated_source), config=config)
        context = context.with_metadata("original_code", source_code)

        result = self._create_migration_pipeline().execute(context, source_code)
        if result.is_error():
            self._logger.error(f"Migration failed for {source_file}: {result.error}")
        else:
            self._logger.info(f"Migrated {source_file}")
        return result

    def migrate_files(self, source_files: Iterable[str], config: MigrationConfig | None = None) -> Result[list[str]]:
        """Migrate a batch of files.

        A failure in one file never stops the others while
        ``continue_on_error`` is set; the batch then comes back as a
        warning listing the failed files. Without it the first failure is
        returned and files not yet started are abandoned.

        Returns:
            ``Result`` containing the target paths of migrated files, in
            input order. Per-file results are under ``file_results``.
        """
        if config is None:
            config = MigrationConfig()

        files = list(dict.fromkeys(str(f) for f in source_files))
        if not files:
            return Result.success([])

        results: dict[str, Result[str]] = {}
        failure: tuple[str, Result[str]] | None = None

        if config.max_concurrent_files > 1 and len(files) > 1:
            workers = min(config.max_concurrent_files, len(files))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="migrate") as executor:
                futures = {executor.submit(self.migrate_file, f, config): f for f in files}
                for future in as_completed(futures):
                    source_file = futures[future]
                    result = future.result()
                    results[source_file] = result
                    if result.is_error() and not config.continue_on_error:
                        failure = (source_file, result)
                        for pending in futures:
                            pending.cancel()
                        break
        else:
            for source_file in files:
                result = self.migrate_file(source_file, config)
                results[source_file] = result
                if result.is_error() and not config.continue_on_error:
                    failure = (source_file, result)
                    break

        if failure is not None:
            source_file, result = failure
            return Result.failure(
                result.error or RuntimeError(f"Migration failed for {source_file}"),
                {"failed_file": source_file, "file_results": results},
            )

        return self._summarise(files, results)

    def _summarise(self, files: list[str], results: dict[str, Result[str]]) -> Result[list[str]]:
        migrated: list[str] = []
        failed: list[str] = []
        skipped: list[str] = []
        for source_file in files:
            result = results[source_file]
            if result.is_error():
                failed.append(source_file)
            elif result.is_skipped():
                skipped.append(source_file)
            else:
                migrated.append(str(result.data))

        self._logger.info(f"Migration completed: {len(migrated)} migrated, {len(failed)} failed, {len(skipped)} skipped")
        metadata: dict[str, Any] = {"file_results": results, "failed_files": failed, "skipped_files": skipped}
        if failed:
            return Result.warning(migrated, [f"Failed to migrate {len(failed)} files: {', '.join(failed)}"], metadata)
        return Result.success(migrated, metadata)

    def discover_files(self, source_dir: str | Path, config: MigrationConfig | None = None) -> list[str]:
        """Return candidate files under ``source_dir`` that import the legacy function.

        Files that cannot be read or parsed are left for the migration
        itself to report, so they are kept as candidates.
        """
        if config is None:
            config = MigrationConfig()

        root = Path(source_dir)
        candidates: set[Path] = set()
        for pattern in config.file_patterns:
            matches = root.rglob(pattern) if config.recurse_directories else root.glob(pattern)
            candidates.update(p for p in matches if p.is_file())

        detector = LegacyCallDetector(config.targets)
        selected: list[str] = []
        for path in sorted(candidates):
            try:
                if detector.may_contain_legacy_calls(path):
                    selected.append(str(path))
            except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
                self._logger.debug(f"Detector could not read {path}: {e}")
                selected.append(str(path))
        return selected

    def migrate_directory(self, source_dir: str, config: MigrationConfig | None = None) -> Result[list[str]]:
        """Migrate every file under a directory that uses the legacy function.

        Returns:
            ``Result`` containing the migrated target paths. On partial
            failures a ``warning`` result is returned with metadata
            listing failed files.
        """
        if config is None:
            config = MigrationConfig()

        source_path = Path(source_dir)
        if not source_path.is_dir():
            return Result.failure(
                PathValidationError(f"Path is not a directory: {source_dir}", str(source_dir), "not_a_directory")
            )

        self._logger.info(f"Starting migration of directory {source_dir}")
        files = self.discover_files(source_path, config)
        if not files:
            self._logger.warning(f"No files using {config.targets.legacy_qualified_name} found in {source_dir}")
            return Result.success([])

        self._logger.info(f"Found {len(files)} files to migrate")
        return self.migrate_files(files, config)

    def _create_migration_pipeline(self) -> Pipeline[str, str]:
        jobs: list[Any] = [self.collector_job, self.formatter_job, self.output_job]
        return Pipeline("migration", jobs, self.event_bus)
