"""Output job for writing migrated files to disk.

This job handles the final phase of the pipeline: backing up the
original when it is about to change and writing the migrated code to the
target file.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import dataclasses
import logging
from typing import Any

from ..context import PipelineContext
from ..events import EventBus
from ..helpers.path_utils import PathValidationError, create_backup
from ..pipeline import Job, Task
from ..result import Result
from ..steps import WriteOutputStep


class OutputJob(Job[str, str]):
    """Write migrated files to the filesystem."""

    def __init__(self, event_bus: EventBus):
        super().__init__("output", [self._create_output_task(event_bus)], event_bus)
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    def _create_output_task(self, event_bus: EventBus) -> Task[Any, Any]:
        steps: list[Any] = [WriteOutputStep("write_output", event_bus)]
        return Task("output", steps, event_bus)

    def execute(self, context: PipelineContext, initial_input: Any = None) -> Result[str]:
        """Back up the source if it will change, then write the output.

        Returns:
            A :class:`Result` containing the target path on success or a
            failure result when the write fails.
        """
        config = context.config
        changed = initial_input != context.metadata.get("original_code")
        backup_file = None

        if config.backup_originals and not config.dry_run and changed:
            try:
                backup_file = create_backup(context.source_file, config.backup_root, config.io_retries)
            except (OSError, PathValidationError) as e:
                # Without a backup the original must not be overwritten.
                self._logger.error(f"Failed to create backup for {context.source_file}: {e}")
                return Result.failure(e, {"source_file": context.source_file})
        else:
            self._logger.debug(
                f"Skipping backup: dry_run={config.dry_run}, backup={config.backup_originals}, changed={changed}"
            )

        result = super().execute(context, initial_input)

        if result.is_error():
            self._logger.error(f"Output job failed for {context.target_file}: {result.error}")
        elif config.dry_run:
            self._logger.info(f"Dry-run: would write output to {context.target_file}")

        if backup_file is not None and result.is_ok():
            return dataclasses.replace(result, metadata={**(result.metadata or {}), "backup_file": str(backup_file)})
        return result
