"""Output steps used by the migration pipeline.

This module contains the step that writes generated code to disk or, in
dry-run mode, hands it back to the caller in the result metadata.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from pathlib import Path

from ..context import PipelineContext
from ..helpers.path_utils import PathValidationError, write_source
from ..pipeline import Step
from ..result import Result


class WriteOutputStep(Step[str, str]):
    """Write generated code to the configured target file.

    An in-place migration that produced no change is not written, so the
    file's timestamp stays as it was. The original source is looked up
    under ``original_code`` in the context metadata.
    """

    def execute(self, context: PipelineContext, code: str) -> Result[str]:
        if context.config.dry_run:
            return Result.success(
                str(context.target_file),
                metadata={"dry_run": True, "target_file": context.target_file, "generated_code": code},
            )

        in_place = Path(context.target_file).resolve() == Path(context.source_file).resolve()
        if in_place and code == context.metadata.get("original_code"):
            return Result.success(str(context.target_file), metadata={"written": False})

        try:
            write_source(context.target_file, code, context.config.io_retries)
        except (OSError, PathValidationError) as e:
            return Result.failure(e, {"target_file": context.target_file})
        return Result.success(str(context.target_file), metadata={"written": True})
