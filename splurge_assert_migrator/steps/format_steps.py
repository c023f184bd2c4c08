"""Formatting steps used by the migration pipeline.

This module exposes pipeline steps that format and validate the generated
Python code. Formatting uses the programmatic APIs of ``isort`` and
``black`` and is off unless ``format_output`` is set, since reformatting
would touch lines the migration never changed.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import black
import isort
import libcst as cst
from isort.exceptions import ISortError

from ..context import MigrationConfig, PipelineContext
from ..exceptions import TransformationValidationError
from ..pipeline import Step
from ..result import Result


class FormatCodeStep(Step[str, str]):
    """Format generated code using isort and black programmatic APIs."""

    def execute(self, context: PipelineContext, code: str) -> Result[str]:
        """Format Python source code.

        Returns:
            A :class:`Result` containing the formatted code, the input
            unchanged when formatting is disabled, or a warning result
            carrying the original code when formatting fails.
        """
        if not context.should_format_code():
            return Result.success(code, metadata={"formatted": False})

        try:
            formatted_code = self._apply_isort(code, context.config)
            formatted_code = self._apply_black(formatted_code, context.config)
        except (black.InvalidInput, ISortError, ValueError) as e:
            return Result.warning(code, [f"Code formatting failed: {e}"], metadata={"formatting_failed": True})

        return Result.success(
            formatted_code,
            metadata={
                "formatted": True,
                "original_lines": len(code.splitlines()),
                "formatted_lines": len(formatted_code.splitlines()),
            },
        )

    def _apply_isort(self, code: str, config: MigrationConfig) -> str:
        settings = isort.Config(
            profile="black",
            line_length=config.line_length or 120,
            known_third_party=[config.targets.fluent_type.split(".")[0]],
        )
        return isort.code(code, config=settings)

    def _apply_black(self, code: str, config: MigrationConfig) -> str:
        try:
            return black.format_str(code, mode=black.Mode(line_length=config.line_length or 120))
        except black.NothingChanged:
            return code


class ValidateGeneratedCodeStep(Step[str, str]):
    """Re-parse the generated code with libcst before it is written."""

    def execute(self, context: PipelineContext, code: str) -> Result[str]:
        try:
            cst.parse_module(code)
        except cst.ParserSyntaxError as e:
            error = TransformationValidationError(f"Generated code for {context.source_file} does not parse: {e}")
            return Result.failure(error, {"source_file": context.source_file})
        return Result.success(code)
