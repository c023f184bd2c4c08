"""Parsing steps for the migration pipeline.

This module exposes pipeline steps that parse source code into a libcst
``Module`` and turn the rewritten module back into source text for the
formatting and output steps.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import libcst as cst

from ..context import PipelineContext
from ..exceptions import ParseError
from ..pipeline import Step
from ..result import Result
from ..transformers.assert_equals_transformer import RewriteOutcome, parse_source


class ParseSourceStep(Step[str, cst.Module]):
    """Parse Python source code into a ``libcst.Module``."""

    def execute(self, context: PipelineContext, source_code: str) -> Result[cst.Module]:
        """Parse source code into a ``libcst.Module``.

        Returns:
            A success :class:`Result` containing the parsed module or a
            failure result holding a :class:`ParseError` with the line and
            column of the syntax error.
        """
        try:
            return Result.success(parse_source(source_code, context.source_file))
        except ParseError as e:
            return Result.failure(e, {"source_file": context.source_file})


class GenerateCodeStep(Step[RewriteOutcome, str]):
    """Generate Python source code from a rewritten module.

    The per-file migration report is attached to the result metadata
    under ``migration_report``.
    """

    def execute(self, context: PipelineContext, outcome: RewriteOutcome) -> Result[str]:
        generated_code = outcome.module.code
        return Result.success(
            generated_code,
            metadata={"migration_report": outcome.report(), "changed": outcome.changed},
        )
