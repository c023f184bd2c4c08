"""Collector job for parsing and rewriting one source file.

This job performs the migration proper:

- Parse the Python source into a ``libcst`` module
- Rewrite every supported legacy call to its fluent form
- Reconcile the module's imports
- Generate the new source text for the formatting and output jobs

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import logging
from typing import Any

from ..context import PipelineContext
from ..events import EventBus
from ..pipeline import Job, Task
from ..result import Result
from ..steps import GenerateCodeStep, ParseSourceStep, ReconcileImportsStep, RewriteCallsStep
from ..type_oracle import OracleFactory


class CollectorJob(Job[str, str]):
    """Turn source text into migrated source text.

    Args:
        event_bus: Event bus used for publishing pipeline events.
        oracle_factory: Optional type oracle factory passed to the rewrite
            step; the local libcst oracle is used when omitted.
    """

    def __init__(self, event_bus: EventBus, oracle_factory: OracleFactory | None = None):
        super().__init__("collector", [self._create_rewrite_task(event_bus, oracle_factory)], event_bus)
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    def _create_rewrite_task(self, event_bus: EventBus, oracle_factory: OracleFactory | None) -> Task[str, str]:
        steps: list[Any] = [
            ParseSourceStep("parse_source", event_bus),
            RewriteCallsStep("rewrite_calls", event_bus, oracle_factory),
            ReconcileImportsStep("reconcile_imports", event_bus),
            GenerateCodeStep("generate_code", event_bus),
        ]
        return Task("rewrite", steps, event_bus)

    def execute(self, context: PipelineContext, initial_input: Any = None) -> Result[str]:
        """Run the collector job.

        Args:
            context: Pipeline execution context.
            initial_input: Source text of ``context.source_file``.

        Returns:
            A :class:`Result` containing the generated source code on
            success or a failure result with the exception.
        """
        if not isinstance(initial_input, str):
            return Result.failure(TypeError(f"Collector job expects source text for {context.source_file}"))

        self._logger.debug(f"Starting collection job for {context.source_file}")
        result = super().execute(context, initial_input)

        if result.is_error():
            self._logger.error(f"Collection job failed for {context.source_file}: {result.error}")
        return result
