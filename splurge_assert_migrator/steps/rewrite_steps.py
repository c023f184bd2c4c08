"""Call rewriting and import reconciliation steps.

``RewriteCallsStep`` runs the map stage and the call splice for one
module and publishes an event per matched call. ``ReconcileImportsStep``
then fixes up the module's imports in one atomic pass; if that fails the
file is reported as failed and nothing is written for it.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import time

import libcst as cst

from ..context import PipelineContext
from ..events import CallRewrittenEvent, CallSkippedEvent, ErrorEvent, EventBus
from ..exceptions import ImportReconciliationError
from ..pipeline import Step
from ..result import Result
from ..transformers.assert_equals_transformer import AssertEqualsRewriter, RewriteOutcome
from ..type_oracle import OracleFactory


class RewriteCallsStep(Step[cst.Module, RewriteOutcome]):
    """Replace every supported legacy call with its fluent form."""

    def __init__(self, name: str, event_bus: EventBus, oracle_factory: OracleFactory | None = None) -> None:
        super().__init__(name, event_bus)
        self.oracle_factory = oracle_factory

    def execute(self, context: PipelineContext, module: cst.Module) -> Result[RewriteOutcome]:
        rewriter = AssertEqualsRewriter(context.config, self.oracle_factory)
        outcome = rewriter.rewrite_calls(module)

        for planned in outcome.rewritten:
            style = planned.classification.message_style
            self.event_bus.publish(
                CallRewrittenEvent(
                    timestamp=time.time(),
                    run_id=context.run_id,
                    context=context,
                    position=str(planned.site.position) if planned.site.position else None,
                    shape=planned.classification.shape.value,
                    message_style=style.value if style else None,
                )
            )
        for skipped in outcome.skipped:
            self.event_bus.publish(
                CallSkippedEvent(
                    timestamp=time.time(),
                    run_id=context.run_id,
                    context=context,
                    position=str(skipped.site.position) if skipped.site.position else None,
                    reason=skipped.reason,
                )
            )

        return Result.success(
            outcome,
            metadata={"calls_rewritten": len(outcome.rewritten), "calls_skipped": len(outcome.skipped)},
        )


class ReconcileImportsStep(Step[RewriteOutcome, RewriteOutcome]):
    """Add the fluent imports and drop legacy imports nothing uses any more."""

    def execute(self, context: PipelineContext, outcome: RewriteOutcome) -> Result[RewriteOutcome]:
        rewriter = AssertEqualsRewriter(context.config)
        try:
            reconciled = rewriter.reconcile_imports(outcome)
        except ImportReconciliationError as e:
            self.event_bus.publish(
                ErrorEvent(
                    timestamp=time.time(),
                    run_id=context.run_id,
                    context=context,
                    error=e,
                    error_type=type(e).__name__,
                    component=self.name,
                )
            )
            return Result.failure(e, {"source_file": context.source_file})

        return Result.success(
            reconciled,
            metadata={"import_edits": [f"{e.kind.value}: {e.describe()}" for e in reconciled.import_edits]},
        )
