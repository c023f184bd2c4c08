"""Rewrite legacy ``assertEquals`` calls into fluent assertion chains.

The work for one file is split into two stages:

* **map**: a read-only visitor walks the original tree, records every
  matched call as a :class:`CallSite`, asks the type oracle about its
  arguments and classifies it. Nothing is mutated here, so one call can
  never influence how another is classified.
* **reduce**: a transformer splices the planned replacements into the
  tree in a single pass and, when at least one call changed, the import
  reconciler fixes up the file's imports.

Replacements are keyed by the identity of the original call node and are
emitted from the *updated* node, so legacy calls nested inside another
legacy call's arguments are rewritten as well.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider, QualifiedNameProvider

from ..exceptions import ParseError, TransformationError, UnsupportedCallShapeError
from ..targets import DEFAULT_TARGETS, AssertionTargets
from ..type_oracle import (
    DEFAULT_VOCABULARY,
    LocalTypeOracle,
    OracleFactory,
    TypeDescriptor,
    TypeOracle,
    TypeVocabulary,
    UnknownTypeOracle,
)
from .call_classifier import ArgumentTypeTag, Classification, classify, tag_argument
from .call_matcher import CallMatcher
from .import_reconciler import ImportEdit, ImportReconciler
from .rewrite_emitter import RewriteEmitter

if TYPE_CHECKING:
    from ..context import MigrationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class CallSite:
    """A matched legacy call captured from the original tree."""

    node: cst.Call
    arguments: tuple[cst.BaseExpression, ...]
    declaring_type: str
    position: SourceLocation | None = None


@dataclass(frozen=True)
class PlannedRewrite:
    site: CallSite
    classification: Classification
    tags: tuple[ArgumentTypeTag, ...]


@dataclass(frozen=True)
class SkippedCall:
    """A matched call that is left exactly as written."""

    site: CallSite
    reason: str


@dataclass(frozen=True)
class RewriteOutcome:
    """Result of rewriting one module.

    ``rewritten`` lists the calls that were actually replaced, in source
    order. ``import_edits`` holds the import changes that were applied and
    stays empty until imports have been reconciled.
    """

    module: cst.Module
    rewritten: tuple[PlannedRewrite, ...] = ()
    skipped: tuple[SkippedCall, ...] = ()
    import_edits: tuple[ImportEdit, ...] = ()
    required_symbols: frozenset[str] = field(default_factory=frozenset)
    imports_reconciled: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.rewritten or self.import_edits)

    def report(self) -> dict[str, object]:
        """Summarise the outcome as plain data for result metadata."""
        return {
            "rewritten": len(self.rewritten),
            "skipped": [
                {"position": str(s.site.position) if s.site.position else None, "reason": s.reason}
                for s in self.skipped
            ],
            "shapes": [p.classification.shape.value for p in self.rewritten],
            "imports": [f"{e.kind.value}: {e.describe()}" for e in self.import_edits],
        }


class CallSiteCollector(cst.CSTVisitor):
    """Collect every call whose callee resolves to the legacy function."""

    METADATA_DEPENDENCIES = (QualifiedNameProvider, PositionProvider)

    def __init__(self, matcher: CallMatcher) -> None:
        super().__init__()
        self.matcher = matcher
        self.sites: list[CallSite] = []

    def visit_Call(self, node: cst.Call) -> None:
        qualified_names = self.get_metadata(QualifiedNameProvider, node.func, set())
        if not self.matcher.matches(node, qualified_names):
            return
        code_range = self.get_metadata(PositionProvider, node, None)
        position = SourceLocation(code_range.start.line, code_range.start.column) if code_range else None
        self.sites.append(
            CallSite(
                node=node,
                arguments=tuple(arg.value for arg in node.args),
                declaring_type=self.matcher.targets.legacy_type,
                position=position,
            )
        )


class RewriteApplier(cst.CSTTransformer):
    """Splice planned replacements into the tree in one pass."""

    def __init__(
        self,
        plans: Iterable[PlannedRewrite],
        emitter: RewriteEmitter,
        config: cst.PartialParserConfig | None = None,
    ) -> None:
        super().__init__()
        self._plans = {plan.site.node: plan for plan in plans}
        self.emitter = emitter
        self.config = config
        self.applied: list[PlannedRewrite] = []
        self.failed: list[SkippedCall] = []
        self.required_symbols: set[str] = set()

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
        plan = self._plans.get(original_node)
        if plan is None:
            return updated_node
        try:
            emitted = self.emitter.emit(plan.classification, updated_node, self.config)
        except TransformationError as e:
            logger.debug("Leaving call at %s unchanged: %s", plan.site.position, e)
            self.failed.append(SkippedCall(plan.site, str(e)))
            return updated_node
        self.applied.append(plan)
        self.required_symbols.update(emitted.required_symbols)
        return emitted.replacement


class AssertEqualsRewriter:
    """Migrate every legacy call in a module to its fluent form.

    Args:
        config: Migration configuration; only the migration table and the
            type vocabulary are used here. Defaults apply when omitted.
        oracle_factory: Builds the type oracle for one file from its
            metadata wrapper and vocabulary.
    """

    def __init__(self, config: MigrationConfig | None = None, oracle_factory: OracleFactory | None = None) -> None:
        self.config = config
        self.targets: AssertionTargets = config.targets if config is not None else DEFAULT_TARGETS
        self.vocabulary: TypeVocabulary = config.vocabulary() if config is not None else DEFAULT_VOCABULARY
        self.oracle_factory: OracleFactory = oracle_factory or LocalTypeOracle
        self.matcher = CallMatcher(self.targets)
        self.emitter = RewriteEmitter(self.targets)
        self.reconciler = ImportReconciler(self.targets)

    def collect(self, wrapper: MetadataWrapper) -> list[CallSite]:
        collector = CallSiteCollector(self.matcher)
        wrapper.visit(collector)
        return collector.sites

    def plan(
        self, site: CallSite, oracle: TypeOracle, conflicts: Mapping[str, str] | None = None
    ) -> PlannedRewrite | SkippedCall:
        """Classify one call site. Never raises for an unsupported call.

        ``conflicts`` maps fluent names the file already binds to something
        else onto a description of that binding; calls needing one of them
        are skipped.
        """
        if not self.matcher.has_plain_arguments(site.node):
            return SkippedCall(site, "keyword or unpacked arguments")

        tags = tuple(tag_argument(self._resolve(oracle, arg), self.vocabulary) for arg in site.arguments)
        try:
            classification = classify(len(site.arguments), tags, self.targets)
        except UnsupportedCallShapeError as e:
            return SkippedCall(site, e.message)
        for name in sorted(self.emitter.required_symbols(classification)):
            if conflicts and name in conflicts:
                return SkippedCall(site, f"'{name}' is already bound in this file: {conflicts[name]}")
        return PlannedRewrite(site, classification, tags)

    @staticmethod
    def _resolve(oracle: TypeOracle, expression: cst.BaseExpression) -> TypeDescriptor | None:
        try:
            return oracle.resolve_type(expression)
        except Exception as e:
            logger.debug("Type oracle failed on %s: %s", type(expression).__name__, e)
            return None

    def _build_oracle(self, wrapper: MetadataWrapper) -> TypeOracle:
        """Build the file's oracle; a failing oracle leaves every argument untyped."""
        try:
            return self.oracle_factory(wrapper, self.vocabulary)
        except Exception as e:
            logger.warning("Type oracle unavailable, treating argument types as unknown: %s", e)
            return UnknownTypeOracle()

    def rewrite_calls(self, module: cst.Module) -> RewriteOutcome:
        """Run the map stage and the call splice; imports are left as they are."""
        wrapper = MetadataWrapper(module)
        sites = self.collect(wrapper)
        if not sites:
            return RewriteOutcome(module=wrapper.module)

        oracle = self._build_oracle(wrapper)
        conflicts = self.reconciler.conflicting_bindings(
            wrapper, {self.targets.entry_point, self.targets.tolerance_wrapper}
        )
        plans: list[PlannedRewrite] = []
        skipped: list[SkippedCall] = []
        for site in sites:
            planned = self.plan(site, oracle, conflicts)
            if isinstance(planned, SkippedCall):
                logger.info("Skipped %s call at %s: %s", self.targets.legacy_method, site.position, planned.reason)
                skipped.append(planned)
            else:
                plans.append(planned)

        if not plans:
            return RewriteOutcome(module=wrapper.module, skipped=tuple(skipped))

        applier = RewriteApplier(plans, self.emitter, wrapper.module.config_for_parsing)
        updated = wrapper.module.visit(applier)
        skipped.extend(applier.failed)
        # Nested calls are left first, so restore source order for the report.
        order = {plan.site.node: index for index, plan in enumerate(plans)}
        applied = sorted(applier.applied, key=lambda plan: order[plan.site.node])
        logger.debug("Rewrote %d of %d matched calls", len(applied), len(sites))
        return RewriteOutcome(
            module=updated,
            rewritten=tuple(applied),
            skipped=tuple(skipped),
            required_symbols=frozenset(applier.required_symbols),
        )

    def reconcile_imports(self, outcome: RewriteOutcome) -> RewriteOutcome:
        """Fix up imports once all calls are in place.

        Only runs when at least one call was rewritten.

        Raises:
            ImportReconciliationError: When the edits cannot all be applied.
        """
        if not outcome.rewritten or outcome.imports_reconciled:
            return outcome
        edits = self.reconciler.plan(outcome.required_symbols, outcome.module)
        result = self.reconciler.apply(outcome.module, edits)
        return dataclasses.replace(
            outcome,
            module=result.module,
            import_edits=result.added + result.removed,
            imports_reconciled=True,
        )

    def rewrite(self, module: cst.Module) -> RewriteOutcome:
        return self.reconcile_imports(self.rewrite_calls(module))


def parse_source(code: str, source_file: str = "<string>") -> cst.Module:
    """Parse ``code`` with libcst, converting syntax errors to :class:`ParseError`."""
    try:
        return cst.parse_module(code)
    except cst.ParserSyntaxError as e:
        raise ParseError(f"Failed to parse source: {e.message}", source_file, e.raw_line, e.raw_column) from e


def migrate_source(
    code: str, config: MigrationConfig | None = None, oracle_factory: OracleFactory | None = None
) -> str:
    """Migrate one module's source text and return the new text.

    Source without legacy calls is returned unchanged byte for byte, and
    running this on its own output is a no-op.

    Raises:
        ParseError: If ``code`` is not valid Python.
        ImportReconciliationError: If the import fix-up fails.
    """
    module = parse_source(code)
    outcome = AssertEqualsRewriter(config, oracle_factory).rewrite(module)
    if not outcome.changed:
        return code
    return outcome.module.code
