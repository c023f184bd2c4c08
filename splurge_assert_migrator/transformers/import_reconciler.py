"""Import-related libcst helpers.

After the calls in a file have been rewritten the fluent names they use
must be importable and the legacy imports that nothing references any
more should go away. Both halves are delegated to libcst's codemod
visitors (:class:`AddImportsVisitor` and :class:`RemoveImportsVisitor`)
which already know how to place new imports after docstrings and
``__future__`` lines, skip names that are already importable, and leave
imports that are still in use alone.

The reconciler works in two phases so callers can report what it will do
before doing it: :meth:`ImportReconciler.plan` returns a list of
:class:`ImportEdit` records, :meth:`ImportReconciler.apply` performs them
on a module and returns a new module. Either every edit lands or
:class:`ImportReconciliationError` is raised and the input module is
left as it was.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from enum import Enum

import libcst as cst
from libcst.codemod import CodemodContext
from libcst.codemod.visitors import AddImportsVisitor, GatherImportsVisitor, RemoveImportsVisitor
from libcst.metadata import BaseAssignment, ImportAssignment, MetadataWrapper, Scope, ScopeProvider

from ..exceptions import ImportReconciliationError
from ..targets import DEFAULT_TARGETS, AssertionTargets

logger = logging.getLogger(__name__)


class ImportEditKind(Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class ImportEdit:
    """One import to add or remove.

    ``obj`` is None for a plain ``import module`` statement. ``asname``
    is only set when an existing aliased import is being removed.
    """

    kind: ImportEditKind
    module: str
    obj: str | None = None
    asname: str | None = None

    def describe(self) -> str:
        if self.obj is None:
            text = f"import {self.module}"
        else:
            text = f"from {self.module} import {self.obj}"
        if self.asname:
            text += f" as {self.asname}"
        return text

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ImportEdit):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def _sort_key(self) -> tuple[str, str, str, str]:
        return (self.kind.value, self.module, self.obj or "", self.asname or "")


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Module after reconciliation and the edits that actually changed it."""

    module: cst.Module
    added: tuple[ImportEdit, ...]
    removed: tuple[ImportEdit, ...]

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


ImportEntry = tuple[str, str | None, str | None]


def gather_imports(module: cst.Module) -> set[ImportEntry]:
    """Return ``(module, obj, asname)`` for every absolute import in ``module``.

    ``obj`` is None for ``import x`` statements and ``"*"`` for star
    imports. Relative imports are not resolvable without a package name
    and are omitted.
    """
    visitor = GatherImportsVisitor(CodemodContext())
    module.visit(visitor)

    entries: set[ImportEntry] = set()
    for name in visitor.module_imports:
        entries.add((name, None, None))
    for name, alias in visitor.module_aliases.items():
        entries.add((name, None, alias))
    for mod, objects in visitor.object_mapping.items():
        for obj in objects:
            entries.add((mod, obj, None))
    for mod, pairs in visitor.alias_mapping.items():
        for obj, alias in pairs:
            entries.add((mod, obj, alias))
    return entries


class _ScopeGatherer(cst.CSTVisitor):
    """Collect every lexical scope of a module, outermost first."""

    METADATA_DEPENDENCIES = (ScopeProvider,)

    def __init__(self) -> None:
        super().__init__()
        self.scopes: dict[int, Scope] = {}

    def on_visit(self, node: cst.CSTNode) -> bool:
        scope = self.get_metadata(ScopeProvider, node, None)
        if scope is not None:
            self.scopes.setdefault(id(scope), scope)
        return super().on_visit(node)


class ImportReconciler:
    """Plan and apply the per-file import fix-up for one migration table."""

    def __init__(self, targets: AssertionTargets = DEFAULT_TARGETS) -> None:
        self.targets = targets

    def _legacy_forms(self) -> set[tuple[str, str | None]]:
        """Every ``(module, obj)`` pair that brings the legacy function into scope."""
        t = self.targets
        forms: set[tuple[str, str | None]] = {(t.legacy_type, t.legacy_method), (t.legacy_type, None)}
        if t.legacy_parent is not None:
            forms.add((t.legacy_parent, t.legacy_leaf))
        return forms

    def _is_fluent_import(self, assignment: BaseAssignment, symbol: str) -> bool:
        """Whether ``assignment`` is ``from <fluent_type> import <symbol>``."""
        if not isinstance(assignment, ImportAssignment) or not isinstance(assignment.node, cst.ImportFrom):
            return False
        if assignment.get_module_name_for_import() != self.targets.fluent_type:
            return False
        names = assignment.node.names
        if isinstance(names, cst.ImportStar):
            return False
        return any(alias.evaluated_name == symbol and alias.evaluated_alias in (None, symbol) for alias in names)

    def conflicting_bindings(self, wrapper: MetadataWrapper, symbols: Collection[str]) -> dict[str, str]:
        """Find fluent names that the file already binds to something else.

        Adding ``from <fluent_type> import <symbol>`` to such a file would
        shadow, or be shadowed by, the existing binding.

        Returns:
            A mapping of each conflicting symbol to a short description of
            what it is bound to.
        """
        gatherer = _ScopeGatherer()
        wrapper.visit(gatherer)
        conflicts: dict[str, str] = {}
        for scope in gatherer.scopes.values():
            for symbol in symbols:
                if symbol in conflicts:
                    continue
                for assignment in scope.assignments[symbol]:
                    if self._is_fluent_import(assignment, symbol):
                        continue
                    if isinstance(assignment, ImportAssignment):
                        conflicts[symbol] = f"imported from {assignment.get_module_name_for_import() or 'a module'}"
                    else:
                        conflicts[symbol] = "assigned in this file"
                    break
        return conflicts

    def plan(self, required_symbols: Iterable[str], module: cst.Module) -> list[ImportEdit]:
        """Return the de-duplicated, ordered edits for ``module``.

        Args:
            required_symbols: Fluent names the rewritten calls reference.
            module: Module whose existing imports decide the removals.

        Returns:
            ADD edits for each required name, then REMOVE edits for each
            legacy import currently present. Removals are conditional:
            :meth:`apply` only drops an import once nothing uses it.
        """
        edits: set[ImportEdit] = {
            ImportEdit(ImportEditKind.ADD, self.targets.fluent_type, symbol) for symbol in required_symbols
        }

        legacy_forms = self._legacy_forms()
        for mod, obj, alias in gather_imports(module):
            if obj == "*":
                continue
            if (mod, obj) in legacy_forms:
                edits.add(ImportEdit(ImportEditKind.REMOVE, mod, obj, alias))

        return sorted(edits)

    def apply(self, module: cst.Module, edits: Iterable[ImportEdit]) -> ReconciliationOutcome:
        """Apply ``edits`` to ``module`` as one unit.

        Raises:
            ImportReconciliationError: If libcst fails on any edit. No
                partial result is returned in that case.
        """
        edits = list(edits)
        if not edits:
            return ReconciliationOutcome(module=module, added=(), removed=())

        context = CodemodContext()
        for edit in edits:
            if edit.kind is ImportEditKind.ADD:
                AddImportsVisitor.add_needed_import(context, edit.module, edit.obj)
            else:
                RemoveImportsVisitor.remove_unused_import(context, edit.module, edit.obj, edit.asname)

        before = gather_imports(module)
        try:
            updated = AddImportsVisitor(context).transform_module(module)
            updated = RemoveImportsVisitor(context).transform_module(updated)
        except Exception as e:
            logger.error("Import reconciliation failed: %s", e)
            raise ImportReconciliationError(f"Failed to reconcile imports: {e}", self.targets.fluent_type) from e
        after = gather_imports(updated)

        added = tuple(
            e for e in edits if e.kind is ImportEditKind.ADD and (e.module, e.obj, None) in after - before
        )
        removed = tuple(
            e for e in edits if e.kind is ImportEditKind.REMOVE and (e.module, e.obj, e.asname) in before - after
        )
        for edit in added + removed:
            logger.debug("Import %s: %s", edit.kind.value, edit.describe())
        return ReconciliationOutcome(module=updated, added=added, removed=removed)
