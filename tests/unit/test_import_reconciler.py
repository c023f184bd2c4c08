"""Tests for planning and applying per-file import edits."""

import libcst as cst
import pytest
from libcst.codemod.visitors import AddImportsVisitor
from libcst.metadata import MetadataWrapper

from splurge_assert_migrator.exceptions import ImportReconciliationError
from splurge_assert_migrator.targets import AssertionTargets
from splurge_assert_migrator.transformers.import_reconciler import (
    ImportEdit,
    ImportEditKind,
    ImportReconciler,
    gather_imports,
)
from tests.test_utils import imported_names

ADD = ImportEditKind.ADD
REMOVE = ImportEditKind.REMOVE


def test_gather_imports_covers_every_form():
    module = cst.parse_module(
        "import os\n"
        "import numpy as np\n"
        "from junit.Assertions import assertEquals\n"
        "from junit.Assertions import assertEquals as eq\n"
        "from assertj.Assertions import *\n"
        "from . import sibling\n"
    )
    assert gather_imports(module) == {
        ("os", None, None),
        ("numpy", None, "np"),
        ("junit.Assertions", "assertEquals", None),
        ("junit.Assertions", "assertEquals", "eq"),
        ("assertj.Assertions", "*", None),
    }


class TestPlan:
    def test_adds_required_symbols_sorted_and_deduplicated(self):
        edits = ImportReconciler().plan(["within", "assertThat", "assertThat"], cst.parse_module("x = 1\n"))
        assert edits == [
            ImportEdit(ADD, "assertj.Assertions", "assertThat"),
            ImportEdit(ADD, "assertj.Assertions", "within"),
        ]

    def test_removes_every_legacy_form_present(self):
        module = cst.parse_module(
            "import junit.Assertions\n"
            "from junit import Assertions\n"
            "from junit.Assertions import assertEquals as eq\n"
            "from junit.Assertions import assertTrue\n"
        )
        edits = ImportReconciler().plan({"assertThat"}, module)
        removals = [e for e in edits if e.kind is REMOVE]
        assert removals == [
            ImportEdit(REMOVE, "junit", "Assertions"),
            ImportEdit(REMOVE, "junit.Assertions", None),
            ImportEdit(REMOVE, "junit.Assertions", "assertEquals", "eq"),
        ]

    def test_star_imports_are_left_alone(self):
        module = cst.parse_module("from junit.Assertions import *\n")
        assert ImportReconciler().plan(set(), module) == []

    def test_edits_are_hashable_and_ordered(self):
        a = ImportEdit(ADD, "m", "x")
        assert {a, ImportEdit(ADD, "m", "x")} == {a}
        assert ImportEdit(ADD, "z") < ImportEdit(REMOVE, "a")
        assert a.describe() == "from m import x"
        assert ImportEdit(REMOVE, "m", None, "alias").describe() == "import m as alias"


class TestApply:
    def reconcile(self, code: str, symbols=("assertThat",)) -> tuple[str, object]:
        module = cst.parse_module(code)
        reconciler = ImportReconciler()
        outcome = reconciler.apply(module, reconciler.plan(symbols, module))
        return outcome.module.code, outcome

    def test_swaps_unused_legacy_import(self):
        code, outcome = self.reconcile("from junit.Assertions import assertEquals\n\nassertThat(x).isEqualTo(1)\n")
        assert imported_names(code) == {"assertj.Assertions.assertThat"}
        assert [e.describe() for e in outcome.added] == ["from assertj.Assertions import assertThat"]
        assert [e.describe() for e in outcome.removed] == ["from junit.Assertions import assertEquals"]
        assert outcome.changed

    def test_keeps_legacy_import_while_still_referenced(self):
        code, outcome = self.reconcile(
            "from junit.Assertions import assertEquals\n\nassertThat(x).isEqualTo(1)\nassertEquals(1, 2, 3, 4, 5)\n"
        )
        assert imported_names(code) == {"junit.Assertions.assertEquals", "assertj.Assertions.assertThat"}
        assert outcome.removed == ()

    def test_existing_and_star_fluent_imports_are_not_duplicated(self):
        code, outcome = self.reconcile("from assertj.Assertions import assertThat\n\nassertThat(x).isEqualTo(1)\n")
        assert code.count("import assertThat") == 1
        assert outcome.added == ()

        star = "from assertj.Assertions import *\n\nassertThat(x).isCloseTo(1.0, within(0.1))\n"
        code, outcome = self.reconcile(star, ("assertThat", "within"))
        assert code == star
        assert not outcome.changed

    def test_merges_into_existing_fluent_import(self):
        source = "from assertj.Assertions import within\n\nassertThat(x).isCloseTo(1.0, within(0.1))\n"
        code, _ = self.reconcile(source, ("assertThat", "within"))
        assert code.startswith("from assertj.Assertions import assertThat, within\n")

    def test_module_style_import_removed_when_unused(self):
        code, _ = self.reconcile("from junit import Assertions\n\nassertThat(x).isEqualTo(1)\n")
        assert "junit" not in code

    def test_imports_placed_after_docstring_and_future(self):
        code, _ = self.reconcile('"""Doc."""\nfrom __future__ import annotations\n\nassertThat(x).isEqualTo(1)\n')
        lines = code.splitlines()
        assert lines[0] == '"""Doc."""'
        assert lines.index("from __future__ import annotations") < lines.index(
            "from assertj.Assertions import assertThat"
        )

    def test_no_edits_returns_module_untouched(self):
        module = cst.parse_module("x = 1\n")
        outcome = ImportReconciler().apply(module, [])
        assert outcome.module is module
        assert not outcome.changed

    def test_failure_is_atomic_and_wrapped(self, monkeypatch):
        def boom(self, module):
            raise RuntimeError("import table broken")

        monkeypatch.setattr(AddImportsVisitor, "transform_module", boom)
        module = cst.parse_module("from junit.Assertions import assertEquals\nassertThat(x)\n")
        reconciler = ImportReconciler()
        with pytest.raises(ImportReconciliationError) as exc_info:
            reconciler.apply(module, reconciler.plan({"assertThat"}, module))
        assert "import table broken" in str(exc_info.value)
        assert exc_info.value.details["module"] == "assertj.Assertions"
        assert module.code == "from junit.Assertions import assertEquals\nassertThat(x)\n"


class TestConflictingBindings:
    SYMBOLS = {"assertThat", "within"}

    def conflicts(self, code: str) -> dict[str, str]:
        return ImportReconciler().conflicting_bindings(MetadataWrapper(cst.parse_module(code)), self.SYMBOLS)

    def test_unbound_names_do_not_conflict(self):
        assert self.conflicts("from junit.Assertions import assertEquals\nx = 1\n") == {}

    def test_fluent_imports_do_not_conflict(self):
        assert self.conflicts("from assertj.Assertions import assertThat, within\n") == {}
        assert self.conflicts("from assertj.Assertions import *\n") == {}

    def test_import_from_another_module_conflicts(self):
        assert self.conflicts("from hamcrest import assertThat\n") == {"assertThat": "imported from hamcrest"}

    def test_renamed_fluent_import_conflicts(self):
        code = "from assertj.Assertions import assertThat\nfrom assertj.Assertions import isCloseTo as within\n"
        assert self.conflicts(code) == {"within": "imported from assertj.Assertions"}

    def test_assignments_and_definitions_conflict(self):
        code = "within = 3\n\ndef test():\n    def assertThat(x):\n        return x\n"
        assert self.conflicts(code) == {
            "within": "assigned in this file",
            "assertThat": "assigned in this file",
        }

    def test_custom_fluent_type(self):
        reconciler = ImportReconciler(AssertionTargets(fluent_type="fluent.api"))
        wrapper = MetadataWrapper(cst.parse_module("from assertj.Assertions import assertThat\n"))
        assert reconciler.conflicting_bindings(wrapper, {"assertThat"}) == {
            "assertThat": "imported from assertj.Assertions"
        }
