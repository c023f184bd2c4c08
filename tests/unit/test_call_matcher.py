import libcst as cst
import pytest
from libcst.metadata import QualifiedName, QualifiedNameProvider, QualifiedNameSource

from splurge_assert_migrator.targets import AssertionTargets
from splurge_assert_migrator.transformers.call_matcher import CallMatcher
from tests.test_utils import wrap


def matched_calls(code: str, matcher: CallMatcher | None = None) -> list[str]:
    matcher = matcher or CallMatcher()
    wrapper = wrap(code)
    found: list[str] = []

    class _Visitor(cst.CSTVisitor):
        METADATA_DEPENDENCIES = (QualifiedNameProvider,)

        def visit_Call(self, node: cst.Call) -> None:
            if matcher.matches(node, self.get_metadata(QualifiedNameProvider, node.func, set())):
                found.append(wrapper.module.code_for_node(node))

    wrapper.visit(_Visitor())
    return found


@pytest.mark.parametrize(
    "code",
    [
        "from junit.Assertions import assertEquals\nassertEquals(1, x)\n",
        "from junit.Assertions import assertEquals as eq\neq(1, x)\n",
        "from junit import Assertions\nAssertions.assertEquals(1, x)\n",
        "import junit.Assertions\njunit.Assertions.assertEquals(1, x)\n",
        "from junit import Assertions as A\nA.assertEquals(1, x)\n",
    ],
)
def test_import_forms_resolve_to_the_legacy_function(code):
    assert len(matched_calls(code)) == 1


def test_match_ignores_arity_and_argument_kinds():
    code = """
from junit.Assertions import assertEquals
assertEquals()
assertEquals(1, 2, 3, 4, 5)
assertEquals(expected=1, actual=2)
"""
    assert len(matched_calls(code)) == 3


@pytest.mark.parametrize(
    "code",
    [
        "self.assertEquals(1, x)\n",
        "assertEquals(1, x)\n",
        "from other.Assertions import assertEquals\nassertEquals(1, x)\n",
        "from junit.Assertions import assertSame\nassertSame(1, x)\n",
        "def assertEquals(a, b):\n    pass\nassertEquals(1, x)\n",
    ],
)
def test_same_name_on_other_declaring_type_is_not_matched(code):
    assert matched_calls(code) == []


def test_custom_table():
    matcher = CallMatcher(AssertionTargets(legacy_type="hamcrest.legacy", legacy_method="assert_equal"))
    code = "from hamcrest.legacy import assert_equal\nassert_equal(1, x)\n"
    assert matched_calls(code, matcher) == ["assert_equal(1, x)"]


def test_matches_never_raises_on_odd_input():
    matcher = CallMatcher()
    legacy = {QualifiedName("junit.Assertions.assertEquals", QualifiedNameSource.IMPORT)}
    assert matcher.matches(cst.Name("x"), legacy) is False
    assert matcher.matches(cst.parse_expression("f()"), None) is False
    assert matcher.matches(cst.parse_expression("f()"), set()) is False
    assert matcher.matches(cst.parse_expression("f()"), legacy) is True


@pytest.mark.parametrize(
    "call,plain",
    [
        ("f(1, 2)", True),
        ("f()", True),
        ("f(1, actual=2)", False),
        ("f(*args)", False),
        ("f(1, **kwargs)", False),
    ],
)
def test_has_plain_arguments(call, plain):
    node = cst.parse_expression(call)
    assert isinstance(node, cst.Call)
    assert CallMatcher().has_plain_arguments(node) is plain
