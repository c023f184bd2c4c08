"""Build fluent assertion chains from classified legacy calls.

Each shape maps to a fixed expression template such as
``assertThat({actual}).isEqualTo({expected})``. The template is parsed
with :func:`libcst.helpers.parse_template_expression` and the original
argument sub-trees are substituted into the placeholders as-is, so
literals are never re-derived and every argument appears exactly once.

The fluent chain evaluates ``actual`` before ``expected``, the reverse
of the legacy positional call. Assertion arguments are expected to be
free of side effects, so this order change is accepted.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import libcst as cst
from libcst.helpers import parse_template_expression

from ..exceptions import TransformationError
from ..targets import DEFAULT_TARGETS, AssertionTargets
from .call_classifier import Classification, MessageStyle

logger = logging.getLogger(__name__)


class _CommentFinder(cst.CSTVisitor):
    def __init__(self) -> None:
        super().__init__()
        self.found = False

    def visit_Comment(self, node: cst.Comment) -> None:
        self.found = True


def has_argument_comments(call: cst.Call) -> bool:
    """Whether ``call`` has comments outside its argument expressions.

    Only argument values are carried into the fluent chain, so comments
    attached to commas or to the whitespace around arguments have no
    place to go.
    """
    finder = _CommentFinder()
    parts: list[object] = [call.whitespace_after_func, call.whitespace_before_args]
    for arg in call.args:
        parts.extend([arg.comma, arg.whitespace_after_star, arg.whitespace_after_arg])
    for part in parts:
        if isinstance(part, cst.CSTNode):
            part.visit(finder)
    return finder.found


@dataclass(frozen=True)
class EmittedRewrite:
    """Replacement expression plus the fluent names it needs imported."""

    replacement: cst.Call
    required_symbols: frozenset[str]


class RewriteEmitter:
    """Render a :class:`Classification` as a fluent call chain."""

    def __init__(self, targets: AssertionTargets = DEFAULT_TARGETS) -> None:
        self.targets = targets

    def template_for(self, classification: Classification) -> str:
        """Return the expression template for a classified call.

        Placeholders are ``{actual}``, ``{expected}`` and, depending on
        the shape, ``{message}`` and ``{delta}``.
        """
        t = self.targets
        shape = classification.shape
        template = f"{t.entry_point}({{actual}})"
        if shape.has_message:
            if classification.message_style is MessageStyle.LABELLED:
                template += f".{t.labelled_message_method}({{message}})"
            else:
                template += f".{t.deferred_message_method}({{message}})"
        if shape.has_tolerance:
            template += f".{t.tolerance_method}({{expected}}, {t.tolerance_wrapper}({{delta}}))"
        else:
            template += f".{t.equality_method}({{expected}})"
        return template

    def required_symbols(self, classification: Classification) -> frozenset[str]:
        if classification.shape.has_tolerance:
            return frozenset({self.targets.entry_point, self.targets.tolerance_wrapper})
        return frozenset({self.targets.entry_point})

    def emit(
        self,
        classification: Classification,
        call: cst.Call,
        config: cst.PartialParserConfig | None = None,
    ) -> EmittedRewrite:
        """Produce the replacement for ``call``.

        Args:
            classification: Result of :func:`classify` for this call.
            call: The legacy call; its arguments are spliced verbatim.
            config: Parser config of the module being rewritten.

        Returns:
            The replacement call and the symbols it requires.

        Raises:
            TransformationError: If the call's arity does not fit the shape.
        """
        if len(call.args) != classification.shape.arg_count:
            raise TransformationError(
                f"{classification.shape.value} expects {classification.shape.arg_count} arguments, "
                f"got {len(call.args)}",
                pattern_type=classification.shape.value,
                node_type="Call",
            )
        if has_argument_comments(call):
            raise TransformationError(
                "comments between the arguments would be lost",
                pattern_type=classification.shape.value,
                node_type="Call",
            )

        replacements = {slot: call.args[index].value for slot, index in classification.slots.items()}
        template = self.template_for(classification)
        if config is None:
            expression = parse_template_expression(template, **replacements)
        else:
            expression = parse_template_expression(template, config, **replacements)

        if not isinstance(expression, cst.Call):
            raise TransformationError(f"Template did not produce a call: {template}", node_type="Call")

        # Parentheses wrapped around the legacy call belong to the surrounding code.
        replacement = expression.with_changes(lpar=call.lpar, rpar=call.rpar)
        logger.debug("Emitted %s using template %s", classification.shape.value, template)
        return EmittedRewrite(replacement=replacement, required_symbols=self.required_symbols(classification))
