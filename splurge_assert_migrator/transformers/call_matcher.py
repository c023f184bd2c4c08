"""Recognise invocations of the legacy assertion function.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

from collections.abc import Iterable

import libcst as cst
from libcst.metadata import QualifiedName

from ..targets import DEFAULT_TARGETS, AssertionTargets


class CallMatcher:
    """Overload-agnostic matcher for the configured legacy function.

    A call matches when its callee resolves, through the module's
    imports, to ``<legacy_type>.<legacy_method>``. Argument count and
    types are ignored here. A callee with no resolved qualified name
    (for example an attribute on ``self``) never matches.
    """

    def __init__(self, targets: AssertionTargets = DEFAULT_TARGETS) -> None:
        self.targets = targets
        self._qualified_name = targets.legacy_qualified_name

    def matches(self, call: cst.CSTNode, qualified_names: Iterable[QualifiedName] | None) -> bool:
        if not isinstance(call, cst.Call) or not qualified_names:
            return False
        return any(getattr(qn, "name", None) == self._qualified_name for qn in qualified_names)

    def has_plain_arguments(self, call: cst.Call) -> bool:
        """True when every argument is positional, so the arity is known."""
        return all(arg.keyword is None and not arg.star for arg in call.args)
