"""Migration table naming the legacy function and its fluent replacement.

The table is plain data: the same classifier and emitter handle any
``assertEquals``-style overload family once the qualified names and the
fluent method names are supplied here.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AssertionTargets:
    """Qualified names for one legacy-to-fluent migration.

    ``legacy_type`` is the module (or class) that declares the legacy
    function; ``fluent_type`` declares the fluent entry point and the
    tolerance wrapper. Method names must be valid, non-reserved Python
    identifiers, which is why the labelled-message method defaults to
    ``describedAs`` rather than ``as``.

    ``four_arg_message_index``/``four_arg_delta_index`` fix which of the
    trailing two positions of a four-argument call carries the message
    and which carries the tolerance.
    """

    legacy_type: str = "junit.Assertions"
    legacy_method: str = "assertEquals"

    fluent_type: str = "assertj.Assertions"
    entry_point: str = "assertThat"
    equality_method: str = "isEqualTo"
    labelled_message_method: str = "describedAs"
    deferred_message_method: str = "withFailureMessage"
    tolerance_method: str = "isCloseTo"
    tolerance_wrapper: str = "within"

    four_arg_message_index: int = 2
    four_arg_delta_index: int = 3

    @property
    def legacy_qualified_name(self) -> str:
        return f"{self.legacy_type}.{self.legacy_method}"

    @property
    def entry_point_qualified_name(self) -> str:
        return f"{self.fluent_type}.{self.entry_point}"

    @property
    def tolerance_wrapper_qualified_name(self) -> str:
        return f"{self.fluent_type}.{self.tolerance_wrapper}"

    @property
    def legacy_parent(self) -> str | None:
        """Package holding ``legacy_type``, or None for a top-level module."""
        parent, _, _ = self.legacy_type.rpartition(".")
        return parent or None

    @property
    def legacy_leaf(self) -> str:
        return self.legacy_type.rpartition(".")[2]

    def with_override(self, **kwargs: Any) -> AssertionTargets:
        return dataclasses.replace(self, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssertionTargets:
        # Unknown keys are ignored so tables written for newer versions still load.
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


DEFAULT_TARGETS = AssertionTargets()
