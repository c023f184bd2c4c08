"""Choose the fluent rewrite shape for a legacy ``assertEquals`` call.

Selection is a pure function of the positional argument count and the
type tag of specific argument positions:

======  =====================  ==================================
count   argument 2             shape
======  =====================  ==================================
2       -                      two-arg equality
3       not floating point     message + equality
3       floating point         tolerance (argument 2 is the delta)
4       -                      message + tolerance
======  =====================  ==================================

The message-carrying argument is further split: a textual string uses
the labelled-assertion method, anything else (typically a zero-argument
callable producing the string) uses the deferred failure message so the
message is still built lazily.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from ..exceptions import UnsupportedCallShapeError
from ..targets import DEFAULT_TARGETS, AssertionTargets
from ..type_oracle import DEFAULT_VOCABULARY, TypeDescriptor, TypeVocabulary


class ArgumentTypeTag(Enum):
    """Per-argument type classification consumed by :func:`classify`."""

    STRING = "string"
    STRING_SUPPLIER = "string_supplier"
    FLOATING_POINT = "floating_point"
    OTHER = "other"


class RewriteShape(Enum):
    """Target form of a rewritten call."""

    TWO_ARG_EQUALITY = "two_arg_equality"
    THREE_ARG_MESSAGE_EQUALITY = "three_arg_message_equality"
    THREE_ARG_TOLERANCE = "three_arg_tolerance"
    FOUR_ARG_MESSAGE_TOLERANCE = "four_arg_message_tolerance"

    @property
    def arg_count(self) -> int:
        return _SHAPE_ARITY[self]

    @property
    def has_message(self) -> bool:
        return self in (RewriteShape.THREE_ARG_MESSAGE_EQUALITY, RewriteShape.FOUR_ARG_MESSAGE_TOLERANCE)

    @property
    def has_tolerance(self) -> bool:
        return self in (RewriteShape.THREE_ARG_TOLERANCE, RewriteShape.FOUR_ARG_MESSAGE_TOLERANCE)


_SHAPE_ARITY = {
    RewriteShape.TWO_ARG_EQUALITY: 2,
    RewriteShape.THREE_ARG_MESSAGE_EQUALITY: 3,
    RewriteShape.THREE_ARG_TOLERANCE: 3,
    RewriteShape.FOUR_ARG_MESSAGE_TOLERANCE: 4,
}


class MessageStyle(Enum):
    """How a message argument is attached to the fluent chain."""

    LABELLED = "labelled"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class Classification:
    """Selected shape plus the original position feeding each slot.

    ``slots`` maps ``expected``, ``actual`` and, where the shape has
    them, ``message`` and ``delta`` to argument positions. Every original
    position appears exactly once.
    """

    shape: RewriteShape
    slots: dict[str, int]
    message_style: MessageStyle | None = None


def tag_argument(descriptor: TypeDescriptor | None, vocabulary: TypeVocabulary = DEFAULT_VOCABULARY) -> ArgumentTypeTag:
    """Map a resolved type onto the tag used by the decision table.

    Unresolved types map to ``OTHER`` so an unknown third argument is
    read as a message, never as a tolerance.
    """
    if vocabulary.is_floating_point(descriptor):
        return ArgumentTypeTag.FLOATING_POINT
    if vocabulary.is_string(descriptor):
        return ArgumentTypeTag.STRING
    if vocabulary.is_string_supplier(descriptor):
        return ArgumentTypeTag.STRING_SUPPLIER
    return ArgumentTypeTag.OTHER


def message_style_for(tag: ArgumentTypeTag) -> MessageStyle:
    return MessageStyle.LABELLED if tag is ArgumentTypeTag.STRING else MessageStyle.DEFERRED


def classify(
    arg_count: int, tags: Sequence[ArgumentTypeTag], targets: AssertionTargets = DEFAULT_TARGETS
) -> Classification:
    """Select the rewrite shape for a call.

    Args:
        arg_count: Number of positional arguments on the call.
        tags: One tag per argument, in call order.
        targets: Migration table; supplies the four-argument layout.

    Returns:
        The :class:`Classification` for the call.

    Raises:
        UnsupportedCallShapeError: When no shape covers ``arg_count``.
    """
    if len(tags) != arg_count:
        raise UnsupportedCallShapeError(f"Expected {arg_count} argument tags, got {len(tags)}", arg_count)

    if arg_count == 2:
        return Classification(RewriteShape.TWO_ARG_EQUALITY, {"expected": 0, "actual": 1})

    if arg_count == 3:
        if tags[2] is ArgumentTypeTag.FLOATING_POINT:
            return Classification(RewriteShape.THREE_ARG_TOLERANCE, {"expected": 0, "actual": 1, "delta": 2})
        return Classification(
            RewriteShape.THREE_ARG_MESSAGE_EQUALITY,
            {"expected": 0, "actual": 1, "message": 2},
            message_style_for(tags[2]),
        )

    if arg_count == 4:
        # The delta position is not type-checked: the legacy four-argument
        # overloads exist only in floating point form.
        message_index = targets.four_arg_message_index
        delta_index = targets.four_arg_delta_index
        return Classification(
            RewriteShape.FOUR_ARG_MESSAGE_TOLERANCE,
            {"expected": 0, "actual": 1, "message": message_index, "delta": delta_index},
            message_style_for(tags[message_index]),
        )

    raise UnsupportedCallShapeError(f"No rewrite shape for a call with {arg_count} arguments", arg_count)
