"""Static type lookup for call arguments.

The classifier only needs a coarse answer per argument: is it a
floating point number, a string, a zero-argument callable producing a
string, or something else. This module defines the ``TypeOracle``
collaborator protocol that supplies those answers and
``LocalTypeOracle``, a libcst-based resolver that works from what is
visible in a single file (literals, annotations, simple assignments and
local function signatures).

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import libcst as cst
from libcst.helpers import get_full_name_for_node
from libcst.metadata import MetadataWrapper, QualifiedName, QualifiedNameProvider

logger = logging.getLogger(__name__)


class TypeKind(Enum):
    """Coarse classification of a resolved type."""

    PRIMITIVE = "primitive"
    CLASS = "class"
    CALLABLE = "callable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TypeDescriptor:
    """A resolved static type.

    ``name`` is the qualified type name with the ``builtins.`` prefix
    dropped. Callables carry their required-argument ``arity`` and the
    descriptor of what they ``returns`` when known.
    """

    name: str
    kind: TypeKind = TypeKind.CLASS
    returns: TypeDescriptor | None = None
    arity: int | None = None

    @classmethod
    def builtin(cls, name: str) -> TypeDescriptor:
        return cls(name=name, kind=TypeKind.PRIMITIVE)

    @classmethod
    def callable(cls, returns: TypeDescriptor | None, arity: int | None) -> TypeDescriptor:
        return cls(name="Callable", kind=TypeKind.CALLABLE, returns=returns, arity=arity)


STR = TypeDescriptor.builtin("str")
BYTES = TypeDescriptor.builtin("bytes")
INT = TypeDescriptor.builtin("int")
FLOAT = TypeDescriptor.builtin("float")
COMPLEX = TypeDescriptor.builtin("complex")
BOOL = TypeDescriptor.builtin("bool")

_BUILTINS = {d.name: d for d in (STR, BYTES, INT, FLOAT, COMPLEX, BOOL)}
_STRING_PRODUCERS = frozenset({"str", "repr", "format", "ascii"})
# ``str`` methods that return a new string.
_STR_METHODS = frozenset(
    {
        "capitalize",
        "casefold",
        "center",
        "expandtabs",
        "format",
        "format_map",
        "join",
        "ljust",
        "lower",
        "lstrip",
        "removeprefix",
        "removesuffix",
        "replace",
        "rjust",
        "rstrip",
        "strip",
        "swapcase",
        "title",
        "translate",
        "upper",
        "zfill",
    }
)
_NUMERIC = frozenset({"int", "float", "bool"})


@dataclass(frozen=True)
class TypeVocabulary:
    """Which resolved type names count as floating point or textual."""

    floating_point_types: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {
                "float",
                "builtins.float",
                "numpy.float16",
                "numpy.float32",
                "numpy.float64",
                "numpy.double",
                "numpy.single",
                "numpy.longdouble",
            }
        )
    )
    string_types: frozenset[str] = field(default_factory=lambda: frozenset({"str", "builtins.str"}))
    callable_types: frozenset[str] = field(
        default_factory=lambda: frozenset({"Callable", "typing.Callable", "collections.abc.Callable"})
    )

    def extended(self, floating_point: Iterable[str] = (), strings: Iterable[str] = ()) -> TypeVocabulary:
        return TypeVocabulary(
            floating_point_types=self.floating_point_types | frozenset(floating_point),
            string_types=self.string_types | frozenset(strings),
            callable_types=self.callable_types,
        )

    def is_floating_point(self, descriptor: TypeDescriptor | None) -> bool:
        return (
            descriptor is not None
            and descriptor.kind is not TypeKind.CALLABLE
            and descriptor.name in self.floating_point_types
        )

    def is_string(self, descriptor: TypeDescriptor | None) -> bool:
        return (
            descriptor is not None and descriptor.kind is not TypeKind.CALLABLE and descriptor.name in self.string_types
        )

    def is_string_supplier(self, descriptor: TypeDescriptor | None) -> bool:
        return (
            descriptor is not None
            and descriptor.kind is TypeKind.CALLABLE
            and descriptor.arity == 0
            and self.is_string(descriptor.returns)
        )


DEFAULT_VOCABULARY = TypeVocabulary()


class TypeOracle(Protocol):
    """Collaborator that supplies static types for argument expressions."""

    def resolve_type(self, expression: cst.BaseExpression) -> TypeDescriptor | None:
        """Return the static type of ``expression`` or None when unknown."""
        ...


OracleFactory = Callable[[MetadataWrapper, TypeVocabulary], TypeOracle]


class UnknownTypeOracle:
    """Oracle that resolves nothing; every argument is tagged as other."""

    def resolve_type(self, expression: cst.BaseExpression) -> TypeDescriptor | None:
        return None


def _strip_builtins(name: str) -> str:
    return name[len("builtins.") :] if name.startswith("builtins.") else name


class LocalTypeOracle:
    """Resolve argument types from information local to one module.

    The oracle is built once per file from the same ``MetadataWrapper``
    the rewriter visits, so expression nodes handed to
    :meth:`resolve_type` are the nodes it indexed. Lookups that cannot be
    answered return ``None``; the classifier treats that as "other".
    """

    def __init__(self, wrapper: MetadataWrapper, vocabulary: TypeVocabulary = DEFAULT_VOCABULARY) -> None:
        self.vocabulary = vocabulary
        self._parents: dict[cst.CSTNode, cst.CSTNode | None] = {}
        self._name_scopes: dict[cst.Name, cst.CSTNode] = {}
        self._annotated: dict[cst.CSTNode, dict[str, TypeDescriptor | None]] = {}
        self._inferred: dict[cst.CSTNode, dict[str, TypeDescriptor | None]] = {}
        # Names must be indexed before bindings are collected: annotations
        # are translated as soon as their owner is visited.
        index = _QualifiedNameIndex()
        wrapper.visit(index)
        self._qualified_names: Mapping[cst.CSTNode, Collection[QualifiedName]] = index.names
        wrapper.module.visit(_BindingCollector(self))

    def resolve_type(self, expression: cst.BaseExpression) -> TypeDescriptor | None:
        try:
            return self._infer(expression)
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            logger.debug("Type resolution failed for %s: %s", type(expression).__name__, e)
            return None

    # -- binding table -------------------------------------------------

    def _enter_scope(self, scope: cst.CSTNode, parent: cst.CSTNode | None) -> None:
        self._parents[scope] = parent
        self._annotated.setdefault(scope, {})
        self._inferred.setdefault(scope, {})

    def _bind(self, scope: cst.CSTNode, name: str, descriptor: TypeDescriptor | None, annotated: bool = False) -> None:
        table = (self._annotated if annotated else self._inferred)[scope]
        if name in table and table[name] != descriptor:
            # Rebound to another type: which binding reaches a call depends on control flow.
            table[name] = None
        else:
            table[name] = descriptor

    def _lookup(self, node: cst.Name) -> TypeDescriptor | None:
        scope = self._name_scopes.get(node)
        first = True
        while scope is not None:
            # Class bodies are not visible from the functions nested in them.
            if first or not isinstance(scope, cst.ClassDef):
                if node.value in self._annotated.get(scope, {}):
                    return self._annotated[scope][node.value]
                if node.value in self._inferred.get(scope, {}):
                    return self._inferred[scope][node.value]
            first = False
            scope = self._parents.get(scope)
        return None

    def _names_for(self, node: cst.CSTNode) -> set[str]:
        names = {_strip_builtins(q.name) for q in self._qualified_names.get(node, ())}
        if not names:
            full = get_full_name_for_node(node)
            if full:
                names.add(full)
        return names

    # -- inference -----------------------------------------------------

    def _infer(self, expr: cst.BaseExpression) -> TypeDescriptor | None:
        if isinstance(expr, cst.SimpleString):
            return BYTES if "b" in expr.prefix.lower() else STR
        if isinstance(expr, cst.ConcatenatedString | cst.FormattedString):
            return STR
        if isinstance(expr, cst.Float):
            return FLOAT
        if isinstance(expr, cst.Integer):
            return INT
        if isinstance(expr, cst.Imaginary):
            return COMPLEX
        if isinstance(expr, cst.Name):
            if expr.value in ("True", "False"):
                return BOOL
            return self._lookup(expr)
        if isinstance(expr, cst.UnaryOperation):
            if isinstance(expr.operator, cst.Not):
                return BOOL
            return self._infer(expr.expression)
        if isinstance(expr, cst.BinaryOperation):
            return self._infer_binary(expr)
        if isinstance(expr, cst.Lambda):
            return TypeDescriptor.callable(self._infer(expr.body), _required_arity(expr.params))
        if isinstance(expr, cst.Call):
            return self._infer_call(expr)
        return None

    def _infer_binary(self, expr: cst.BinaryOperation) -> TypeDescriptor | None:
        left = self._infer(expr.left)
        right = self._infer(expr.right)
        if left == STR and isinstance(expr.operator, cst.Modulo):
            return STR
        if left == STR and right == STR and isinstance(expr.operator, cst.Add):
            return STR
        if left is None or right is None:
            return None
        if left.name in _NUMERIC and right.name in _NUMERIC:
            if isinstance(expr.operator, cst.Divide) or FLOAT in (left, right):
                return FLOAT
            return INT
        if self.vocabulary.is_floating_point(left) and right.name in _NUMERIC:
            return left
        if self.vocabulary.is_floating_point(right) and left.name in _NUMERIC:
            return right
        return None

    def _infer_call(self, expr: cst.Call) -> TypeDescriptor | None:
        names = self._names_for(expr.func)
        if names & _STRING_PRODUCERS:
            return STR
        if "float" in names:
            return FLOAT
        if "int" in names:
            return INT
        floating = sorted(names & self.vocabulary.floating_point_types)
        if floating:
            return TypeDescriptor(name=floating[0], kind=TypeKind.CLASS)
        if isinstance(expr.func, cst.Name):
            target = self._lookup(expr.func)
            if target is not None and target.kind is TypeKind.CALLABLE:
                return target.returns
        if isinstance(expr.func, cst.Attribute) and expr.func.attr.value in _STR_METHODS:
            if self._infer(expr.func.value) == STR:
                return STR
        return None

    def annotation_type(self, annotation: cst.BaseExpression) -> TypeDescriptor | None:
        """Translate an annotation expression into a descriptor."""
        if isinstance(annotation, cst.Subscript):
            if self._names_for(annotation.value) & self.vocabulary.callable_types:
                return self._callable_annotation(annotation)
            return None
        if isinstance(annotation, cst.Name | cst.Attribute):
            names = self._names_for(annotation)
            for name in sorted(names):
                if name in _BUILTINS:
                    return _BUILTINS[name]
            floating = sorted(names & self.vocabulary.floating_point_types)
            if floating:
                return TypeDescriptor(name=floating[0], kind=TypeKind.CLASS)
            strings = sorted(names & self.vocabulary.string_types)
            if strings:
                return TypeDescriptor(name=strings[0], kind=TypeKind.CLASS)
            if names:
                return TypeDescriptor(name=sorted(names)[0], kind=TypeKind.CLASS)
        return None

    def _callable_annotation(self, annotation: cst.Subscript) -> TypeDescriptor:
        elements = [el.slice.value for el in annotation.slice if isinstance(el.slice, cst.Index)]
        if len(elements) != 2:
            return TypeDescriptor.callable(None, None)
        params, returns = elements
        arity = len(params.elements) if isinstance(params, cst.List) else None
        return TypeDescriptor.callable(self.annotation_type(returns), arity)

    def function_type(self, node: cst.FunctionDef) -> TypeDescriptor:
        returns = self.annotation_type(node.returns.annotation) if node.returns else None
        return TypeDescriptor.callable(returns, _required_arity(node.params))


def _required_arity(params: cst.Parameters) -> int:
    positional = [*params.posonly_params, *params.params, *params.kwonly_params]
    return sum(1 for p in positional if p.default is None)


class _BindingCollector(cst.CSTVisitor):
    """Walk a module once, recording bindings per lexical scope."""

    def __init__(self, oracle: LocalTypeOracle) -> None:
        super().__init__()
        self._oracle = oracle
        self._scopes: list[cst.CSTNode] = []

    @property
    def _scope(self) -> cst.CSTNode:
        return self._scopes[-1]

    def _push(self, node: cst.CSTNode) -> None:
        self._oracle._enter_scope(node, self._scopes[-1] if self._scopes else None)
        self._scopes.append(node)

    def _bind_params(self, params: cst.Parameters) -> None:
        for param in [*params.posonly_params, *params.params, *params.kwonly_params]:
            if param.annotation is not None:
                descriptor = self._oracle.annotation_type(param.annotation.annotation)
                self._oracle._bind(self._scope, param.name.value, descriptor, annotated=True)
            elif param.default is not None:
                self._oracle._bind(self._scope, param.name.value, self._oracle._infer(param.default))
            else:
                self._oracle._bind(self._scope, param.name.value, None)
        for star in (params.star_arg, params.star_kwarg):
            if isinstance(star, cst.Param):
                self._oracle._bind(self._scope, star.name.value, None)

    def visit_Module(self, node: cst.Module) -> None:
        self._push(node)

    def leave_Module(self, original_node: cst.Module) -> None:
        self._scopes.pop()

    def visit_ClassDef(self, node: cst.ClassDef) -> None:
        self._oracle._bind(self._scope, node.name.value, None)
        self._push(node)

    def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
        self._scopes.pop()

    def visit_FunctionDef(self, node: cst.FunctionDef) -> None:
        self._oracle._bind(self._scope, node.name.value, self._oracle.function_type(node))
        self._push(node)
        self._bind_params(node.params)

    def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
        self._scopes.pop()

    def visit_Lambda(self, node: cst.Lambda) -> None:
        self._push(node)
        self._bind_params(node.params)

    def leave_Lambda(self, original_node: cst.Lambda) -> None:
        self._scopes.pop()

    def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
        if isinstance(node.target, cst.Name):
            descriptor = self._oracle.annotation_type(node.annotation.annotation)
            self._oracle._bind(self._scope, node.target.value, descriptor, annotated=True)

    def _bind_target(self, target: cst.BaseExpression, descriptor: TypeDescriptor | None) -> None:
        if isinstance(target, cst.Name):
            self._oracle._bind(self._scope, target.value, descriptor)
        elif isinstance(target, cst.Tuple | cst.List):
            for element in target.elements:
                self._bind_target(element.value, None)
        elif isinstance(target, cst.StarredElement):
            self._bind_target(target.value, None)

    def leave_Assign(self, original_node: cst.Assign) -> None:
        # Names on the right-hand side have been scoped by now.
        value = self._oracle._infer(original_node.value)
        for target in original_node.targets:
            self._bind_target(target.target, value)

    def leave_AugAssign(self, original_node: cst.AugAssign) -> None:
        self._bind_target(original_node.target, None)

    def leave_NamedExpr(self, original_node: cst.NamedExpr) -> None:
        self._bind_target(original_node.target, self._oracle._infer(original_node.value))

    def visit_For(self, node: cst.For) -> None:
        self._bind_target(node.target, None)

    def visit_WithItem(self, node: cst.WithItem) -> None:
        if node.asname is not None:
            self._bind_target(node.asname.name, None)

    def visit_ExceptHandler(self, node: cst.ExceptHandler) -> None:
        if node.name is not None:
            self._bind_target(node.name.name, None)

    def visit_Name(self, node: cst.Name) -> None:
        self._oracle._name_scopes[node] = self._scope


class _QualifiedNameIndex(cst.CSTVisitor):
    """Materialise the qualified names of every name and attribute node."""

    METADATA_DEPENDENCIES = (QualifiedNameProvider,)

    def __init__(self) -> None:
        super().__init__()
        self.names: dict[cst.CSTNode, Collection[QualifiedName]] = {}

    def visit_Name(self, node: cst.Name) -> None:
        self.names[node] = self.get_metadata(QualifiedNameProvider, node, set())

    def visit_Attribute(self, node: cst.Attribute) -> None:
        self.names[node] = self.get_metadata(QualifiedNameProvider, node, set())
