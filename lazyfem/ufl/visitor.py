# lazyfem/ufl/visitor.py
"""
Read-only access to lazy trees for the code that consumes them.

A materializer subclasses :class:`ExpressionVisitor` and implements one
``_visit_<ClassName>`` method per node type it understands.  The accessors
``get_operator``, ``get_args`` and ``unwrap`` expose the same information as
free functions.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterator, Tuple

from lazyfem.ufl.errors import UnsupportedOperandError
from lazyfem.ufl.expressions import Constant, Expression, NullOperator, Operator, _func_name

logger = logging.getLogger(__name__)


def get_operator(node: Operator) -> Callable:
    if not isinstance(node, Operator):
        raise TypeError(f"get_operator() expects an Operator, got {type(node).__name__}.")
    return node.func


def get_args(node: Operator) -> Tuple[Expression, ...]:
    if not isinstance(node, Operator):
        raise TypeError(f"get_args() expects an Operator, got {type(node).__name__}.")
    return node.args


def unwrap(value):
    """Raw value behind *value*: leaves are unwrapped, tuples element-wise, anything else as is."""
    if isinstance(value, Constant):
        return value.value
    if isinstance(value, tuple):
        return tuple(unwrap(v) for v in value)
    return value


def iter_nodes(expr: Expression) -> Iterator[Expression]:
    """Pre-order walk; shared sub-trees are yielded once."""
    seen = set()
    stack = [expr]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.args))


class ExpressionVisitor:
    """
    Type-dispatching tree walker.

    Handlers are looked up along the MRO of the node type, so a subclass of
    :class:`Constant` falls back to ``_visit_Constant`` unless the visitor
    defines a more specific ``_visit_<ClassName>``.
    """

    def __init__(self):
        self._dispatch = {}

    def visit(self, node):
        return self._visit(node)

    def _visit(self, node):
        handler = self._dispatch.get(type(node))
        if handler is None:
            handler = self._resolve(type(node))
            self._dispatch[type(node)] = handler
        return handler(node)

    def _resolve(self, node_type):
        for klass in node_type.__mro__:
            handler = getattr(self, f"_visit_{klass.__name__}", None)
            if handler is not None:
                logger.debug(f"{self.__class__.__name__}: {node_type.__name__} handled by {handler.__name__}")
                return handler
        raise UnsupportedOperandError(
            f"{self.__class__.__name__} cannot visit objects of type {node_type.__name__}."
        )

    def _visit_Operator(self, node: Operator):
        raise NotImplementedError(f"{self.__class__.__name__} does not handle Operator nodes.")

    def _visit_Constant(self, node: Constant):
        raise NotImplementedError(f"{self.__class__.__name__} does not handle Constant leaves.")

    def _visit_NullOperator(self, node: NullOperator):
        raise NotImplementedError(
            f"{self.__class__.__name__} must decide how the null operator contributes."
        )


class _TreePrinter(ExpressionVisitor):

    def __init__(self, indent: str = "  "):
        super().__init__()
        self.indent = indent
        self.depth = 0
        self.lines = []

    def _emit(self, text):
        self.lines.append(f"{self.indent * self.depth}{text}")

    def _visit_Operator(self, node):
        self._emit(_func_name(node.func))
        self.depth += 1
        try:
            for arg in node.args:
                self._visit(arg)
        finally:
            self.depth -= 1

    def _visit_Constant(self, node):
        self._emit(repr(node))

    def _visit_NullOperator(self, node):
        self._emit("NullOperator()")


def tree_repr(expr: Expression, indent: str = "  ") -> str:
    """Multi-line rendering of *expr*, one node per line, children indented."""
    printer = _TreePrinter(indent)
    printer.visit(expr)
    return "\n".join(printer.lines)
