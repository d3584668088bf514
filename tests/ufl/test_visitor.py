import operator

import numpy as np
import pytest

from lazyfem.ufl import algebra
from lazyfem.ufl.errors import UnsupportedOperandError
from lazyfem.ufl.expressions import NULL, Constant, Expression, Field, Operator
from lazyfem.ufl.visitor import (
    ExpressionVisitor, get_args, get_operator, iter_nodes, tree_repr, unwrap,
)


class _CountLeaves(ExpressionVisitor):
    def _visit_Operator(self, node):
        return sum(self._visit(arg) for arg in node.args)

    def _visit_Constant(self, node):
        return 1

    def _visit_NullOperator(self, node):
        return 0


def test_accessors_expose_function_and_children(u, v):
    node = u * v
    assert get_operator(node) is operator.mul
    assert get_args(node) == (u, v)
    with pytest.raises(TypeError):
        get_operator(u)
    with pytest.raises(TypeError):
        get_args(NULL)


def test_unwrap():
    arr = np.ones(2)
    assert unwrap(Constant(arr)) is arr
    assert unwrap((Constant(1), 2, (Constant(3),))) == (1, 2, (3,))
    assert unwrap(5) == 5
    assert unwrap(NULL) is NULL


def test_iter_nodes_is_preorder_and_skips_shared(u, v):
    shared = u * v
    tree = shared + algebra.sin(shared)
    nodes = list(iter_nodes(tree))
    assert nodes[0] is tree
    assert nodes[1] is shared
    assert nodes[2] is u and nodes[3] is v
    assert len(nodes) == 5


def test_visitor_dispatches_along_the_mro(u, v):
    # Field has no handler of its own and falls back to _visit_Constant.
    tree = (u * 3.0 + NULL * v) - algebra.maximum(v, NULL)
    assert _CountLeaves().visit(tree) == 3


def test_visitor_caches_resolved_handlers(u):
    visitor = _CountLeaves()
    visitor.visit(u + u)
    assert visitor._dispatch[Field] == visitor._visit_Constant


def test_visitor_without_handler_fails_fast():
    class Orphan(Expression):
        pass

    with pytest.raises(UnsupportedOperandError):
        _CountLeaves().visit(Orphan())


def test_base_visitor_leaves_null_policy_to_subclasses():
    with pytest.raises(NotImplementedError):
        ExpressionVisitor().visit(NULL)
    with pytest.raises(NotImplementedError):
        ExpressionVisitor().visit(Constant(1))


def test_tree_repr(u, v):
    text = tree_repr(3 * u + algebra.sqrt(v))
    assert text.splitlines() == [
        "add",
        "  mul",
        "    Constant(3)",
        "    u",
        "  sqrt",
        "    v",
    ]


def test_tree_repr_of_fused_nodes(u):
    text = tree_repr(algebra.broadcasted(np.sin, u), indent="--")
    assert text.splitlines() == ["Elementwise(sin)", "--u"]
    assert tree_repr(NULL) == "NullOperator()"
