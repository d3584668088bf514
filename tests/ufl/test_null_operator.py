import operator

import numpy as np
import pytest

from lazyfem.ufl import algebra
from lazyfem.ufl.algebra import UNARY_RULES, builder
from lazyfem.ufl.errors import DivisionByNullError
from lazyfem.ufl.expressions import NULL, Constant, Field, Operator


def _operands():
    """Non-null operands of every kind: raw scalar, raw array, leaf, field, node."""
    u = Field("u")
    return [3.0, np.array([1.0, 2.0]), Constant(2.0), u, u * Field("v")]


OPERANDS = _operands()
IDS = ["scalar", "array", "constant", "field", "node"]


@pytest.mark.parametrize("a", OPERANDS, ids=IDS)
def test_null_is_additive_identity_on_the_right(a):
    assert (a + NULL) is a
    assert (a - NULL) is a
    assert algebra.add(a, NULL) is a
    assert algebra.sub(a, NULL) is a


@pytest.mark.parametrize("a", [OPERANDS[2], OPERANDS[3], OPERANDS[4]], ids=IDS[2:])
def test_null_on_the_left_applies_the_unary_operator(a):
    plus, minus = NULL + a, NULL - a
    assert plus == Operator(operator.pos, a)
    assert minus == Operator(operator.neg, a)


def test_null_on_the_left_of_a_raw_value_is_eager():
    assert NULL + 3.0 == 3.0
    assert NULL - 3.0 == -3.0
    np.testing.assert_array_equal(NULL - np.array([1.0, 2.0]), [-1.0, -2.0])


def test_null_with_null_is_null_for_every_family():
    for name in ("add", "sub", "mul", "dot", "truediv"):
        assert builder(name)(NULL, NULL) is NULL
    assert NULL + NULL is NULL
    assert NULL - NULL is NULL
    assert NULL * NULL is NULL
    assert NULL / NULL is NULL


@pytest.mark.parametrize("a", OPERANDS + [NULL], ids=IDS + ["null"])
def test_null_absorbs_products(a):
    assert (a * NULL) is NULL
    assert (NULL * a) is NULL
    assert algebra.dot(a, NULL) is NULL
    assert algebra.dot(NULL, a) is NULL


@pytest.mark.parametrize("a", OPERANDS, ids=IDS)
def test_division_by_null_raises(a):
    with pytest.raises(DivisionByNullError):
        a / NULL
    with pytest.raises(ZeroDivisionError):
        algebra.truediv(a, NULL)


@pytest.mark.parametrize("a", OPERANDS + [NULL], ids=IDS + ["null"])
def test_null_divided_by_anything_is_null(a):
    assert (NULL / a) is NULL


@pytest.mark.parametrize("name", sorted(UNARY_RULES))
def test_unary_operators_propagate_null(name):
    assert builder(name)(NULL) is NULL


def test_operator_syntax_propagates_null():
    assert -NULL is NULL
    assert +NULL is NULL
    assert abs(NULL) is NULL
    assert NULL.T is NULL


def test_max_and_min_have_no_null_override(u):
    node = algebra.maximum(u, NULL)
    assert node == Operator(np.maximum, u, NULL)
    node = algebra.minimum(3.0, NULL)
    assert node == Operator(np.minimum, Constant(3.0), NULL)


def test_vanishing_term_is_removed_at_construction(u):
    x = 3
    expr = (x + NULL) * u
    assert expr == x * u
    assert expr.args == (Constant(3), u)


def test_null_numerator_skips_the_denominator(u):
    assert NULL / (u - u) is NULL


def test_null_prunes_whole_subtrees(u, v):
    expr = (u * v + NULL * algebra.sin(v)) - NULL
    assert expr == u * v
    assert expr.find_first(lambda n: n is NULL) is None


def test_array_operands_reflect_onto_null():
    arr = np.array([1.0, 2.0])
    assert (arr + NULL) is arr
    assert (arr * NULL) is NULL
