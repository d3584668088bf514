# lazyfem/ufl/algebra.py
"""
Construction rules of the lazy algebra.

Each supported operator is described once, as data, by an
:class:`OperatorRule`: its name, the numeric callable stored in the tree, its
arity and how it treats the null operator.  The builders (``mul``, ``add``,
``sqrt``, ...) are generated from these tables at import time.

A builder classifies its operands as RAW, LAZY or NULL and walks the rules in
a fixed order:

1. null operator on both sides,
2. null operator on one side,
3. lazy on both sides  -> new :class:`Operator` node,
4. raw on one side     -> wrap in a :class:`Constant` and retry,
5. raw on both sides   -> ordinary eager call.

Nothing is ever evaluated while a tree is being built, except in case 5 where
no tree is involved at all.
"""
from __future__ import annotations

import logging
import operator
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import numpy as np

from lazyfem.ufl.errors import DivisionByNullError, UnsupportedOperandError
from lazyfem.ufl.expressions import (
    NULL, Constant, Expression, NullOperator, Operator, _func_name, as_expression,
)

logger = logging.getLogger(__name__)

_TRACE_RULES = os.getenv("LAZYFEM_TRACE_RULES", "").lower() in {"1", "true", "yes"}


class OperandKind(str, Enum):
    RAW = "raw"
    LAZY = "lazy"
    NULL = "null"


class NullRule(str, Enum):
    IDENTITY = "identity"      # x (+) null = x,  null (+) x = unary(x)
    ABSORBING = "absorbing"    # anything touching null is null
    DIVISION = "division"      # null / x = null, x / null raises
    PROPAGATE = "propagate"    # f(null) = null
    NONE = "none"              # null is an ordinary lazy operand


@dataclass(frozen=True)
class OperatorRule:
    name: str
    func: Callable
    arity: int
    null_rule: NullRule
    unary: Optional[str] = None    # unary applied to x for null (+) x


def operand_kind(value) -> OperandKind:
    """Classify *value* for rule selection."""
    if value is NotImplemented:
        raise UnsupportedOperandError("NotImplemented cannot be used as an operand.")
    if isinstance(value, NullOperator):
        return OperandKind.NULL
    if isinstance(value, Expression):
        return OperandKind.LAZY
    return OperandKind.RAW


# ----------------------------------------------------------------------
#  Operator tables
# ----------------------------------------------------------------------
UNARY_RULES: Dict[str, OperatorRule] = {
    rule.name: rule for rule in (
        OperatorRule(name, func, 1, NullRule.PROPAGATE)
        for name, func in (
            ("pos",       operator.pos),
            ("neg",       operator.neg),
            ("transpose", np.transpose),
            ("tr",        np.trace),
            ("sqrt",      np.sqrt),
            ("abs",       np.abs),
            ("tan",       np.tan),
            ("sin",       np.sin),
            ("cos",       np.cos),
            ("tanh",      np.tanh),
            ("sinh",      np.sinh),
            ("cosh",      np.cosh),
            ("atan",      np.arctan),
            ("asin",      np.arcsin),
            ("acos",      np.arccos),
            ("zero",      np.zeros_like),
        )
    )
}

BINARY_RULES: Dict[str, OperatorRule] = {
    rule.name: rule for rule in (
        OperatorRule("mul",     operator.mul,     2, NullRule.ABSORBING),
        OperatorRule("truediv", operator.truediv, 2, NullRule.DIVISION),
        OperatorRule("add",     operator.add,     2, NullRule.IDENTITY, unary="pos"),
        OperatorRule("sub",     operator.sub,     2, NullRule.IDENTITY, unary="neg"),
        OperatorRule("maximum", np.maximum,       2, NullRule.NONE),
        OperatorRule("minimum", np.minimum,       2, NullRule.NONE),
        OperatorRule("dot",     np.vdot,          2, NullRule.ABSORBING),
    )
}

_RULES_BY_FUNC = {rule.func: rule for rule in (*UNARY_RULES.values(), *BINARY_RULES.values())}


def rule_for(func) -> Optional[OperatorRule]:
    """Return the rule whose stored callable is *func*, if any."""
    try:
        return _RULES_BY_FUNC.get(func)
    except TypeError:          # unhashable callable
        return None


def _trace(message: str, *args):
    if _TRACE_RULES:
        logger.debug(message, *args)


# ----------------------------------------------------------------------
#  Rule application
# ----------------------------------------------------------------------
def _apply_unary(rule: OperatorRule, a):
    kind = operand_kind(a)
    if kind is OperandKind.NULL:
        _trace("%s(NULL) -> NULL", rule.name)
        return NULL
    if kind is OperandKind.LAZY:
        _trace("Building node %s(%r)", rule.name, a)
        return Operator(rule.func, a)
    return rule.func(a)


def _null_with_null(rule: OperatorRule):
    _trace("%s(NULL, NULL) -> NULL", rule.name)
    return NULL


def _null_with_operand(rule: OperatorRule, a, b, null_left: bool):
    if rule.null_rule is NullRule.IDENTITY:
        if null_left:
            _trace("%s(NULL, x) -> %s(x)", rule.name, rule.unary)
            return _apply_unary(UNARY_RULES[rule.unary], b)
        _trace("%s(x, NULL) -> x", rule.name)
        return a
    if rule.null_rule is NullRule.ABSORBING:
        _trace("%s absorbed by NULL", rule.name)
        return NULL
    if rule.null_rule is NullRule.DIVISION:
        if null_left:
            _trace("%s(NULL, x) -> NULL", rule.name)
            return NULL
        raise DivisionByNullError(f"Division of {a!r} by the null operator is not allowed.")
    raise AssertionError(f"Rule {rule.name!r} has no null-operator override.")


def _apply_binary(rule: OperatorRule, a, b):
    ka, kb = operand_kind(a), operand_kind(b)
    has_null_rule = rule.null_rule is not NullRule.NONE

    if has_null_rule and ka is OperandKind.NULL and kb is OperandKind.NULL:
        return _null_with_null(rule)
    if has_null_rule and ka is OperandKind.NULL:
        return _null_with_operand(rule, a, b, null_left=True)
    if has_null_rule and kb is OperandKind.NULL:
        return _null_with_operand(rule, a, b, null_left=False)
    if ka is not OperandKind.RAW and kb is not OperandKind.RAW:
        _trace("Building node %s(%r, %r)", rule.name, a, b)
        return Operator(rule.func, a, b)
    if ka is not OperandKind.RAW:
        return _apply_binary(rule, a, Constant(b))
    if kb is not OperandKind.RAW:
        return _apply_binary(rule, Constant(a), b)
    return rule.func(a, b)


def _unary_builder(rule: OperatorRule):
    def build(a):
        return _apply_unary(rule, a)
    build.__name__ = build.__qualname__ = rule.name
    build.__doc__ = f"Lazy ``{rule.name}``: ``{rule.name}(NULL)`` is ``NULL``."
    return build


def _binary_builder(rule: OperatorRule):
    def build(a, b):
        return _apply_binary(rule, a, b)
    build.__name__ = build.__qualname__ = rule.name
    build.__doc__ = f"Lazy ``{rule.name}`` (null-operator rule: {rule.null_rule.value})."
    return build


_unary = {name: _unary_builder(rule) for name, rule in UNARY_RULES.items()}
_binary = {name: _binary_builder(rule) for name, rule in BINARY_RULES.items()}

mul = _binary["mul"]
truediv = _binary["truediv"]
add = _binary["add"]
sub = _binary["sub"]
maximum = _binary["maximum"]
minimum = _binary["minimum"]
dot = _binary["dot"]

pos = _unary["pos"]
neg = _unary["neg"]
transpose = _unary["transpose"]
tr = _unary["tr"]
sqrt = _unary["sqrt"]
absolute = _unary["abs"]
tan = _unary["tan"]
sin = _unary["sin"]
cos = _unary["cos"]
tanh = _unary["tanh"]
sinh = _unary["sinh"]
cosh = _unary["cosh"]
atan = _unary["atan"]
asin = _unary["asin"]
acos = _unary["acos"]
zero = _unary["zero"]


def builder(name: str) -> Callable:
    """Look up a builder by operator name."""
    if name in _binary:
        return _binary[name]
    if name in _unary:
        return _unary[name]
    raise KeyError(f"Unknown operator '{name}'. Known: {sorted({*_binary, *_unary})}")


# ----------------------------------------------------------------------
#  Broadcast fusion
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Elementwise:
    """``func`` lifted to act elementwise on its arguments."""
    func: Callable

    def __call__(self, *values):
        if isinstance(self.func, np.ufunc):
            return self.func(*values)
        # object loop, so the result dtype is promoted over every element
        result = np.frompyfunc(self.func, len(values), 1)(*values)
        if isinstance(result, np.ndarray):
            return np.asarray(result.tolist())
        return result

    def __repr__(self):
        return f"Elementwise({_func_name(self.func)})"


def broadcasted(func: Callable, *args):
    """
    Elementwise application of *func*.  When at least one argument is an
    Expression a single node is built whose function is ``Elementwise(func)``
    and whose children are the arguments (raw ones wrapped), in order.
    """
    if not args:
        raise TypeError("broadcasted() needs at least one argument.")
    lifted = Elementwise(func)
    if not any(isinstance(a, Expression) for a in args):
        return lifted(*args)
    _trace("Fusing broadcast of %s over %d operands", _func_name(func), len(args))
    return Operator(lifted, *(as_expression(a) for a in args))


# ----------------------------------------------------------------------
#  Composition fusion
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Composition:
    """``func`` applied to the evaluated children of its node."""
    func: Callable

    def __call__(self, *values):
        return self.func(*values)

    def __repr__(self):
        return f"Composition({_func_name(self.func)})"


def pack(*values):
    """Node function rebuilding a tuple from its evaluated children."""
    return values


def _contains_expression(value) -> bool:
    if isinstance(value, Expression):
        return True
    return isinstance(value, tuple) and any(_contains_expression(v) for v in value)


def _as_argument(value) -> Expression:
    if isinstance(value, tuple) and _contains_expression(value):
        return Operator(pack, *(_as_argument(v) for v in value))
    return as_expression(value)


def triggers_composition(args) -> bool:
    """
    Lazy composition is only triggered by an Expression in first position:
    ``args`` itself, ``args[0]``, or ``args[0][0]``.
    """
    if isinstance(args, Expression):
        return True
    if not isinstance(args, tuple) or not args:
        return False
    head = args[0]
    if isinstance(head, Expression):
        return True
    return isinstance(head, tuple) and len(head) > 0 and isinstance(head[0], Expression)


def compose(func: Callable, args):
    """
    Compose the plain function *func* with *args*.

    Builds a ``Composition(func)`` node when :func:`triggers_composition`
    holds; otherwise *func* is applied eagerly, ``func(*args)`` for a tuple
    and ``func(args)`` for anything else.
    """
    if isinstance(func, Expression) or not callable(func):
        raise TypeError(f"compose() needs a plain callable, not {type(func).__name__}.")
    if not triggers_composition(args):
        if _contains_expression(args):
            logger.debug(f"Lazy operand outside first position; applying {_func_name(func)} eagerly.")
        return func(*args) if isinstance(args, tuple) else func(args)
    if isinstance(args, Expression):
        args = (args,)
    _trace("Fusing composition %s over %d operands", _func_name(func), len(args))
    return Operator(Composition(func), *(_as_argument(a) for a in args))
