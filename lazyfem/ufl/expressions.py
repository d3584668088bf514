# lazyfem/ufl/expressions.py
"""
Operand hierarchy of the lazy algebra.

Three kinds of objects can appear in an expression tree:

* :class:`Operator`      interior node, a callable plus ordered children,
* :class:`Constant`      leaf wrapping an arbitrary raw value,
* :class:`NullOperator`  stateless sentinel (the module singleton ``NULL``).

Arithmetic on an :class:`Expression` never computes anything; it goes through
the rule table in :mod:`lazyfem.ufl.algebra`, which decides which node to
build (or whether to short-circuit to ``NULL``).
"""
from __future__ import annotations

from typing import Any, Callable, Tuple

import numpy as np

from lazyfem.ufl.errors import UnsupportedOperandError


_INFIX = {"add": "+", "sub": "-", "mul": "*", "truediv": "/"}
_PREFIX = {"pos": "+", "neg": "-"}


def _func_name(func) -> str:
    return getattr(func, "__name__", None) or repr(func)


class Expression:
    """Base class for any object in a lazy expression tree."""

    # NumPy must hand mixed array/Expression arithmetic back to the
    # reflected operators below instead of looping over object arrays.
    __array_ufunc__ = None

    @property
    def args(self) -> Tuple["Expression", ...]:
        """Ordered child operands (empty for leaves and the null operator)."""
        return ()

    @property
    def T(self):
        """Shorthand to build a lazy transpose."""
        from lazyfem.ufl import algebra
        return algebra.transpose(self)

    def __repr__(self):
        return f"{self.__class__.__name__}()"

    def __add__(self, other):
        from lazyfem.ufl import algebra
        return algebra.add(self, other)

    def __radd__(self, other):
        from lazyfem.ufl import algebra
        return algebra.add(other, self)

    def __sub__(self, other):
        from lazyfem.ufl import algebra
        return algebra.sub(self, other)

    def __rsub__(self, other):
        from lazyfem.ufl import algebra
        return algebra.sub(other, self)

    def __mul__(self, other):
        from lazyfem.ufl import algebra
        return algebra.mul(self, other)

    def __rmul__(self, other):
        from lazyfem.ufl import algebra
        return algebra.mul(other, self)

    def __truediv__(self, other):
        from lazyfem.ufl import algebra
        return algebra.truediv(self, other)

    def __rtruediv__(self, other):
        from lazyfem.ufl import algebra
        return algebra.truediv(other, self)

    def __pos__(self):
        from lazyfem.ufl import algebra
        return algebra.pos(self)

    def __neg__(self):
        from lazyfem.ufl import algebra
        return algebra.neg(self)

    def __abs__(self):
        from lazyfem.ufl import algebra
        return algebra.absolute(self)

    def __deepcopy__(self, memo):
        return self

    def __copy__(self):
        return self                  # trees are immutable, sharing is safe

    def find_first(self, criteria):
        """
        Depth-first search that stops at the first sub-expression
        satisfying *criteria*.  Guarded against shared sub-trees.
        """
        visited = set()

        def dfs(node):
            nid = id(node)
            if nid in visited:
                return None
            visited.add(nid)

            if criteria(node):
                return node
            for child in node.args:
                found = dfs(child)
                if found is not None:
                    return found
            return None

        return dfs(self)


class Operator(Expression):
    """
    Interior node: ``func`` applied to the evaluated ``args``.

    The children are stored in the order they were given, even when ``func``
    is commutative.  Nodes are never mutated after construction.
    """

    def __init__(self, func: Callable, *args: Expression):
        if isinstance(func, Expression) or not callable(func):
            raise TypeError(f"Operator needs a plain callable, not {type(func).__name__}.")
        for arg in args:
            if not isinstance(arg, Expression):
                raise UnsupportedOperandError(
                    f"Operator children must be Expressions, got {type(arg).__name__}; "
                    "wrap raw values with as_expression()."
                )
        self._func = func
        self._args = tuple(args)
        self._hash = None

    @property
    def func(self) -> Callable:
        return self._func

    @property
    def args(self) -> Tuple[Expression, ...]:
        return self._args

    def __repr__(self):
        name = _func_name(self._func)
        if name in _INFIX and len(self._args) == 2:
            a, b = self._args
            return f"({a!r} {_INFIX[name]} {b!r})"
        if name in _PREFIX and len(self._args) == 1:
            return f"({_PREFIX[name]}{self._args[0]!r})"
        return f"{name}({', '.join(repr(a) for a in self._args)})"

    def __eq__(self, other):
        if not isinstance(other, Operator):
            return False
        return self._func == other._func and self._args == other._args

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        if self._hash is None:
            self._hash = hash((self._func, self._args))
        return self._hash


def _same_value(a, b) -> bool:
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return (isinstance(a, np.ndarray) and isinstance(b, np.ndarray)
                and a.shape == b.shape and bool(np.array_equal(a, b)))
    # containers may hold arrays, whose == is elementwise
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        return (type(a) is type(b) and len(a) == len(b)
                and all(_same_value(p, q) for p, q in zip(a, b)))
    result = a == b
    return result if isinstance(result, bool) else bool(np.all(result))


class Constant(Expression):
    """
    Leaf wrapping one raw value.  The value is stored untouched: no dtype
    conversion, no copy.
    """

    def __init__(self, value: Any):
        if isinstance(value, Expression):
            raise TypeError(f"{value!r} is already an Expression and must not be wrapped again.")
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    @property
    def shape(self):
        """Returns the shape of the wrapped value."""
        if isinstance(self._value, np.ndarray):
            return self._value.shape
        elif isinstance(self._value, (list, tuple)):
            return (len(self._value),)
        else:
            return ()

    def __repr__(self):
        return f"{self.__class__.__name__}({self._value!r})"

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self._value, dtype=dtype)

    def __float__(self):
        return float(self._value)

    def __eq__(self, other):
        if type(other) is not type(self):
            return False
        return _same_value(self._value, other._value)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        # Arrays compare across dtypes, so they only hash by shape.
        if isinstance(self._value, np.ndarray):
            return hash((type(self), self._value.shape))
        try:
            return hash((type(self), self._value))
        except TypeError:
            return hash((type(self), type(self._value)))


class Field(Constant):
    """
    Named placeholder for a field supplied by the materializer (a solution,
    a coefficient, a geometric quantity).  The wrapped value is the name.
    """

    def __init__(self, name: str, shape: tuple = ()):
        if not isinstance(name, str) or not name:
            raise ValueError("A Field needs a non-empty name.")
        super().__init__(name)
        self._shape = tuple(shape)

    @property
    def name(self) -> str:
        return self.value

    @property
    def shape(self):
        return self._shape

    def __repr__(self):
        return self.value

    def __eq__(self, other):
        return type(other) is type(self) and other.value == self.value and other._shape == self._shape

    def __hash__(self):
        return hash((type(self), self.value, self._shape))


class NullOperator(Expression):
    """
    The null operator: "no contribution".

    It is the additive identity, the multiplicative absorbing element, and
    propagates through every unary operator.  There is exactly one instance,
    exported as ``NULL``.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NullOperator()"

    def __reduce__(self):
        return (NullOperator, ())

    def __eq__(self, other):
        return other is self

    def __ne__(self, other):
        return other is not self

    def __hash__(self):
        return hash(NullOperator)


NULL = NullOperator()


def is_null(value) -> bool:
    return value is NULL


def as_expression(value) -> Expression:
    """Promote *value* to an :class:`Expression`; Expressions pass through."""
    if isinstance(value, Expression):
        return value
    if value is NotImplemented:
        raise UnsupportedOperandError("NotImplemented cannot be used as an operand.")
    return Constant(value)
