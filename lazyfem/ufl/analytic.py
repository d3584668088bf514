# analytic.py
import sympy as sp
import numpy as np
from lazyfem.ufl.expressions import Constant


def _sympify_nested(e):
    if isinstance(e, (list, tuple)):
        return [_sympify_nested(item) for item in e]
    return sp.sympify(e)


def _nested_shape(e) -> tuple:
    """Shape of a nested list of SymPy expressions; rows must agree."""
    if not isinstance(e, list):
        return ()
    if not e:
        raise ValueError("Analytic components must not be empty.")
    inner = {_nested_shape(item) for item in e}
    if len(inner) != 1:
        raise ValueError(f"Ragged Analytic components: {sorted(inner)}.")
    return (len(e),) + inner.pop()


def _nested_key(e):
    return tuple(_nested_key(item) for item in e) if isinstance(e, list) else e


def _stack(out, lead: tuple):
    # lambdify returns bare scalars for constant components
    if isinstance(out, (list, tuple)):
        return np.stack([_stack(o, lead) for o in out], axis=len(lead))
    return np.broadcast_to(np.asarray(out, dtype=float), lead)


class Analytic(Constant):
    """
    Leaf carrying a function of the physical coordinates.  Built from a SymPy
    expression (or nested lists of them for a tensor) in x, y[, z], or from a
    plain callable f(x, y, ...).  The wrapped value is the NumPy-vectorised
    callable; ``eval`` applies it to a ``(..., dim)`` coordinate array.
    """
    _x, _y, _z = sp.symbols("x y z")
    _coord_syms = (_x, _y, _z)

    def __init__(self, sympy_expr, space_dim: int = 2, tensor_shape: tuple | None = None):
        if space_dim not in (1, 2, 3):
            raise ValueError("space_dim must be 1, 2 or 3.")
        self.space_dim = space_dim
        coords = self._coord_syms[:space_dim]
        if callable(sympy_expr) and not isinstance(sympy_expr, sp.Basic):
            self.sympy_expr = None
            func = sympy_expr
            self.tensor_shape = tuple(tensor_shape) if tensor_shape is not None else ()
        else:
            if isinstance(sympy_expr, (list, tuple)):
                sympy_expr = _sympify_nested(sympy_expr)
                self.tensor_shape = _nested_shape(sympy_expr)
            else:
                sympy_expr = sp.sympify(sympy_expr)
                self.tensor_shape = ()
            self.sympy_expr = sympy_expr
            func = sp.lambdify(coords, sympy_expr, "numpy")
        super().__init__(func)

    @property
    def coords(self):
        return self._coord_syms[:self.space_dim]

    @property
    def shape(self):
        return self.tensor_shape

    def grad(self) -> "Analytic":
        """
        Symbolic gradient.  A scalar gives a vector of length dim, a vector of
        length k its (k, dim) Jacobian, and so on: one trailing axis is added.
        """
        if self.sympy_expr is None:
            raise TypeError("grad() needs an Analytic built from a SymPy expression.")

        def _grad(e):
            if isinstance(e, list):
                return [_grad(item) for item in e]
            return [sp.diff(e, c) for c in self.coords]

        return Analytic(_grad(self.sympy_expr), space_dim=self.space_dim)

    def eval(self, X):
        """X : (..., dim) array → (...) + tensor_shape."""
        X = np.asarray(X, dtype=float)
        if X.shape[-1] != self.space_dim:
            raise ValueError(f"Expected coordinates with last axis {self.space_dim}, got {X.shape}.")
        lead = X.shape[:-1]
        out = self.value(*[X[..., i] for i in range(self.space_dim)])
        if self.sympy_expr is not None and self.tensor_shape:
            return _stack(out, lead)
        return np.broadcast_to(np.asarray(out, dtype=float), lead + self.tensor_shape)

    def __repr__(self):
        if self.sympy_expr is None:
            return f"Analytic({getattr(self.value, '__name__', 'callable')})"
        return f"Analytic({self.sympy_expr})"

    def __eq__(self, other):
        if type(other) is not type(self):
            return False
        if self.sympy_expr is None or other.sympy_expr is None:
            return self.value is other.value
        return self.space_dim == other.space_dim and self.sympy_expr == other.sympy_expr

    def __hash__(self):
        if self.sympy_expr is None:
            return hash((type(self), self.value))
        return hash((type(self), self.space_dim, _nested_key(self.sympy_expr)))


# helper to avoid typing Analytic._x all the time
x, y, z = Analytic._coord_syms
