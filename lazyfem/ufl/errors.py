# lazyfem/ufl/errors.py
"""Exceptions raised while building lazy expression trees."""


class DivisionByNullError(ZeroDivisionError):
    """Raised when a non-null operand is divided by the null operator."""


class UnsupportedOperandError(TypeError):
    """Raised when an operand or node cannot be classified."""
