from .errors import DivisionByNullError, UnsupportedOperandError
from .expressions import Expression, Operator, Constant, Field, NullOperator, NULL, as_expression, is_null
from .algebra import (mul, truediv, add, sub, maximum, minimum, dot,
                      pos, neg, transpose, tr, sqrt, absolute, tan, sin, cos, tanh, sinh, cosh,
                      atan, asin, acos, zero, broadcasted, compose)
from .visitor import ExpressionVisitor, get_operator, get_args, unwrap, iter_nodes, tree_repr
from .analytic import Analytic
__all__ = ['DivisionByNullError', 'UnsupportedOperandError',
           'Expression', 'Operator', 'Constant', 'Field', 'NullOperator', 'NULL', 'as_expression', 'is_null',
           'mul', 'truediv', 'add', 'sub', 'maximum', 'minimum', 'dot',
           'pos', 'neg', 'transpose', 'tr', 'sqrt', 'absolute', 'tan', 'sin', 'cos', 'tanh', 'sinh', 'cosh',
           'atan', 'asin', 'acos', 'zero', 'broadcasted', 'compose',
           'ExpressionVisitor', 'get_operator', 'get_args', 'unwrap', 'iter_nodes', 'tree_repr',
           'Analytic']
