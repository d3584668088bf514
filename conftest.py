# conftest.py
import pytest

from lazyfem.ufl.expressions import Field
from lazyfem.ufl.visitor import ExpressionVisitor


class StubMaterializer(ExpressionVisitor):
    """Evaluates a tree with fields looked up by name; the null operator contributes 0."""

    def __init__(self, fields):
        super().__init__()
        self.fields = fields

    def _visit_Operator(self, node):
        return node.func(*[self._visit(arg) for arg in node.args])

    def _visit_Constant(self, node):
        return node.value

    def _visit_Field(self, node):
        return self.fields[node.name]

    def _visit_NullOperator(self, node):
        return 0.0


@pytest.fixture
def materialize():
    """materialize(expr, **fields) -> value of expr with the given field values."""
    def _materialize(expr, **fields):
        return StubMaterializer(fields).visit(expr)
    return _materialize


@pytest.fixture
def u():
    return Field("u")


@pytest.fixture
def v():
    return Field("v")
