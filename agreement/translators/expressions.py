"""
Python AST expressions as contract expressions
"""

import ast
from typing import Optional

from ..core.models import Expression, NodeKind
from ..core.violations import MalformedContract


class NodeClassifier(ast.NodeVisitor):
    """Maps an ast node to its tag in the expression tree"""

    def visit_Constant(self, node: ast.Constant) -> NodeKind:
        return NodeKind.LITERAL

    visit_JoinedStr = visit_Constant
    visit_List = visit_Constant
    visit_Tuple = visit_Constant
    visit_Set = visit_Constant
    visit_Dict = visit_Constant
    visit_Slice = visit_Constant

    def visit_Name(self, node: ast.Name) -> NodeKind:
        return NodeKind.IDENTIFIER

    visit_Attribute = visit_Name
    visit_Subscript = visit_Name
    visit_Starred = visit_Name

    def visit_Call(self, node: ast.Call) -> NodeKind:
        return NodeKind.CALL

    def visit_BinOp(self, node: ast.BinOp) -> NodeKind:
        return NodeKind.BINARY_OP

    visit_BoolOp = visit_BinOp
    visit_Compare = visit_BinOp

    def visit_UnaryOp(self, node: ast.UnaryOp) -> NodeKind:
        return NodeKind.UNARY_OP

    def visit_IfExp(self, node: ast.AST) -> NodeKind:
        return NodeKind.CONDITIONAL

    visit_If = visit_IfExp
    visit_Match = visit_IfExp

    def visit_For(self, node: ast.AST) -> NodeKind:
        return NodeKind.LOOP

    visit_AsyncFor = visit_For
    visit_While = visit_For
    visit_ListComp = visit_For
    visit_SetComp = visit_For
    visit_DictComp = visit_For
    visit_GeneratorExp = visit_For

    def visit_With(self, node: ast.AST) -> NodeKind:
        return NodeKind.BLOCK

    visit_AsyncWith = visit_With
    visit_Try = visit_With
    visit_TryStar = visit_With
    visit_Module = visit_With

    def visit_Return(self, node: ast.Return) -> NodeKind:
        return NodeKind.RETURN

    def visit_FunctionDef(self, node: ast.AST) -> NodeKind:
        return NodeKind.SCOPE

    visit_AsyncFunctionDef = visit_FunctionDef
    visit_ClassDef = visit_FunctionDef
    visit_Lambda = visit_FunctionDef

    def generic_visit(self, node: ast.AST) -> NodeKind:
        if isinstance(node, ast.stmt):
            return NodeKind.STATEMENT
        raise NotImplementedError(f"Unsupported expression: {type(node).__name__}")


_classifier = NodeClassifier()


def classify(node: ast.AST) -> NodeKind:
    return _classifier.visit(node)


class CheckValidator(ast.NodeVisitor):
    """Rejects constructs that would let a check mutate state or suspend"""

    def __init__(self, source: str):
        self.source = source

    def _reject(self, node: ast.AST, what: str):
        raise MalformedContract(f"{what} is not allowed in contract expression '{self.source}'")

    def visit_NamedExpr(self, node: ast.NamedExpr):
        self._reject(node, "Assignment expression")

    def visit_Yield(self, node: ast.AST):
        self._reject(node, "yield")

    visit_YieldFrom = visit_Yield

    def visit_Await(self, node: ast.Await):
        self._reject(node, "await")


def parse_expression(text: str) -> Expression:
    """
    Parse a contract expression written as a string.

    Raises:
        MalformedContract: If the text is not a single Python expression
    """
    source = text.strip()
    try:
        node = ast.parse(source, mode="eval").body
    except SyntaxError as e:
        raise MalformedContract(f"Invalid contract expression '{source}': {e.msg}") from e
    return _checked(Expression(node=node, source=source))


def expression_from_node(node: ast.expr, block_source: Optional[str] = None) -> Expression:
    """
    Wrap a clause argument from a parsed block.

    String literals are parsed as expressions; anything else is taken as
    the expression itself, with its text recovered from ``block_source``.
    """
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return parse_expression(node.value)

    source = None
    if block_source is not None:
        source = ast.get_source_segment(block_source, node)
    if source is None:
        source = ast.unparse(node)
    return _checked(Expression(node=node, source=source))


def _checked(expression: Expression) -> Expression:
    CheckValidator(expression.source).visit(expression.node)
    return expression


def terminal_name(node: ast.AST) -> Optional[str]:
    """``requires`` for both ``requires`` and ``agreement.requires``"""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None
