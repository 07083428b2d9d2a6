"""
Construction of the check statements woven into function bodies
"""

import ast
from typing import List, Optional

from ..core.config import REPORT_NAME, RETURNED_NAME
from ..core.models import Expression
from ..core.violations import ExpressionKind


def build_check(expression: Expression,
                kind: ExpressionKind,
                function_name: str,
                anchor: ast.AST,
                alias: Optional[str] = None) -> ast.If:
    """
    Build ``if not (<expr>): __agreement_report__(kind, text, function)``.

    With ``alias`` set, the expression is evaluated as the body of
    ``lambda <alias>: ...`` applied to the value about to be returned, so
    the alias is visible to that expression only.

    Args:
        expression: Contract expression to check (cloned, never shared)
        kind: Kind reported on failure
        function_name: Enclosing function reported on failure
        anchor: Node whose source position the check takes
        alias: Return alias for ensure checks
    """
    test = expression.clone()
    if alias is not None:
        scope = ast.parse(f"lambda {alias}: None", mode="eval").body
        scope.body = test
        test = ast.Call(
            func=scope,
            args=[ast.Name(id=RETURNED_NAME, ctx=ast.Load())],
            keywords=[],
        )

    failure = ast.Expr(value=ast.Call(
        func=ast.Name(id=REPORT_NAME, ctx=ast.Load()),
        args=[ast.Constant(value=kind.value),
              ast.Constant(value=expression.source),
              ast.Constant(value=function_name)],
        keywords=[],
    ))
    check = ast.If(test=ast.UnaryOp(op=ast.Not(), operand=test), body=[failure], orelse=[])
    return relocate(check, anchor)


def build_exit(returned: Optional[Expression],
               ensures: List[Expression],
               alias: str,
               function_name: str,
               anchor: ast.AST) -> List[ast.stmt]:
    """
    Build the statements replacing one exit point:
    bind the returned value, check each ensure against it, then return it.
    """
    value = returned.clone() if returned is not None else ast.Constant(value=None)
    statements: List[ast.stmt] = [
        ast.Assign(targets=[ast.Name(id=RETURNED_NAME, ctx=ast.Store())], value=value)
    ]
    for ensure in ensures:
        statements.append(build_check(ensure, ExpressionKind.ENSURE, function_name, anchor, alias=alias))
    statements.append(ast.Return(value=ast.Name(id=RETURNED_NAME, ctx=ast.Load())))
    return [relocate(statement, anchor) for statement in statements]


def relocate(node: ast.AST, anchor: ast.AST) -> ast.AST:
    """Give ``node`` and everything under it the source span of ``anchor``"""
    for child in ast.walk(node):
        if "lineno" in child._attributes:
            child.lineno = anchor.lineno
            child.col_offset = anchor.col_offset
            child.end_lineno = getattr(anchor, "end_lineno", anchor.lineno)
            child.end_col_offset = getattr(anchor, "end_col_offset", anchor.col_offset)
    return node

