"""
Loop invariant injection.

A loop annotated with ``with invariant(expr):`` is checked once before
the loop starts and immediately before and after every top-level
statement of its body. Checks between two statements are emitted twice
on purpose: each is tied to its own statement boundary. Statements
nested inside the body (branches of an ``if``, inner loops) are not
checked by this invariant, and the loop's ``else:`` clause is left
alone.

These checks are emitted whatever the instrumentation toggle says, and
their cost grows with the number of statements in the loop body.
"""

import ast
import copy
from typing import Callable, List, Optional

from ..core.config import INVARIANT_MARKERS
from ..core.models import Expression
from ..core.violations import ExpressionKind, MalformedContract
from ..translators.expressions import expression_from_node, terminal_name
from ..utils.logging import get_logger
from .checks import build_check

logger = get_logger(__name__)

_LOOP_TYPES = (ast.For, ast.AsyncFor, ast.While)

Visitor = Callable[[ast.stmt], List[ast.stmt]]


def inject_invariant(loop: ast.stmt,
                     expression: Expression,
                     function_name: str,
                     visit: Optional[Visitor] = None) -> List[ast.stmt]:
    """
    Instrument one loop with an invariant.

    Args:
        loop: For/AsyncFor/While node (not modified)
        expression: Invariant to check
        function_name: Reported on failure
        visit: Applied to each top-level body statement before it is
            wrapped; used to expand annotations nested in the body

    Returns:
        [check before the loop, instrumented loop]
    """
    if not isinstance(loop, _LOOP_TYPES):
        raise MalformedContract(
            f"invariant '{expression.source}' must wrap a for or while loop, "
            f"not {type(loop).__name__}")

    def check(anchor: ast.AST) -> ast.If:
        return build_check(expression, ExpressionKind.INVARIANT, function_name, anchor)

    body: List[ast.stmt] = []
    for statement in loop.body:
        body.append(check(statement))
        body.extend(visit(statement) if visit else [copy.deepcopy(statement)])
        body.append(check(statement))

    instrumented = copy.copy(loop)
    instrumented.body = body
    instrumented.orelse = [copy.deepcopy(s) for s in loop.orelse]

    logger.debug("invariant_injected",
                 function=function_name,
                 expression=expression.source,
                 checks=len(loop.body) * 2 + 1)
    return [check(loop), instrumented]


def is_invariant_block(node: ast.AST) -> bool:
    """True for ``with invariant(...):`` blocks"""
    if not isinstance(node, ast.With) or len(node.items) != 1:
        return False
    context = node.items[0].context_expr
    return isinstance(context, ast.Call) and terminal_name(context.func) in INVARIANT_MARKERS


class InvariantExpander(ast.NodeTransformer):
    """Replaces every ``with invariant(...)`` block in a definition"""

    def __init__(self, source: Optional[str] = None):
        self.function_names: List[str] = []
        self.source = source

    def visit_FunctionDef(self, node: ast.AST) -> ast.AST:
        self.function_names.append(node.name)
        try:
            return self.generic_visit(node)
        finally:
            self.function_names.pop()

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_With(self, node: ast.With):
        if not is_invariant_block(node):
            return self.generic_visit(node)

        item = node.items[0]
        call = item.context_expr
        if item.optional_vars is not None:
            raise MalformedContract("invariant blocks do not bind a name with 'as'")
        if len(call.args) != 1 or call.keywords:
            raise MalformedContract("invariant takes exactly one expression")
        if len(node.body) != 1:
            raise MalformedContract("invariant must wrap exactly one loop")

        expression = expression_from_node(call.args[0], self.source)
        return inject_invariant(node.body[0], expression, self.function_names[-1],
                                visit=self.expand_statement)

    def expand_statement(self, statement: ast.stmt) -> List[ast.stmt]:
        result = self.visit(copy.deepcopy(statement))
        if result is None:
            return []
        return result if isinstance(result, list) else [result]


def expand_invariants(definition: ast.stmt, source: Optional[str] = None) -> ast.stmt:
    """Return a copy of ``definition`` with its invariant blocks instrumented"""
    return InvariantExpander(source).visit(copy.deepcopy(definition))

