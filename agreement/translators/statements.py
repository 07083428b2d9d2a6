"""
Statement-level analysis of function bodies: locating exit points
"""

import ast
from typing import List, Sequence, Tuple

from ..core.models import Expression, ExitPoint, NodeKind, PathStep
from .expressions import classify

# Containers of statement lists that are not statements themselves
_CLAUSE_TYPES: Tuple[type, ...] = (ast.ExceptHandler,)
if hasattr(ast, "match_case"):
    _CLAUSE_TYPES += (ast.match_case,)


def locate_exit_points(body: Sequence[ast.stmt]) -> List[ExitPoint]:
    """
    Find every place control can leave a function body.

    Walks the body depth-first, left to right, through every compound
    statement but never into a nested def, class or lambda. Each
    ``return`` is an exit point; falling off the end of the top-level body
    is a final, implicit one. Unreachable returns are still reported.

    Args:
        body: Statements of the function, as in ``FunctionDef.body``

    Returns:
        Exit points with paths relative to the function node
    """
    exits: List[ExitPoint] = []
    _walk(body, "body", (), exits)
    exits.append(ExitPoint(returned_expression=None,
                           path=(("body", len(body)),),
                           implicit=True))
    return exits


def _walk(statements: Sequence[ast.stmt],
          field: str,
          prefix: Tuple[PathStep, ...],
          exits: List[ExitPoint]):
    for index, stmt in enumerate(statements):
        path = prefix + ((field, index),)
        kind = classify(stmt)

        if kind is NodeKind.RETURN:
            returned = None
            if stmt.value is not None:
                returned = Expression(node=stmt.value, source=ast.unparse(stmt.value))
            exits.append(ExitPoint(returned_expression=returned, path=path))
        elif kind in (NodeKind.CONDITIONAL, NodeKind.LOOP, NodeKind.BLOCK):
            _walk_children(stmt, path, exits)


def _walk_children(node: ast.AST, path: Tuple[PathStep, ...], exits: List[ExitPoint]):
    for name, value in ast.iter_fields(node):
        if not isinstance(value, list) or not value:
            continue
        if isinstance(value[0], ast.stmt):
            _walk(value, name, path, exits)
        elif isinstance(value[0], _CLAUSE_TYPES):
            # except handlers and match cases hold their own statement lists
            for index, clause in enumerate(value):
                _walk(clause.body, "body", path + ((name, index),), exits)


def resolve_path(root: ast.AST, path: Sequence[PathStep]) -> Tuple[list, int]:
    """
    Follow an exit path from ``root``.

    Returns:
        (statement list holding the exit, index within it)
    """
    node = root
    for name, index in path[:-1]:
        node = getattr(node, name)[index]
    name, index = path[-1]
    return getattr(node, name), index
