"""
Weaving requirement and ensure checks into a function definition
"""

import ast
import copy
from typing import Optional

from ..core.config import is_agreement_enabled
from ..core.models import ContractDeclaration
from ..core.violations import ExpressionKind
from ..translators.statements import locate_exit_points, resolve_path
from ..utils.logging import get_logger
from .checks import build_check, build_exit

logger = get_logger(__name__)


def weave(declaration: ContractDeclaration, enabled: Optional[bool] = None) -> ast.stmt:
    """
    Produce the instrumented definition for a contract declaration.

    Requirement checks go in front of the original body, in declared
    order. When ensures exist, every exit point found in the original
    body is rewritten to bind the returned value, check each ensure
    against it under the return alias, and only then return it.

    Args:
        declaration: Parsed contract
        enabled: Instrumentation toggle; read once from the global
            setting when omitted

    Returns:
        A new FunctionDef / AsyncFunctionDef; the declaration is untouched
    """
    if enabled is None:
        enabled = is_agreement_enabled()

    definition = copy.deepcopy(declaration.definition)
    name = declaration.function_name

    if not enabled:
        logger.debug("contract_woven", function=name, enabled=False)
        return definition

    exits = []
    if declaration.ensures:
        # Paths come from the original body, so splice from the last exit
        # backwards to keep earlier paths valid.
        exits = locate_exit_points(declaration.body)
        for exit_point in reversed(exits):
            statements, index = resolve_path(definition, exit_point.path)
            if exit_point.implicit:
                anchor = statements[-1] if statements else definition
            else:
                anchor = statements[index]
            statements[index:index + 1] = build_exit(
                exit_point.returned_expression,
                list(declaration.ensures),
                declaration.return_alias,
                name,
                anchor,
            )

    if declaration.requirements:
        checks = [build_check(requirement, ExpressionKind.REQUIREMENT, name, definition)
                  for requirement in declaration.requirements]
        offset = 1 if _has_docstring(definition) else 0
        definition.body[offset:offset] = checks

    logger.debug("contract_woven",
                 function=name,
                 enabled=True,
                 requirements=len(declaration.requirements),
                 ensures=len(declaration.ensures),
                 exits=len(exits))
    return definition


def _has_docstring(definition: ast.stmt) -> bool:
    first = definition.body[0] if definition.body else None
    return (isinstance(first, ast.Expr)
            and isinstance(first.value, ast.Constant)
            and isinstance(first.value.value, str))
