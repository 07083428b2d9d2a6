"""
Data models for contract declarations and the woven expression tree
"""

import ast
import copy
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .config import DEFAULT_RETURN_ALIAS


class NodeKind(str, Enum):
    """Tags of the expression tree, as seen through Python's ast"""
    LITERAL = "literal"
    IDENTIFIER = "identifier"
    CALL = "call"
    BINARY_OP = "binary_op"
    UNARY_OP = "unary_op"
    BLOCK = "block"
    CONDITIONAL = "conditional"
    LOOP = "loop"
    RETURN = "return"
    SCOPE = "scope"          # nested def / class / lambda boundary
    STATEMENT = "statement"  # any other simple statement


@dataclass(frozen=True)
class Expression:
    """A parsed expression paired with the source text it was written as"""
    node: ast.expr
    source: str

    @property
    def kind(self) -> NodeKind:
        from ..translators.expressions import classify
        return classify(self.node)

    def clone(self) -> ast.expr:
        """Fresh copy of the node for insertion into a woven tree"""
        return copy.deepcopy(self.node)

    def __str__(self) -> str:
        return self.source


# One step into a statement list: (field name, index)
PathStep = Tuple[str, int]


@dataclass(frozen=True)
class ExitPoint:
    """A place where control leaves the contracted function"""
    returned_expression: Optional[Expression]
    path: Tuple[PathStep, ...]
    implicit: bool = False  # falling off the end of the body


@dataclass(frozen=True)
class ContractDeclaration:
    """A parsed contract block: clauses plus the function they wrap"""
    function_name: str
    definition: ast.stmt  # ast.FunctionDef or ast.AsyncFunctionDef
    requirements: Tuple[Expression, ...] = ()
    ensures: Tuple[Expression, ...] = ()
    return_alias: str = DEFAULT_RETURN_ALIAS

    @property
    def body(self) -> List[ast.stmt]:
        return self.definition.body
