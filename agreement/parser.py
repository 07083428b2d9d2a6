"""
Parser turning contract annotations into ContractDeclarations.

Two surfaces are understood. A contract block is plain statements::

    require(len(d) < 2, len(key) > 0)
    ensure(len(out) > 0)
    result = out
    def put(d, key, value):
        ...

and the decorator form reads the same clauses off a definition::

    @contract
    @requires("len(d) < 2", "len(key) > 0")
    @ensures("len(out) > 0")
    @returns_as("out")
    def put(d, key, value):
        ...
"""

import ast
import keyword
import textwrap
from typing import AbstractSet, List, Optional, Sequence

from .core.config import (
    CLAUSE_MARKERS,
    CONTRACT_MARKERS,
    DEFAULT_RETURN_ALIAS,
    ENSURE_MARKERS,
    REQUIRE_MARKERS,
)
from .core.models import ContractDeclaration, Expression
from .core.violations import MalformedContract
from .translators.expressions import expression_from_node, terminal_name
from .utils.logging import get_logger

logger = get_logger(__name__)

_DEFINITION_TYPES = (ast.FunctionDef, ast.AsyncFunctionDef)


class _Clauses:
    """Clauses collected while walking a block, in declared order"""

    def __init__(self):
        self.requirements: List[Expression] = []
        self.ensures: List[Expression] = []
        self.alias: Optional[str] = None

    def set_alias(self, alias: str):
        if self.alias is not None:
            raise MalformedContract(
                f"Return alias assigned more than once ('{self.alias}', then '{alias}')")
        if not alias.isidentifier() or keyword.iskeyword(alias):
            raise MalformedContract(f"Return alias '{alias}' is not a valid identifier")
        self.alias = alias

    def declaration(self, definition: ast.stmt) -> ContractDeclaration:
        declaration = ContractDeclaration(
            function_name=definition.name,
            definition=definition,
            requirements=tuple(self.requirements),
            ensures=tuple(self.ensures),
            return_alias=self.alias or DEFAULT_RETURN_ALIAS,
        )
        logger.debug("contract_parsed",
                     function=declaration.function_name,
                     requirements=len(declaration.requirements),
                     ensures=len(declaration.ensures),
                     alias=declaration.return_alias)
        return declaration


class ContractParser:
    """Parse contract blocks and decorated definitions"""

    def parse_block(self, source: str) -> ContractDeclaration:
        """
        Parse a contract block from source text.

        Args:
            source: require/ensure declarations, an optional
                ``result = <alias>`` and exactly one function definition

        Raises:
            MalformedContract: If the block is structurally invalid
        """
        source = textwrap.dedent(source)
        try:
            module = ast.parse(source)
        except SyntaxError as e:
            raise MalformedContract(f"Contract block is not valid Python: {e.msg}") from e
        return self.parse_statements(module.body, source)

    def parse_statements(self, statements: Sequence[ast.stmt],
                         source: Optional[str] = None) -> ContractDeclaration:
        """Parse an already-parsed contract block"""
        clauses = _Clauses()
        definition = None

        for stmt in statements:
            if _is_filler(stmt):
                continue
            if definition is not None:
                raise MalformedContract(
                    f"The function definition '{definition.name}' must be the last "
                    f"statement of a contract block")

            if isinstance(stmt, _DEFINITION_TYPES):
                for decorator in stmt.decorator_list:
                    if _marker_name(decorator) in CLAUSE_MARKERS | CONTRACT_MARKERS:
                        raise MalformedContract(
                            f"Contract decorators cannot be used inside a contract block "
                            f"('{stmt.name}')")
                definition = stmt
            elif _is_clause_call(stmt, REQUIRE_MARKERS):
                clauses.requirements.extend(self._expressions(stmt.value, "require", source))
            elif _is_clause_call(stmt, ENSURE_MARKERS):
                clauses.ensures.extend(self._expressions(stmt.value, "ensure", source))
            elif _is_alias_assignment(stmt):
                clauses.set_alias(stmt.value.id)
            else:
                raise MalformedContract(
                    f"Unexpected statement in contract block: {ast.unparse(stmt)}")

        if definition is None:
            raise MalformedContract("Contract block has no function definition")
        return clauses.declaration(definition)

    def parse_definition(self, definition: ast.stmt,
                         source: Optional[str] = None,
                         contract_names: AbstractSet[str] = CONTRACT_MARKERS) -> ContractDeclaration:
        """
        Parse a definition carrying ``@contract`` and clause decorators.

        Decorators above ``@contract`` are left to Python and dropped from
        the returned definition, as are the clause markers. Anything else
        beneath ``@contract`` cannot be reproduced and is rejected.

        Args:
            definition: Decorated function definition
            source: Text the definition was parsed from
            contract_names: Names ``@contract`` may be spelled with. When
                none of the decorators uses one, the lowest decorator that
                is not a clause marker is taken to be ``@contract``.

        Raises:
            MalformedContract: On invalid clauses or foreign decorators
        """
        if not isinstance(definition, _DEFINITION_TYPES):
            raise MalformedContract(
                f"Contracts apply to functions, not {type(definition).__name__}")

        decorators = list(definition.decorator_list)
        named = [i for i, d in enumerate(decorators) if _marker_name(d) in contract_names]
        if named:
            position = named[0]
        else:
            position = next((i for i in reversed(range(len(decorators)))
                             if not _is_clause_decorator(decorators[i])), -1)
        below = decorators[position + 1:]

        clauses = _Clauses()
        for decorator in below:
            marker = _marker_name(decorator)
            if not _is_clause_decorator(decorator):
                raise MalformedContract(
                    f"Decorator '{ast.unparse(decorator)}' cannot be applied beneath "
                    f"@contract on '{definition.name}'")
            if marker in REQUIRE_MARKERS:
                clauses.requirements.extend(self._expressions(decorator, "require", source))
            elif marker in ENSURE_MARKERS:
                clauses.ensures.extend(self._expressions(decorator, "ensure", source))
            else:
                clauses.set_alias(self._alias_argument(decorator))

        bare = _copy_without_decorators(definition)
        return clauses.declaration(bare)

    def _expressions(self, call: ast.Call, what: str,
                     source: Optional[str]) -> List[Expression]:
        if call.keywords:
            raise MalformedContract(f"{what} takes expressions only, not keyword arguments")
        if not call.args:
            raise MalformedContract(f"{what} needs at least one expression")
        return [expression_from_node(arg, source) for arg in call.args]

    def _alias_argument(self, call: ast.Call) -> str:
        if len(call.args) != 1 or call.keywords:
            raise MalformedContract("returns_as takes exactly one name")
        arg = call.args[0]
        if isinstance(arg, ast.Constant) and isinstance(arg.value, str):
            return arg.value
        if isinstance(arg, ast.Name):
            return arg.id
        raise MalformedContract(f"returns_as expects a name, got {ast.unparse(arg)}")


def _marker_name(decorator: ast.expr) -> Optional[str]:
    if isinstance(decorator, ast.Call):
        decorator = decorator.func
    return terminal_name(decorator)


def _is_clause_decorator(decorator: ast.expr) -> bool:
    """``@requires(...)``, ``@ensures(...)`` or ``@returns_as(...)``"""
    return isinstance(decorator, ast.Call) and _marker_name(decorator) in CLAUSE_MARKERS


def _is_filler(stmt: ast.stmt) -> bool:
    """Docstrings and ``pass`` carry no meaning in a block"""
    if isinstance(stmt, ast.Pass):
        return True
    return (isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Constant)
            and isinstance(stmt.value.value, str))


def _is_clause_call(stmt: ast.stmt, markers: frozenset) -> bool:
    return (isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Call)
            and terminal_name(stmt.value.func) in markers)


def _is_alias_assignment(stmt: ast.stmt) -> bool:
    """``result = <alias>``"""
    return (isinstance(stmt, ast.Assign)
            and len(stmt.targets) == 1
            and isinstance(stmt.targets[0], ast.Name)
            and stmt.targets[0].id == DEFAULT_RETURN_ALIAS
            and isinstance(stmt.value, ast.Name))


def _copy_without_decorators(definition: ast.stmt) -> ast.stmt:
    fields = {name: getattr(definition, name) for name in definition._fields}
    fields["decorator_list"] = []
    bare = type(definition)(**fields)
    return ast.copy_location(bare, definition)
