"""
Main weaving pipeline: parse, instrument, compile, bind
"""

import ast
import copy
import dataclasses
import functools
import inspect
import textwrap
import types
from typing import AbstractSet, Any, Callable, Dict, Optional

from .config import CONTRACT_MARKERS, FACTORY_NAME, REPORT_NAME, is_agreement_enabled
from .models import ContractDeclaration
from .violations import MalformedContract, report
from ..parser import ContractParser
from ..utils.logging import get_logger
from ..utils.source import function_source
from ..weavers.contracts import weave
from ..weavers.invariants import expand_invariants

logger = get_logger(__name__)


def build(declaration: ContractDeclaration,
          namespace: Dict[str, Any],
          filename: str = "<agreement>",
          first_line: int = 1,
          original: Optional[Callable] = None,
          source: Optional[str] = None,
          enabled: Optional[bool] = None) -> Callable:
    """
    Turn a contract declaration into a callable.

    Loop invariants are expanded first (always), then requirement and
    ensure checks are woven according to the toggle, read once here.

    Args:
        declaration: Parsed contract
        namespace: Globals the function will run in
        filename: Reported in tracebacks
        first_line: Line of the parsed source's first line in ``filename``
        original: Function being replaced, whose closure, defaults and
            metadata carry over
        source: Text the declaration was parsed from, for expression text
        enabled: Override for the instrumentation toggle

    Returns:
        The woven function, with ``__agreement__`` holding the declaration
        and ``__agreement_source__`` the instrumented source
    """
    if enabled is None:
        enabled = is_agreement_enabled()

    expanded = expand_invariants(declaration.definition, source)
    woven = weave(dataclasses.replace(declaration, definition=expanded), enabled)
    woven_source = ast.unparse(woven)

    function = _materialize(woven, namespace, filename, first_line, original)
    function.__agreement__ = declaration
    function.__agreement_source__ = woven_source

    logger.debug("contract_built",
                 function=declaration.function_name,
                 filename=filename,
                 enabled=enabled)
    return function


def instrument(func: Callable,
               contract_names: AbstractSet[str] = CONTRACT_MARKERS) -> Callable:
    """
    Rebuild a live function from its source with its contract woven in.

    Args:
        func: Function to rebuild
        contract_names: Names the ``@contract`` decorator is spelled with
            in the source

    Raises:
        MalformedContract: If ``func`` is not a plain function, its source
            is unavailable, or its clauses are invalid
    """
    if not inspect.isfunction(func):
        raise MalformedContract(
            f"@contract must decorate a function directly, got {type(func).__name__}")

    located = function_source(func)
    declaration = ContractParser().parse_definition(located.definition, located.source,
                                                    contract_names)
    return build(declaration,
                 func.__globals__,
                 filename=located.filename,
                 first_line=located.first_line,
                 original=func,
                 source=located.source)


def define(source: str,
           namespace: Optional[Dict[str, Any]] = None,
           filename: str = "<agreement>") -> Callable:
    """
    Define a function from a contract block.

    Args:
        source: Block of require/ensure declarations, an optional
            ``result = <alias>``, and one function definition
        namespace: Globals for the function; it is also bound there under
            its name. A fresh dict when omitted.
        filename: Reported in tracebacks

    Returns:
        The woven function

    Raises:
        MalformedContract: If the block is invalid
    """
    if namespace is None:
        namespace = {}

    text = textwrap.dedent(source)
    declaration = ContractParser().parse_block(text)
    function = build(declaration, namespace, filename=filename, source=text)
    namespace[declaration.function_name] = function
    return function


def _materialize(definition: ast.stmt,
                 namespace: Dict[str, Any],
                 filename: str,
                 first_line: int,
                 original: Optional[Callable]) -> Callable:
    """
    Compile a woven definition inside a factory function.

    The factory's parameters become the woven function's closure: the
    violation reporter, plus the original's free variables, which are then
    swapped for the original closure cells so bindings stay live.

    When replacing ``original``, default values and annotations were
    already evaluated in the original's scope; they are stripped from the
    definition and carried over from ``original`` instead.
    """
    if original is not None:
        definition = _without_signature_expressions(definition)

    freevars = original.__code__.co_freevars if original is not None else ()
    params = ", ".join((REPORT_NAME,) + tuple(freevars))
    factory = ast.parse(f"def {FACTORY_NAME}({params}):\n"
                        f"    return {definition.name}\n").body[0]

    definition = ast.increment_lineno(definition, first_line - 1)
    factory.body.insert(0, definition)
    module = ast.Module(body=[factory], type_ignores=[])
    ast.fix_missing_locations(module)

    code = compile(module, filename, "exec")
    scope: Dict[str, Any] = {}
    exec(code, namespace, scope)
    function = scope[FACTORY_NAME](report, *([None] * len(freevars)))

    if original is None:
        function.__qualname__ = definition.name
        return function

    if freevars:
        cells = dict(zip(function.__code__.co_freevars, function.__closure__ or ()))
        cells.update(zip(freevars, original.__closure__))
        function = types.FunctionType(function.__code__,
                                      function.__globals__,
                                      function.__name__,
                                      original.__defaults__,
                                      tuple(cells[name] for name in function.__code__.co_freevars))

    function.__defaults__ = original.__defaults__
    function.__kwdefaults__ = original.__kwdefaults__
    function = functools.update_wrapper(function, original)
    function.__annotations__ = dict(original.__annotations__)
    return function


def _without_signature_expressions(definition: ast.stmt) -> ast.stmt:
    """Copy of ``definition`` with no default values or annotations"""
    definition = copy.deepcopy(definition)
    arguments = definition.args
    arguments.defaults = []
    arguments.kw_defaults = [None] * len(arguments.kwonlyargs)
    for arg in (arguments.posonlyargs + arguments.args + arguments.kwonlyargs
                + [arguments.vararg, arguments.kwarg]):
        if arg is not None:
            arg.annotation = None
    definition.returns = None
    return definition
