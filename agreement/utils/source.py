"""
Source retrieval for live functions
"""

import ast
import inspect
import textwrap
from dataclasses import dataclass
from typing import Callable

from ..core.violations import MalformedContract


@dataclass
class FunctionSource:
    """A function's definition as parsed from its source file"""
    definition: ast.stmt
    source: str       # dedented text the definition was parsed from
    filename: str
    first_line: int   # line of ``source``'s first line in ``filename``


def function_source(func: Callable) -> FunctionSource:
    """
    Parse the definition of ``func`` back out of its source file.

    Raises:
        MalformedContract: If the source is unavailable or not a lone
            function definition
    """
    name = getattr(func, "__qualname__", repr(func))
    try:
        lines, first_line = inspect.getsourcelines(func)
    except (OSError, TypeError) as e:
        raise MalformedContract(f"Cannot read the source of {name}: {e}") from e

    source = textwrap.dedent("".join(lines))
    try:
        module = ast.parse(source)
    except SyntaxError as e:
        raise MalformedContract(f"Cannot parse the source of {name}: {e.msg}") from e

    if len(module.body) != 1 or not isinstance(module.body[0], (ast.FunctionDef, ast.AsyncFunctionDef)):
        raise MalformedContract(f"Source of {name} is not a single function definition")

    filename = inspect.getsourcefile(func) or func.__code__.co_filename
    return FunctionSource(definition=module.body[0],
                          source=source,
                          filename=filename,
                          first_line=max(first_line, 1))
