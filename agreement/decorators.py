"""
Decorators and markers for declaring contracts.

Usage:
    @contract
    @requires("n >= 0")
    @ensures("result == n")
    def count_to(n: int) -> int:
        c = 0
        i = 0
        with invariant("c == i"):
            while i < n:
                c = c + 1
                i = i + 1
        return c

Optional return alias:
    @contract
    @ensures("total >= 0")
    @returns_as("total")
    def magnitude(x: int) -> int:
        ...

``@contract`` does the work: it rebuilds the function from its source
with every check woven in. The clause markers beneath it only carry
expressions, written as strings, and change nothing on their own.
"""

import keyword
from typing import Callable, TypeVar

from .core.builder import instrument
from .core.config import CONTRACT_MARKERS
from .core.violations import MalformedContract

F = TypeVar('F', bound=Callable)


def contract(func: F) -> F:
    """
    Weave the contract declared beneath this decorator into ``func``.

    This decorator must be above every clause marker, and nothing but
    clause markers may sit between it and the definition.

    Raises:
        MalformedContract: If the declaration is invalid
    """
    # the names this decorator is bound to where ``func`` was defined
    names = CONTRACT_MARKERS | {name for name, value in getattr(func, "__globals__", {}).items()
                                if value is contract}
    return instrument(func, names)


def _marker(name: str, *conditions: str) -> Callable[[F], F]:
    if not conditions:
        raise MalformedContract(f"{name} needs at least one expression")
    for condition in conditions:
        if not isinstance(condition, str):
            raise MalformedContract(
                f"{name} expressions are written as strings, got {condition!r}")

    def decorator(func: F) -> F:
        return func
    return decorator


def requires(*conditions: str) -> Callable[[F], F]:
    """
    Specify preconditions, checked in order before the body runs.

    Args:
        conditions: Python expressions over the arguments (e.g. "n >= 0")
    """
    return _marker("requires", *conditions)


def ensures(*conditions: str) -> Callable[[F], F]:
    """
    Specify postconditions, checked in order at every return.

    Args:
        conditions: Python expressions; the returned value is available
            as ``result`` or as the name given to @returns_as
    """
    return _marker("ensures", *conditions)


def returns_as(name: str) -> Callable[[F], F]:
    """
    Rename the returned value inside @ensures expressions.

    Args:
        name: Identifier to use instead of ``result``
    """
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
        raise MalformedContract(f"returns_as expects an identifier, got {name!r}")

    def decorator(func: F) -> F:
        return func
    return decorator


class invariant:
    """
    Loop invariant annotation, wrapping exactly one loop::

        with invariant("lo <= hi"):
            while lo < hi:
                ...

    Inside a function built by @contract or define() the block is
    replaced by the checked loop. Anywhere else it does nothing.
    """

    def __init__(self, condition):
        self.condition = condition

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


loop_invariant = invariant

