"""
Tests for the return-site locator
"""

import ast
import textwrap
import pytest
from agreement import locate_exit_points
from agreement.translators.statements import resolve_path


def definition_of(source):
    return ast.parse(textwrap.dedent(source)).body[0]


def test_single_return():
    """Test a straight-line function"""
    definition = definition_of('''
        def add(a, b):
            return a + b
    ''')

    exits = locate_exit_points(definition.body)

    assert len(exits) == 2
    assert exits[0].returned_expression.source == "a + b"
    assert exits[0].path == (("body", 0),)
    assert not exits[0].implicit
    assert exits[1].implicit
    assert exits[1].returned_expression is None
    assert exits[1].path == (("body", 1),)


def test_nested_branches_and_loops():
    """Test depth-first, left-to-right order through nested control flow"""
    definition = definition_of('''
        def f(x):
            if x > 0:
                return 1
            elif x < 0:
                for i in range(3):
                    if i:
                        return i
            else:
                def inner():
                    return 99
                while x:
                    return
            return x
    ''')

    exits = locate_exit_points(definition.body)
    sources = [e.returned_expression.source if e.returned_expression else None for e in exits]

    assert sources == ["1", "i", None, "x", None]
    assert exits[0].path == (("body", 0), ("body", 0))
    assert exits[1].path == (("body", 0), ("orelse", 0), ("body", 0), ("body", 0), ("body", 0))
    assert exits[2].path == (("body", 0), ("orelse", 0), ("orelse", 1), ("body", 0))
    assert [e.implicit for e in exits] == [False, False, False, False, True]


def test_nested_scopes_are_skipped():
    """Test that returns of inner functions, classes and lambdas are not exits"""
    definition = definition_of('''
        def outer():
            def helper():
                return 1
            class Box:
                def get(self):
                    return 2
            key = lambda v: v
            return helper
    ''')

    exits = locate_exit_points(definition.body)

    assert [e.returned_expression.source for e in exits[:-1]] == ["helper"]


def test_with_and_try_blocks():
    """Test exits inside with, except handlers and finally"""
    definition = definition_of('''
        def g(path):
            with open(path) as fh:
                return fh.read()
            try:
                pass
            except ValueError:
                return "bad"
            finally:
                return "done"
    ''')

    exits = locate_exit_points(definition.body)

    assert [e.returned_expression.source for e in exits[:-1]] == ["fh.read()", "'bad'", "'done'"]
    assert exits[1].path == (("body", 1), ("handlers", 0), ("body", 0))
    assert exits[2].path == (("body", 1), ("finalbody", 0))


def test_unreachable_return_still_counted():
    """Test that the traversal does not reason about reachability"""
    definition = definition_of('''
        def f():
            return 1
            return 2
    ''')

    exits = locate_exit_points(definition.body)

    assert [e.returned_expression.source for e in exits[:-1]] == ["1", "2"]


def test_paths_resolve_to_returns():
    """Test that every explicit exit path leads back to its return statement"""
    definition = definition_of('''
        def f(x):
            if x:
                try:
                    return 1
                except KeyError:
                    return 2
            return 3
    ''')

    for exit_point in locate_exit_points(definition.body):
        statements, index = resolve_path(definition, exit_point.path)
        if exit_point.implicit:
            assert index == len(statements)
        else:
            assert isinstance(statements[index], ast.Return)
            assert ast.unparse(statements[index].value) == exit_point.returned_expression.source


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
