"""
Tests for loop invariant injection
"""

import ast
import textwrap
import pytest
from agreement import (
    InvariantViolation,
    MalformedContract,
    contract,
    define,
    inject_invariant,
    invariant,
    set_agreement_enabling,
)
from agreement.translators.expressions import parse_expression
from agreement.weavers.invariants import expand_invariants


def loop_of(source):
    return ast.parse(textwrap.dedent(source)).body[0]


def is_check(stmt):
    return isinstance(stmt, ast.If) and "__agreement_report__('invariant'" in ast.unparse(stmt)


def test_checks_around_every_top_level_statement():
    """Test the check layout: one before the loop, two per body statement"""
    loop = loop_of('''
        while i < n:
            total += i
            i += 1
            log(i)
    ''')

    before, instrumented = inject_invariant(loop, parse_expression("i <= n"), "f")

    assert is_check(before)
    assert len(instrumented.body) == 9
    pattern = [is_check(s) for s in instrumented.body]
    assert pattern == [True, False, True] * 3
    assert ast.unparse(instrumented.test) == "i < n"


def test_nested_blocks_not_instrumented():
    """Test that statements inside a nested if or loop get no checks"""
    loop = loop_of('''
        for item in items:
            if item:
                x = -1
                x = 0
            for other in item:
                pass
    ''')

    _, instrumented = inject_invariant(loop, parse_expression("x >= 0"), "f")

    nested_if = instrumented.body[1]
    nested_for = instrumented.body[4]
    assert [type(s).__name__ for s in nested_if.body] == ["Assign", "Assign"]
    assert [type(s).__name__ for s in nested_for.body] == ["Pass"]


def test_loop_else_left_alone():
    """Test that the else clause of a loop is not instrumented"""
    loop = loop_of('''
        for item in items:
            use(item)
        else:
            finish()
    ''')

    _, instrumented = inject_invariant(loop, parse_expression("ok"), "f")

    assert ast.unparse(instrumented.orelse[0]) == "finish()"


def test_original_loop_untouched():
    """Test that injection returns new nodes"""
    loop = loop_of('''
        while x:
            x -= 1
    ''')
    before = ast.dump(loop)

    inject_invariant(loop, parse_expression("x >= 0"), "f")

    assert ast.dump(loop) == before


def test_invariant_must_wrap_loop():
    """Test annotations around something other than a loop"""
    with pytest.raises(MalformedContract, match="for or while loop"):
        inject_invariant(loop_of("x = 1\n"), parse_expression("x"), "f")

    definition = loop_of('''
        def f(x):
            with invariant(x > 0):
                x = 1
                x = 2
    ''')
    with pytest.raises(MalformedContract, match="exactly one loop"):
        expand_invariants(definition)

    definition = loop_of('''
        def f(x):
            with invariant(x > 0, x < 5):
                while x:
                    x -= 1
    ''')
    with pytest.raises(MalformedContract, match="exactly one expression"):
        expand_invariants(definition)


def test_expansion_reports_enclosing_function():
    """Test that invariants in nested functions name the nested function"""
    definition = loop_of('''
        def outer(n):
            def inner(i):
                with invariant("i >= 0"):
                    while i:
                        i -= 1
            return inner(n)
    ''')

    expanded = expand_invariants(definition)

    assert "__agreement_report__('invariant', 'i >= 0', 'inner')" in ast.unparse(expanded)


def test_nested_annotated_loops_expand_once():
    """Test an annotated loop inside another annotated loop"""
    definition = loop_of('''
        def grid(rows, cols):
            r = 0
            with invariant(r <= rows):
                while r < rows:
                    c = 0
                    with invariant(c <= cols):
                        while c < cols:
                            c += 1
                    r += 1
    ''')

    expanded = expand_invariants(definition)
    outer_loop = expanded.body[2]

    # c = 0 and the annotated inner loop are each wrapped by the outer
    # check; the inner loop expands into its own check plus the loop
    assert [is_check(s) for s in outer_loop.body] == [
        True, False, True,
        True, True, False, True,
        True, False, True,
    ]
    inner_loop = outer_loop.body[5]
    assert [is_check(s) for s in inner_loop.body] == [True, False, True]
    assert "c <= cols" in ast.unparse(inner_loop.body[0])


@contract
def walk_up(log, i, n):
    with invariant("i < 3"):
        while i < n:
            log.append(("step", i))
            i += 5
            log.append("unreached")
    return i


def test_invariant_false_before_loop():
    """Test that the entry check fires before any iteration"""
    log = []
    with pytest.raises(InvariantViolation) as raised:
        walk_up(log, 4, 10)

    assert log == []
    assert raised.value.source_text == "i < 3"
    assert raised.value.function_name == "walk_up"


def test_invariant_broken_by_statement():
    """Test that the check right after a statement stops the next one"""
    log = []
    with pytest.raises(InvariantViolation):
        walk_up(log, 0, 10)

    assert log == [("step", 0)]


def test_invariant_holding_runs_normally():
    """Test a loop whose invariant holds throughout"""
    log = []
    assert walk_up(log, 2, 2) == 2
    assert log == []


def test_invariants_ignore_toggle():
    """Test that invariant checks are emitted with instrumentation off"""
    set_agreement_enabling(False)
    countdown = define('''
        def countdown(n):
            with invariant(n >= 0):
                while n != 0:
                    n -= 2
            return n
    ''')

    assert countdown(4) == 0
    with pytest.raises(InvariantViolation, match="Breach on Invariant Expression 'n >= 0'"):
        countdown(3)


def test_nested_statements_do_not_trip_invariant():
    """Test that a temporary break inside a nested block goes unchecked"""
    @contract
    def settle(items):
        x = 0
        total = 0
        with invariant("x >= 0"):
            for item in items:
                if item:
                    x = -1
                    x = 0
                total += 1
        return total

    assert settle([1, 0, 1]) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
