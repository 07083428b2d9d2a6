"""
Tests for violation reports and the exception hierarchy
"""

import pytest
from pydantic import ValidationError
from agreement import (
    AgreementError,
    ContractViolation,
    EnsureViolation,
    ExpressionKind,
    InvariantViolation,
    RequirementViolation,
    ViolationReport,
)
from agreement.core.violations import report


def test_message_format():
    """Test the human-readable form of a report"""
    violation = ViolationReport(kind="requirement", source_text="len(key) > 0", function_name="put")

    assert violation.kind is ExpressionKind.REQUIREMENT
    assert violation.message == "Breach on Requirement Expression 'len(key) > 0' in function 'put'"


def test_report_is_frozen():
    """Test that a report cannot be changed after creation"""
    violation = ViolationReport(kind="ensure", source_text="result", function_name="f")

    with pytest.raises(ValidationError):
        violation.function_name = "g"


def test_report_serializes():
    """Test the structured form handed to hosts"""
    violation = ViolationReport(kind=ExpressionKind.INVARIANT, source_text="i <= n", function_name="loop")

    assert violation.model_dump(mode="json") == {
        "kind": "invariant",
        "source_text": "i <= n",
        "function_name": "loop",
    }


@pytest.mark.parametrize("kind, expected", [
    ("requirement", RequirementViolation),
    ("ensure", EnsureViolation),
    ("invariant", InvariantViolation),
])
def test_report_raises_matching_violation(kind, expected):
    """Test that each kind raises its own exception"""
    with pytest.raises(expected) as raised:
        report(kind, "x > 0", "f")

    violation = raised.value
    assert isinstance(violation, ContractViolation)
    assert isinstance(violation, AgreementError)
    assert violation.kind is ExpressionKind(kind)
    assert violation.source_text == "x > 0"
    assert violation.function_name == "f"
    assert violation.report.kind is ExpressionKind(kind)
    assert str(violation) == f"Breach on {kind.capitalize()} Expression 'x > 0' in function 'f'"


def test_unknown_kind_rejected():
    """Test that only the three kinds exist"""
    with pytest.raises(ValueError):
        report("postcondition", "x", "f")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
