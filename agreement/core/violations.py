"""
Contract failures: the violation report and the exception hierarchy
"""

from enum import Enum
from typing import Dict, NoReturn, Type, Union

from pydantic import BaseModel, ConfigDict

from ..utils.logging import get_logger

logger = get_logger(__name__)


class ExpressionKind(str, Enum):
    """Which kind of contract expression was checked"""
    REQUIREMENT = "requirement"
    ENSURE = "ensure"
    INVARIANT = "invariant"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class ViolationReport(BaseModel):
    """A contract expression that evaluated false, and where"""

    model_config = ConfigDict(frozen=True)

    kind: ExpressionKind
    source_text: str
    function_name: str

    @property
    def message(self) -> str:
        return (f"Breach on {self.kind.label} Expression "
                f"'{self.source_text}' in function '{self.function_name}'")


class AgreementError(Exception):
    """Base class for everything raised by agreement"""


class MalformedContract(AgreementError):
    """The contract annotation is structurally invalid; raised at definition time"""


class ContractViolation(AgreementError):
    """A contract check evaluated false during a call"""

    kind: ExpressionKind

    def __init__(self, report: ViolationReport):
        super().__init__(report.message)
        self.report = report

    @property
    def source_text(self) -> str:
        return self.report.source_text

    @property
    def function_name(self) -> str:
        return self.report.function_name


class RequirementViolation(ContractViolation):
    kind = ExpressionKind.REQUIREMENT


class EnsureViolation(ContractViolation):
    kind = ExpressionKind.ENSURE


class InvariantViolation(ContractViolation):
    kind = ExpressionKind.INVARIANT


VIOLATIONS: Dict[ExpressionKind, Type[ContractViolation]] = {
    ExpressionKind.REQUIREMENT: RequirementViolation,
    ExpressionKind.ENSURE: EnsureViolation,
    ExpressionKind.INVARIANT: InvariantViolation,
}


def report(kind: Union[ExpressionKind, str], source_text: str, function_name: str) -> NoReturn:
    """
    Raise the violation for a failed check.

    Woven code calls this when a contract expression evaluates false.

    Raises:
        RequirementViolation, EnsureViolation or InvariantViolation
    """
    violation = ViolationReport(kind=ExpressionKind(kind),
                                source_text=source_text,
                                function_name=function_name)
    logger.debug("contract_breached",
                 kind=violation.kind.value,
                 expression=source_text,
                 function=function_name)
    raise VIOLATIONS[violation.kind](violation)
