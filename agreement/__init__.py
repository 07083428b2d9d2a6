"""
agreement: Design-by-Contract for Python through source weaving
"""

import logging

from .core.builder import build, define, instrument
from .core.config import is_agreement_enabled, set_agreement_enabling
from .core.models import ContractDeclaration, ExitPoint, Expression, NodeKind
from .core.violations import (
    AgreementError,
    ContractViolation,
    EnsureViolation,
    ExpressionKind,
    InvariantViolation,
    MalformedContract,
    RequirementViolation,
    ViolationReport,
)
from .decorators import contract, ensures, invariant, loop_invariant, requires, returns_as
from .parser import ContractParser
from .translators.statements import locate_exit_points
from .utils.logging import configure_logging
from .weavers.contracts import weave
from .weavers.invariants import inject_invariant

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "contract",
    "requires",
    "ensures",
    "returns_as",
    "invariant",
    "loop_invariant",
    "define",
    "build",
    "instrument",
    "set_agreement_enabling",
    "is_agreement_enabled",
    "ContractParser",
    "ContractDeclaration",
    "Expression",
    "ExitPoint",
    "NodeKind",
    "locate_exit_points",
    "weave",
    "inject_invariant",
    "configure_logging",
    "ExpressionKind",
    "ViolationReport",
    "AgreementError",
    "MalformedContract",
    "ContractViolation",
    "RequirementViolation",
    "EnsureViolation",
    "InvariantViolation",
]
