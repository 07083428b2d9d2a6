"""
Configuration constants and the process-wide instrumentation toggle
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.logging import get_logger

logger = get_logger(__name__)


# Clause markers, matched on the terminal name of the callable
REQUIRE_MARKERS = frozenset({"require", "requires"})
ENSURE_MARKERS = frozenset({"ensure", "ensures"})
ALIAS_MARKERS = frozenset({"returns_as"})
CONTRACT_MARKERS = frozenset({"contract"})
INVARIANT_MARKERS = frozenset({"invariant", "loop_invariant"})

CLAUSE_MARKERS = REQUIRE_MARKERS | ENSURE_MARKERS | ALIAS_MARKERS

# Identifiers reserved inside woven code
DEFAULT_RETURN_ALIAS = "result"
REPORT_NAME = "__agreement_report__"
RETURNED_NAME = "__agreement_returned__"
FACTORY_NAME = "__agreement_factory__"


class AgreementSettings(BaseSettings):
    """Startup settings, read from AGREEMENT_* environment variables"""

    model_config = SettingsConfigDict(env_prefix="AGREEMENT_")

    enabled: bool = True


_enabled = AgreementSettings().enabled


def set_agreement_enabling(enabled: bool) -> bool:
    """
    Switch requirement/ensure instrumentation on or off.

    Only functions transformed after this call are affected; functions
    already woven keep the checks they were built with.

    Returns:
        The previous value of the toggle
    """
    global _enabled
    previous = _enabled
    _enabled = bool(enabled)
    logger.info("agreement_toggled", enabled=_enabled, previous=previous)
    return previous


def is_agreement_enabled() -> bool:
    return _enabled
