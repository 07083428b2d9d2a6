"""
Shared fixtures
"""

import pytest

from agreement import set_agreement_enabling


@pytest.fixture(autouse=True)
def instrumentation_on():
    """Every test starts with instrumentation on and leaves it as found"""
    previous = set_agreement_enabling(True)
    yield
    set_agreement_enabling(previous)
