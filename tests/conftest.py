# tests/conftest.py
from dataclasses import dataclass

import pytest

from hierbus.core import log
from hierbus.core import metrics
from hierbus.core.contracts import Event, Trait


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging():
    # reads LOG_LEVEL / LOG_JSON / .env if available
    log.setup()
    yield


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield
    metrics.reset()


# Shared taxonomy: Base <: Event, Derived <: Base, Tagged mixed into Derived
@dataclass(frozen=True)
class Base(Event):
    v: int = 0


class Tagged(Trait):
    pass


@dataclass(frozen=True)
class Derived(Base, Tagged):
    pass


@pytest.fixture
def taxa():
    return Base, Derived, Tagged
