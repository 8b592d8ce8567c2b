"""Shared test fixtures."""

import pytest

from anonymous.config import CONFIG_ENV_VAR, ENV_OVERRIDES, AnonymousSettings, set_settings
from anonymous.proxy import set_shared_factory
from tests.interfaces import RealCalculator, RealCounter, RealSettings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep process-wide settings and the shared factory out of each test."""
    for env_var in [*ENV_OVERRIDES.values(), CONFIG_ENV_VAR]:
        monkeypatch.delenv(env_var, raising=False)
    set_settings(None)
    set_shared_factory(None)
    yield
    set_settings(None)
    set_shared_factory(None)


@pytest.fixture
def strict_settings() -> AnonymousSettings:
    return AnonymousSettings(strict_annotations=True)


@pytest.fixture
def single_use_settings() -> AnonymousSettings:
    return AnonymousSettings(single_use_builders=True)


@pytest.fixture
def real_counter() -> RealCounter:
    return RealCounter()


@pytest.fixture
def real_calculator() -> RealCalculator:
    return RealCalculator()


@pytest.fixture
def real_settings() -> RealSettings:
    return RealSettings(title="original")
