"""Shared fixtures for the test-suite."""

from typing import (
    Any,
    Callable,
)

import pytest

from cortex_agent_action.config import Settings


@pytest.fixture
def make_settings(monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """
    Return a factory for :class:`Settings` isolated from the host environment.

    Runner variables such as ``RUNNER_TEMP`` or ``GITHUB_ACTIONS`` are removed first; tests may
    ``monkeypatch.setenv`` afterwards and the factory will pick those up.
    """
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)

    def _make(**values: Any) -> Settings:
        return Settings(_env_file=None, **values)

    return _make
