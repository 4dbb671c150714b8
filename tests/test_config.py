from __future__ import annotations

import pytest

from pyflux.config import FluxConfig


def test_defaults() -> None:
    config = FluxConfig()
    assert config.settle_timeout is None
    assert config.strict_observation is False
    assert config.warn_schemaless is True


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYFLUX_SETTLE_TIMEOUT", "2.5")
    monkeypatch.setenv("PYFLUX_STRICT_OBSERVATION", "yes")
    monkeypatch.setenv("PYFLUX_WARN_SCHEMALESS", "off")

    config = FluxConfig.from_env()

    assert config.settle_timeout == 2.5
    assert config.strict_observation is True
    assert config.warn_schemaless is False


@pytest.mark.parametrize("raw", ["", "none", "NULL", "0", "-1"])
def test_from_env_disables_timeout(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("PYFLUX_SETTLE_TIMEOUT", raw)
    assert FluxConfig.from_env().settle_timeout is None


def test_unknown_bool_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYFLUX_STRICT_OBSERVATION", "maybe")
    assert FluxConfig.from_env().strict_observation is False


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYFLUX_SETTLE_TIMEOUT", "2.5")
    monkeypatch.setenv("PYFLUX_STRICT_OBSERVATION", "1")

    config = FluxConfig.from_env(settle_timeout=None, strict_observation=False)

    assert config.settle_timeout is None
    assert config.strict_observation is False


def test_config_is_frozen() -> None:
    config = FluxConfig()
    with pytest.raises(AttributeError):
        config.settle_timeout = 1.0  # type: ignore[misc]
