"""Runtime configuration for pyflux."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_timeout(value: str) -> float | None:
    normalized = value.strip().lower()
    if normalized in {"", "none", "null", "off"}:
        return None
    seconds = float(normalized)
    if seconds <= 0:
        return None
    return seconds


@dataclasses.dataclass(frozen=True)
class FluxConfig:
    """Dispatcher and store configuration.

    Parameters
    ----------
    settle_timeout : float or None
        Default number of seconds a settlement future waits for every
        store to emit ``change``.  ``None`` waits forever.  A per-call
        ``timeout`` passed to ``dispatch``/``wait_for`` takes precedence.
    strict_observation : bool
        Raise :class:`~pyflux.exceptions.CapabilityUnavailableError` from
        ``listen_changes`` when no change observer is available, instead
        of logging a warning and continuing in explicit-emit mode.
    warn_schemaless : bool
        Log a warning when a store has neither a schema nor a
        ``get_state`` override.
    """

    settle_timeout: float | None = None
    strict_observation: bool = False
    warn_schemaless: bool = True

    @classmethod
    def from_env(cls, **overrides: Any) -> FluxConfig:
        """Create configuration from environment variables.

        Reads ``PYFLUX_SETTLE_TIMEOUT``, ``PYFLUX_STRICT_OBSERVATION`` and
        ``PYFLUX_WARN_SCHEMALESS``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        timeout_env = env.get("PYFLUX_SETTLE_TIMEOUT")
        if timeout_env is not None and "settle_timeout" not in overrides:
            config_kwargs["settle_timeout"] = _env_timeout(timeout_env)

        if "strict_observation" not in overrides:
            config_kwargs["strict_observation"] = _env_bool(env.get("PYFLUX_STRICT_OBSERVATION"), False)

        if "warn_schemaless" not in overrides:
            config_kwargs["warn_schemaless"] = _env_bool(env.get("PYFLUX_WARN_SCHEMALESS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
