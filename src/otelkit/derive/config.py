"""Derivation configuration module."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class DeriveConfig:
    """Configuration for ``derive``.

    Both flags can be overridden with environment variables:
    - OTEL_DERIVE_STRICT
    - OTEL_DERIVE_LOG_SOURCE

    Args:
        strict: Check at decoration time that the conversions generated code
            relies on (stringification, ``variant`` conversions, Key and Value
            for KeyValue) exist, instead of failing when it runs
        log_generated_source: Log emitted source at DEBUG level
    """

    strict: bool = False
    log_generated_source: bool = False

    def __post_init__(self) -> None:
        """Resolve configuration from environment variables."""
        if (env_strict := _env_flag("OTEL_DERIVE_STRICT")) is not None:
            object.__setattr__(self, "strict", env_strict)

        if (env_log := _env_flag("OTEL_DERIVE_LOG_SOURCE")) is not None:
            object.__setattr__(self, "log_generated_source", env_log)


_config: DeriveConfig | None = None
_config_lock = threading.Lock()


def get_config() -> DeriveConfig:
    """Return the process-wide configuration, creating the default on first use."""
    global _config
    with _config_lock:
        if _config is None:
            _config = DeriveConfig()
        return _config


def configure(config: DeriveConfig) -> None:
    """Replace the process-wide configuration used by later ``derive`` calls."""
    global _config
    with _config_lock:
        _config = config


def reset_config() -> None:
    """Drop the process-wide configuration; the next access re-reads the environment."""
    global _config
    with _config_lock:
        _config = None
