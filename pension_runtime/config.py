"""
Runtime Configuration: environment-driven settings.

An optional .env file next to the project root is loaded first; real
environment variables always win over it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv

from pension_kernel.constants import DEFAULT_ACCRUAL_RATE

DEFAULT_REGISTRY_TIMEOUT_SECONDS: float = 2.0
DEFAULT_LOG_LEVEL: str = "INFO"
DEFAULT_PORT: int = 8080

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True)
class Settings:
    scheme_registry_url: Optional[str] = None
    scheme_registry_timeout_seconds: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS
    default_accrual_rate: Decimal = DEFAULT_ACCRUAL_RATE
    log_level: str = DEFAULT_LOG_LEVEL
    port: int = DEFAULT_PORT

    @property
    def registry_enabled(self) -> bool:
        return bool(self.scheme_registry_url)


def load_env_file(path: Optional[str] = None) -> None:
    """Load KEY=VALUE pairs from a .env file without overriding the environment."""
    if path is None:
        path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
    if os.path.exists(path):
        load_dotenv(path, override=False)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (or an explicit mapping).
    Raises ConfigurationError for values that do not parse.
    """
    if environ is None:
        load_env_file()
        environ = os.environ

    url = (environ.get("SCHEME_REGISTRY_URL") or "").strip().rstrip("/")
    return Settings(
        scheme_registry_url=url or None,
        scheme_registry_timeout_seconds=_positive_float(
            environ, "SCHEME_REGISTRY_TIMEOUT_SECONDS", DEFAULT_REGISTRY_TIMEOUT_SECONDS,
        ),
        default_accrual_rate=_rate(environ, "DEFAULT_ACCRUAL_RATE", DEFAULT_ACCRUAL_RATE),
        log_level=_log_level(environ, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
        port=_port(environ, "PORT", DEFAULT_PORT),
    )


# ---------------------------------------------------------------------------
# Parsers (private)
# ---------------------------------------------------------------------------

def _raw(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _positive_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _raw(environ, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if not value > 0:
        raise ConfigurationError(f"{name} must be > 0, got {raw!r}")
    return value


def _rate(environ: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = _raw(environ, name)
    if raw is None:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal, got {raw!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"{name} must be a finite rate >= 0, got {raw!r}")
    return value


def _log_level(environ: Mapping[str, str], name: str, default: str) -> str:
    raw = _raw(environ, name)
    if raw is None:
        return default
    level = raw.upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"{name} must be one of {sorted(_LOG_LEVELS)}, got {raw!r}")
    return level


def _port(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _raw(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if not 0 < value < 65536:
        raise ConfigurationError(f"{name} out of range: {value}")
    return value
